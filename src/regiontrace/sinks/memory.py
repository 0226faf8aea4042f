"""In-memory sink."""

from __future__ import annotations

import threading
from typing import Literal, NamedTuple

RegionAction = Literal["enter", "exit"]


class RegionEvent(NamedTuple):
    action: RegionAction
    label: str
    thread_id: int


class MemorySink:
    """Records every region event. Good for tests and short-lived scripts."""

    def __init__(self) -> None:
        self.events: list[RegionEvent] = []

    def enter(self, label: str) -> None:
        self.events.append(RegionEvent("enter", label, threading.get_ident()))

    def exit(self, label: str) -> None:
        self.events.append(RegionEvent("exit", label, threading.get_ident()))

    def labels(self, action: RegionAction | None = None) -> list[str]:
        return [event.label for event in self.events if action is None or event.action == action]

    def clear(self) -> None:
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)
