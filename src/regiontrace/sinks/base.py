"""Sink protocol: the instrumentation backend that receives region events."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Sink(Protocol):
    """Receives paired region events.

    Calls for one thread arrive in LIFO order. The same label may be entered
    concurrently from several threads. Exceptions raised here are swallowed
    with a :class:`~regiontrace.exceptions.SinkErrorWarning`.
    """

    def enter(self, label: str) -> None: ...
    def exit(self, label: str) -> None: ...


class NullSink:
    """No-op sink. The default when no backend is configured."""

    def enter(self, label: str) -> None:
        pass

    def exit(self, label: str) -> None:
        pass
