"""Sink built from two plain callables."""

from __future__ import annotations

from collections.abc import Callable


class CallbackSink:
    """Forwards region events to ``enter``/``exit`` callables.

    Use it to plug a backend's push/pop region functions in directly::

        CallbackSink(backend.push_region, backend.pop_region)
    """

    def __init__(self, enter: Callable[[str], object], exit: Callable[[str], object]) -> None:
        self._enter = enter
        self._exit = exit

    def enter(self, label: str) -> None:
        self._enter(label)

    def exit(self, label: str) -> None:
        self._exit(label)
