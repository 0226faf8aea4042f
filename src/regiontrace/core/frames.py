"""Adapter from interpreter profile events to plain :class:`FrameInfo` values."""

from __future__ import annotations

import inspect
from enum import StrEnum
from types import FrameType
from typing import NamedTuple


class EventKind(StrEnum):
    CALL = "call"
    C_CALL = "c_call"
    RETURN = "return"
    C_RETURN = "c_return"

    @property
    def is_native(self) -> bool:
        return self is EventKind.C_CALL or self is EventKind.C_RETURN

    @property
    def is_call(self) -> bool:
        return self is EventKind.CALL or self is EventKind.C_CALL


_HOST_EVENTS: dict[str, EventKind] = {
    "call": EventKind.CALL,
    "c_call": EventKind.C_CALL,
    "return": EventKind.RETURN,
    "c_return": EventKind.C_RETURN,
}


class FrameInfo(NamedTuple):
    """One profile event, reduced to what filtering and labeling need."""

    function: str
    filename: str
    lineno: int
    kind: EventKind | None
    event: str = ""
    frame: FrameType | None = None


def frame_info(frame: FrameType, event: str, arg: object) -> FrameInfo:
    """Build a :class:`FrameInfo` from a ``sys.setprofile`` callback triple.

    For builtin calls the frame belongs to the caller, so the name comes from
    the builtin itself when it has one.
    """
    kind = _HOST_EVENTS.get(event)
    code = frame.f_code
    name = code.co_name
    if kind is not None and kind.is_native:
        name = getattr(arg, "__qualname__", None) or getattr(arg, "__name__", None) or name
    return FrameInfo(
        function=name if isinstance(name, str) else "",
        filename=code.co_filename,
        lineno=frame.f_lineno or 0,
        kind=kind,
        event=event,
        frame=frame,
    )


def format_arguments(info: FrameInfo) -> str:
    """Render the frame's arguments as ``(a=1, b='x')``.

    Raises ``AttributeError`` when no frame is attached.
    """
    return inspect.formatargvalues(*inspect.getargvalues(info.frame))  # type: ignore[arg-type]
