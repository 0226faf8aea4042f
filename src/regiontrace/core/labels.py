"""Region label construction and per-thread interning."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .config import ProfilerConfig
from .frames import FrameInfo, format_arguments

logger = logging.getLogger(__name__)

ArgumentFormatter = Callable[[FrameInfo], str]


def basename(path: str) -> str:
    """Text after the last ``/``, or the whole path when there is none."""
    return path.rpartition("/")[2]


def build_label(
    info: FrameInfo,
    config: ProfilerConfig,
    format_args: ArgumentFormatter = format_arguments,
) -> str:
    """Build the region label for ``info``.

    ``compute``, ``compute(x=1)``, ``compute[mod.py]``, ``compute[mod.py:42]``,
    ``compute[/a/b/mod.py:42]`` or ``compute:42`` depending on the
    ``include_*`` and ``full_filepath`` flags. Returns an empty string when
    the function name is unknown.

    An ``AttributeError`` from ``format_args`` means no arguments are
    available; any other exception propagates.
    """
    if not info.function:
        return ""
    label = info.function
    if config.include_args:
        try:
            label += format_args(info)
        except AttributeError as exc:
            if config.verbosity > 1:
                logger.info("Error! %s", exc)
    if config.include_filename:
        path = info.filename if config.full_filepath else basename(info.filename)
        label += f"[{path}"
        if config.include_line:
            label += f":{info.lineno}"
        label += "]"
    elif config.include_line:
        label += f":{info.lineno}"
    return label


class LabelPool:
    """Interns labels so every structure holds the same string object.

    One pool per thread. It only grows.
    """

    __slots__ = ("_labels",)

    def __init__(self) -> None:
        self._labels: dict[str, str] = {}

    def intern(self, label: str) -> str:
        return self._labels.setdefault(label, label)

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, label: object) -> bool:
        return label in self._labels
