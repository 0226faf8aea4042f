"""ProfileSession: installs a Profiler as the interpreter's profile hook."""

from __future__ import annotations

import sys
import threading
from types import TracebackType
from typing import Any

from ..exceptions import ProfilerActiveError
from .profiler import Profiler

_active_session: ProfileSession | None = None
_session_lock = threading.Lock()


class ProfileSession:
    """Sync context manager that profiles everything run inside it.

    Installs the profiler on the current thread with ``sys.setprofile`` and on
    threads started afterwards with ``threading.setprofile``. Threads that are
    already running are not profiled. Only one session may be active.
    """

    def __init__(self, profiler: Profiler) -> None:
        self.profiler = profiler
        self._previous: tuple[Any, Any] | None = None

    @property
    def active(self) -> bool:
        return _active_session is self

    def start(self) -> ProfileSession:
        global _active_session
        with _session_lock:
            if _active_session is not None:
                raise ProfilerActiveError("a profile session is already active")
            _active_session = self
        self.profiler.init()
        self._previous = (sys.getprofile(), threading.getprofile())
        threading.setprofile(self.profiler)
        sys.setprofile(self.profiler)
        return self

    def stop(self) -> None:
        """Restore the previous hooks and finalize the profiler."""
        global _active_session
        if _active_session is not self:
            return
        previous_sys, previous_threading = self._previous or (None, None)
        sys.setprofile(previous_sys)
        threading.setprofile(previous_threading)
        self._previous = None
        self.profiler.finalize()
        with _session_lock:
            _active_session = None

    def __enter__(self) -> ProfileSession:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self.stop()
        return False


def active_session() -> ProfileSession | None:
    """The running session, if any."""
    return _active_session
