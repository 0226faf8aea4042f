"""regiontrace: function-level region tracing through the interpreter's profile hook.

Convenience API (delegates to a default Profiler instance):
    regiontrace.configure(...)   -> change settings, optionally set the sink
    regiontrace.config.<name>    -> read or write one setting
    regiontrace.profile(...)     -> profile everything inside a ``with`` block
    regiontrace.init() / finalize()

DI API (construct your own Profiler):
    from regiontrace.core import ConfigStore, Profiler, ProfileSession
    profiler = Profiler(sink=my_sink, store=ConfigStore())
    with ProfileSession(profiler):
        ...
"""

from __future__ import annotations

from typing import Any

from .core import ConfigStore, ConfigSurface, Profiler, ProfilerConfig, ProfileSession
from .exceptions import ProfilerActiveError, RegiontraceError
from .sinks import CallbackSink, MemorySink, NullSink, Sink

_store = ConfigStore()
_default_profiler: Profiler | None = None

config = ConfigSurface(_store)


def get_profiler() -> Profiler:
    """Return the default Profiler, creating it with a NullSink on first use."""
    global _default_profiler
    if _default_profiler is None:
        _default_profiler = Profiler(store=_store)
    return _default_profiler


def configure(*, sink: Sink | None = None, **settings: Any) -> ProfilerConfig:
    """Apply ``settings`` process-wide and return the calling thread's view.

    Passing ``sink`` replaces the default profiler with one bound to it.
    """
    global _default_profiler
    if sink is not None:
        _default_profiler = Profiler(sink=sink, store=_store)
    return _store.update(**settings)


def get_config() -> ProfilerConfig:
    return _store.get()


def init() -> None:
    get_profiler().init()


def finalize() -> None:
    get_profiler().finalize()


def profile(sink: Sink | None = None, **settings: Any) -> ProfileSession:
    """Profile the body of a ``with`` block with the default profiler."""
    if sink is not None or settings:
        configure(sink=sink, **settings)
    return ProfileSession(get_profiler())


def _reset_default_profiler() -> None:
    """Reset the default profiler and settings. Used by test fixtures."""
    global _default_profiler
    _default_profiler = None
    _store.reset()


__all__ = [
    "CallbackSink",
    "ConfigStore",
    "MemorySink",
    "NullSink",
    "ProfileSession",
    "Profiler",
    "ProfilerActiveError",
    "ProfilerConfig",
    "RegiontraceError",
    "Sink",
    "config",
    "configure",
    "finalize",
    "get_config",
    "get_profiler",
    "init",
    "profile",
]
