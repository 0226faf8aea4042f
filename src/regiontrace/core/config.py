"""Process-wide profiler configuration with lazily cloned per-thread snapshots.

Reads on the hot path never take a lock: every thread works on its own
snapshot. The first thread that asks shares the process-wide instance, every
later thread gets a deep copy taken at its first access. Writes made through
:class:`ConfigStore` land on the process-wide instance and the writer's own
snapshot only, so threads that already cloned keep their stale copy. Set the
configuration before starting worker threads.
"""

from __future__ import annotations

import copy
import re
import threading
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..diagnostics import disable_console_diagnostics, enable_console_diagnostics
from .matcher import compile_pattern

DEFAULT_SKIP_FUNCTIONS = frozenset(
    {
        "^(FILE|FUNC|LINE)$",
        "^get_fcode$",
        "^_(_exit__|handle_fromlist|shutdown|get_sep)$",
        "^is(function|class)$",
        "^basename$",
        "^<.*>$",
    }
)
DEFAULT_SKIP_FILENAMES = frozenset(
    {
        "(__init__|__main__|functools|encoder|decoder|_pylab_helpers|threading).py$",
        "^<.*>$",
    }
)

PATTERN_FIELDS = ("only_functions", "only_filenames", "skip_functions", "skip_filenames")


class ProfilerConfig(BaseModel):
    """Validated profiler settings. One process-wide instance plus per-thread copies."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    running: bool = False
    trace_native_calls: bool = False
    include_internal: bool = False
    include_args: bool = False
    include_line: bool = False
    include_filename: bool = False
    full_filepath: bool = False
    # carried state, not enforced by the callback
    ignore_stack_depth: int = 0
    base_stack_depth: int = -1
    base_module_path: str = ""
    only_functions: set[str] = Field(default_factory=set)
    only_filenames: set[str] = Field(default_factory=set)
    skip_functions: set[str] = Field(default_factory=lambda: set(DEFAULT_SKIP_FUNCTIONS))
    skip_filenames: set[str] = Field(default_factory=lambda: set(DEFAULT_SKIP_FILENAMES))
    verbosity: int = Field(default=0, ge=0)

    @field_validator(*PATTERN_FIELDS, mode="before")
    @classmethod
    def _coerce_patterns(cls, value: object) -> object:
        if isinstance(value, str):
            return {value}
        if isinstance(value, Iterable) and not isinstance(value, (set, dict)):
            return set(value)
        return value

    @field_validator(*PATTERN_FIELDS)
    @classmethod
    def _check_patterns(cls, value: set[str]) -> set[str]:
        for pattern in value:
            try:
                compile_pattern(pattern)
            except re.error as exc:
                raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc
        return value


class ConfigStore:
    """Owns the process-wide :class:`ProfilerConfig` and the per-thread snapshots."""

    def __init__(self, config: ProfilerConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._shared = config if config is not None else ProfilerConfig()
        self._local = threading.local()
        self._owner_claimed = False

    @property
    def shared(self) -> ProfilerConfig:
        """The process-wide instance."""
        return self._shared

    def get(self) -> ProfilerConfig:
        """Return the calling thread's snapshot, cloning the shared instance on first use."""
        try:
            return self._local.snapshot
        except AttributeError:
            pass
        with self._lock:
            if self._owner_claimed:
                snapshot = self._shared.model_copy(deep=True)
            else:
                snapshot = self._shared
                self._owner_claimed = True
        self._local.snapshot = snapshot
        return snapshot

    def update(self, **settings: Any) -> ProfilerConfig:
        """Validate and write ``settings`` to the process-wide instance.

        The calling thread's snapshot is updated too. Snapshots already cloned
        by other threads are left untouched. Pattern sets are extended, not
        replaced.
        """
        if not settings:
            return self.get()
        # validate everything up front so a bad value leaves no partial write
        validated = ProfilerConfig.model_validate({**self._shared.model_dump(), **settings})
        snapshot = self.get()
        for name in settings:
            value = getattr(validated, name)
            if name in PATTERN_FIELDS:
                setattr(self._shared, name, getattr(self._shared, name) | value)
                if snapshot is not self._shared:
                    setattr(snapshot, name, getattr(snapshot, name) | value)
                continue
            setattr(self._shared, name, value)
            if snapshot is not self._shared:
                setattr(snapshot, name, copy.copy(value))
        if "verbosity" in settings:
            if self._shared.verbosity > 0:
                enable_console_diagnostics(self._shared.verbosity)
            else:
                disable_console_diagnostics()
        return snapshot

    def reset(self) -> None:
        """Restore defaults and forget every thread's snapshot."""
        with self._lock:
            self._shared = ProfilerConfig()
            self._local = threading.local()
            self._owner_claimed = False


class _Setting:
    def __init__(self, doc: str, *, readonly: bool = False) -> None:
        self.__doc__ = doc
        self.readonly = readonly

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: ConfigSurface | None, owner: type) -> Any:
        if instance is None:
            return self
        value = getattr(instance.store.get(), self.name)
        if isinstance(value, set):
            return sorted(value)
        return value

    def __set__(self, instance: ConfigSurface, value: Any) -> None:
        if self.readonly:
            raise AttributeError(f"{self.name} is read-only")
        instance.store.update(**{self.name: value})


class ConfigSurface:
    """Attribute-style access to a :class:`ConfigStore`.

    Pattern sets read back as sorted lists. Writing a pattern set adds to it.
    """

    running = _Setting("Profiler is currently running")
    trace_native_calls = _Setting("Enable tracing builtin (C) function calls")
    include_internal = _Setting("Include functions defined inside regiontrace")
    include_args = _Setting("Encode the function arguments in the label")
    include_line = _Setting("Encode the line number in the label")
    include_filename = _Setting("Encode the file name in the label (see also: full_filepath)")
    full_filepath = _Setting("Display the full file path instead of the file basename")
    verbosity = _Setting("Verbosity of the diagnostic logging")
    only_functions = _Setting("Function regexes to collect exclusively")
    only_filenames = _Setting("Filename regexes to collect exclusively")
    skip_functions = _Setting("Function regexes to filter out of collection")
    skip_filenames = _Setting("Filename regexes to filter out of collection")
    base_module_path = _Setting("Directory of the installed package", readonly=True)
    ignore_stack_depth = _Setting("Carried stack-depth setting", readonly=True)
    base_stack_depth = _Setting("Carried stack-depth setting", readonly=True)

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def __repr__(self) -> str:
        return f"ConfigSurface({self.store.get()!r})"
