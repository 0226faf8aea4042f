"""Profile hook turning call/return events into paired sink regions."""

from __future__ import annotations

import importlib
import logging
import os
import threading
import warnings
import weakref
from collections.abc import Callable
from types import FrameType

from ..exceptions import PathResolutionWarning
from ..sinks import NullSink, Sink
from .config import ConfigStore, ProfilerConfig
from .frames import FrameInfo, format_arguments, frame_info
from .labels import ArgumentFormatter, LabelPool, build_label
from .matcher import matches_any
from .regions import RegionStack

logger = logging.getLogger(__name__)

PACKAGE_NAME = __name__.partition(".")[0]


def resolve_package_path(package: str = PACKAGE_NAME) -> str:
    """Directory holding ``package``; frames from there are internal."""
    module = importlib.import_module(package)
    return os.path.dirname(module.__file__)  # type: ignore[arg-type]


class _ThreadState(threading.local):
    def __init__(
        self, sink: Sink, registry: weakref.WeakSet[RegionStack], lock: threading.Lock
    ) -> None:
        self.active = False
        self.depth = 0
        self.labels = LabelPool()
        self.regions = RegionStack(sink)
        with lock:
            registry.add(self.regions)


class Profiler:
    """Filters profile events and forwards accepted ones to a :class:`Sink`.

    Install an instance with ``sys.setprofile``/``threading.setprofile`` or
    drive it through :class:`~regiontrace.core.session.ProfileSession`.

    Error-handling contract
    ----------------------
    - Nothing the profiler itself does raises into the traced program.
      Unsupported events and unmatched returns are dropped, sink and
      path-resolution failures become warnings.
    - Only non-``AttributeError`` exceptions from the argument formatter
      propagate, because that formatter is caller supplied.
    """

    def __init__(
        self,
        sink: Sink | None = None,
        store: ConfigStore | None = None,
        *,
        format_args: ArgumentFormatter = format_arguments,
        resolve_path: Callable[[], str] = resolve_package_path,
    ) -> None:
        self.sink: Sink = sink if sink is not None else NullSink()
        self.store = store if store is not None else ConfigStore()
        self._format_args = format_args
        self._resolve_path = resolve_path
        self._lock = threading.Lock()
        self._trackers: weakref.WeakSet[RegionStack] = weakref.WeakSet()
        self._state = _ThreadState(self.sink, self._trackers, self._lock)

    # ------------------------------------------------------------ lifecycle
    @property
    def config(self) -> ProfilerConfig:
        return self.store.get()

    @property
    def running(self) -> bool:
        return self.store.get().running

    def init(self) -> None:
        """Resolve the package path, then start running if not already.

        Calling it again while running leaves open regions alone.
        """
        try:
            self.store.update(base_module_path=self._resolve_path())
        except Exception as exc:
            warnings.warn(
                f"regiontrace: unable to resolve package path ({exc}); "
                "internal frames will not be excluded",
                PathResolutionWarning,
                stacklevel=2,
            )
        if self.store.get().running:
            return
        self._clear_regions()
        self.store.update(base_stack_depth=-1, running=True)

    def finalize(self) -> None:
        """Stop running and discard open regions without exiting them."""
        if not self.store.get().running:
            return
        self.store.update(running=False, base_stack_depth=-1)
        self._clear_regions()

    def _clear_regions(self) -> None:
        with self._lock:
            for regions in list(self._trackers):
                regions.clear()

    # --------------------------------------------------------- thread state
    @property
    def depth(self) -> int:
        """Calling thread's traced nesting level."""
        return self._state.depth

    @property
    def regions(self) -> RegionStack:
        """Calling thread's region tracker."""
        return self._state.regions

    # ------------------------------------------------------------ callbacks
    def __call__(self, frame: FrameType | None, event: str, arg: object) -> None:
        if frame is None:
            return
        self.process(frame_info(frame, event, arg))

    def process(self, info: FrameInfo) -> None:
        """Handle one event. Re-entrant calls on the same thread are dropped."""
        state = self._state
        if state.active:
            return
        state.active = True
        try:
            self._dispatch(state, info)
        finally:
            state.active = False

    def _dispatch(self, state: _ThreadState, info: FrameInfo) -> None:
        config = self.store.get()
        verbose = config.verbosity
        kind = info.kind

        if kind is None:
            if verbose > 2:
                logger.debug(
                    "Ignoring event other than call/c_call/return/c_return :: %s", info.event
                )
            return

        if kind.is_native and not config.trace_native_calls:
            if verbose > 2:
                logger.debug("Ignoring C call/return :: %s", kind)
            return

        func = info.function
        if config.only_functions and not matches_any(config.only_functions, func):
            if verbose > 1:
                logger.debug("Skipping non-included function: %s", func)
            return
        if matches_any(config.skip_functions, func):
            if verbose > 1:
                logger.debug("Skipping designated function: '%s'", func)
            return

        path = info.filename
        base = config.base_module_path
        if not config.include_internal and base and path.startswith(base):
            if verbose > 2:
                logger.debug("Skipping internal function: %s", func)
            return
        if config.only_filenames and not matches_any(config.only_filenames, path):
            if verbose > 2:
                logger.debug("Skipping non-included file: %s", path)
            return
        if matches_any(config.skip_filenames, path):
            if verbose > 2:
                logger.debug("Skipping designated file: %s", path)
            return

        if verbose > 3:
            logger.debug("%8s | %s | %s:%s", kind, func, path, info.lineno)

        label = build_label(info, config, self._format_args)
        if not label:
            return
        label = state.labels.intern(label)

        if kind.is_call:
            state.regions.push(state.depth, label)
            state.depth += 1
        elif state.regions.pop(state.depth - 1, label):
            state.depth -= 1
