from __future__ import annotations

import logging
import threading

import pytest

from regiontrace.core import ConfigStore, EventKind, FrameInfo, Profiler
from regiontrace.exceptions import PathResolutionWarning
from regiontrace.sinks import MemorySink

CALL = EventKind.CALL
RETURN = EventKind.RETURN


def _info(
    function: str,
    kind: EventKind | None = CALL,
    filename: str = "/a/b/mod.py",
    lineno: int = 1,
) -> FrameInfo:
    return FrameInfo(function=function, filename=filename, lineno=lineno, kind=kind)


def _profiler(sink: MemorySink, **settings: object) -> Profiler:
    store = ConfigStore()
    store.update(**settings)
    return Profiler(sink=sink, store=store, resolve_path=lambda: "/opt/site-packages/regiontrace")


def _actions(sink: MemorySink) -> list[tuple[str, str]]:
    return [(event.action, event.label) for event in sink.events]


# ---------------------------------------------------------------------------
# Pairing and depth
# ---------------------------------------------------------------------------


def test_nested_calls_pair_and_restore_depth() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)

    for name in ("A", "B", "C"):
        profiler.process(_info(name))
    assert profiler.depth == 3
    for name in ("C", "B", "A"):
        profiler.process(_info(name, RETURN))

    assert profiler.depth == 0
    assert _actions(sink) == [
        ("enter", "A"),
        ("enter", "B"),
        ("enter", "C"),
        ("exit", "C"),
        ("exit", "B"),
        ("exit", "A"),
    ]
    assert len(profiler.regions) == 0


def test_recursion_pairs_by_depth() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)

    profiler.process(_info("fib"))
    profiler.process(_info("fib"))
    profiler.process(_info("fib"))
    assert [len(profiler.regions.open_regions(d)) for d in range(3)] == [1, 1, 1]
    for _ in range(3):
        profiler.process(_info("fib", RETURN))

    assert profiler.depth == 0
    assert sink.labels("enter") == ["fib"] * 3
    assert sink.labels("exit") == ["fib"] * 3


def test_unmatched_return_is_noop() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.process(_info("A"))
    profiler.process(_info("B"))

    profiler.process(_info("X", RETURN))

    assert profiler.depth == 2
    assert _actions(sink) == [("enter", "A"), ("enter", "B")]
    assert [r.label for r in profiler.regions.open_regions()] == ["A", "B"]

    profiler.process(_info("B", RETURN))
    profiler.process(_info("A", RETURN))
    assert profiler.depth == 0
    assert sink.labels("exit") == ["B", "A"]


def test_return_before_any_call_is_noop() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)

    profiler.process(_info("outer", RETURN))

    assert profiler.depth == 0
    assert len(sink) == 0


def test_partial_trace_keeps_later_calls_balanced() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)

    # profiling started inside "outer": its call was never seen
    profiler.process(_info("inner"))
    profiler.process(_info("inner", RETURN))
    profiler.process(_info("outer", RETURN))
    profiler.process(_info("next"))
    profiler.process(_info("next", RETURN))

    assert _actions(sink) == [
        ("enter", "inner"),
        ("exit", "inner"),
        ("enter", "next"),
        ("exit", "next"),
    ]


def test_enter_and_exit_share_interned_label() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, include_filename=True, include_line=True)

    profiler.process(_info("compute", lineno=42))
    profiler.process(_info("compute", RETURN, lineno=42))

    enter, exit_ = sink.events
    assert enter.label == "compute[mod.py:42]"
    assert enter.label is exit_.label


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def test_unsupported_event_dropped() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.process(_info("A", kind=None))
    assert len(sink) == 0
    assert profiler.depth == 0


def test_native_events_need_trace_native_calls() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.process(_info("len", EventKind.C_CALL))
    assert len(sink) == 0

    profiler.store.update(trace_native_calls=True)
    profiler.process(_info("len", EventKind.C_CALL))
    profiler.process(_info("len", EventKind.C_RETURN))
    assert _actions(sink) == [("enter", "len"), ("exit", "len")]


def test_only_functions_drops_others() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, only_functions={"^foo$"})

    profiler.process(_info("bar"))
    assert len(sink) == 0

    profiler.process(_info("foo"))
    assert sink.labels("enter") == ["foo"]


def test_default_skip_functions() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    for name in ("basename", "<module>", "<lambda>", "isfunction", "_handle_fromlist", "LINE"):
        profiler.process(_info(name))
    assert len(sink) == 0


def test_default_skip_filenames() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    for path in ("/usr/lib/python3/threading.py", "/pkg/__init__.py", "<string>"):
        profiler.process(_info("work", filename=path))
    assert len(sink) == 0


def test_skip_functions_override_only_functions() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, only_functions={"^basename$"})
    profiler.process(_info("basename"))
    assert len(sink) == 0


def test_only_filenames() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, only_filenames={"/app/"})
    profiler.process(_info("work", filename="/lib/other.py"))
    profiler.process(_info("work", filename="/app/main.py"))
    assert sink.labels() == ["work"]


def test_custom_skip_filenames() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, skip_filenames={r"vendor/"})
    profiler.process(_info("work", filename="/app/vendor/lib.py"))
    assert len(sink) == 0


def test_custom_skip_functions_keep_default_deny_list() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, skip_functions=["^foo$"])
    for name in ("foo", "basename", "<module>", "work"):
        profiler.process(_info(name))
    assert sink.labels() == ["work"]


def test_internal_frames_excluded_after_init() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.init()

    profiler.process(_info("helper", filename="/opt/site-packages/regiontrace/core/x.py"))
    assert len(sink) == 0

    profiler.store.update(include_internal=True)
    profiler.process(_info("helper", filename="/opt/site-packages/regiontrace/core/x.py"))
    assert sink.labels() == ["helper"]


def test_empty_function_name_dropped() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, include_filename=True)
    profiler.process(_info(""))
    assert len(sink) == 0
    assert profiler.depth == 0


def test_call_and_return_filtered_consistently() -> None:
    sink = MemorySink()
    profiler = _profiler(sink, only_functions={"^keep$"})

    profiler.process(_info("keep"))
    profiler.process(_info("drop"))
    profiler.process(_info("drop", RETURN))
    profiler.process(_info("keep", RETURN))

    assert _actions(sink) == [("enter", "keep"), ("exit", "keep")]
    assert profiler.depth == 0


# ---------------------------------------------------------------------------
# Reentrancy and argument formatting
# ---------------------------------------------------------------------------


def test_nested_event_during_processing_is_dropped() -> None:
    sink = MemorySink()
    store = ConfigStore()
    store.update(include_args=True)

    def reentrant_formatter(info: FrameInfo) -> str:
        profiler.process(_info("__repr__"))
        profiler.process(_info("formatter_helper"))
        return "(x=1)"

    profiler = Profiler(sink=sink, store=store, format_args=reentrant_formatter)
    profiler.process(_info("compute"))

    assert _actions(sink) == [("enter", "compute(x=1)")]
    assert profiler.depth == 1


def test_formatter_attribute_error_drops_arguments_only() -> None:
    sink = MemorySink()
    store = ConfigStore()
    store.update(include_args=True)

    def formatter(info: FrameInfo) -> str:
        raise AttributeError("no frame")

    profiler = Profiler(sink=sink, store=store, format_args=formatter)
    profiler.process(_info("compute"))
    assert sink.labels() == ["compute"]


def test_formatter_errors_propagate_and_release_guard() -> None:
    sink = MemorySink()
    store = ConfigStore()
    store.update(include_args=True)
    calls: list[str] = []

    def formatter(info: FrameInfo) -> str:
        calls.append(info.function)
        if info.function == "bad":
            raise ValueError("cannot format")
        return ""

    profiler = Profiler(sink=sink, store=store, format_args=formatter)
    with pytest.raises(ValueError, match="cannot format"):
        profiler.process(_info("bad"))

    profiler.process(_info("good"))
    assert calls == ["bad", "good"]
    assert sink.labels() == ["good"]


def test_none_frame_is_noop() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler(None, "call", None)
    assert len(sink) == 0


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def test_empty_sink_is_kept() -> None:
    sink = MemorySink()
    store = ConfigStore()
    profiler = Profiler(sink=sink, store=store)

    assert profiler.sink is sink
    assert profiler.store is store
    profiler.process(_info("work"))
    assert sink.labels() == ["work"]


def test_init_sets_running_and_base_path() -> None:
    profiler = _profiler(MemorySink())
    assert not profiler.running

    profiler.init()

    assert profiler.running
    assert profiler.config.base_module_path == "/opt/site-packages/regiontrace"
    assert profiler.config.base_stack_depth == -1


def test_second_init_keeps_open_regions() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.init()
    profiler.process(_info("A"))

    profiler.init()

    assert [r.label for r in profiler.regions.open_regions()] == ["A"]
    assert len(sink) == 1


def test_finalize_discards_open_regions_without_exit() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.init()
    profiler.process(_info("A"))

    profiler.finalize()

    assert not profiler.running
    assert len(profiler.regions) == 0
    assert _actions(sink) == [("enter", "A")]


def test_finalize_when_not_running_is_noop() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.process(_info("A"))
    before = profiler.config.model_dump()

    profiler.finalize()

    assert profiler.config.model_dump() == before
    assert len(profiler.regions) == 1
    assert len(sink) == 1


def test_reinit_after_finalize_clears_regions() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.init()
    profiler.finalize()
    profiler.process(_info("A"))

    profiler.init()

    assert len(profiler.regions) == 0
    assert sink.labels("exit") == []


def test_path_resolution_failure_warns_and_degrades() -> None:
    def broken() -> str:
        raise ImportError("no such package")

    sink = MemorySink()
    profiler = Profiler(sink=sink, store=ConfigStore(), resolve_path=broken)

    with pytest.warns(PathResolutionWarning, match="no such package"):
        profiler.init()

    assert profiler.running
    assert profiler.config.base_module_path == ""
    profiler.process(_info("anything", filename="/opt/site-packages/regiontrace/x.py"))
    assert sink.labels() == ["anything"]


def test_finalize_clears_every_thread() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    profiler.init()
    opened = threading.Event()
    release = threading.Event()
    remaining: list[int] = []

    def worker() -> None:
        profiler.process(_info("worker"))
        opened.set()
        release.wait(timeout=5)
        remaining.append(len(profiler.regions))

    thread = threading.Thread(target=worker)
    thread.start()
    assert opened.wait(timeout=5)
    profiler.finalize()
    release.set()
    thread.join(timeout=5)

    assert remaining == [0]


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------


def test_threads_keep_independent_depth_and_stacks() -> None:
    sink = MemorySink()
    profiler = _profiler(sink)
    barrier = threading.Barrier(2)
    depths: dict[str, int] = {}

    def worker(name: str) -> None:
        profiler.process(_info(name))
        barrier.wait(timeout=5)
        profiler.process(_info("shared"))
        depths[name] = profiler.depth
        profiler.process(_info("shared", RETURN))
        profiler.process(_info(name, RETURN))

    threads = [threading.Thread(target=worker, args=(n,)) for n in ("t1", "t2")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert depths == {"t1": 2, "t2": 2}
    by_thread: dict[int, list[tuple[str, str]]] = {}
    for event in sink.events:
        by_thread.setdefault(event.thread_id, []).append((event.action, event.label))
    assert len(by_thread) == 2
    for actions in by_thread.values():
        name = actions[0][1]
        assert actions == [
            ("enter", name),
            ("enter", "shared"),
            ("exit", "shared"),
            ("exit", name),
        ]
    assert profiler.depth == 0


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


def test_skips_logged_only_above_verbosity(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="regiontrace")

    quiet = _profiler(MemorySink(), only_functions={"^foo$"})
    quiet.process(_info("bar"))
    assert "Skipping" not in caplog.text

    chatty = _profiler(MemorySink(), only_functions={"^foo$"}, verbosity=2)
    chatty.process(_info("bar"))
    chatty.process(_info("x", kind=None))
    assert "Skipping non-included function: bar" in caplog.text
    assert "Ignoring event" not in caplog.text

    chatty.store.update(verbosity=3)
    chatty.process(_info("x", kind=None))
    assert "Ignoring event" in caplog.text
