from __future__ import annotations

import pytest

import regiontrace
from regiontrace.diagnostics import disable_console_diagnostics


def reset_regiontrace_config() -> None:
    """Reset the default profiler and settings between tests."""
    regiontrace._reset_default_profiler()
    disable_console_diagnostics()


@pytest.fixture(autouse=True)
def _reset_config() -> None:
    reset_regiontrace_config()
