"""Public exception and warning types for regiontrace."""

from __future__ import annotations


class RegiontraceError(Exception):
    """Base class for all regiontrace exceptions."""


class ProfilerActiveError(RegiontraceError):
    """Raised when a profile session is started while another one is active."""


class RegiontraceWarning(UserWarning):
    """Base class for warnings about tracing problems that were swallowed."""


class PathResolutionWarning(RegiontraceWarning):
    """The package directory could not be resolved; internal frames are not excluded."""


class SinkErrorWarning(RegiontraceWarning):
    """A sink raised while entering or exiting a region."""
