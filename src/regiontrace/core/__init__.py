"""Core profiling runtime."""

from .config import ConfigStore, ConfigSurface, ProfilerConfig
from .frames import EventKind, FrameInfo, format_arguments, frame_info
from .labels import LabelPool, build_label
from .matcher import matches_any
from .profiler import Profiler, resolve_package_path
from .regions import Region, RegionStack
from .session import ProfileSession, active_session

__all__ = [
    "ConfigStore",
    "ConfigSurface",
    "EventKind",
    "FrameInfo",
    "LabelPool",
    "ProfileSession",
    "Profiler",
    "ProfilerConfig",
    "Region",
    "RegionStack",
    "active_session",
    "build_label",
    "format_arguments",
    "frame_info",
    "matches_any",
    "resolve_package_path",
]
