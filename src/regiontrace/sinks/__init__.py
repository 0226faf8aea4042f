"""Region sinks."""

from .base import NullSink, Sink
from .callback import CallbackSink
from .memory import MemorySink, RegionEvent

__all__ = ["CallbackSink", "MemorySink", "NullSink", "RegionEvent", "Sink"]
