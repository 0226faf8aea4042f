"""Depth-indexed stacks of open regions, one tracker per thread."""

from __future__ import annotations

import warnings
from collections import defaultdict

from ..exceptions import SinkErrorWarning
from ..sinks import Sink


class Region:
    """An open region: closes on the same sink and label it was entered with."""

    __slots__ = ("label", "sink")

    def __init__(self, label: str, sink: Sink) -> None:
        self.label = label
        self.sink = sink

    def enter(self) -> None:
        try:
            self.sink.enter(self.label)
        except Exception:
            warnings.warn(
                f"regiontrace: sink error entering region '{self.label}'",
                SinkErrorWarning,
                stacklevel=2,
            )

    def exit(self) -> None:
        try:
            self.sink.exit(self.label)
        except Exception:
            warnings.warn(
                f"regiontrace: sink error exiting region '{self.label}'",
                SinkErrorWarning,
                stacklevel=2,
            )

    def __repr__(self) -> str:
        return f"Region({self.label!r})"


class RegionStack:
    """Pairs every accepted call with its return, per ``(depth, label)``.

    Not thread-safe; each thread owns its own tracker.
    """

    __slots__ = ("__weakref__", "_records", "sink")

    def __init__(self, sink: Sink) -> None:
        self.sink = sink
        self._records: defaultdict[int, defaultdict[str, list[Region]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def push(self, depth: int, label: str) -> Region:
        """Open a region for ``label`` at ``depth`` and enter it on the sink."""
        region = Region(label, self.sink)
        self._records[depth][label].append(region)
        region.enter()
        return region

    def pop(self, depth: int, label: str) -> bool:
        """Exit the most recent region for ``(depth, label)``.

        Returns False, touching nothing, when there is no open region there.
        """
        labels = self._records.get(depth)
        if labels is None:
            return False
        stack = labels.get(label)
        if not stack:
            return False
        stack[-1].exit()
        stack.pop()
        return True

    def open_regions(self, depth: int | None = None) -> list[Region]:
        """Open regions, innermost depth last; restricted to ``depth`` when given."""
        depths = sorted(self._records) if depth is None else [depth]
        return [
            region
            for d in depths
            for stack in self._records.get(d, {}).values()
            for region in stack
        ]

    def clear(self) -> None:
        """Forget all open regions without exiting them on the sink."""
        self._records.clear()

    def __len__(self) -> int:
        return sum(len(stack) for labels in self._records.values() for stack in labels.values())
