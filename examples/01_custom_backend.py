"""Example 1: Forwarding regions to an existing backend.

A toy backend accumulates call counts per label; CallbackSink plugs its
push/pop functions straight into the profiler without a wrapper class.
Worker threads started inside the session are profiled as well.
"""

from __future__ import annotations

import threading
from collections import Counter

from regiontrace import CallbackSink
from regiontrace.core import ConfigStore, Profiler, ProfileSession


class CountingBackend:
    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.open = 0
        self._lock = threading.Lock()

    def push_region(self, label: str) -> None:
        with self._lock:
            self.calls[label] += 1
            self.open += 1

    def pop_region(self, label: str) -> None:
        with self._lock:
            self.open -= 1


def parse(line: str) -> list[str]:
    return line.split(",")


def work(lines: list[str]) -> int:
    return sum(len(parse(line)) for line in lines)


def main() -> None:
    backend = CountingBackend()
    store = ConfigStore()
    # set before starting threads: worker threads copy the settings on first use
    store.update(only_functions=["^(work|parse)$"], include_line=True)
    profiler = Profiler(sink=CallbackSink(backend.push_region, backend.pop_region), store=store)

    with ProfileSession(profiler):
        threads = [threading.Thread(target=work, args=(["a,b", "c"],)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    for label, count in backend.calls.most_common():
        print(f"{count:4d}  {label}")
    print(f"open regions left: {backend.open}")


if __name__ == "__main__":
    main()
