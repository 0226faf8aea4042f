"""Basic usage example using the convenience API."""

from __future__ import annotations

import regiontrace
from regiontrace import MemorySink


def fib(n: int) -> int:
    return n if n < 2 else fib(n - 1) + fib(n - 2)


def main() -> None:
    sink = MemorySink()

    with regiontrace.profile(sink, only_functions=["^fib$"], include_filename=True):
        fib(5)

    depth = 0
    for event in sink.events:
        if event.action == "exit":
            depth -= 1
            continue
        print(f"{'  ' * depth}{event.label}")
        depth += 1
    print(f"{len(sink.labels('enter'))} regions recorded")


if __name__ == "__main__":
    main()
