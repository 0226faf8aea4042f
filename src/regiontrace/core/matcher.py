"""Regex allow/deny list matching for function names and file paths."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache


@lru_cache(maxsize=None)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile ``pattern`` once per process; raises ``re.error`` when invalid."""
    return re.compile(pattern)


def matches_any(patterns: Iterable[str], text: str) -> bool:
    """Return True if any pattern is found anywhere in ``text``.

    Search semantics, not full-match: ``"mod"`` matches ``"/a/mod.py"``.
    Anchor with ``^``/``$`` to match a whole name. Patterns are tried in turn
    and the first hit short-circuits.
    """
    for pattern in patterns:
        if compile_pattern(pattern).search(text) is not None:
            return True
    return False
