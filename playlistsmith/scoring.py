"""
Text similarity used to compare library metadata against playlist queries.

The score is deliberately cheap: exact equality and containment are handled
first, everything else gets a blend of positional character agreement and
bigram overlap. It is order-sensitive, so callers always pass the library
value first and the query value second.
"""
from __future__ import annotations

from typing import Optional


def normalize_string(s: Optional[str]) -> str:
    """Lowercase and trim. ``None`` becomes the empty string."""
    if s is None:
        return ""
    return s.strip().lower()


def _positional_agreement(a: str, b: str) -> int:
    return sum(1 for x, y in zip(a, b) if x == y)


def _bigram_hits(a: str, b: str) -> int:
    return sum(1 for i in range(len(a) - 1) if a[i : i + 2] in b)


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Score how much ``a`` resembles ``b`` on a 0..100 scale.

    Rules, in order:
      - empty input on either side scores 0
      - equal strings score 100
      - containment scores ``min(len) / max(len) * 100``
      - otherwise positional agreement (up to 50) plus bigram overlap of
        ``a`` found in ``b`` (up to 50), capped at 100

    All non-trivial results are rounded to two decimals.
    """
    a = normalize_string(a)
    b = normalize_string(b)
    if not a or not b:
        return 0.0
    if a == b:
        return 100.0

    shortest = min(len(a), len(b))
    longest = max(len(a), len(b))

    if a in b or b in a:
        return round(shortest / longest * 100, 2)

    positional = _positional_agreement(a, b) / longest * 50
    bigrams = _bigram_hits(a, b) / max(1, len(a) - 1) * 50
    return round(min(positional + bigrams, 100.0), 2)
