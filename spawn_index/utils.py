"""Utility functions for SpawnIndex.

Small formatting and numeric helpers shared by the calculation modules.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional


def paste_nicely(items: Iterable[Any], sep: str = ", ", final: str = "and") -> str:
    """Join items into an English list: '1, 2, and 3'.

    Examples:
        paste_nicely([1])        # '1'
        paste_nicely([1, 2])     # '1 and 2'
        paste_nicely([1, 2, 3])  # '1, 2, and 3'
    """
    words = [str(x) for x in items]
    if len(words) <= 1:
        return "".join(words)
    if len(words) == 2:
        return f"{words[0]} {final} {words[1]}"
    return f"{sep.join(words[:-1])}{sep}{final} {words[-1]}"


def is_missing(value: Any) -> bool:
    """True for None, NaN, and pandas NA/NaT."""
    if value is None:
        return True
    try:
        return bool(value != value)  # NaN, NaT
    except TypeError:
        # pandas.NA refuses boolean coercion
        return True


def as_float(value: Any) -> Optional[float]:
    """Float value, or None when missing."""
    if is_missing(value):
        return None
    return float(value)


def as_int(value: Any) -> Optional[int]:
    """Integer value, or None when missing."""
    if is_missing(value):
        return None
    f = float(value)
    if not f.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return int(f)


def is_close(a: float, b: float, rel_tol: float = 1e-5) -> bool:
    return math.isclose(a, b, rel_tol=rel_tol)
