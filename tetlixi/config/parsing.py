"""Parse-with-fallback helpers for loosely typed admin input."""

from __future__ import annotations

import math
from typing import Any, Optional


def _parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite number, or ``None`` when it is not one."""

    # ``bool`` is an ``int`` subclass but never a meaningful amount.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_int(value: Any, fallback: int) -> int:
    """Coerce ``value`` to an integer, truncating toward zero.

    Parameters
    ----------
    value : Any
        Raw input; ints, finite floats and numeric strings are accepted.
    fallback : int
        Returned unchanged when ``value`` cannot be parsed.
    """

    parsed = _parse_number(value)
    if parsed is None:
        return fallback
    return math.trunc(parsed)


def parse_float(value: Any, fallback: float) -> float:
    """Coerce ``value`` to a finite float, or return ``fallback``."""

    parsed = _parse_number(value)
    if parsed is None:
        return fallback
    return float(parsed)


def parse_bool(value: Any, fallback: bool) -> bool:
    """Accept real booleans or the exact strings ``"true"``/``"false"``."""

    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    return fallback


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


__all__ = ["clamp", "parse_bool", "parse_float", "parse_int"]
