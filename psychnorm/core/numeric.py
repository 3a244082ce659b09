"""Numeric coercion and rounding helpers.

Raw test inputs arrive as strings, numbers or nothing at all; every scorer
funnels them through these helpers so that malformed values become zero
instead of raising. Rounding is always half-up (``2.5 -> 3``), never the
banker's rounding of the builtin ``round``.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

__all__ = [
    "to_int_safe",
    "to_float_safe",
    "non_negative_int",
    "safe_div",
    "round_half_up",
    "round_to_multiple",
]


def to_int_safe(value: Any, default: int = 0) -> int:
    """Convert a value to int, returning ``default`` when it cannot be parsed.

    Example:
        >>> to_int_safe("42")
        42
        >>> to_int_safe("7.9")
        7
        >>> to_int_safe("abc")
        0
    """
    try:
        if isinstance(value, str):
            return int(float(value.strip()))
        return int(value)
    except (ValueError, TypeError, OverflowError):
        return default


def to_float_safe(value: Any, default: float = 0.0) -> float:
    """Convert a value to a finite float, returning ``default`` otherwise."""
    try:
        result = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, TypeError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def non_negative_int(value: Any) -> int:
    return max(0, to_int_safe(value))


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` when the denominator is zero.

    Example:
        >>> safe_div(10, 4)
        2.5
        >>> safe_div(10, 0)
        0.0
    """
    if denominator == 0:
        return default
    return numerator / denominator


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round with ROUND_HALF_UP semantics.

    Example:
        >>> round_half_up(2.5)
        3.0
        >>> round_half_up(2.345, 2)
        2.35
    """
    quantizer = Decimal(10) ** -decimals
    return float(Decimal(str(value)).quantize(quantizer, rounding=ROUND_HALF_UP))


def round_to_multiple(value: float, step: int) -> int:
    """Round to the nearest multiple of ``step``; halves go up.

    Example:
        >>> round_to_multiple(52.5, 5)
        55
        >>> round_to_multiple(52.4, 5)
        50
    """
    if step <= 0:
        raise ValueError("step must be positive")
    return int(math.floor(value / step + 0.5)) * step
