"""
Numeric sanitising helpers shared by the analyzers.

Volumes and open interest treat missing or non-finite values as 0.
Price-like fields are checked with is_valid_price so an analyzer can
short-circuit to its empty result instead of propagating NaN.
"""

import math
from typing import Iterable, Optional


def finite_or_zero(value: Optional[float]) -> float:
    """Return value as float, or 0.0 for None/NaN/inf."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_valid_price(value: Optional[float]) -> bool:
    """True when value is a finite, strictly positive number."""
    if value is None:
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


def all_valid_prices(values: Iterable[Optional[float]]) -> bool:
    return all(is_valid_price(v) for v in values)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning default when the denominator is zero or non-finite."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator


def pct_change(current: float, base: float) -> Optional[float]:
    """Fractional change from base to current; None when base is zero."""
    if base == 0 or not math.isfinite(base) or not math.isfinite(current):
        return None
    return (current - base) / base
