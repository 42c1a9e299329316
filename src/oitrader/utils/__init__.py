"""Shared helpers: numeric sanitising and logging setup."""

from oitrader.utils.numeric import (
    all_valid_prices,
    finite_or_zero,
    is_valid_price,
    pct_change,
    safe_div,
)

__all__ = [
    "all_valid_prices",
    "finite_or_zero",
    "is_valid_price",
    "pct_change",
    "safe_div",
]
