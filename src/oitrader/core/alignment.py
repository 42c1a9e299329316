"""
Timestamp alignment for series sampled on different clocks.

Klines and open interest come from separate endpoints whose timestamps
rarely coincide. align_by_timestamp pairs every left record with the right
record nearest in time, within a tolerance window.

Usage:
    pairs = align_by_timestamp(candles, oi_points, tolerance_ms=60_000)
    for candle, oi in pairs:
        ...
"""

from bisect import bisect_left
from typing import Callable, Optional, Sequence, TypeVar

L = TypeVar("L")
R = TypeVar("R")


def _timestamp(record) -> int:
    return record.timestamp


def nearest_index(
    timestamps: Sequence[int],
    target: int,
    tolerance_ms: int,
) -> Optional[int]:
    """
    Index of the timestamp nearest to target.

    Args:
        timestamps: Ascending timestamps
        target: Timestamp to match
        tolerance_ms: Maximum allowed distance (inclusive)

    Returns:
        Index of the nearest timestamp, the earlier one on ties,
        or None when nothing lies within tolerance
    """
    if not timestamps:
        return None

    pos = bisect_left(timestamps, target)
    best = None
    best_distance = None
    for idx in (pos - 1, pos):
        if 0 <= idx < len(timestamps):
            distance = abs(timestamps[idx] - target)
            if best_distance is None or distance < best_distance:
                best, best_distance = idx, distance

    if best_distance is None or best_distance > tolerance_ms:
        return None
    return best


def align_by_timestamp(
    left: Sequence[L],
    right: Sequence[R],
    tolerance_ms: int,
    key: Callable = _timestamp,
) -> list[tuple[L, R]]:
    """
    Pair each left record with its nearest right record.

    Left records without a right record inside the tolerance window are
    dropped. Right input need not be sorted.

    Args:
        left: Driving series (e.g. candles)
        right: Series to join (e.g. open interest points)
        tolerance_ms: Maximum timestamp distance, inclusive
        key: Timestamp accessor

    Returns:
        List of (left, right) pairs in left order
    """
    ordered = sorted(right, key=key)
    timestamps = [key(r) for r in ordered]

    pairs = []
    for record in left:
        idx = nearest_index(timestamps, key(record), tolerance_ms)
        if idx is not None:
            pairs.append((record, ordered[idx]))
    return pairs
