"""
OI Delta by Price

Maps open interest changes onto the price buckets where they happened, to
show where positions were built or unwound:

- OI up, price up: BUILD_LONG
- OI up, price down or flat: BUILD_SHORT
- OI down, price up: UNWIND_SHORT
- OI down, price down or flat: UNWIND_LONG

Usage:
    analysis = OIDeltaByPriceAnalyzer(bucket_size=10).analyze(candles, oi_points)
    for bucket in analysis.buckets:
        print(bucket.price, bucket.delta_type, classify_oi_delta(bucket).signal)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from oitrader.core.alignment import nearest_index
from oitrader.core.models import Candle, OpenInterestPoint
from oitrader.utils.numeric import finite_or_zero, is_valid_price, pct_change, safe_div

logger = logger.bind(component="OIDeltaByPriceAnalyzer")


class OIDeltaType(str, Enum):
    BUILD_LONG = "BUILD_LONG"
    BUILD_SHORT = "BUILD_SHORT"
    UNWIND_LONG = "UNWIND_LONG"
    UNWIND_SHORT = "UNWIND_SHORT"
    NEUTRAL = "NEUTRAL"


class OIDeltaSignal(str, Enum):
    BULLISH_BUILD = "BULLISH_BUILD"
    BEARISH_BUILD = "BEARISH_BUILD"
    BEARISH_UNWIND = "BEARISH_UNWIND"
    BULLISH_UNWIND = "BULLISH_UNWIND"
    NEUTRAL = "NEUTRAL"


class DeltaStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


@dataclass(frozen=True, slots=True)
class OIDeltaBucket:
    """
    OI change attributed to one price bucket.

    delta_type and oi_change reflect the latest bar that closed in the
    bucket; oi_delta and volume accumulate over all of them.
    """

    price: float
    oi_delta: float
    oi_change: float
    volume: float
    delta_type: OIDeltaType
    intensity: float


@dataclass(frozen=True, slots=True)
class OIDeltaAnalysis:
    buckets: tuple[OIDeltaBucket, ...] = ()
    max_delta: float = 0.0
    min_delta: float = 0.0
    avg_delta: float = 0.0
    total_build_long: float = 0.0
    total_build_short: float = 0.0
    total_unwind_long: float = 0.0
    total_unwind_short: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.buckets


@dataclass(frozen=True, slots=True)
class OIDeltaReading:
    signal: OIDeltaSignal
    strength: DeltaStrength
    description: str


def _delta_type(oi_delta: float, price_change: float) -> OIDeltaType:
    if oi_delta > 0:
        return OIDeltaType.BUILD_LONG if price_change > 0 else OIDeltaType.BUILD_SHORT
    if oi_delta < 0:
        return OIDeltaType.UNWIND_SHORT if price_change > 0 else OIDeltaType.UNWIND_LONG
    return OIDeltaType.NEUTRAL


class OIDeltaByPriceAnalyzer:
    """Bucket OI deltas by the closing price of each bar."""

    def __init__(self, bucket_size: float = 10.0, tolerance_ms: int = 60_000):
        """
        Initialize analyzer.

        Args:
            bucket_size: Price bucket width
            tolerance_ms: Maximum kline/OI timestamp distance, inclusive
        """
        if bucket_size <= 0:
            raise ValueError(f"bucket_size must be positive, got {bucket_size}")
        self.bucket_size = bucket_size
        self.tolerance_ms = tolerance_ms

    def analyze(
        self,
        candles: Sequence[Candle],
        open_interest: Sequence[OpenInterestPoint],
    ) -> OIDeltaAnalysis:
        """
        Attribute each bar's OI change to the bucket of its close.

        A bar counts only when both it and the previous bar have an OI
        sample inside the tolerance window.

        Returns:
            OIDeltaAnalysis; buckets without any counted bar are omitted
        """
        if not candles or not open_interest:
            return OIDeltaAnalysis()

        oi_sorted = sorted(open_interest, key=lambda p: p.timestamp)
        timestamps = [p.timestamp for p in oi_sorted]

        # price -> [oi_delta, oi_change, volume, type]
        acc: dict[float, list] = {}
        for prev, cur in zip(candles, candles[1:]):
            if not is_valid_price(cur.close) or not is_valid_price(prev.close):
                continue
            cur_idx = nearest_index(timestamps, cur.timestamp, self.tolerance_ms)
            prev_idx = nearest_index(timestamps, prev.timestamp, self.tolerance_ms)
            if cur_idx is None or prev_idx is None:
                continue

            oi_now = finite_or_zero(oi_sorted[cur_idx].value)
            oi_before = finite_or_zero(oi_sorted[prev_idx].value)
            oi_delta = oi_now - oi_before

            bucket = math.floor(cur.close / self.bucket_size) * self.bucket_size
            entry = acc.setdefault(bucket, [0.0, 0.0, 0.0, OIDeltaType.NEUTRAL])
            entry[0] += oi_delta
            entry[1] = (pct_change(oi_now, oi_before) or 0.0) * 100
            entry[2] += finite_or_zero(cur.volume)
            delta_type = _delta_type(oi_delta, pct_change(cur.close, prev.close) or 0.0)
            if delta_type != OIDeltaType.NEUTRAL:
                entry[3] = delta_type

        if not acc:
            logger.debug("No kline/OI pairs inside tolerance")
            return OIDeltaAnalysis()

        max_abs = max(abs(e[0]) for e in acc.values())
        buckets = tuple(
            OIDeltaBucket(
                price=price,
                oi_delta=delta,
                oi_change=change,
                volume=volume,
                delta_type=delta_type,
                intensity=safe_div(abs(delta), max_abs) * 100,
            )
            for price, (delta, change, volume, delta_type) in sorted(acc.items())
        )

        def total(kind: OIDeltaType) -> float:
            return sum(abs(b.oi_delta) for b in buckets if b.delta_type == kind)

        deltas = [b.oi_delta for b in buckets]
        analysis = OIDeltaAnalysis(
            buckets=buckets,
            max_delta=max(deltas),
            min_delta=min(deltas),
            avg_delta=sum(deltas) / len(deltas),
            total_build_long=total(OIDeltaType.BUILD_LONG),
            total_build_short=total(OIDeltaType.BUILD_SHORT),
            total_unwind_long=total(OIDeltaType.UNWIND_LONG),
            total_unwind_short=total(OIDeltaType.UNWIND_SHORT),
        )
        logger.debug(f"OI delta across {len(buckets)} buckets, range {analysis.min_delta:.0f}..{analysis.max_delta:.0f}")
        return analysis


_STRONG_READINGS = {
    OIDeltaType.BUILD_LONG: (OIDeltaSignal.BULLISH_BUILD, "Strong long building - bullish pressure"),
    OIDeltaType.BUILD_SHORT: (OIDeltaSignal.BEARISH_BUILD, "Strong short building - bearish pressure or squeeze fuel"),
    OIDeltaType.UNWIND_LONG: (OIDeltaSignal.BEARISH_UNWIND, "Longs unwinding - bearish continuation"),
    OIDeltaType.UNWIND_SHORT: (OIDeltaSignal.BULLISH_UNWIND, "Shorts covering - bullish continuation"),
}


def classify_oi_delta(bucket: OIDeltaBucket) -> OIDeltaReading:
    """STRONG signal above 70 intensity, MODERATE above 40, else WEAK."""
    if bucket.intensity > 70 and bucket.delta_type in _STRONG_READINGS:
        signal, description = _STRONG_READINGS[bucket.delta_type]
        return OIDeltaReading(signal, DeltaStrength.STRONG, description)
    if bucket.intensity > 40:
        label = bucket.delta_type.value.lower().replace("_", " ")
        return OIDeltaReading(OIDeltaSignal.NEUTRAL, DeltaStrength.MODERATE, f"Moderate {label}")
    return OIDeltaReading(OIDeltaSignal.NEUTRAL, DeltaStrength.WEAK, "No significant OI change")
