"""
OI / Price Divergence Detector

Compares the fractional change of price and open interest over a rolling
lookback window and classifies the combination:

    price down + OI up   -> BEARISH_TRAP          (shorts piling in)
    price up   + OI up   -> BULLISH_TRAP          (late longs, leverage build-up)
    price up   + OI down -> BULLISH_CONTINUATION  (short covering)
    price down + OI down -> BEARISH_CONTINUATION  (long liquidation)

Usage:
    detector = DivergenceDetector(lookback=20)
    signals = detector.detect(candles, oi_values)
    latest = detector.latest(signals)

    # Series from separate endpoints
    signals = detector.detect_aligned(candles, oi_points, tolerance_ms=60_000)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from loguru import logger

from oitrader.core.alignment import align_by_timestamp
from oitrader.core.models import Candle, OpenInterestPoint
from oitrader.features.volatility_regime import VolatilityMode, VolatilityRegime
from oitrader.utils.numeric import finite_or_zero, pct_change

logger = logger.bind(component="DivergenceDetector")


class DivergenceType(str, Enum):
    """Price/OI divergence classification."""

    BEARISH_TRAP = "BEARISH_TRAP"
    BULLISH_TRAP = "BULLISH_TRAP"
    BULLISH_CONTINUATION = "BULLISH_CONTINUATION"
    BEARISH_CONTINUATION = "BEARISH_CONTINUATION"


DESCRIPTIONS = {
    DivergenceType.BEARISH_TRAP: "Price falling while OI rises - shorts building, squeeze risk",
    DivergenceType.BULLISH_TRAP: "Price rising while OI rises - leveraged longs, flush risk",
    DivergenceType.BULLISH_CONTINUATION: "Price rising while OI falls - short covering rally",
    DivergenceType.BEARISH_CONTINUATION: "Price falling while OI falls - long liquidation",
}


@dataclass(frozen=True, slots=True)
class DivergenceSignal:
    """
    Divergence detected at one index.

    Attributes:
        index: Position in the input series
        timestamp: Candle timestamp at index
        type: Divergence classification
        strength: |price_change| + |oi_change|
        price_change: Fractional price change over the lookback
        oi_change: Fractional OI change over the lookback
        description: Human-readable interpretation
    """

    index: int
    timestamp: int
    type: DivergenceType
    strength: float
    price_change: float
    oi_change: float
    description: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "strength": self.strength,
            "price_change": self.price_change,
            "oi_change": self.oi_change,
            "description": self.description,
        }


class DivergenceDetector:
    """
    Detect OI/price divergences over a rolling window.

    Thresholds are fractional: price_threshold=0.02 means a 2% move.
    """

    def __init__(
        self,
        lookback: int = 20,
        price_threshold: float = 0.02,
        trap_oi_threshold: float = 0.05,
        continuation_oi_threshold: float = 0.03,
    ):
        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        self.lookback = lookback
        self.price_threshold = price_threshold
        self.trap_oi_threshold = trap_oi_threshold
        self.continuation_oi_threshold = continuation_oi_threshold

    def classify(self, price_change: float, oi_change: float) -> Optional[DivergenceType]:
        """Classify one (price_change, oi_change) pair, None when no divergence."""
        if oi_change > self.trap_oi_threshold:
            if price_change < -self.price_threshold:
                return DivergenceType.BEARISH_TRAP
            if price_change > self.price_threshold:
                return DivergenceType.BULLISH_TRAP
        elif oi_change < -self.continuation_oi_threshold:
            if price_change > self.price_threshold:
                return DivergenceType.BULLISH_CONTINUATION
            if price_change < -self.price_threshold:
                return DivergenceType.BEARISH_CONTINUATION
        return None

    def detect(
        self,
        candles: Sequence[Candle],
        open_interest: Sequence[Union[float, OpenInterestPoint]],
    ) -> list[DivergenceSignal]:
        """
        Detect divergences over parallel, already-aligned series.

        Args:
            candles: Candles, oldest first
            open_interest: OI values or points, index-aligned with candles

        Returns:
            Signals in index order; empty when either series is shorter
            than the lookback
        """
        n = min(len(candles), len(open_interest))
        if n < self.lookback:
            return []

        oi_values = [
            finite_or_zero(p.value if isinstance(p, OpenInterestPoint) else p)
            for p in open_interest[:n]
        ]

        signals = []
        for i in range(self.lookback, n):
            price_change = pct_change(candles[i].close, candles[i - self.lookback].close)
            oi_change = pct_change(oi_values[i], oi_values[i - self.lookback])
            if price_change is None or oi_change is None:
                continue

            divergence = self.classify(price_change, oi_change)
            if divergence is None:
                continue

            signals.append(
                DivergenceSignal(
                    index=i,
                    timestamp=candles[i].timestamp,
                    type=divergence,
                    strength=abs(price_change) + abs(oi_change),
                    price_change=price_change,
                    oi_change=oi_change,
                    description=DESCRIPTIONS[divergence],
                )
            )

        if signals:
            logger.debug(f"Detected {len(signals)} divergences, latest {signals[-1].type.value}")
        return signals

    def detect_aligned(
        self,
        candles: Sequence[Candle],
        open_interest: Sequence[OpenInterestPoint],
        tolerance_ms: int = 60_000,
    ) -> list[DivergenceSignal]:
        """
        Join candles and OI by nearest timestamp, then detect.

        Candles with no OI sample inside the tolerance are dropped, so
        signal indices refer to the joined series.
        """
        pairs = align_by_timestamp(candles, open_interest, tolerance_ms)
        if len(pairs) < len(candles):
            logger.debug(f"Alignment dropped {len(candles) - len(pairs)} of {len(candles)} candles")
        return self.detect([c for c, _ in pairs], [p for _, p in pairs])

    @staticmethod
    def latest(signals: Sequence[DivergenceSignal]) -> Optional[DivergenceSignal]:
        return signals[-1] if signals else None


@dataclass(frozen=True, slots=True)
class FilteredSignal:
    """Divergence signal re-interpreted under a volatility regime."""

    signal_type: DivergenceType
    adjusted_signal: str
    confidence: str
    action: str
    regime: VolatilityMode


def filter_signal_by_volatility(
    signal: DivergenceSignal,
    regime: VolatilityRegime,
    strong_threshold: float = 0.10,
) -> FilteredSignal:
    """
    Re-weight a divergence signal by the volatility regime.

    Extreme volatility blocks all signals; high volatility only confirms
    strong moves; low volatility reads OI expansion as positioning and
    OI decline as distribution.

    Args:
        signal: Divergence signal
        regime: Current volatility regime
        strong_threshold: Strength at which a signal counts as strong

    Returns:
        FilteredSignal with adjusted label, confidence and action
    """
    mode = regime.mode
    name = signal.type.value
    is_trap = signal.type in (DivergenceType.BULLISH_TRAP, DivergenceType.BEARISH_TRAP)
    strong = signal.strength >= strong_threshold

    if mode == VolatilityMode.EXTREME:
        return FilteredSignal(signal.type, "STAY_OUT", "LOW", "Extreme volatility - signal ignored", mode)

    if mode == VolatilityMode.HIGH:
        if strong and not is_trap:
            return FilteredSignal(signal.type, "BREAKOUT_CONFIRMED", "HIGH", f"Trade {name} breakout", mode)
        if strong and is_trap:
            return FilteredSignal(
                signal.type, "LIQUIDATION_CASCADE_RISK", "HIGH",
                "Crowded leverage in high volatility - expect forced unwinds", mode,
            )
        return FilteredSignal(signal.type, name, "MEDIUM", "Wait for confirmation", mode)

    if mode == VolatilityMode.MEDIUM:
        return FilteredSignal(signal.type, name, "HIGH", f"Trade {name}", mode)

    if mode == VolatilityMode.LOW:
        if is_trap:
            return FilteredSignal(
                signal.type, "POSITION_BUILDING", "HIGH",
                "OI expanding in a quiet market - positioning ahead of a move", mode,
            )
        if signal.type == DivergenceType.BEARISH_CONTINUATION:
            return FilteredSignal(
                signal.type, "PRE_BREAKDOWN_DISTRIBUTION", "HIGH",
                "OI declining in a quiet market - distribution before breakdown", mode,
            )
        return FilteredSignal(signal.type, name, "MEDIUM", "Fade extremes in range", mode)

    return FilteredSignal(signal.type, name, "LOW", "Insufficient volatility data", mode)
