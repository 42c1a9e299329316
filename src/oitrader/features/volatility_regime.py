"""
Volatility Regime Classifier

Classifies the current volatility environment from ATR and realized
volatility, then maps it to a strategy, a position-size multiplier and a
trust level for OI-based signals.

Regimes (first match wins):
    EXTREME  percentile > 85 or ATR% > 5    -> STAY_OUT        x0.3  LOW trust
    HIGH     percentile > 60 or ATR% > 3    -> BREAKOUT        x0.7  MEDIUM
    MEDIUM   percentile > 30 or ATR% > 1.5  -> TREND_FOLLOW    x1.0  HIGH
    LOW      otherwise                      -> MEAN_REVERSION  x0.8  MEDIUM

Usage:
    classifier = VolatilityRegimeClassifier(interval="5m")
    regime = classifier.classify(candles)
    if regime.strategy == Strategy.STAY_OUT:
        ...
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from loguru import logger

from oitrader.core.models import Candle
from oitrader.utils.numeric import is_valid_price, safe_div

logger = logger.bind(component="VolatilityRegimeClassifier")

_INTERVAL_MINUTES = {"m": 1, "h": 60, "d": 1440, "w": 10080}
_INTERVAL_RE = re.compile(r"^(\d+)([mhdw])$")


def periods_per_day(interval: str) -> float:
    """
    Number of candles per 24h day for an interval string.

    Args:
        interval: Exchange interval such as "1m", "5m", "4h", "1d"

    Raises:
        ValueError: If the interval cannot be parsed
    """
    match = _INTERVAL_RE.match(interval.strip()) if interval else None
    if not match or int(match.group(1)) == 0:
        raise ValueError(f"Unsupported candle interval: {interval!r}")
    minutes = int(match.group(1)) * _INTERVAL_MINUTES[match.group(2)]
    return 1440 / minutes


class VolatilityMode(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class Strategy(str, Enum):
    MEAN_REVERSION = "MEAN_REVERSION"
    TREND_FOLLOW = "TREND_FOLLOW"
    BREAKOUT = "BREAKOUT"
    STAY_OUT = "STAY_OUT"


class TrustLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True, slots=True)
class VolatilityRegime:
    """
    Volatility regime classification.

    Attributes:
        mode: Regime
        atr: Average true range
        atr_percent: ATR as % of last close
        volatility: Realized volatility, daily %
        volatility_percentile: Rank of volatility vs recent history (0-100)
        strategy: Recommended strategy family
        position_size_multiplier: Scale factor for position size
        oi_signal_trust: How far to trust OI-based signals
        reasoning: Why the regime was chosen
        warnings: Cautions for downstream signal filters
        description: One-line summary
    """

    mode: VolatilityMode
    atr: float
    atr_percent: float
    volatility: float
    volatility_percentile: float
    strategy: Strategy
    position_size_multiplier: float
    oi_signal_trust: TrustLevel
    reasoning: str
    warnings: tuple[str, ...] = ()
    description: str = ""

    @property
    def is_tradeable(self) -> bool:
        return self.strategy != Strategy.STAY_OUT


_REGIME_TABLE = {
    VolatilityMode.EXTREME: (
        Strategy.STAY_OUT, 0.3, TrustLevel.LOW,
        "Extreme volatility - OI signals unreliable, stops get hunted",
        (
            "Avoid new positions",
            "Stops likely to be hit by wicks",
            "OI changes driven by liquidations, not positioning",
        ),
        "Extreme volatility: stay out",
    ),
    VolatilityMode.HIGH: (
        Strategy.BREAKOUT, 0.7, TrustLevel.MEDIUM,
        "High volatility - trade confirmed breakouts with reduced size",
        ("Use wider stops", "Reduce position size", "Require volume confirmation"),
        "High volatility: breakout trading",
    ),
    VolatilityMode.MEDIUM: (
        Strategy.TREND_FOLLOW, 1.0, TrustLevel.HIGH,
        "Normal volatility - OI signals most reliable, follow the trend",
        (),
        "Medium volatility: trend following",
    ),
    VolatilityMode.LOW: (
        Strategy.MEAN_REVERSION, 0.8, TrustLevel.MEDIUM,
        "Low volatility - range-bound, fade the extremes",
        ("Breakout may be imminent", "Watch OI build-up for the next move"),
        "Low volatility: mean reversion",
    ),
}


class VolatilityRegimeClassifier:
    """Classify volatility regime from candles."""

    def __init__(
        self,
        interval: str = "5m",
        atr_period: int = 14,
        volatility_period: int = 20,
        percentile_lookback: int = 30,
        min_candles: int = 50,
    ):
        """
        Initialize classifier.

        Args:
            interval: Candle interval, used to scale volatility to a daily figure
            atr_period: ATR window
            volatility_period: Number of log returns per volatility sample
            percentile_lookback: Number of rolling volatility samples ranked against
            min_candles: Below this, the regime is INSUFFICIENT_DATA
        """
        self.interval = interval
        self.periods_per_day = periods_per_day(interval)
        self.atr_period = atr_period
        self.volatility_period = volatility_period
        self.percentile_lookback = percentile_lookback
        self.min_candles = min_candles

    def atr(self, candles: Sequence[Candle]) -> float:
        """Mean true range over the last atr_period bars (0 when too short)."""
        if len(candles) < self.atr_period + 1:
            return 0.0

        highs = np.array([c.high for c in candles], dtype=float)
        lows = np.array([c.low for c in candles], dtype=float)
        closes = np.array([c.close for c in candles], dtype=float)

        prev_close = closes[:-1]
        true_range = np.maximum.reduce([
            highs[1:] - lows[1:],
            np.abs(highs[1:] - prev_close),
            np.abs(lows[1:] - prev_close),
        ])
        return float(true_range[-self.atr_period:].mean())

    def realized_volatility(self, candles: Sequence[Candle]) -> float:
        """
        Daily realized volatility in percent from the most recent
        volatility_period log returns.
        """
        if len(candles) < self.volatility_period + 1:
            return 0.0

        closes = np.array([c.close for c in candles[-(self.volatility_period + 1):]], dtype=float)
        returns = np.diff(np.log(closes))
        return float(returns.std() * math.sqrt(self.periods_per_day) * 100)

    def volatility_percentile(self, candles: Sequence[Candle], current: float) -> float:
        """
        Percentile of current volatility among the last percentile_lookback
        rolling volatility samples (50 when history is too short).

        Counts samples at or below current, so a flat history ranks at 100.
        """
        window = self.volatility_period + 1
        samples = len(candles) - window + 1
        if samples < self.percentile_lookback:
            return 50.0

        history = [
            self.realized_volatility(candles[end - window:end])
            for end in range(len(candles) - self.percentile_lookback + 1, len(candles) + 1)
        ]
        at_or_below = sum(1 for v in history if v <= current)
        return at_or_below / len(history) * 100

    def classify(self, candles: Sequence[Candle]) -> VolatilityRegime:
        """
        Classify the volatility regime.

        Args:
            candles: Candles, oldest first

        Returns:
            VolatilityRegime; INSUFFICIENT_DATA with zero size multiplier
            when fewer than min_candles are supplied or prices are invalid
        """
        if len(candles) < self.min_candles:
            logger.debug(f"Only {len(candles)} candles, need {self.min_candles}")
            return self._insufficient(f"Need at least {self.min_candles} candles for volatility analysis")

        if not all(is_valid_price(c.close) and is_valid_price(c.high) and is_valid_price(c.low) for c in candles):
            logger.warning("Invalid prices in candles, volatility regime degraded")
            return self._insufficient("Invalid prices in candle history")

        atr = self.atr(candles)
        atr_percent = safe_div(atr, candles[-1].close) * 100
        volatility = self.realized_volatility(candles)
        percentile = self.volatility_percentile(candles, volatility)

        if percentile > 85 or atr_percent > 5:
            mode = VolatilityMode.EXTREME
        elif percentile > 60 or atr_percent > 3:
            mode = VolatilityMode.HIGH
        elif percentile > 30 or atr_percent > 1.5:
            mode = VolatilityMode.MEDIUM
        else:
            mode = VolatilityMode.LOW

        strategy, multiplier, trust, reasoning, warnings, description = _REGIME_TABLE[mode]

        logger.debug(
            f"Regime {mode.value}: ATR%={atr_percent:.2f}, vol={volatility:.2f}, pct={percentile:.0f}"
        )

        return VolatilityRegime(
            mode=mode,
            atr=atr,
            atr_percent=atr_percent,
            volatility=volatility,
            volatility_percentile=percentile,
            strategy=strategy,
            position_size_multiplier=multiplier,
            oi_signal_trust=trust,
            reasoning=reasoning,
            warnings=warnings,
            description=f"{description} (ATR {atr_percent:.2f}%, percentile {percentile:.0f})",
        )

    @staticmethod
    def _insufficient(warning: str) -> VolatilityRegime:
        return VolatilityRegime(
            mode=VolatilityMode.INSUFFICIENT_DATA,
            atr=0.0,
            atr_percent=0.0,
            volatility=0.0,
            volatility_percentile=50.0,
            strategy=Strategy.STAY_OUT,
            position_size_multiplier=0.0,
            oi_signal_trust=TrustLevel.LOW,
            reasoning="Insufficient data for volatility analysis",
            warnings=(warning,),
            description="Insufficient data",
        )


def position_size_label(multiplier: float) -> str:
    """Human label for a position-size multiplier."""
    if multiplier >= 1.2:
        return "Boosted"
    if multiplier >= 1.0:
        return "Normal"
    if multiplier >= 0.7:
        return "Reduced"
    if multiplier >= 0.5:
        return "Half"
    return "Minimal"


def combined_recommendation(signal_label: str, regime: VolatilityRegime) -> str:
    """
    One-line recommendation combining a signal label with the regime.

    Args:
        signal_label: Signal name (e.g. a divergence type)
        regime: Volatility regime
    """
    if not regime.is_tradeable:
        return f"STAY OUT: {regime.reasoning}"

    size = position_size_label(regime.position_size_multiplier)
    return (
        f"{signal_label} | {regime.strategy.value} | "
        f"Size: {size} ({regime.position_size_multiplier:.1f}x) | "
        f"OI trust: {regime.oi_signal_trust.value}"
    )
