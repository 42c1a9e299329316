"""
Market Regime Classifier

Labels the market state from price trend, return volatility, OI momentum,
volume trend and funding.

Rules are evaluated in order; the first match wins:
    HIGH_VOL_SQUEEZE    volatility > 3% and |price change| < 2%
    LOW_LIQ_TRAP        volume down > 30% and |OI change| < 2%
    TRENDING_UP         price > +5%, OI > +2%, volatility > 1.5%
                        (BULLISH_OVERHEATED when funding > 0.08)
    TRENDING_DOWN       price < -5%, |OI change| > 2%
                        (BEARISH_OVERHEATED when funding < -0.05)
    RANGE_CHOP          |price change| < 3% and volatility < 1.5%
    BULLISH_HEALTHY     price +2..+5% with OI rising
    BEARISH_HEALTHY     price -5..-2% with OI rising
    NEUTRAL             otherwise
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from oitrader.core.models import Candle, OpenInterestPoint
from oitrader.utils.numeric import finite_or_zero, pct_change, safe_div

logger = logger.bind(component="MarketRegimeClassifier")

VOLUME_WINDOW = 10


class MarketRegimeType(str, Enum):
    TRENDING_UP = "TRENDING_UP"
    TRENDING_DOWN = "TRENDING_DOWN"
    BULLISH_HEALTHY = "BULLISH_HEALTHY"
    BEARISH_HEALTHY = "BEARISH_HEALTHY"
    BULLISH_OVERHEATED = "BULLISH_OVERHEATED"
    BEARISH_OVERHEATED = "BEARISH_OVERHEATED"
    RANGE_CHOP = "RANGE_CHOP"
    HIGH_VOL_SQUEEZE = "HIGH_VOL_SQUEEZE"
    LOW_LIQ_TRAP = "LOW_LIQ_TRAP"
    NEUTRAL = "NEUTRAL"


class RegimeRisk(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True, slots=True)
class MarketRegime:
    """
    Attributes:
        regime: Market state label
        risk: Trading risk in this state
        description: Human-readable interpretation
        volatility: Std of simple returns over the lookback, percent
        price_change / oi_change / volume_change: Percent changes
        funding_rate: Funding rate used, if any
    """

    regime: MarketRegimeType
    risk: RegimeRisk
    description: str
    volatility: float = 0.0
    price_change: float = 0.0
    oi_change: float = 0.0
    volume_change: float = 0.0
    funding_rate: Optional[float] = None


class MarketRegimeClassifier:
    """Classify market regime from candles, OI and funding."""

    def __init__(self, lookback: int = 20):
        if lookback <= VOLUME_WINDOW:
            raise ValueError(f"lookback must exceed {VOLUME_WINDOW}, got {lookback}")
        self.lookback = lookback

    def classify(
        self,
        candles: Sequence[Candle],
        open_interest: Sequence[OpenInterestPoint],
        funding_rate: Optional[float] = None,
    ) -> MarketRegime:
        """
        Classify the current regime.

        Args:
            candles: Candles, oldest first
            open_interest: OI points, oldest first
            funding_rate: Latest raw funding rate

        Returns:
            MarketRegime; NEUTRAL/MEDIUM when data is insufficient
        """
        if len(candles) < self.lookback or len(open_interest) < 2:
            return MarketRegime(
                MarketRegimeType.NEUTRAL, RegimeRisk.MEDIUM, "Insufficient data for regime detection"
            )

        window = candles[-self.lookback:]
        closes = np.array([c.close for c in window], dtype=float)
        if np.any(closes <= 0) or not np.all(np.isfinite(closes)):
            logger.warning("Invalid closes, regime detection skipped")
            return MarketRegime(
                MarketRegimeType.NEUTRAL, RegimeRisk.MEDIUM, "Invalid price data for regime detection"
            )

        returns = np.diff(closes) / closes[:-1]
        volatility = float(returns.std() * 100) if len(returns) else 0.0
        price_change = float((closes[-1] - closes[0]) / closes[0] * 100)

        oi_window = [finite_or_zero(p.value) for p in open_interest[-self.lookback:]]
        oi_delta = pct_change(oi_window[-1], oi_window[0])
        oi_change = oi_delta * 100 if oi_delta is not None else 0.0

        volumes = [finite_or_zero(c.volume) for c in window]
        recent_volume = sum(volumes[-VOLUME_WINDOW:]) / VOLUME_WINDOW
        past = volumes[:-VOLUME_WINDOW]
        past_volume = sum(past) / len(past)
        volume_change = safe_div(recent_volume - past_volume, past_volume) * 100

        regime, risk, description = self._rules(volatility, price_change, oi_change, volume_change, funding_rate)
        logger.debug(
            f"Regime {regime.value}: price={price_change:.2f}%, OI={oi_change:.2f}%, "
            f"vol={volatility:.2f}%, volume={volume_change:.1f}%"
        )

        return MarketRegime(
            regime=regime,
            risk=risk,
            description=description,
            volatility=volatility,
            price_change=price_change,
            oi_change=oi_change,
            volume_change=volume_change,
            funding_rate=funding_rate,
        )

    @staticmethod
    def _rules(volatility, price_change, oi_change, volume_change, funding_rate):
        if volatility > 3 and abs(price_change) < 2:
            return (
                MarketRegimeType.HIGH_VOL_SQUEEZE, RegimeRisk.HIGH,
                f"High volatility ({volatility:.2f}%) with tight price range - explosive move possible",
            )
        if volume_change < -30 and abs(oi_change) < 2:
            return (
                MarketRegimeType.LOW_LIQ_TRAP, RegimeRisk.HIGH,
                f"Volume down {abs(volume_change):.1f}% with stagnant OI - illiquid, avoid trading",
            )
        if price_change > 5 and oi_change > 2 and volatility > 1.5:
            if funding_rate is not None and funding_rate > 0.08:
                return (
                    MarketRegimeType.BULLISH_OVERHEATED, RegimeRisk.HIGH,
                    f"Strong uptrend but overheated (funding {funding_rate * 100:.3f}%) - reversal risk",
                )
            return (
                MarketRegimeType.TRENDING_UP, RegimeRisk.LOW,
                f"Healthy uptrend with rising OI ({oi_change:.1f}%) - continuation likely",
            )
        if price_change < -5 and abs(oi_change) > 2:
            if funding_rate is not None and funding_rate < -0.05:
                return (
                    MarketRegimeType.BEARISH_OVERHEATED, RegimeRisk.HIGH,
                    f"Strong downtrend but oversold (funding {funding_rate * 100:.3f}%) - bounce risk",
                )
            return (
                MarketRegimeType.TRENDING_DOWN, RegimeRisk.LOW,
                "Clear downtrend with OI activity - continuation likely",
            )
        if abs(price_change) < 3 and volatility < 1.5:
            return (
                MarketRegimeType.RANGE_CHOP, RegimeRisk.MEDIUM,
                f"Sideways market ({price_change:.1f}% range) - wait for breakout",
            )
        if 2 < price_change < 5 and oi_change > 0:
            return (
                MarketRegimeType.BULLISH_HEALTHY, RegimeRisk.LOW,
                "Moderate uptrend with healthy OI growth",
            )
        if -5 < price_change < -2 and oi_change > 0:
            return (
                MarketRegimeType.BEARISH_HEALTHY, RegimeRisk.LOW,
                "Moderate downtrend with OI growth - short opportunities",
            )
        return MarketRegimeType.NEUTRAL, RegimeRisk.MEDIUM, "No clear trend - mixed signals"
