"""
Trading Decision Scorer

Multi-factor BUY / SELL / WAIT scoring from perpetual futures data.

Each factor contributes fixed points to a bullish or bearish tally:

    Price momentum (20 bars)       +/-25   |change| > 2%
    OI + price alignment (20 OI)   +/-25   OI change > 5%, sign of price change
    Smart money (top traders)      +/-20   long/short ratio > 1.3 or < 0.7
    Taker flow                     +/-15   buy/sell ratio > 1.3 or < 0.7
    Funding                        +/-8    rate > 0.01 or < -0.01

score = bullish - bearish; >= 40 BUY, <= -40 SELL, otherwise WAIT.
Confidence is HIGH when |score| >= 60.

Usage:
    scorer = TradingDecisionScorer()
    decision = scorer.score(candles, oi, top_trader_ratios, taker_volume, funding)
    print(decision)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from oitrader.core.models import Candle, FundingRate, LongShortRatio, OpenInterestPoint, TakerVolume
from oitrader.features.volatility_regime import VolatilityRegime
from oitrader.utils.numeric import finite_or_zero, pct_change

logger = logger.bind(component="TradingDecisionScorer")

BUY_THRESHOLD = 40
SELL_THRESHOLD = -40
HIGH_CONFIDENCE = 60
MAX_FACTORS = 4


class DecisionAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    WAIT = "WAIT"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class FactorDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"


@dataclass(frozen=True, slots=True)
class DecisionFactor:
    name: str
    strength: int
    direction: FactorDirection


@dataclass(frozen=True, slots=True)
class TradingDecision:
    """
    Scored trading decision.

    Attributes:
        action: BUY, SELL or WAIT
        score: bullish points - bearish points
        confidence: HIGH, MEDIUM or LOW
        factors: Contributing factors, strongest first (at most 4)
        price_change: Price change over the lookback, percent
        oi_change: OI change over the lookback, percent
        position_size_multiplier: From the volatility regime, 1.0 without one
        warnings: Volatility regime warnings
    """

    action: DecisionAction
    score: int
    confidence: Confidence
    factors: tuple[DecisionFactor, ...] = ()
    price_change: float = 0.0
    oi_change: float = 0.0
    position_size_multiplier: float = 1.0
    warnings: tuple[str, ...] = ()

    def __str__(self) -> str:
        names = ", ".join(f.name for f in self.factors) or "no factors"
        return f"{self.action.value} (score {self.score:+d}, {self.confidence.value}) - {names}"


def _latest(values, attr: str, default: float) -> float:
    """Latest attribute value, default when missing, zero or non-finite."""
    if not values:
        return default
    value = finite_or_zero(getattr(values[-1], attr))
    return value or default


class TradingDecisionScorer:
    """Score BUY/SELL/WAIT from price, OI, positioning, taker flow and funding."""

    def __init__(self, lookback: int = 20):
        self.lookback = lookback

    def _window_change(self, values: Sequence[float]) -> float:
        window = values[-self.lookback:]
        if len(window) < 2:
            return 0.0
        change = pct_change(window[-1], window[0])
        return change * 100 if change is not None else 0.0

    def score(
        self,
        candles: Sequence[Candle],
        open_interest: Sequence[OpenInterestPoint] = (),
        top_trader_ratios: Sequence[LongShortRatio] = (),
        taker_volume: Sequence[TakerVolume] = (),
        funding_rates: Sequence[FundingRate] = (),
        volatility: Optional[VolatilityRegime] = None,
    ) -> TradingDecision:
        """
        Score a trading decision.

        Missing inputs contribute nothing. When a volatility regime is given
        its size multiplier and warnings are attached; the action itself is
        decided by the score alone.
        """
        bullish = 0
        bearish = 0
        factors: list[DecisionFactor] = []

        def add(name: str, points: int, direction: FactorDirection) -> None:
            nonlocal bullish, bearish
            if direction == FactorDirection.BULLISH:
                bullish += points
            else:
                bearish += points
            factors.append(DecisionFactor(name, points, direction))

        price_change = self._window_change([c.close for c in candles])
        if price_change > 2:
            add("Price Momentum", 25, FactorDirection.BULLISH)
        elif price_change < -2:
            add("Price Momentum", 25, FactorDirection.BEARISH)

        oi_change = self._window_change([finite_or_zero(p.value) for p in open_interest])
        if oi_change > 5 and price_change > 0:
            add("OI + Price Alignment", 25, FactorDirection.BULLISH)
        elif oi_change > 5 and price_change < 0:
            add("New Shorts Entering", 25, FactorDirection.BEARISH)

        smart_money = _latest(top_trader_ratios, "long_short_ratio", 1.0)
        if smart_money > 1.3:
            add("Smart Money Bullish", 20, FactorDirection.BULLISH)
        elif smart_money < 0.7:
            add("Smart Money Bearish", 20, FactorDirection.BEARISH)

        taker_ratio = _latest(taker_volume, "buy_sell_ratio", 1.0)
        if taker_ratio > 1.3:
            add("Aggressive Buyers", 15, FactorDirection.BULLISH)
        elif taker_ratio < 0.7:
            add("Aggressive Sellers", 15, FactorDirection.BEARISH)

        funding = _latest(funding_rates, "funding_rate", 0.0)
        if funding > 0.01:
            add("Positive Funding", 8, FactorDirection.BULLISH)
        elif funding < -0.01:
            add("Negative Funding", 8, FactorDirection.BEARISH)

        total = bullish - bearish
        if total >= BUY_THRESHOLD:
            action = DecisionAction.BUY
            confidence = Confidence.HIGH if total >= HIGH_CONFIDENCE else Confidence.MEDIUM
        elif total <= SELL_THRESHOLD:
            action = DecisionAction.SELL
            confidence = Confidence.HIGH if total <= -HIGH_CONFIDENCE else Confidence.MEDIUM
        else:
            action = DecisionAction.WAIT
            confidence = Confidence.LOW

        factors.sort(key=lambda f: f.strength, reverse=True)

        decision = TradingDecision(
            action=action,
            score=total,
            confidence=confidence,
            factors=tuple(factors[:MAX_FACTORS]),
            price_change=price_change,
            oi_change=oi_change,
            position_size_multiplier=volatility.position_size_multiplier if volatility else 1.0,
            warnings=volatility.warnings if volatility else (),
        )
        logger.info(f"Decision: {decision}")
        return decision
