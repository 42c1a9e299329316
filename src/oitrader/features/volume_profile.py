"""
Volume Profile Engine

Builds a price-bucketed volume distribution from candles and derives the
Point of Control (POC), the 70% value area (VAH/VAL) and volume-weighted
standard-deviation bands.

Purpose: Locate where volume traded so price can be judged as premium,
value or discount, and surface mean-reversion ideas at the bands.

Usage:
    engine = VolumeProfileEngine(bucket_size=10.0)
    profile = engine.calculate(candles)
    zone = classify_price_zone(candles[-1].close, profile)
    ideas = find_trading_opportunities(candles[-1].close, profile, candles)
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from oitrader.core.models import Candle
from oitrader.utils.numeric import finite_or_zero, is_valid_price, safe_div

logger = logger.bind(component="VolumeProfileEngine")


@dataclass(frozen=True, slots=True)
class VolumeLevel:
    """Volume traded in one price bucket."""

    price: float
    volume: float
    percentage: float


@dataclass(frozen=True, slots=True)
class SigmaBands:
    """Volume-weighted standard deviation bands around the mean."""

    sigma1_high: float = 0.0
    sigma1_low: float = 0.0
    sigma2_high: float = 0.0
    sigma2_low: float = 0.0
    sigma3_high: float = 0.0
    sigma3_low: float = 0.0


@dataclass(frozen=True, slots=True)
class VolumeProfile:
    """
    Volume profile summary.

    Attributes:
        poc: Point of Control, bucket with the most volume
        value_area_high: Upper edge of the value area (VAH)
        value_area_low: Lower edge of the value area (VAL)
        levels: Buckets sorted by price ascending
        total_volume: Sum of bucket volumes
        mean: Volume-weighted mean bucket price
        std_dev: Volume-weighted standard deviation of bucket prices
        sigma: Standard-deviation bands
    """

    poc: float = 0.0
    value_area_high: float = 0.0
    value_area_low: float = 0.0
    levels: tuple[VolumeLevel, ...] = ()
    total_volume: float = 0.0
    mean: float = 0.0
    std_dev: float = 0.0
    sigma: SigmaBands = field(default_factory=SigmaBands)

    @classmethod
    def empty(cls) -> "VolumeProfile":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.levels

    @property
    def average_volume(self) -> float:
        return safe_div(self.total_volume, len(self.levels))

    def level_at(self, price: float) -> Optional[VolumeLevel]:
        """Level whose bucket price is nearest to price."""
        if not self.levels:
            return None
        return min(self.levels, key=lambda lvl: abs(lvl.price - price))


class PriceZone(str, Enum):
    """Where a price sits relative to the profile."""

    EXTREME_PREMIUM = "EXTREME_PREMIUM"
    PREMIUM = "PREMIUM"
    ABOVE_VALUE = "ABOVE_VALUE"
    VALUE_AREA = "VALUE_AREA"
    DISCOUNT = "DISCOUNT"
    EXTREME_DISCOUNT = "EXTREME_DISCOUNT"
    NO_DATA = "NO_DATA"


@dataclass(frozen=True, slots=True)
class PriceZoneResult:
    zone: PriceZone
    description: str


class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True, slots=True)
class TradingOpportunity:
    """Trade idea derived from the profile."""

    direction: TradeDirection
    entry: float
    target: float
    stop: float
    confidence: float
    reason: str
    risk_reward: float

    def __str__(self) -> str:
        return (
            f"{self.direction.value} @ {self.entry:.2f} -> {self.target:.2f} "
            f"(stop {self.stop:.2f}, R:R {self.risk_reward:.2f}, {self.confidence:.0f}%)"
        )


class VolumeProfileEngine:
    """
    Compute volume profiles from candles.

    Each candle's volume is assigned to the bucket of its typical price
    (high + low + close) / 3.
    """

    def __init__(self, bucket_size: float = 10.0, value_area_pct: float = 0.70):
        """
        Initialize volume profile engine.

        Args:
            bucket_size: Price bucket width
            value_area_pct: Fraction of total volume inside the value area
        """
        if bucket_size <= 0:
            raise ValueError(f"bucket_size must be positive, got {bucket_size}")
        self.bucket_size = bucket_size
        self.value_area_pct = value_area_pct

    def bucket_price(self, price: float) -> float:
        return math.floor(price / self.bucket_size) * self.bucket_size

    def calculate(self, candles: Sequence[Candle]) -> VolumeProfile:
        """
        Build the volume profile.

        Args:
            candles: Candles in any order

        Returns:
            VolumeProfile, or VolumeProfile.empty() when there is no candle,
            no volume, or a non-finite price
        """
        if not candles:
            return VolumeProfile.empty()

        buckets: dict[float, float] = {}
        for candle in candles:
            if not all(is_valid_price(p) for p in (candle.high, candle.low, candle.close)):
                logger.warning(f"Invalid price in candle {candle.timestamp}, skipping profile")
                return VolumeProfile.empty()
            bucket = self.bucket_price(candle.typical_price)
            buckets[bucket] = buckets.get(bucket, 0.0) + finite_or_zero(candle.volume)

        prices = np.array(sorted(buckets), dtype=float)
        volumes = np.array([buckets[p] for p in prices], dtype=float)
        total_volume = float(volumes.sum())

        if total_volume <= 0:
            return VolumeProfile.empty()

        levels = tuple(
            VolumeLevel(price=float(p), volume=float(v), percentage=float(v / total_volume * 100))
            for p, v in zip(prices, volumes)
        )

        # argmax returns the first maximum, i.e. the lowest price on ties
        poc_index = int(np.argmax(volumes))
        val_index, vah_index = self._value_area(volumes, poc_index, total_volume)

        mean = float(np.average(prices, weights=volumes))
        std_dev = float(math.sqrt(np.average((prices - mean) ** 2, weights=volumes)))

        profile = VolumeProfile(
            poc=float(prices[poc_index]),
            value_area_high=float(prices[vah_index]),
            value_area_low=float(prices[val_index]),
            levels=levels,
            total_volume=total_volume,
            mean=mean,
            std_dev=std_dev,
            sigma=SigmaBands(
                sigma1_high=mean + std_dev,
                sigma1_low=mean - std_dev,
                sigma2_high=mean + 2 * std_dev,
                sigma2_low=mean - 2 * std_dev,
                sigma3_high=mean + 3 * std_dev,
                sigma3_low=mean - 3 * std_dev,
            ),
        )

        logger.debug(
            f"Profile: {len(levels)} levels, POC={profile.poc:.2f}, "
            f"VA=[{profile.value_area_low:.2f}, {profile.value_area_high:.2f}]"
        )
        return profile

    def _value_area(self, volumes: np.ndarray, poc_index: int, total_volume: float) -> tuple[int, int]:
        """
        Expand from the POC towards the heavier neighbour until the target
        fraction of volume is enclosed.

        Returns:
            (low_index, high_index) of the value area
        """
        target = total_volume * self.value_area_pct
        accumulated = float(volumes[poc_index])
        low = high = poc_index
        last = len(volumes) - 1

        while accumulated < target and (low > 0 or high < last):
            low_volume = float(volumes[low - 1]) if low > 0 else -1.0
            high_volume = float(volumes[high + 1]) if high < last else -1.0

            # ties expand upward
            if low_volume > high_volume:
                low -= 1
                accumulated += low_volume
            else:
                high += 1
                accumulated += high_volume

        return low, high


def classify_price_zone(price: float, profile: VolumeProfile) -> PriceZoneResult:
    """
    Classify a price against the profile's value area and sigma bands.

    Args:
        price: Price to classify
        profile: Volume profile

    Returns:
        PriceZoneResult with zone and human-readable description
    """
    if profile.is_empty or not is_valid_price(price):
        return PriceZoneResult(PriceZone.NO_DATA, "No volume profile available")

    sigma = profile.sigma
    if price >= sigma.sigma3_high:
        return PriceZoneResult(PriceZone.EXTREME_PREMIUM, "Above 3σ - extreme overextension, high reversal odds")
    if price >= sigma.sigma2_high:
        return PriceZoneResult(PriceZone.PREMIUM, "Above 2σ - overextended, mean reversion likely")
    if price >= profile.value_area_high:
        return PriceZoneResult(PriceZone.ABOVE_VALUE, "Above value area - buyers in control")
    if price >= profile.value_area_low:
        return PriceZoneResult(PriceZone.VALUE_AREA, "Inside value area - fair price, balanced auction")
    if price >= sigma.sigma2_low:
        return PriceZoneResult(PriceZone.DISCOUNT, "Below value area - sellers in control")
    return PriceZoneResult(PriceZone.EXTREME_DISCOUNT, "Below 2σ - oversold, bounce likely")


def _risk_reward(entry: float, target: float, stop: float) -> float:
    return safe_div(abs(target - entry), abs(entry - stop))


def _opportunity(direction, entry, target, stop, confidence, reason) -> TradingOpportunity:
    return TradingOpportunity(
        direction=direction,
        entry=entry,
        target=target,
        stop=stop,
        confidence=confidence,
        reason=reason,
        risk_reward=_risk_reward(entry, target, stop),
    )


def find_trading_opportunities(
    price: float,
    profile: VolumeProfile,
    candles: Sequence[Candle],
    trend_window: int = 20,
    poc_proximity: float = 0.02,
) -> list[TradingOpportunity]:
    """
    Derive mean-reversion and POC trade ideas.

    Args:
        price: Current price
        profile: Volume profile
        candles: Recent candles, used for the short-term trend
        trend_window: Candles used to decide trend direction
        poc_proximity: Fractional distance from POC treated as "at POC"

    Returns:
        Opportunities sorted by confidence, highest first
    """
    if profile.is_empty or not candles or not is_valid_price(price):
        return []

    sigma = profile.sigma
    ideas: list[TradingOpportunity] = []

    if sigma.sigma3_low < price <= sigma.sigma2_low:
        ideas.append(_opportunity(
            TradeDirection.LONG, price, profile.mean, sigma.sigma3_low, 75,
            "Price at -2σ: statistical mean reversion long",
        ))

    if sigma.sigma2_high <= price < sigma.sigma3_high:
        ideas.append(_opportunity(
            TradeDirection.SHORT, price, profile.mean, sigma.sigma3_high, 75,
            "Price at +2σ: statistical mean reversion short",
        ))

    if profile.poc > 0 and abs(price - profile.poc) / profile.poc < poc_proximity:
        recent = candles[-trend_window:]
        trend_up = recent[-1].close > recent[0].close
        if trend_up:
            ideas.append(_opportunity(
                TradeDirection.LONG, price, profile.value_area_high, profile.value_area_low, 65,
                "Price at POC with uptrend: continuation to VAH",
            ))
        else:
            ideas.append(_opportunity(
                TradeDirection.SHORT, price, profile.value_area_low, profile.value_area_high, 65,
                "Price at POC with downtrend: continuation to VAL",
            ))

    if sigma.sigma2_low < price < profile.value_area_low:
        ideas.append(_opportunity(
            TradeDirection.LONG, price, profile.poc, sigma.sigma2_low, 70,
            "Below value area: reversion to POC",
        ))

    if profile.value_area_high < price < sigma.sigma2_high:
        ideas.append(_opportunity(
            TradeDirection.SHORT, price, profile.poc, sigma.sigma2_high, 70,
            "Above value area: reversion to POC",
        ))

    if price <= sigma.sigma3_low:
        ideas.append(_opportunity(
            TradeDirection.LONG, price, sigma.sigma2_low, price * 0.95, 85,
            "Extreme -3σ: capitulation bounce",
        ))
    elif price >= sigma.sigma3_high:
        ideas.append(_opportunity(
            TradeDirection.SHORT, price, sigma.sigma2_high, price * 1.05, 85,
            "Extreme +3σ: blow-off reversal",
        ))

    ideas.sort(key=lambda o: o.confidence, reverse=True)
    return ideas
