"""
Funding Regime Classifier

Classifies the latest perpetual funding rate. Positive funding means longs
pay shorts (crowded longs, contrarian SHORT bias); negative funding the
reverse.

Thresholds are in percent per funding interval:
    |rate| > 0.1   EXTREME
    rate > 0.03    POSITIVE
    rate < -0.03   NEGATIVE
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from oitrader.core.models import FundingRate
from oitrader.utils.numeric import finite_or_zero

logger = logger.bind(component="FundingRegimeClassifier")

EXTREME_PCT = 0.1
ELEVATED_PCT = 0.03
AVERAGE_WINDOW = 10


class FundingRegimeType(str, Enum):
    EXTREME = "EXTREME"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class FundingBias(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class FundingRegime:
    """
    Attributes:
        regime: Funding classification
        value_percent: Latest funding rate in percent
        average_percent: Mean of the last AVERAGE_WINDOW rates in percent
        bias: Contrarian positioning bias
        description: Human-readable interpretation
    """

    regime: FundingRegimeType
    value_percent: float
    average_percent: float
    bias: FundingBias
    description: str


def funding_bias(rate_percent: float) -> FundingBias:
    if rate_percent > ELEVATED_PCT:
        return FundingBias.SHORT
    if rate_percent < -ELEVATED_PCT:
        return FundingBias.LONG
    return FundingBias.NEUTRAL


def classify_funding_regime(rates: Sequence[FundingRate]) -> FundingRegime:
    """
    Classify funding from the most recent sample.

    Args:
        rates: Funding rate samples, oldest first

    Returns:
        FundingRegime; NEUTRAL when there is no data
    """
    if not rates:
        return FundingRegime(
            FundingRegimeType.NEUTRAL, 0.0, 0.0, FundingBias.NEUTRAL, "No funding rate data available"
        )

    value = finite_or_zero(rates[-1].funding_rate) * 100
    recent = rates[-AVERAGE_WINDOW:]
    average = sum(finite_or_zero(r.funding_rate) for r in recent) / len(recent) * 100

    if abs(value) > EXTREME_PCT:
        regime = FundingRegimeType.EXTREME
        if value > 0:
            bias = FundingBias.SHORT
            description = f"Extreme positive funding ({value:.4f}%) - longs paying shorts, long squeeze risk"
        else:
            bias = FundingBias.LONG
            description = f"Extreme negative funding ({value:.4f}%) - shorts paying longs, short squeeze risk"
    elif value > ELEVATED_PCT:
        regime, bias = FundingRegimeType.POSITIVE, FundingBias.SHORT
        description = f"Positive funding ({value:.4f}%) - bullish sentiment, watch for overheating"
    elif value < -ELEVATED_PCT:
        regime, bias = FundingRegimeType.NEGATIVE, FundingBias.LONG
        description = f"Negative funding ({value:.4f}%) - bearish sentiment, potential reversal setup"
    else:
        regime, bias = FundingRegimeType.NEUTRAL, FundingBias.NEUTRAL
        description = f"Neutral funding ({value:.4f}%) - balanced market"

    logger.debug(f"Funding regime {regime.value} ({value:.4f}%, avg {average:.4f}%)")
    return FundingRegime(regime, value, average, bias, description)
