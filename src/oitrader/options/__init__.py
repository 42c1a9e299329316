"""
Options analytics: dealer Greeks exposure, IV skew/regime, defensive
strikes and max pain.
"""

from oitrader.options.greeks_exposure import (
    DealerBias,
    GammaEffect,
    GammaRegime,
    GammaWall,
    GreeksExposureAnalysis,
    LevelType,
    Moneyness,
    OIWall,
    OptionsGreeksAggregator,
    StrikeExposure,
    StrikeMetrics,
)
from oitrader.options.iv_analysis import (
    DefensiveStrike,
    DefensiveType,
    ExpectedMove,
    IVAnalysis,
    IVRegime,
    IVRegimeType,
    IVSkewAndMaxPainEngine,
    MaxPainResult,
    SkewDirection,
    VolatilitySmile,
)

__all__ = [
    "DealerBias",
    "DefensiveStrike",
    "DefensiveType",
    "ExpectedMove",
    "GammaEffect",
    "GammaRegime",
    "GammaWall",
    "GreeksExposureAnalysis",
    "IVAnalysis",
    "IVRegime",
    "IVRegimeType",
    "IVSkewAndMaxPainEngine",
    "LevelType",
    "MaxPainResult",
    "Moneyness",
    "OIWall",
    "OptionsGreeksAggregator",
    "SkewDirection",
    "StrikeExposure",
    "StrikeMetrics",
    "VolatilitySmile",
]
