"""
Decision layer: market regime labelling and multi-factor trade scoring.
"""

from oitrader.decisions.market_regime import (
    MarketRegime,
    MarketRegimeClassifier,
    MarketRegimeType,
    RegimeRisk,
)
from oitrader.decisions.trading_decision import (
    Confidence,
    DecisionAction,
    DecisionFactor,
    FactorDirection,
    TradingDecision,
    TradingDecisionScorer,
)

__all__ = [
    "Confidence",
    "DecisionAction",
    "DecisionFactor",
    "FactorDirection",
    "MarketRegime",
    "MarketRegimeClassifier",
    "MarketRegimeType",
    "RegimeRisk",
    "TradingDecision",
    "TradingDecisionScorer",
]
