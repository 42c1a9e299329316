"""
Market microstructure features computed from perpetual futures data.

Volume profile, OI divergence, OI momentum, OI delta by price, volatility
regime, liquidation clusters, orderbook depth, taker flow and funding regime.
"""

from oitrader.features.funding_regime import FundingRegime, classify_funding_regime
from oitrader.features.liquidation_clusters import (
    LiquidationAnalysis,
    LiquidationCluster,
    LiquidationClusterAnalyzer,
)
from oitrader.features.oi_delta_by_price import OIDeltaAnalysis, OIDeltaByPriceAnalyzer, classify_oi_delta
from oitrader.features.oi_divergence import (
    DivergenceDetector,
    DivergenceSignal,
    DivergenceType,
    filter_signal_by_volatility,
)
from oitrader.features.oi_momentum import (
    MomentumSignal,
    OIMomentumAnalysis,
    OIMomentumAnalyzer,
    momentum_statistics,
    risk_mode,
    signal_score,
)
from oitrader.features.orderbook_depth import (
    OrderbookDepthAnalysis,
    OrderbookLiquidityAnalyzer,
    estimate_slippage,
)
from oitrader.features.taker_flow import (
    TakerFlowAnalysis,
    analyze_taker_flow,
    combine_with_volume_profile,
    cumulative_taker_flow,
)
from oitrader.features.volatility_regime import (
    VolatilityMode,
    VolatilityRegime,
    VolatilityRegimeClassifier,
)
from oitrader.features.volume_profile import (
    VolumeProfile,
    VolumeProfileEngine,
    classify_price_zone,
    find_trading_opportunities,
)

__all__ = [
    "DivergenceDetector",
    "DivergenceSignal",
    "DivergenceType",
    "FundingRegime",
    "LiquidationAnalysis",
    "LiquidationCluster",
    "LiquidationClusterAnalyzer",
    "MomentumSignal",
    "OIDeltaAnalysis",
    "OIDeltaByPriceAnalyzer",
    "OIMomentumAnalysis",
    "OIMomentumAnalyzer",
    "OrderbookDepthAnalysis",
    "OrderbookLiquidityAnalyzer",
    "TakerFlowAnalysis",
    "VolatilityMode",
    "VolatilityRegime",
    "VolatilityRegimeClassifier",
    "VolumeProfile",
    "VolumeProfileEngine",
    "analyze_taker_flow",
    "classify_funding_regime",
    "classify_oi_delta",
    "classify_price_zone",
    "combine_with_volume_profile",
    "cumulative_taker_flow",
    "estimate_slippage",
    "filter_signal_by_volatility",
    "find_trading_opportunities",
    "momentum_statistics",
    "risk_mode",
    "signal_score",
]
