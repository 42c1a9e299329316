"""
oitrader - crypto derivatives market-microstructure analytics.

Turns exchange snapshots (klines, open interest, funding, positioning ratios,
taker flow, options chains, orderbooks, liquidations) into analytics records
and a scored trading decision.

Usage:
    from oitrader import MarketAnalyzer, MarketSnapshot

    analyzer = MarketAnalyzer()
    analysis = analyzer.analyze(snapshot)
    print(analysis.decision)
"""

from oitrader.core.models import MarketSnapshot
from oitrader.workflows.market_analysis import MarketAnalysis, MarketAnalyzer

__version__ = "0.1.0"

__all__ = ["MarketAnalyzer", "MarketAnalysis", "MarketSnapshot", "__version__"]
