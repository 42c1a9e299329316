"""
Workflows combining the analyzers.
"""

from oitrader.workflows.market_analysis import MarketAnalysis, MarketAnalyzer

__all__ = ["MarketAnalysis", "MarketAnalyzer"]
