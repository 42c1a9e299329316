"""
Core records and helpers.

Immutable market-data models, timestamp alignment and polars adapters.
"""

from oitrader.core.alignment import align_by_timestamp, nearest_index
from oitrader.core.models import (
    Candle,
    FundingRate,
    LiquidationEvent,
    LiquidationSide,
    LongShortRatio,
    MarketSnapshot,
    OpenInterestPoint,
    OptionContract,
    OptionSide,
    OptionsChain,
    OrderbookLevel,
    OrderbookSnapshot,
    TakerVolume,
)

__all__ = [
    "Candle",
    "FundingRate",
    "LiquidationEvent",
    "LiquidationSide",
    "LongShortRatio",
    "MarketSnapshot",
    "OpenInterestPoint",
    "OptionContract",
    "OptionSide",
    "OptionsChain",
    "OrderbookLevel",
    "OrderbookSnapshot",
    "TakerVolume",
    "align_by_timestamp",
    "nearest_index",
]
