"""
Polars adapters for analytics records.

Exchange history is usually handled as polars DataFrames; these helpers
convert between frames and the immutable records the analyzers consume.

Usage:
    candles = candles_from_frame(klines_df)
    profile_df = volume_profile_to_frame(profile)
"""

from typing import TYPE_CHECKING

import polars as pl

from oitrader.core.models import Candle, OpenInterestPoint

if TYPE_CHECKING:
    from oitrader.features.volume_profile import VolumeProfile

CANDLE_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]
OI_COLUMNS = ["timestamp", "value"]


def _require_columns(df: pl.DataFrame, columns: list[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"DataFrame missing columns: {missing}")


def candles_from_frame(df: pl.DataFrame) -> list[Candle]:
    """
    Build candles from a kline DataFrame.

    Rows are sorted by timestamp; null volumes become 0.
    """
    _require_columns(df, CANDLE_COLUMNS)
    rows = (
        df.select(CANDLE_COLUMNS)
        .with_columns(pl.col("volume").fill_null(0.0))
        .sort("timestamp")
        .iter_rows()
    )
    return [
        Candle(
            timestamp=int(ts),
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=float(v),
        )
        for ts, o, h, l, c, v in rows
    ]


def open_interest_from_frame(df: pl.DataFrame, symbol: str = "") -> list[OpenInterestPoint]:
    """Build open interest points from a DataFrame; null values become 0."""
    _require_columns(df, OI_COLUMNS)
    rows = (
        df.select(OI_COLUMNS)
        .with_columns(pl.col("value").fill_null(0.0))
        .sort("timestamp")
        .iter_rows()
    )
    return [OpenInterestPoint(timestamp=int(ts), value=float(v), symbol=symbol) for ts, v in rows]


def candles_to_frame(candles) -> pl.DataFrame:
    return pl.DataFrame(
        {col: [getattr(c, col) for c in candles] for col in CANDLE_COLUMNS},
        schema={
            "timestamp": pl.Int64,
            "open": pl.Float64,
            "high": pl.Float64,
            "low": pl.Float64,
            "close": pl.Float64,
            "volume": pl.Float64,
        },
    )


def volume_profile_to_frame(profile: "VolumeProfile") -> pl.DataFrame:
    """Profile levels as a DataFrame (price, volume, percentage)."""
    return pl.DataFrame(
        {
            "price": [lvl.price for lvl in profile.levels],
            "volume": [lvl.volume for lvl in profile.levels],
            "percentage": [lvl.percentage for lvl in profile.levels],
        },
        schema={"price": pl.Float64, "volume": pl.Float64, "percentage": pl.Float64},
    )
