"""
Unit Tests for polars frame adapters

Test cases:
- test_candles_from_frame_sorted: Rows sorted by timestamp
- test_null_volume_becomes_zero: Null volume read as 0
- test_missing_columns: ValueError names the missing columns
- test_profile_to_frame: Profile levels exported as rows
"""

import polars as pl
import pytest

from oitrader.core.frames import (
    candles_from_frame,
    candles_to_frame,
    open_interest_from_frame,
    volume_profile_to_frame,
)
from oitrader.features.volume_profile import VolumeProfileEngine
from tests.fixtures.market_fixtures import make_flat_candle


class TestCandleFrames:
    """Test kline DataFrame conversion."""

    def test_candles_from_frame_sorted(self):
        df = pl.DataFrame({
            "timestamp": [2000, 1000],
            "open": [2.0, 1.0],
            "high": [2.5, 1.5],
            "low": [1.5, 0.5],
            "close": [2.2, 1.2],
            "volume": [20.0, 10.0],
        })

        candles = candles_from_frame(df)

        assert [c.timestamp for c in candles] == [1000, 2000]
        assert candles[0].close == 1.2

    def test_null_volume_becomes_zero(self):
        df = pl.DataFrame({
            "timestamp": [1000],
            "open": [1.0],
            "high": [1.0],
            "low": [1.0],
            "close": [1.0],
            "volume": [None],
        }, schema_overrides={"volume": pl.Float64})

        assert candles_from_frame(df)[0].volume == 0.0

    def test_missing_columns(self):
        df = pl.DataFrame({"timestamp": [1], "close": [1.0]})
        with pytest.raises(ValueError, match="missing columns"):
            candles_from_frame(df)

    def test_candles_to_frame(self, trending_candles):
        df = candles_to_frame(trending_candles)
        assert df.height == len(trending_candles)
        assert df["close"][-1] == pytest.approx(trending_candles[-1].close)


class TestOtherFrames:
    """Test OI and profile frames."""

    def test_open_interest_from_frame(self):
        df = pl.DataFrame({"timestamp": [2, 1], "value": [20.0, 10.0]})
        points = open_interest_from_frame(df, symbol="ETHUSDT")
        assert [p.value for p in points] == [10.0, 20.0]
        assert points[0].symbol == "ETHUSDT"

    def test_profile_to_frame(self):
        profile = VolumeProfileEngine(bucket_size=10).calculate([
            make_flat_candle(100.0, 10.0),
            make_flat_candle(110.0, 30.0),
        ])
        df = volume_profile_to_frame(profile)
        assert df["price"].to_list() == [100.0, 110.0]
        assert df["percentage"].to_list() == pytest.approx([25.0, 75.0])
