"""
Unit Tests for OIDeltaByPriceAnalyzer

Test cases:
- test_buckets: OI deltas accumulate in the bucket of each close
- test_delta_types: Price/OI direction pairs map to build/unwind types
- test_totals: Build and unwind totals and delta range
- test_timestamp_tolerance: Offset OI still matches, missing OI drops the bar
- test_classify_strength: STRONG above 70 intensity, MODERATE above 40
"""

import pytest

from oitrader.features.oi_delta_by_price import (
    DeltaStrength,
    OIDeltaByPriceAnalyzer,
    OIDeltaSignal,
    OIDeltaType,
    classify_oi_delta,
)
from tests.fixtures.market_fixtures import make_candles, make_oi

CLOSES = [100.0, 105.0, 112.0, 108.0, 95.0]
OI = [1000.0, 1100.0, 1150.0, 1100.0, 1000.0]


@pytest.fixture
def analysis():
    return OIDeltaByPriceAnalyzer(bucket_size=10.0).analyze(make_candles(CLOSES), make_oi(OI))


class TestOIDeltaByPrice:
    """Test OI delta bucketing."""

    def test_buckets(self, analysis):
        by_price = {b.price: b for b in analysis.buckets}

        assert list(by_price) == [90.0, 100.0, 110.0]
        assert by_price[100.0].oi_delta == pytest.approx(50.0)
        assert by_price[100.0].volume == pytest.approx(200.0)
        assert by_price[90.0].oi_delta == pytest.approx(-100.0)
        assert by_price[90.0].intensity == pytest.approx(100.0)
        assert by_price[110.0].intensity == pytest.approx(50.0)
        assert by_price[110.0].oi_change == pytest.approx(50.0 / 1100.0 * 100)

    def test_delta_types(self, analysis):
        types = {b.price: b.delta_type for b in analysis.buckets}

        assert types[110.0] == OIDeltaType.BUILD_LONG
        assert types[100.0] == OIDeltaType.UNWIND_LONG
        assert types[90.0] == OIDeltaType.UNWIND_LONG

    @pytest.mark.parametrize(
        "closes,oi,expected",
        [
            ([100.0, 101.0], [10.0, 11.0], OIDeltaType.BUILD_LONG),
            ([101.0, 100.0], [10.0, 11.0], OIDeltaType.BUILD_SHORT),
            ([100.0, 101.0], [11.0, 10.0], OIDeltaType.UNWIND_SHORT),
            ([101.0, 100.0], [11.0, 10.0], OIDeltaType.UNWIND_LONG),
            ([100.0, 101.0], [10.0, 10.0], OIDeltaType.NEUTRAL),
        ],
    )
    def test_single_bar_type(self, closes, oi, expected):
        analysis = OIDeltaByPriceAnalyzer(bucket_size=10.0).analyze(make_candles(closes), make_oi(oi))
        assert analysis.buckets[0].delta_type == expected

    def test_totals(self, analysis):
        assert analysis.total_build_long == pytest.approx(50.0)
        assert analysis.total_unwind_long == pytest.approx(150.0)
        assert analysis.total_build_short == 0.0
        assert analysis.max_delta == pytest.approx(50.0)
        assert analysis.min_delta == pytest.approx(-100.0)
        assert analysis.avg_delta == pytest.approx(0.0)

    def test_timestamp_tolerance(self):
        candles = make_candles(CLOSES)
        shifted = make_oi(OI, start=candles[0].timestamp + 30_000)
        assert len(OIDeltaByPriceAnalyzer().analyze(candles, shifted).buckets) == 3

        sparse = [p for i, p in enumerate(make_oi(OI)) if i != 3]
        buckets = OIDeltaByPriceAnalyzer(bucket_size=10.0).analyze(candles, sparse).buckets
        assert [b.price for b in buckets] == [100.0, 110.0]

    def test_empty(self):
        analyzer = OIDeltaByPriceAnalyzer()
        assert analyzer.analyze([], make_oi(OI)).is_empty
        assert analyzer.analyze(make_candles(CLOSES), []).is_empty

    def test_invalid_bucket_size(self):
        with pytest.raises(ValueError):
            OIDeltaByPriceAnalyzer(bucket_size=0)


class TestClassify:
    """Test bucket readings."""

    def test_classify_strength(self, analysis):
        by_price = {b.price: b for b in analysis.buckets}

        strong = classify_oi_delta(by_price[90.0])
        moderate = classify_oi_delta(by_price[110.0])

        assert strong.signal == OIDeltaSignal.BEARISH_UNWIND
        assert strong.strength == DeltaStrength.STRONG
        assert moderate.signal == OIDeltaSignal.NEUTRAL
        assert moderate.strength == DeltaStrength.MODERATE
        assert moderate.description == "Moderate build long"
