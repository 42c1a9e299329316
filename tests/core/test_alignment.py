"""
Unit Tests for timestamp alignment

Test cases:
- test_nearest_exact: Exact timestamp match
- test_nearest_tie_prefers_earlier: Equidistant neighbours resolve to the earlier one
- test_tolerance_inclusive: Distance equal to tolerance still matches
- test_align_drops_unmatched: Left records without a partner are dropped
- test_align_unsorted_right: Right series is sorted before matching
"""

from oitrader.core.alignment import align_by_timestamp, nearest_index
from oitrader.core.models import OpenInterestPoint
from tests.fixtures.market_fixtures import make_candles, make_oi


class TestNearestIndex:
    """Test nearest_index."""

    def test_nearest_exact(self):
        assert nearest_index([0, 100, 200], 100, 0) == 1

    def test_nearest_tie_prefers_earlier(self):
        assert nearest_index([0, 100], 50, 100) == 0

    def test_tolerance_inclusive(self):
        assert nearest_index([0], 60, 60) == 0
        assert nearest_index([0], 61, 60) is None

    def test_empty(self):
        assert nearest_index([], 10, 1000) is None


class TestAlignByTimestamp:
    """Test align_by_timestamp."""

    def test_align_offset_series(self):
        candles = make_candles([100.0, 101.0, 102.0], step=300_000)
        oi = make_oi([1.0, 2.0, 3.0], start=candles[0].timestamp + 30_000, step=300_000)

        pairs = align_by_timestamp(candles, oi, tolerance_ms=60_000)

        assert [p.value for _, p in pairs] == [1.0, 2.0, 3.0]

    def test_align_drops_unmatched(self):
        candles = make_candles([100.0, 101.0, 102.0], step=300_000)
        oi = [OpenInterestPoint(timestamp=candles[1].timestamp, value=5.0)]

        pairs = align_by_timestamp(candles, oi, tolerance_ms=1_000)

        assert len(pairs) == 1
        assert pairs[0][0] is candles[1]

    def test_align_unsorted_right(self):
        candles = make_candles([100.0, 101.0], step=1_000)
        oi = list(reversed(make_oi([1.0, 2.0], start=candles[0].timestamp, step=1_000)))

        pairs = align_by_timestamp(candles, oi, tolerance_ms=0)

        assert [p.value for _, p in pairs] == [1.0, 2.0]
