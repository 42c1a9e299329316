"""
Unit Tests for MarketRegimeClassifier

Test cases:
- test_insufficient_data: Short series -> NEUTRAL / MEDIUM
- test_range_chop: Flat market
- test_low_liquidity_trap: Volume collapse with stagnant OI
- test_high_vol_squeeze: Large swings, flat net change
- test_trending_up / test_bullish_overheated: Funding splits the uptrend
- test_trending_down / test_bearish_overheated: Funding splits the downtrend
- test_healthy_trends: Moderate moves with OI growth
"""

import pytest

from oitrader.decisions.market_regime import (
    MarketRegimeClassifier,
    MarketRegimeType,
    RegimeRisk,
)
from tests.fixtures.market_fixtures import make_candles, make_oi


def _swing(up: float, down: float, count: int = 20) -> list[float]:
    closes = [100.0]
    for i in range(count - 1):
        closes.append(closes[-1] * (up if i % 2 == 0 else down))
    return closes


def _linear(start: float, end: float, count: int = 20) -> list[float]:
    step = (end - start) / (count - 1)
    return [start + step * i for i in range(count)]


@pytest.fixture
def classifier():
    return MarketRegimeClassifier(lookback=20)


@pytest.fixture
def flat_oi():
    return make_oi([1000.0] * 20)


@pytest.fixture
def growing_oi():
    return make_oi(_linear(1000.0, 1100.0))


class TestMarketRegimeClassifier:
    """Test regime rules."""

    def test_lookback_must_exceed_volume_window(self):
        with pytest.raises(ValueError):
            MarketRegimeClassifier(lookback=10)

    def test_insufficient_data(self, classifier, flat_oi):
        regime = classifier.classify(make_candles([100.0] * 10), flat_oi)
        assert regime.regime == MarketRegimeType.NEUTRAL
        assert regime.risk == RegimeRisk.MEDIUM

        no_oi = classifier.classify(make_candles([100.0] * 20), [])
        assert no_oi.regime == MarketRegimeType.NEUTRAL

    def test_range_chop(self, classifier, flat_oi):
        regime = classifier.classify(make_candles([100.0] * 20), flat_oi)
        assert regime.regime == MarketRegimeType.RANGE_CHOP
        assert regime.volatility == 0.0

    def test_low_liquidity_trap(self, classifier, flat_oi):
        candles = make_candles([100.0] * 20, volume=[100.0] * 10 + [50.0] * 10)

        regime = classifier.classify(candles, flat_oi)

        assert regime.volume_change == pytest.approx(-50.0)
        assert regime.regime == MarketRegimeType.LOW_LIQ_TRAP
        assert regime.risk == RegimeRisk.HIGH

    def test_high_vol_squeeze(self, classifier, flat_oi):
        closes = [100.0] + [104.0, 96.0] * 9 + [100.5]
        regime = classifier.classify(make_candles(closes), flat_oi)
        assert regime.regime == MarketRegimeType.HIGH_VOL_SQUEEZE

    def test_trending_up(self, classifier, growing_oi):
        regime = classifier.classify(make_candles(_swing(1.04, 0.99)), growing_oi)
        assert regime.price_change > 5
        assert regime.oi_change == pytest.approx(10.0)
        assert regime.regime == MarketRegimeType.TRENDING_UP
        assert regime.risk == RegimeRisk.LOW

    def test_bullish_overheated(self, classifier, growing_oi):
        regime = classifier.classify(make_candles(_swing(1.04, 0.99)), growing_oi, funding_rate=0.1)
        assert regime.regime == MarketRegimeType.BULLISH_OVERHEATED
        assert regime.funding_rate == 0.1

    def test_trending_down(self, classifier, growing_oi):
        regime = classifier.classify(make_candles(_swing(0.96, 1.01)), growing_oi)
        assert regime.regime == MarketRegimeType.TRENDING_DOWN

    def test_bearish_overheated(self, classifier, growing_oi):
        regime = classifier.classify(make_candles(_swing(0.96, 1.01)), growing_oi, funding_rate=-0.06)
        assert regime.regime == MarketRegimeType.BEARISH_OVERHEATED

    def test_healthy_trends(self, classifier):
        oi = make_oi(_linear(1000.0, 1010.0))
        up = classifier.classify(make_candles(_linear(100.0, 103.5)), oi)
        down = classifier.classify(make_candles(_linear(100.0, 96.5)), oi)
        assert up.regime == MarketRegimeType.BULLISH_HEALTHY
        assert down.regime == MarketRegimeType.BEARISH_HEALTHY

    def test_neutral(self, classifier):
        falling_oi = make_oi(_linear(1000.0, 990.0))
        regime = classifier.classify(make_candles(_linear(100.0, 103.5)), falling_oi)
        assert regime.regime == MarketRegimeType.NEUTRAL
