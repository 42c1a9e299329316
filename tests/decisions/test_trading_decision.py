"""
Unit Tests for TradingDecisionScorer

Test cases:
- test_strong_buy: All bullish factors -> BUY with HIGH confidence
- test_sell_medium: Falling price with rising OI -> SELL MEDIUM
- test_sell_high: Bearish positioning pushes score past -60
- test_no_inputs_wait: Missing inputs contribute nothing
- test_zero_ratio_defaults_neutral: A zero ratio is treated as missing
- test_factor_limit: At most four factors, strongest first
- test_volatility_attached: Size multiplier and warnings come from the regime
"""

import pytest

from oitrader.core.models import FundingRate, LongShortRatio, TakerVolume
from oitrader.decisions.trading_decision import (
    Confidence,
    DecisionAction,
    FactorDirection,
    TradingDecisionScorer,
)
from oitrader.features.volatility_regime import VolatilityRegimeClassifier
from tests.fixtures.market_fixtures import make_candles, make_oi


@pytest.fixture
def scorer():
    return TradingDecisionScorer(lookback=20)


@pytest.fixture
def rising_candles():
    return make_candles([100.0 * (1.005 ** i) for i in range(30)])


@pytest.fixture
def falling_candles():
    return make_candles([100.0 * (0.995 ** i) for i in range(30)])


@pytest.fixture
def rising_oi():
    return make_oi([10_000.0 * (1.004 ** i) for i in range(30)])


class TestTradingDecisionScorer:
    """Test multi-factor scoring."""

    def test_strong_buy(self, scorer, rising_candles, rising_oi):
        decision = scorer.score(
            rising_candles,
            rising_oi,
            top_trader_ratios=[LongShortRatio(0, 1.5)],
            taker_volume=[TakerVolume(0, 150.0, 100.0, 1.5)],
            funding_rates=[FundingRate(0, 0.0001)],
        )

        assert decision.action == DecisionAction.BUY
        assert decision.score == 85
        assert decision.confidence == Confidence.HIGH
        assert [f.name for f in decision.factors] == [
            "Price Momentum",
            "OI + Price Alignment",
            "Smart Money Bullish",
            "Aggressive Buyers",
        ]
        assert decision.price_change == pytest.approx((1.005 ** 19 - 1) * 100)

    def test_sell_medium(self, scorer, falling_candles, rising_oi):
        decision = scorer.score(falling_candles, rising_oi)

        assert decision.action == DecisionAction.SELL
        assert decision.score == -50
        assert decision.confidence == Confidence.MEDIUM
        assert decision.factors[1].name == "New Shorts Entering"
        assert all(f.direction == FactorDirection.BEARISH for f in decision.factors)

    def test_sell_high(self, scorer, falling_candles, rising_oi):
        decision = scorer.score(falling_candles, rising_oi, top_trader_ratios=[LongShortRatio(0, 0.5)])
        assert decision.score == -70
        assert decision.confidence == Confidence.HIGH

    def test_no_inputs_wait(self, scorer):
        decision = scorer.score([])
        assert decision.action == DecisionAction.WAIT
        assert decision.score == 0
        assert decision.confidence == Confidence.LOW
        assert decision.factors == ()

    def test_zero_ratio_defaults_neutral(self, scorer, rising_candles):
        decision = scorer.score(rising_candles, top_trader_ratios=[LongShortRatio(0, 0.0)])
        assert "Smart Money Bearish" not in [f.name for f in decision.factors]

    def test_funding_factor(self, scorer):
        candles = make_candles([100.0] * 25)
        positive = scorer.score(candles, funding_rates=[FundingRate(0, 0.02)])
        negative = scorer.score(candles, funding_rates=[FundingRate(0, -0.02)])
        assert positive.score == 8
        assert negative.score == -8

    def test_factor_limit(self, scorer, rising_candles, rising_oi):
        decision = scorer.score(
            rising_candles,
            rising_oi,
            top_trader_ratios=[LongShortRatio(0, 1.5)],
            taker_volume=[TakerVolume(0, 150.0, 100.0, 1.5)],
            funding_rates=[FundingRate(0, 0.02)],
        )
        assert decision.score == 93
        assert len(decision.factors) == 4
        strengths = [f.strength for f in decision.factors]
        assert strengths == sorted(strengths, reverse=True)

    def test_volatility_attached(self, scorer):
        candles = make_candles([100.0] * 60, spread=3.0)
        regime = VolatilityRegimeClassifier().classify(candles)

        decision = scorer.score(candles, volatility=regime)

        assert decision.position_size_multiplier == 0.3
        assert decision.warnings == regime.warnings
        assert decision.action == DecisionAction.WAIT

    def test_str(self, scorer):
        assert str(scorer.score([])).startswith("WAIT (score +0, LOW)")
