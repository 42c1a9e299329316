"""
Unit Tests for DivergenceDetector

Test cases:
- test_worked_example: Five candles, lookback 2 -> BULLISH_TRAP at index 3
- test_classify_quadrants: Each price/OI sign combination
- test_below_threshold: Small moves produce no signal
- test_zero_base_skipped: Zero OI at the window start is skipped
- test_short_series: Series shorter than lookback yields no signals
- test_rising_price_and_oi_never_bearish_trap: Rising price with rising OI never reads as a bearish trap
- test_detect_aligned: OI on a different clock is joined by timestamp
- test_volatility_filter: Signal re-interpreted per volatility regime
"""

import pytest

from oitrader.features.oi_divergence import (
    DivergenceDetector,
    DivergenceSignal,
    DivergenceType,
    filter_signal_by_volatility,
)
from oitrader.features.volatility_regime import (
    Strategy,
    TrustLevel,
    VolatilityMode,
    VolatilityRegime,
)
from tests.fixtures.market_fixtures import make_candles, make_oi


def _regime(mode: VolatilityMode) -> VolatilityRegime:
    return VolatilityRegime(
        mode=mode,
        atr=1.0,
        atr_percent=1.0,
        volatility=1.0,
        volatility_percentile=50.0,
        strategy=Strategy.TREND_FOLLOW,
        position_size_multiplier=1.0,
        oi_signal_trust=TrustLevel.HIGH,
        reasoning="test",
    )


def _signal(kind: DivergenceType, strength: float) -> DivergenceSignal:
    return DivergenceSignal(
        index=0, timestamp=0, type=kind, strength=strength,
        price_change=0.0, oi_change=0.0, description="",
    )


# =============================================================================
# Detection
# =============================================================================


class TestDivergenceDetector:
    """Test divergence detection."""

    def test_worked_example(self):
        candles = make_candles([100.0, 101.0, 99.0, 105.0, 103.0])
        oi = [1000.0, 1050.0, 1100.0, 1300.0, 1250.0]

        signals = DivergenceDetector(lookback=2).detect(candles, oi)

        at_three = next(s for s in signals if s.index == 3)
        assert at_three.type == DivergenceType.BULLISH_TRAP
        assert at_three.price_change == pytest.approx(4.0 / 101.0)
        assert at_three.oi_change == pytest.approx(250.0 / 1050.0)
        assert at_three.timestamp == candles[3].timestamp
        assert [s.index for s in signals] == [3, 4]

    @pytest.mark.parametrize(
        "price_change,oi_change,expected",
        [
            (-0.03, 0.06, DivergenceType.BEARISH_TRAP),
            (0.03, 0.06, DivergenceType.BULLISH_TRAP),
            (0.03, -0.04, DivergenceType.BULLISH_CONTINUATION),
            (-0.03, -0.04, DivergenceType.BEARISH_CONTINUATION),
        ],
    )
    def test_classify_quadrants(self, price_change, oi_change, expected):
        assert DivergenceDetector().classify(price_change, oi_change) == expected

    @pytest.mark.parametrize(
        "price_change,oi_change",
        [(0.01, 0.10), (0.03, 0.04), (-0.03, -0.02), (0.0, 0.0)],
    )
    def test_below_threshold(self, price_change, oi_change):
        assert DivergenceDetector().classify(price_change, oi_change) is None

    def test_zero_base_skipped(self):
        candles = make_candles([100.0, 110.0, 120.0])
        assert DivergenceDetector(lookback=1).detect(candles, [0.0, 0.0, 100.0]) == []

    def test_short_series(self):
        candles = make_candles([100.0, 110.0])
        assert DivergenceDetector(lookback=5).detect(candles, [1.0, 2.0]) == []

    @pytest.mark.parametrize("price_growth", [0.001, 0.01, 0.03])
    @pytest.mark.parametrize("oi_growth", [0.005, 0.02, 0.05])
    def test_rising_price_and_oi_never_bearish_trap(self, price_growth, oi_growth):
        candles = make_candles([100.0 * (1 + price_growth) ** i for i in range(30)])
        oi = [1000.0 * (1 + oi_growth) ** i for i in range(30)]

        for lookback in (1, 5, 12):
            signals = DivergenceDetector(lookback=lookback).detect(candles, oi)
            assert all(s.type != DivergenceType.BEARISH_TRAP for s in signals)
            assert all(s.price_change > 0 and s.oi_change > 0 for s in signals)

    def test_accepts_oi_points(self):
        candles = make_candles([100.0, 101.0, 99.0, 105.0, 103.0])
        points = make_oi([1000.0, 1050.0, 1100.0, 1300.0, 1250.0])
        assert len(DivergenceDetector(lookback=2).detect(candles, points)) == 2

    def test_detect_aligned(self):
        candles = make_candles([100.0, 101.0, 99.0, 105.0, 103.0])
        points = make_oi([1000.0, 1050.0, 1100.0, 1300.0, 1250.0], start=candles[0].timestamp + 20_000)

        signals = DivergenceDetector(lookback=2).detect_aligned(candles, points, tolerance_ms=60_000)

        assert [s.index for s in signals] == [3, 4]

    def test_detect_aligned_no_overlap(self):
        candles = make_candles([100.0, 101.0, 99.0])
        points = make_oi([1.0, 2.0, 3.0], start=candles[0].timestamp + 10_000_000)
        assert DivergenceDetector(lookback=1).detect_aligned(candles, points) == []

    def test_latest(self):
        assert DivergenceDetector.latest([]) is None
        first, second = _signal(DivergenceType.BULLISH_TRAP, 0.1), _signal(DivergenceType.BEARISH_TRAP, 0.1)
        assert DivergenceDetector.latest([first, second]) is second

    def test_invalid_lookback(self):
        with pytest.raises(ValueError):
            DivergenceDetector(lookback=0)

    def test_to_dict(self):
        data = _signal(DivergenceType.BEARISH_CONTINUATION, 0.2).to_dict()
        assert data["type"] == "BEARISH_CONTINUATION"
        assert data["strength"] == 0.2


# =============================================================================
# Volatility filter
# =============================================================================


class TestVolatilityFilter:
    """Test filter_signal_by_volatility."""

    def test_extreme_blocks(self):
        result = filter_signal_by_volatility(_signal(DivergenceType.BULLISH_TRAP, 0.5), _regime(VolatilityMode.EXTREME))
        assert result.adjusted_signal == "STAY_OUT"
        assert result.confidence == "LOW"

    def test_high_strong_continuation(self):
        result = filter_signal_by_volatility(
            _signal(DivergenceType.BULLISH_CONTINUATION, 0.15), _regime(VolatilityMode.HIGH)
        )
        assert result.adjusted_signal == "BREAKOUT_CONFIRMED"

    def test_high_strong_trap(self):
        result = filter_signal_by_volatility(_signal(DivergenceType.BEARISH_TRAP, 0.15), _regime(VolatilityMode.HIGH))
        assert result.adjusted_signal == "LIQUIDATION_CASCADE_RISK"

    def test_high_weak_waits(self):
        result = filter_signal_by_volatility(_signal(DivergenceType.BEARISH_TRAP, 0.05), _regime(VolatilityMode.HIGH))
        assert result.adjusted_signal == "BEARISH_TRAP"
        assert result.confidence == "MEDIUM"

    def test_medium_trusts_signal(self):
        result = filter_signal_by_volatility(_signal(DivergenceType.BULLISH_TRAP, 0.05), _regime(VolatilityMode.MEDIUM))
        assert result.adjusted_signal == "BULLISH_TRAP"
        assert result.confidence == "HIGH"

    def test_low_reinterprets(self):
        trap = filter_signal_by_volatility(_signal(DivergenceType.BULLISH_TRAP, 0.05), _regime(VolatilityMode.LOW))
        distribution = filter_signal_by_volatility(
            _signal(DivergenceType.BEARISH_CONTINUATION, 0.05), _regime(VolatilityMode.LOW)
        )
        assert trap.adjusted_signal == "POSITION_BUILDING"
        assert distribution.adjusted_signal == "PRE_BREAKDOWN_DISTRIBUTION"

    def test_insufficient_data(self):
        result = filter_signal_by_volatility(
            _signal(DivergenceType.BULLISH_TRAP, 0.5), _regime(VolatilityMode.INSUFFICIENT_DATA)
        )
        assert result.confidence == "LOW"
