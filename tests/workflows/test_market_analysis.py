"""
Integration Tests for MarketAnalyzer

Test cases:
- test_full_snapshot: Every analyzer produces a result
- test_decision_uses_volatility: Scorer receives the volatility regime
- test_candles_only: Options, book and flow results are None without inputs
- test_empty_snapshot: Symbol only -> no results, no error
- test_cache_tracks_changes: Second pass sees the previous chain and IV history
- test_missing_atm_propagates: Malformed chain raises MissingATMOptionError
- test_snapshot_interval_scales_volatility: 1d snapshot is scaled with one period per day
- test_default_cache_from_config: Cache built with the configured TTL when none injected
- test_filtered_divergence: Latest divergence re-read under the volatility regime
- test_analyze_frames: Polars kline and OI frames run through the same pipeline
"""

import polars as pl
import pytest

from oitrader import MarketAnalyzer, MarketSnapshot
from oitrader.cache import SnapshotCache
from oitrader.config import AnalyticsConfig
from oitrader.core.frames import candles_to_frame
from oitrader.core.models import OptionSide
from oitrader.decisions.trading_decision import DecisionAction
from oitrader.exceptions import MissingATMOptionError
from oitrader.features.oi_divergence import DivergenceType
from oitrader.features.volatility_regime import VolatilityRegimeClassifier
from tests.fixtures.market_fixtures import make_chain, make_contract


class TestMarketAnalyzer:
    """Test end-to-end analysis."""

    def test_full_snapshot(self, sample_snapshot):
        analysis = MarketAnalyzer().analyze(sample_snapshot)

        assert analysis.symbol == "BTCUSDT"
        assert analysis.current_price == pytest.approx(sample_snapshot.candles[-1].close)
        assert not analysis.volume_profile.is_empty
        assert analysis.price_zone is not None
        assert analysis.volatility is not None
        assert not analysis.greeks.is_empty
        assert analysis.iv.max_pain.strike == 47500.0
        assert not analysis.liquidations.is_empty
        assert not analysis.orderbook.is_empty
        assert analysis.taker_flow is not None
        assert analysis.funding is not None
        assert analysis.market_regime is not None

    def test_divergences(self, sample_snapshot):
        analysis = MarketAnalyzer().analyze(sample_snapshot)

        assert len(analysis.divergences) == len(sample_snapshot.candles) - 20
        assert analysis.latest_divergence.type == DivergenceType.BULLISH_TRAP
        assert analysis.latest_divergence.index == len(sample_snapshot.candles) - 1

    def test_decision_uses_volatility(self, sample_snapshot):
        analysis = MarketAnalyzer().analyze(sample_snapshot)

        assert analysis.decision.action == DecisionAction.BUY
        assert analysis.decision.score == 85
        assert analysis.decision.position_size_multiplier == analysis.volatility.position_size_multiplier

    def test_liquidations_use_profile(self, sample_snapshot):
        analysis = MarketAnalyzer().analyze(sample_snapshot)
        assert len(analysis.liquidations.hunting_zones) == len(analysis.liquidations.clusters)

    def test_candles_only(self, trending_candles):
        analysis = MarketAnalyzer().analyze(MarketSnapshot("BTCUSDT", candles=tuple(trending_candles)))

        assert analysis.decision is not None
        assert analysis.greeks is None
        assert analysis.iv is None
        assert analysis.orderbook is None
        assert analysis.liquidations is None
        assert analysis.divergences == ()
        assert analysis.filtered_divergence is None

    def test_empty_snapshot(self):
        analysis = MarketAnalyzer().analyze(MarketSnapshot("BTCUSDT"))

        assert analysis.current_price is None
        assert analysis.volume_profile is None
        assert analysis.decision is None
        assert analysis.latest_divergence is None

    def test_config_applied(self, sample_snapshot):
        config = AnalyticsConfig.from_dict({"divergence": {"lookback": 50}})
        analysis = MarketAnalyzer(config=config).analyze(sample_snapshot)
        assert len(analysis.divergences) == len(sample_snapshot.candles) - 50

    def test_cache_tracks_changes(self, sample_snapshot):
        cache = SnapshotCache(ttl_seconds=300)
        analyzer = MarketAnalyzer(cache=cache)

        first = analyzer.analyze(sample_snapshot)
        second = analyzer.analyze(sample_snapshot)

        assert all(m.oi_change is None for m in first.greeks.contracts)
        assert all(m.oi_change == 0.0 for m in second.greeks.contracts)
        assert cache.get("BTCUSDT:2026-12-25:atm_iv") == pytest.approx((0.55, 0.55))

    def test_missing_atm_propagates(self):
        chain = make_chain(100.0, calls=[make_contract(100.0, OptionSide.CALL, oi=10.0)])
        with pytest.raises(MissingATMOptionError):
            MarketAnalyzer().analyze(MarketSnapshot("BTCUSDT", options_chain=chain))

    def test_snapshot_interval_scales_volatility(self, oscillating_candles):
        analyzer = MarketAnalyzer()
        daily = analyzer.analyze(MarketSnapshot("BTCUSDT", interval="1d", candles=tuple(oscillating_candles)))
        five_min = analyzer.analyze(MarketSnapshot("BTCUSDT", interval="5m", candles=tuple(oscillating_candles)))

        expected = VolatilityRegimeClassifier(interval="1d").classify(oscillating_candles)
        assert daily.volatility.volatility == pytest.approx(expected.volatility)
        assert five_min.volatility.volatility == pytest.approx(expected.volatility * 288 ** 0.5)

    def test_unknown_interval_raises(self, trending_candles):
        with pytest.raises(ValueError):
            MarketAnalyzer().analyze(MarketSnapshot("BTCUSDT", interval="5x", candles=tuple(trending_candles)))

    def test_default_cache_from_config(self, sample_snapshot):
        config = AnalyticsConfig.from_dict({"cache": {"ttl_seconds": 123}})
        analyzer = MarketAnalyzer(config=config)

        analyzer.analyze(sample_snapshot)
        second = analyzer.analyze(sample_snapshot)

        assert isinstance(analyzer.cache, SnapshotCache)
        assert analyzer.cache.ttl_seconds == 123
        assert all(m.oi_change == 0.0 for m in second.greeks.contracts)

    def test_filtered_divergence(self, sample_snapshot):
        analysis = MarketAnalyzer().analyze(sample_snapshot)

        filtered = analysis.filtered_divergence
        assert filtered.signal_type == analysis.latest_divergence.type
        assert filtered.regime == analysis.volatility.mode

    def test_analyze_frames(self, sample_snapshot):
        oi = sample_snapshot.open_interest
        oi_frame = pl.DataFrame({"timestamp": [p.timestamp for p in oi], "value": [p.value for p in oi]})

        from_frames = MarketAnalyzer().analyze_frames(
            "BTCUSDT", candles_to_frame(sample_snapshot.candles), oi_frame, interval="5m"
        )
        direct = MarketAnalyzer().analyze(
            MarketSnapshot("BTCUSDT", candles=sample_snapshot.candles, open_interest=oi)
        )

        assert from_frames.current_price == pytest.approx(direct.current_price)
        assert from_frames.latest_divergence.type == direct.latest_divergence.type
        assert from_frames.decision.score == direct.decision.score

    def test_analyze_frames_missing_columns(self):
        with pytest.raises(ValueError):
            MarketAnalyzer().analyze_frames("BTCUSDT", pl.DataFrame({"close": [1.0]}))
