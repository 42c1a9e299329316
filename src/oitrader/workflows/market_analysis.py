"""
Market Analysis Workflow

This module provides the MarketAnalyzer class that runs every analyzer on a
MarketSnapshot and bundles the results.

Key features:
- Builds all analyzers from one AnalyticsConfig
- Skips analyzers whose inputs are missing (their result is None)
- Feeds the volume profile into liquidation hunting zones
  and the taker flow / volume node reading
- Reads OI momentum and OI delta by price whenever open interest is present
- Scales volatility by the snapshot's own candle interval
- Feeds the volatility regime into the decision scorer and the latest
  divergence signal filter
- Uses a SnapshotCache (injected, or built from the cache config) to hand the
  previous options chain to the Greeks aggregator and to keep ATM IV history
  for the IV regime

Usage:
    from oitrader.workflows import MarketAnalyzer
    from oitrader.cache import SnapshotCache

    analyzer = MarketAnalyzer(config=load_config(), cache=SnapshotCache(ttl_seconds=300))
    analysis = analyzer.analyze(snapshot)
    print(analysis.decision)
"""

from dataclasses import dataclass
from typing import Optional

import polars as pl
from loguru import logger

from oitrader.cache.snapshot_cache import SnapshotCache
from oitrader.config.settings import AnalyticsConfig
from oitrader.core.frames import candles_from_frame, open_interest_from_frame
from oitrader.core.models import MarketSnapshot, OptionsChain
from oitrader.decisions.market_regime import MarketRegime, MarketRegimeClassifier
from oitrader.decisions.trading_decision import TradingDecision, TradingDecisionScorer
from oitrader.features.funding_regime import FundingRegime, classify_funding_regime
from oitrader.features.liquidation_clusters import LiquidationAnalysis, LiquidationClusterAnalyzer
from oitrader.features.oi_divergence import (
    DivergenceDetector,
    DivergenceSignal,
    FilteredSignal,
    filter_signal_by_volatility,
)
from oitrader.features.oi_delta_by_price import OIDeltaAnalysis, OIDeltaByPriceAnalyzer
from oitrader.features.oi_momentum import OIMomentumAnalysis, OIMomentumAnalyzer
from oitrader.features.orderbook_depth import OrderbookDepthAnalysis, OrderbookLiquidityAnalyzer
from oitrader.features.taker_flow import (
    FlowProfileSignal,
    TakerFlowAnalysis,
    analyze_taker_flow,
    combine_with_volume_profile,
)
from oitrader.features.volatility_regime import VolatilityRegime, VolatilityRegimeClassifier
from oitrader.features.volume_profile import (
    PriceZoneResult,
    TradingOpportunity,
    VolumeProfile,
    VolumeProfileEngine,
    classify_price_zone,
    find_trading_opportunities,
)
from oitrader.options.greeks_exposure import GreeksExposureAnalysis, OptionsGreeksAggregator
from oitrader.options.iv_analysis import IVAnalysis, IVSkewAndMaxPainEngine

logger = logger.bind(component="MarketAnalyzer")

IV_HISTORY_LIMIT = 500


@dataclass(frozen=True, slots=True)
class MarketAnalysis:
    """
    Results of one analysis pass.

    Fields are None when the analyzer's inputs were missing.
    """

    symbol: str
    current_price: Optional[float] = None
    volume_profile: Optional[VolumeProfile] = None
    price_zone: Optional[PriceZoneResult] = None
    opportunities: tuple[TradingOpportunity, ...] = ()
    divergences: tuple[DivergenceSignal, ...] = ()
    latest_divergence: Optional[DivergenceSignal] = None
    filtered_divergence: Optional[FilteredSignal] = None
    oi_momentum: Optional[OIMomentumAnalysis] = None
    oi_delta: Optional[OIDeltaAnalysis] = None
    volatility: Optional[VolatilityRegime] = None
    greeks: Optional[GreeksExposureAnalysis] = None
    iv: Optional[IVAnalysis] = None
    liquidations: Optional[LiquidationAnalysis] = None
    orderbook: Optional[OrderbookDepthAnalysis] = None
    taker_flow: Optional[TakerFlowAnalysis] = None
    flow_profile: Optional[FlowProfileSignal] = None
    funding: Optional[FundingRegime] = None
    market_regime: Optional[MarketRegime] = None
    decision: Optional[TradingDecision] = None


class MarketAnalyzer:
    """
    Run every analyzer over a market snapshot.

    Attributes:
        config: Analytics configuration
        cache: SnapshotCache for cross-snapshot state
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None, cache: Optional[SnapshotCache] = None):
        """
        Initialize analyzer.

        Args:
            config: Analytics configuration (defaults to AnalyticsConfig())
            cache: SnapshotCache to share; defaults to a new cache with
                config.cache.ttl_seconds
        """
        self.config = config or AnalyticsConfig()
        cfg = self.config
        self.cache = cache if cache is not None else SnapshotCache(ttl_seconds=cfg.cache.ttl_seconds)

        self.volume_profile = VolumeProfileEngine(
            bucket_size=cfg.volume_profile.bucket_size,
            value_area_pct=cfg.volume_profile.value_area_pct,
        )
        self.divergence = DivergenceDetector(
            lookback=cfg.divergence.lookback,
            price_threshold=cfg.divergence.price_threshold,
            trap_oi_threshold=cfg.divergence.trap_oi_threshold,
            continuation_oi_threshold=cfg.divergence.continuation_oi_threshold,
        )
        self.oi_momentum = OIMomentumAnalyzer()
        self.oi_delta = OIDeltaByPriceAnalyzer(
            bucket_size=cfg.volume_profile.bucket_size,
            tolerance_ms=cfg.divergence.alignment_tolerance_ms,
        )
        self._volatility_by_interval: dict[str, VolatilityRegimeClassifier] = {}
        self.volatility = self.volatility_classifier(cfg.volatility.interval)
        self.greeks = OptionsGreeksAggregator(
            contract_multiplier=cfg.options.contract_multiplier,
            spot_scaled=cfg.options.spot_scaled,
            top_walls=cfg.options.top_walls,
            atm_band=cfg.options.atm_band,
            gamma_regime_threshold=cfg.options.gamma_regime_threshold,
        )
        self.iv = IVSkewAndMaxPainEngine(
            skew_threshold=cfg.options.skew_threshold,
            curve_skew_threshold=cfg.options.curve_skew_threshold,
            ratio_threshold=cfg.options.defensive_ratio_threshold,
            min_defensive_oi=cfg.options.min_defensive_oi,
            trading_days=cfg.options.trading_days,
        )
        self.liquidations = LiquidationClusterAnalyzer(
            bucket_size=cfg.liquidation.bucket_size,
            zone_threshold=cfg.liquidation.zone_threshold,
        )
        self.orderbook = OrderbookLiquidityAnalyzer(
            depth_levels=cfg.orderbook.depth_levels,
            top_walls=cfg.orderbook.top_walls,
            slippage_sizes=cfg.orderbook.slippage_sizes,
        )
        self.market_regime = MarketRegimeClassifier(lookback=cfg.decision.regime_lookback)
        self.scorer = TradingDecisionScorer(lookback=cfg.decision.lookback)

    def volatility_classifier(self, interval: str) -> VolatilityRegimeClassifier:
        """
        Volatility classifier for a candle interval, built once per interval.

        Raises:
            ValueError: If the interval string cannot be parsed
        """
        classifier = self._volatility_by_interval.get(interval)
        if classifier is None:
            cfg = self.config.volatility
            classifier = VolatilityRegimeClassifier(
                interval=interval,
                atr_period=cfg.atr_period,
                volatility_period=cfg.volatility_period,
                percentile_lookback=cfg.percentile_lookback,
                min_candles=cfg.min_candles,
            )
            self._volatility_by_interval[interval] = classifier
        return classifier

    def analyze(self, snapshot: MarketSnapshot) -> MarketAnalysis:
        """
        Analyze a snapshot.

        Args:
            snapshot: Raw market inputs

        Returns:
            MarketAnalysis with a result for every analyzer whose inputs exist

        Raises:
            MissingATMOptionError: If the options chain lacks its ATM call or put
        """
        price = snapshot.current_price
        candles = snapshot.candles

        profile = zone = None
        opportunities: tuple[TradingOpportunity, ...] = ()
        volatility = None
        if candles:
            profile = self.volume_profile.calculate(candles)
            zone = classify_price_zone(price, profile)
            opportunities = tuple(find_trading_opportunities(price, profile, candles))
            volatility = self.volatility_classifier(snapshot.interval).classify(candles)

        divergences: tuple[DivergenceSignal, ...] = ()
        if candles and snapshot.open_interest:
            divergences = tuple(
                self.divergence.detect_aligned(
                    candles, snapshot.open_interest, self.config.divergence.alignment_tolerance_ms
                )
            )

        oi_momentum = self.oi_momentum.analyze(snapshot.open_interest) if snapshot.open_interest else None
        oi_delta = None
        if candles and snapshot.open_interest:
            oi_delta = self.oi_delta.analyze(candles, snapshot.open_interest)

        latest = DivergenceDetector.latest(divergences)
        filtered = None
        if latest is not None and volatility is not None:
            filtered = filter_signal_by_volatility(latest, volatility)

        greeks = iv = None
        if snapshot.options_chain is not None:
            greeks, iv = self._analyze_options(snapshot.symbol, snapshot.options_chain)

        liquidations = None
        if snapshot.liquidations:
            liquidations = self.liquidations.analyze(snapshot.liquidations, current_price=price, profile=profile)

        orderbook = self.orderbook.analyze(snapshot.orderbook) if snapshot.orderbook is not None else None
        taker_flow = analyze_taker_flow(snapshot.taker_volume) if snapshot.taker_volume else None
        flow_profile = None
        if taker_flow is not None and profile is not None and not profile.is_empty:
            flow_profile = combine_with_volume_profile(taker_flow, profile, price)
        funding = classify_funding_regime(snapshot.funding_rates) if snapshot.funding_rates else None

        market_regime = decision = None
        if candles:
            latest_funding = snapshot.funding_rates[-1].funding_rate if snapshot.funding_rates else None
            market_regime = self.market_regime.classify(candles, snapshot.open_interest, latest_funding)
            decision = self.scorer.score(
                candles,
                snapshot.open_interest,
                snapshot.top_trader_ratios,
                snapshot.taker_volume,
                snapshot.funding_rates,
                volatility=volatility,
            )

        logger.info(
            f"{snapshot.symbol}: analysed {len(candles)} candles, "
            f"{len(divergences)} divergences, decision={decision.action.value if decision else None}"
        )

        return MarketAnalysis(
            symbol=snapshot.symbol,
            current_price=price,
            volume_profile=profile,
            price_zone=zone,
            opportunities=opportunities,
            divergences=divergences,
            latest_divergence=latest,
            filtered_divergence=filtered,
            oi_momentum=oi_momentum,
            oi_delta=oi_delta,
            volatility=volatility,
            greeks=greeks,
            iv=iv,
            liquidations=liquidations,
            orderbook=orderbook,
            taker_flow=taker_flow,
            flow_profile=flow_profile,
            funding=funding,
            market_regime=market_regime,
            decision=decision,
        )

    def analyze_frames(
        self,
        symbol: str,
        candles: pl.DataFrame,
        open_interest: Optional[pl.DataFrame] = None,
        interval: str = "5m",
    ) -> MarketAnalysis:
        """
        Analyze kline and OI DataFrames.

        Args:
            symbol: Instrument symbol
            candles: Kline frame (timestamp, open, high, low, close, volume)
            open_interest: Optional OI frame (timestamp, value)
            interval: Candle interval of the kline frame

        Raises:
            ValueError: If a frame lacks required columns
        """
        oi = open_interest_from_frame(open_interest, symbol) if open_interest is not None else []
        snapshot = MarketSnapshot(
            symbol=symbol,
            interval=interval,
            candles=tuple(candles_from_frame(candles)),
            open_interest=tuple(oi),
        )
        return self.analyze(snapshot)

    def _analyze_options(self, symbol: str, chain: OptionsChain) -> tuple[GreeksExposureAnalysis, IVAnalysis]:
        chain_key = f"{symbol}:{chain.expiry_date}:chain"
        iv_key = f"{symbol}:{chain.expiry_date}:atm_iv"

        previous = self.cache.get(chain_key)
        history = self.cache.get(iv_key) or ()

        greeks = self.greeks.analyze(chain, previous=previous)
        iv = self.iv.analyze(chain, historical_ivs=history)

        self.cache.put(chain_key, chain)
        if iv.smile.atm_iv > 0:
            self.cache.put(iv_key, (*history, iv.smile.atm_iv)[-IV_HISTORY_LIMIT:])

        return greeks, iv
