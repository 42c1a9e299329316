"""
Analytics Configuration

Dataclass configuration for every analyzer, loaded from YAML by
oitrader.config.loader.

Config location: config/analytics.yaml

Schema:
- volume_profile: bucket size and value-area fraction
- divergence: lookback window and OI/price thresholds
- volatility: candle interval and regime windows
- options: contract multiplier, skew thresholds, defensive-strike floor
- liquidation: bucket size and major-zone threshold
- orderbook: depth window, wall count, slippage sizes
- decision: scorer and market-regime lookbacks
- cache: snapshot cache TTL
- logging: console/file sinks
"""

from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional

from oitrader.features.volatility_regime import periods_per_day


@dataclass
class VolumeProfileConfig:
    """Volume profile settings."""
    bucket_size: float = 10.0
    value_area_pct: float = 0.70


@dataclass
class DivergenceConfig:
    """OI/price divergence settings."""
    lookback: int = 20
    price_threshold: float = 0.02
    trap_oi_threshold: float = 0.05
    continuation_oi_threshold: float = 0.03
    alignment_tolerance_ms: int = 60_000


@dataclass
class VolatilityConfig:
    """Volatility regime settings."""
    interval: str = "5m"
    atr_period: int = 14
    volatility_period: int = 20
    percentile_lookback: int = 30
    min_candles: int = 50


@dataclass
class OptionsConfig:
    """Options exposure and IV settings."""
    contract_multiplier: float = 1.0
    spot_scaled: bool = False
    top_walls: int = 5
    atm_band: float = 0.01
    gamma_regime_threshold: float = 0.0
    skew_threshold: float = 0.05
    curve_skew_threshold: float = 0.03
    defensive_ratio_threshold: float = 1.5
    min_defensive_oi: float = 1000.0
    trading_days: int = 252


@dataclass
class LiquidationConfig:
    """Liquidation clustering settings."""
    bucket_size: float = 10.0
    zone_threshold: float = 0.7


@dataclass
class OrderbookConfig:
    """Orderbook depth settings."""
    depth_levels: int = 20
    top_walls: int = 5
    slippage_sizes: List[float] = field(default_factory=lambda: [10_000.0, 50_000.0, 100_000.0])


@dataclass
class DecisionConfig:
    """Decision scorer and market regime settings."""
    lookback: int = 20
    regime_lookback: int = 20


@dataclass
class CacheConfig:
    """Snapshot cache settings."""
    ttl_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """Logging sinks."""
    level: str = "INFO"
    file: Optional[str] = None
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: int = 5


VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _section(cls, data: Optional[dict]):
    """Build a section dataclass from a dict, ignoring unknown keys."""
    data = data or {}
    known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
    return cls(**known)


@dataclass
class AnalyticsConfig:
    """Complete analytics configuration."""

    volume_profile: VolumeProfileConfig = field(default_factory=VolumeProfileConfig)
    divergence: DivergenceConfig = field(default_factory=DivergenceConfig)
    volatility: VolatilityConfig = field(default_factory=VolatilityConfig)
    options: OptionsConfig = field(default_factory=OptionsConfig)
    liquidation: LiquidationConfig = field(default_factory=LiquidationConfig)
    orderbook: OrderbookConfig = field(default_factory=OrderbookConfig)
    decision: DecisionConfig = field(default_factory=DecisionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "AnalyticsConfig":
        """Create config from dictionary with nested dataclass instantiation."""
        data = data or {}
        return cls(
            volume_profile=_section(VolumeProfileConfig, data.get("volume_profile")),
            divergence=_section(DivergenceConfig, data.get("divergence")),
            volatility=_section(VolatilityConfig, data.get("volatility")),
            options=_section(OptionsConfig, data.get("options")),
            liquidation=_section(LiquidationConfig, data.get("liquidation")),
            orderbook=_section(OrderbookConfig, data.get("orderbook")),
            decision=_section(DecisionConfig, data.get("decision")),
            cache=_section(CacheConfig, data.get("cache")),
            logging=_section(LoggingConfig, data.get("logging")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.volume_profile.bucket_size <= 0:
            errors.append(f"Invalid volume_profile.bucket_size: {self.volume_profile.bucket_size}")
        if not 0 < self.volume_profile.value_area_pct <= 1:
            errors.append(f"Invalid volume_profile.value_area_pct: {self.volume_profile.value_area_pct}")

        if self.divergence.lookback < 1:
            errors.append(f"Invalid divergence.lookback: {self.divergence.lookback}")
        if self.divergence.alignment_tolerance_ms < 0:
            errors.append(
                f"Invalid divergence.alignment_tolerance_ms: {self.divergence.alignment_tolerance_ms}"
            )

        try:
            periods_per_day(self.volatility.interval)
        except ValueError as e:
            errors.append(str(e))
        if self.volatility.atr_period < 1 or self.volatility.volatility_period < 2:
            errors.append("Volatility periods must be positive (volatility_period >= 2)")
        if self.volatility.min_candles < self.volatility.volatility_period + 1:
            errors.append(
                f"volatility.min_candles ({self.volatility.min_candles}) must exceed "
                f"volatility_period ({self.volatility.volatility_period})"
            )

        if self.options.contract_multiplier <= 0:
            errors.append(f"Invalid options.contract_multiplier: {self.options.contract_multiplier}")
        if self.options.top_walls < 1:
            errors.append(f"Invalid options.top_walls: {self.options.top_walls}")
        if self.options.skew_threshold < 0:
            errors.append(f"Invalid options.skew_threshold: {self.options.skew_threshold}")
        if self.options.trading_days < 1:
            errors.append(f"Invalid options.trading_days: {self.options.trading_days}")

        if self.liquidation.bucket_size <= 0:
            errors.append(f"Invalid liquidation.bucket_size: {self.liquidation.bucket_size}")
        if not 0 < self.liquidation.zone_threshold <= 1:
            errors.append(f"Invalid liquidation.zone_threshold: {self.liquidation.zone_threshold}")

        if self.orderbook.depth_levels < 1:
            errors.append(f"Invalid orderbook.depth_levels: {self.orderbook.depth_levels}")
        if any(size <= 0 for size in self.orderbook.slippage_sizes):
            errors.append("orderbook.slippage_sizes must be positive")

        if self.decision.lookback < 2:
            errors.append(f"Invalid decision.lookback: {self.decision.lookback}")
        if self.decision.regime_lookback <= 10:
            errors.append(f"decision.regime_lookback must exceed 10, got {self.decision.regime_lookback}")

        if self.cache.ttl_seconds <= 0:
            errors.append(f"Invalid cache.ttl_seconds: {self.cache.ttl_seconds}")

        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid logging.level: {self.logging.level}")

        return errors
