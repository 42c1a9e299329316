"""
oitrader Configuration Module

Dataclass settings for the analyzers plus a YAML/env loader.
"""

from oitrader.config.loader import load_and_validate_config, load_config
from oitrader.config.settings import (
    AnalyticsConfig,
    CacheConfig,
    DecisionConfig,
    DivergenceConfig,
    LiquidationConfig,
    LoggingConfig,
    OptionsConfig,
    OrderbookConfig,
    VolatilityConfig,
    VolumeProfileConfig,
)

__all__ = [
    "AnalyticsConfig",
    "CacheConfig",
    "DecisionConfig",
    "DivergenceConfig",
    "LiquidationConfig",
    "LoggingConfig",
    "OptionsConfig",
    "OrderbookConfig",
    "VolatilityConfig",
    "VolumeProfileConfig",
    "load_and_validate_config",
    "load_config",
]
