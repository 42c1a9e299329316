"""
Configuration Loader Module

Loads analytics configuration from a YAML file and overlays environment
variables (OITRADER_ prefix).
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger

from oitrader.config.settings import AnalyticsConfig
from oitrader.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("config/analytics.yaml")

# env var -> (section, key, type)
ENV_MAPPING = {
    "OITRADER_LOG_LEVEL": ("logging", "level", str),
    "OITRADER_LOG_FILE": ("logging", "file", str),
    "OITRADER_VOLUME_BUCKET_SIZE": ("volume_profile", "bucket_size", float),
    "OITRADER_DIVERGENCE_LOOKBACK": ("divergence", "lookback", int),
    "OITRADER_CANDLE_INTERVAL": ("volatility", "interval", str),
    "OITRADER_CONTRACT_MULTIPLIER": ("options", "contract_multiplier", float),
    "OITRADER_SPOT_SCALED": ("options", "spot_scaled", bool),
    "OITRADER_MIN_DEFENSIVE_OI": ("options", "min_defensive_oi", float),
    "OITRADER_LIQUIDATION_BUCKET_SIZE": ("liquidation", "bucket_size", float),
    "OITRADER_ORDERBOOK_DEPTH": ("orderbook", "depth_levels", int),
    "OITRADER_CACHE_TTL": ("cache", "ttl_seconds", float),
}


def load_config(path: Optional[Union[str, Path]] = None) -> AnalyticsConfig:
    """
    Load analytics configuration.

    Args:
        path: YAML file (defaults to config/analytics.yaml)

    Returns:
        AnalyticsConfig with file settings and env overrides applied.
        Defaults are used when the file does not exist.
    """
    config_file = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    if config_file.exists():
        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}
        logger.info(f"Loaded config from {config_file}")
    else:
        logger.warning(f"Config file not found: {config_file}, using defaults")
        config_data = {}

    config_data = merge_config_with_env(config_data)
    return AnalyticsConfig.from_dict(config_data)


def merge_config_with_env(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration with environment variables.

    Environment variables override config file settings.

    Examples:
        OITRADER_LOG_LEVEL=DEBUG
        OITRADER_CANDLE_INTERVAL=1h
        OITRADER_SPOT_SCALED=true

    Args:
        config_data: Configuration data from file

    Returns:
        Merged configuration with env vars applied
    """
    for env_var, (section, key, kind) in ENV_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        if kind is bool:
            value = env_value.lower() in ("true", "1", "yes", "on")
        else:
            try:
                value = kind(env_value)
            except ValueError:
                raise ConfigError([f"{env_var}={env_value!r} is not a valid {kind.__name__}"])

        config_data.setdefault(section, {})[key] = value
        logger.debug(f"Overriding {section}.{key} from env: {env_var}")

    return config_data


def load_and_validate_config(path: Optional[Union[str, Path]] = None) -> AnalyticsConfig:
    """
    Load configuration and fail on validation errors.

    Raises:
        ConfigError: If the configuration is invalid
    """
    config = load_config(path)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        raise ConfigError(errors)
    return config
