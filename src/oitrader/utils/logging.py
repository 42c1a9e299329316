"""
Logging setup for oitrader.

Analyzers log through loguru with a bound component name. Applications call
setup_logging once at start-up to replace loguru's default sink with a
coloured stderr sink and, optionally, a rotating file sink.

Usage:
    from oitrader.config import LoggingConfig
    from oitrader.utils.logging import setup_logging

    setup_logging(LoggingConfig(level="DEBUG", file="logs/oitrader.log"))
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from oitrader.config.settings import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {message}"


def setup_logging(config: Optional[LoggingConfig] = None) -> list[int]:
    """
    Configure loguru sinks.

    Args:
        config: Logging settings (defaults to LoggingConfig())

    Returns:
        Handler ids of the sinks that were added
    """
    config = config or LoggingConfig()

    logger.remove()
    logger.configure(extra={"component": "oitrader"})

    handler_ids = [
        logger.add(sys.stderr, level=config.level, format=CONSOLE_FORMAT)
    ]

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                log_path,
                rotation=config.rotation,
                retention=config.retention,
                level=config.file_level,
                format=FILE_FORMAT,
            )
        )

    logger.debug(f"Logging configured (level={config.level}, file={config.file})")
    return handler_ids
