"""Shared pytest fixtures for oitrader tests."""

import sys
from pathlib import Path

import pytest
from loguru import logger

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Import all fixtures for global availability
from tests.fixtures.market_fixtures import *


@pytest.fixture
def log_messages():
    """
    Capture loguru messages emitted during a test.

    Returns:
        list[str]: Formatted messages, appended as they are logged

    Example:
        def test_warns(log_messages):
            analyzer.calculate(bad_candles)
            assert any("Invalid price" in m for m in log_messages)
    """
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)
