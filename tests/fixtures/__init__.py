"""Test fixtures for oitrader.

This package provides reusable market data for:
- Candles and open interest series
- Options chains
- Orderbooks and liquidations

Fixtures are auto-discovered by pytest through conftest.py.
"""
