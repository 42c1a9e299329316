"""
Unit Tests for market data models

Test cases:
- test_typical_price: (high + low + close) / 3
- test_chain_strikes_sorted_distinct: Strikes merged across sides
- test_atm_strike_lower_wins_tie: Equidistant strikes resolve to the lower one
- test_contract_lookup: contract() finds by strike and side
- test_current_price_fallbacks: Last close, then chain spot, then None
"""

import pytest

from oitrader.core.models import (
    Candle,
    LiquidationEvent,
    LiquidationSide,
    MarketSnapshot,
    OptionSide,
    OrderbookLevel,
)
from tests.fixtures.market_fixtures import make_chain, make_contract


class TestCandle:
    """Test Candle record."""

    def test_typical_price(self):
        candle = Candle(timestamp=0, open=10.0, high=12.0, low=9.0, close=11.0, volume=5.0)
        assert candle.typical_price == pytest.approx(32.0 / 3)

    def test_frozen(self):
        candle = Candle(timestamp=0, open=1.0, high=1.0, low=1.0, close=1.0, volume=1.0)
        with pytest.raises(AttributeError):
            candle.close = 2.0


class TestOptionsChain:
    """Test OptionsChain lookups."""

    def test_chain_strikes_sorted_distinct(self):
        chain = make_chain(
            100.0,
            calls=[make_contract(110.0, OptionSide.CALL), make_contract(90.0, OptionSide.CALL)],
            puts=[make_contract(90.0, OptionSide.PUT), make_contract(80.0, OptionSide.PUT)],
        )
        assert chain.strikes == [80.0, 90.0, 110.0]

    def test_atm_strike_lower_wins_tie(self):
        chain = make_chain(
            100.0,
            calls=[make_contract(95.0, OptionSide.CALL), make_contract(105.0, OptionSide.CALL)],
        )
        assert chain.atm_strike == 95.0

    def test_atm_strike_empty_chain(self):
        chain = make_chain(100.0)
        assert chain.is_empty
        assert chain.atm_strike is None

    def test_contract_lookup(self, sample_chain):
        put = sample_chain.contract(47500.0, OptionSide.PUT)
        assert put is not None
        assert put.open_interest == 4000.0
        assert sample_chain.contract(12345.0, OptionSide.CALL) is None

    def test_contract_key(self):
        contract = make_contract(100.0, OptionSide.CALL, expiry="2026-06-26")
        assert contract.key == (100.0, OptionSide.CALL, "2026-06-26")


class TestMarketSnapshot:
    """Test MarketSnapshot helpers."""

    def test_current_price_fallbacks(self, trending_candles, sample_chain):
        assert MarketSnapshot("BTCUSDT", candles=tuple(trending_candles)).current_price == trending_candles[-1].close
        assert MarketSnapshot("BTCUSDT", options_chain=sample_chain).current_price == 50000.0
        assert MarketSnapshot("BTCUSDT").current_price is None

    def test_notional_helpers(self):
        assert OrderbookLevel(100.0, 2.5).notional == 250.0
        assert LiquidationEvent(0, 50.0, 3.0, LiquidationSide.LONG).value == 150.0
