"""
Market data fixtures for testing the analyzers.

Provides builders for candles, OI series, options chains, orderbooks and
liquidations, plus ready-made fixtures built from them.

Usage:
    def test_profile(trending_candles):
        profile = VolumeProfileEngine().calculate(trending_candles)
        assert not profile.is_empty
"""

import math

import pytest

from oitrader.core.models import (
    Candle,
    FundingRate,
    LiquidationEvent,
    LiquidationSide,
    LongShortRatio,
    MarketSnapshot,
    OpenInterestPoint,
    OptionContract,
    OptionSide,
    OptionsChain,
    OrderbookLevel,
    OrderbookSnapshot,
    TakerVolume,
)

BASE_TS = 1_700_000_000_000
FIVE_MIN_MS = 300_000


def make_candles(closes, volume=100.0, spread=0.5, start=BASE_TS, step=FIVE_MIN_MS):
    """Candles with high/low = close +/- spread and open = previous close."""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        vol = volume[i] if isinstance(volume, (list, tuple)) else volume
        candles.append(
            Candle(
                timestamp=start + i * step,
                open=prev,
                high=max(prev, close) + spread,
                low=min(prev, close) - spread,
                close=close,
                volume=vol,
            )
        )
        prev = close
    return candles


def make_flat_candle(price, volume, ts=BASE_TS):
    """Candle whose typical price is exactly price."""
    return Candle(timestamp=ts, open=price, high=price, low=price, close=price, volume=volume)


def make_oi(values, start=BASE_TS, step=FIVE_MIN_MS, symbol="BTCUSDT"):
    return [OpenInterestPoint(timestamp=start + i * step, value=v, symbol=symbol) for i, v in enumerate(values)]


def make_contract(strike, side, oi=0.0, iv=0.5, delta=None, gamma=0.001, mark=0.0, volume=0.0, expiry="2026-12-25"):
    if delta is None:
        delta = 0.5 if side == OptionSide.CALL else -0.5
    return OptionContract(
        symbol=f"BTC-{expiry}-{int(strike)}-{side.value[0]}",
        strike=strike,
        side=side,
        expiry=expiry,
        mark_price=mark,
        implied_volatility=iv,
        delta=delta,
        gamma=gamma,
        volume=volume,
        open_interest=oi,
    )


def make_chain(spot, calls=(), puts=(), underlying="BTC", expiry="2026-12-25"):
    return OptionsChain(
        underlying=underlying,
        spot_price=spot,
        expiry_date=expiry,
        calls=tuple(calls),
        puts=tuple(puts),
    )


def make_book(bids, asks):
    """Orderbook from [(price, qty), ...] lists (bids desc, asks asc)."""
    return OrderbookSnapshot(
        bids=tuple(OrderbookLevel(p, q) for p, q in bids),
        asks=tuple(OrderbookLevel(p, q) for p, q in asks),
        last_update_id=1,
        timestamp=BASE_TS,
    )


@pytest.fixture
def trending_candles():
    """60 candles rising ~0.5% per bar from 100."""
    closes = [100.0 * (1.005 ** i) for i in range(60)]
    return make_candles(closes, volume=[100.0 + i for i in range(60)])


@pytest.fixture
def oscillating_candles():
    """120 candles oscillating around 1000 with a small constant amplitude."""
    closes = [1000.0 + 5.0 * math.sin(i / 3) for i in range(120)]
    return make_candles(closes, volume=200.0, spread=1.0)


@pytest.fixture
def sample_chain():
    """
    BTC chain with spot 50,000 and strikes 45,000-55,000.

    Puts dominate OI below spot, calls above.
    """
    strikes = [45000.0, 47500.0, 50000.0, 52500.0, 55000.0]
    call_oi = [100.0, 200.0, 800.0, 3000.0, 600.0]
    put_oi = [500.0, 4000.0, 900.0, 150.0, 50.0]
    call_delta = [0.9, 0.75, 0.5, 0.3, 0.1]
    put_delta = [-0.1, -0.25, -0.5, -0.7, -0.9]
    calls = [
        make_contract(k, OptionSide.CALL, oi=o, iv=0.50, delta=d, gamma=0.0001, mark=2500.0 if k == 50000 else 500.0)
        for k, o, d in zip(strikes, call_oi, call_delta)
    ]
    puts = [
        make_contract(k, OptionSide.PUT, oi=o, iv=0.60, delta=d, gamma=0.0001, mark=2300.0 if k == 50000 else 400.0)
        for k, o, d in zip(strikes, put_oi, put_delta)
    ]
    return make_chain(50000.0, calls, puts)


@pytest.fixture
def sample_book():
    """Book around 100 with heavier bids."""
    bids = [(99.9, 50.0), (99.8, 80.0), (99.7, 300.0), (99.6, 40.0)]
    asks = [(100.1, 30.0), (100.2, 40.0), (100.3, 50.0), (100.4, 20.0)]
    return make_book(bids, asks)


@pytest.fixture
def sample_liquidations():
    """Long liquidations clustered near 95, short liquidations near 112."""
    events = []
    for i in range(8):
        events.append(LiquidationEvent(BASE_TS + i, 95.0 + i * 0.5, 10.0, LiquidationSide.LONG))
    events.append(LiquidationEvent(BASE_TS + 20, 96.0, 1.0, LiquidationSide.SHORT))
    for i in range(3):
        events.append(LiquidationEvent(BASE_TS + 30 + i, 112.0, 5.0, LiquidationSide.SHORT))
    return events


@pytest.fixture
def sample_snapshot(trending_candles, sample_chain, sample_book, sample_liquidations):
    """Complete snapshot for workflow tests."""
    n = len(trending_candles)
    return MarketSnapshot(
        symbol="BTCUSDT",
        interval="5m",
        candles=tuple(trending_candles),
        open_interest=tuple(make_oi([10_000.0 * (1.004 ** i) for i in range(n)])),
        funding_rates=tuple(FundingRate(BASE_TS + i, 0.0001, "BTCUSDT") for i in range(5)),
        top_trader_ratios=tuple(LongShortRatio(BASE_TS + i, 1.5) for i in range(5)),
        taker_volume=tuple(TakerVolume(BASE_TS + i, 150.0, 100.0, 1.5) for i in range(5)),
        options_chain=sample_chain,
        orderbook=sample_book,
        liquidations=tuple(sample_liquidations),
    )
