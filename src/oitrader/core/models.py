"""
Market Data Models

Immutable records for raw exchange snapshots consumed by the analyzers.
Uses dataclasses with slots=True (internal data, sanitised on entry by the
analyzers themselves).

Timestamps are epoch milliseconds, as delivered by the exchange.

Key patterns:
- dataclass(frozen=True, slots=True) for every record
- str Enums for sides so values serialise cleanly
- Derived lookups (ATM strike, typical price) as properties
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OptionSide(str, Enum):
    """Option side."""

    CALL = "CALL"
    PUT = "PUT"


class LiquidationSide(str, Enum):
    """
    Side of the liquidated position.

    LONG means a long position was force-closed (market sell),
    SHORT means a short position was force-closed (market buy).
    """

    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True, slots=True)
class Candle:
    """OHLCV kline."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3


@dataclass(frozen=True, slots=True)
class OpenInterestPoint:
    """Open interest sample for a perpetual or futures contract."""

    timestamp: int
    value: float
    symbol: str = ""


@dataclass(frozen=True, slots=True)
class FundingRate:
    """Perpetual funding rate sample (raw fraction, 0.0001 = 0.01%)."""

    timestamp: int
    funding_rate: float
    symbol: str = ""


@dataclass(frozen=True, slots=True)
class TakerVolume:
    """Aggressive buy/sell volume for one period."""

    timestamp: int
    buy_volume: float
    sell_volume: float
    buy_sell_ratio: float


@dataclass(frozen=True, slots=True)
class LongShortRatio:
    """Top-trader long/short positioning ratio."""

    timestamp: int
    long_short_ratio: float
    long_account: float = 0.0
    short_account: float = 0.0


@dataclass(frozen=True, slots=True)
class OptionContract:
    """
    Single option contract with market data and Greeks.

    Identity is (strike, side, expiry).
    """

    symbol: str
    strike: float
    side: OptionSide
    expiry: str
    mark_price: float = 0.0
    implied_volatility: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    volume: float = 0.0
    open_interest: float = 0.0
    contract_size: float = 1.0

    @property
    def key(self) -> tuple[float, OptionSide, str]:
        return (self.strike, self.side, self.expiry)


@dataclass(frozen=True, slots=True)
class OptionsChain:
    """
    Options chain for a single underlying and a single expiry.

    Attributes:
        underlying: Underlying symbol (e.g. BTC)
        spot_price: Underlying index price
        expiry_date: Expiry identifier shared by all contracts
        calls: Call contracts
        puts: Put contracts
    """

    underlying: str
    spot_price: float
    expiry_date: str
    calls: tuple[OptionContract, ...] = ()
    puts: tuple[OptionContract, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.calls and not self.puts

    @property
    def strikes(self) -> list[float]:
        """Distinct strikes across both sides, ascending."""
        return sorted({c.strike for c in self.calls} | {p.strike for p in self.puts})

    @property
    def atm_strike(self) -> Optional[float]:
        """Strike closest to spot; the lower strike wins ties."""
        strikes = self.strikes
        if not strikes:
            return None
        return min(strikes, key=lambda s: abs(s - self.spot_price))

    def contract(self, strike: float, side: OptionSide) -> Optional[OptionContract]:
        contracts = self.calls if side == OptionSide.CALL else self.puts
        for contract in contracts:
            if contract.strike == strike:
                return contract
        return None


@dataclass(frozen=True, slots=True)
class OrderbookLevel:
    """Single price level."""

    price: float
    quantity: float

    @property
    def notional(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class OrderbookSnapshot:
    """
    Orderbook snapshot.

    Bids are sorted by price descending, asks by price ascending.
    """

    bids: tuple[OrderbookLevel, ...] = ()
    asks: tuple[OrderbookLevel, ...] = ()
    last_update_id: int = 0
    timestamp: int = 0


@dataclass(frozen=True, slots=True)
class LiquidationEvent:
    """Forced liquidation order."""

    timestamp: int
    price: float
    quantity: float
    side: LiquidationSide

    @property
    def value(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    """
    Bundle of raw inputs for one analysis pass.

    Every series is optional; analyzers whose inputs are missing are skipped.
    """

    symbol: str
    interval: str = "5m"
    candles: tuple[Candle, ...] = ()
    open_interest: tuple[OpenInterestPoint, ...] = ()
    funding_rates: tuple[FundingRate, ...] = ()
    top_trader_ratios: tuple[LongShortRatio, ...] = ()
    taker_volume: tuple[TakerVolume, ...] = ()
    options_chain: Optional[OptionsChain] = None
    orderbook: Optional[OrderbookSnapshot] = None
    liquidations: tuple[LiquidationEvent, ...] = ()

    @property
    def current_price(self) -> Optional[float]:
        if self.candles:
            return self.candles[-1].close
        if self.options_chain is not None:
            return self.options_chain.spot_price
        return None
