"""
Orderbook Liquidity Analyzer

Depth, spread, imbalance, slippage and liquidity walls from an orderbook
snapshot.

Usage:
    analyzer = OrderbookLiquidityAnalyzer(depth_levels=20)
    depth = analyzer.analyze(snapshot)
    print(depth.imbalance_state, depth.slippage_buy[0].slippage_percent)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from oitrader.core.models import OrderbookLevel, OrderbookSnapshot
from oitrader.utils.numeric import finite_or_zero, is_valid_price, safe_div

logger = logger.bind(component="OrderbookLiquidityAnalyzer")


class BookSide(str, Enum):
    BID = "BID"
    ASK = "ASK"


class ImbalanceState(str, Enum):
    BUYER_DOMINANT = "BUYER_DOMINANT"
    SELLER_DOMINANT = "SELLER_DOMINANT"
    BALANCED = "BALANCED"


class LiquidityState(str, Enum):
    THIN = "THIN"
    THICK_BID = "THICK_BID"
    THICK_ASK = "THICK_ASK"
    BALANCED = "BALANCED"


@dataclass(frozen=True, slots=True)
class DepthLevel:
    price: float
    quantity: float
    cumulative: float


@dataclass(frozen=True, slots=True)
class SlippageEstimate:
    """
    Cost of filling a market order of a given quote notional.

    slippage_percent is adverse for both sides (average fill worse than
    best price). When the book is too thin, the fill stops at the last
    level and fully_filled is False.
    """

    notional: float
    filled_notional: float
    filled_quantity: float
    average_price: float
    slippage_percent: float
    fully_filled: bool


@dataclass(frozen=True, slots=True)
class LiquidityWall:
    price: float
    quantity: float
    side: BookSide
    rank: int
    percent_of_total: float


@dataclass(frozen=True, slots=True)
class OrderbookDepthAnalysis:
    """Orderbook liquidity summary."""

    best_bid: float = 0.0
    best_ask: float = 0.0
    mid_price: float = 0.0
    spread: float = 0.0
    spread_percent: float = 0.0
    bid_depth: tuple[DepthLevel, ...] = ()
    ask_depth: tuple[DepthLevel, ...] = ()
    bid_liquidity: float = 0.0
    ask_liquidity: float = 0.0
    imbalance: float = 0.0
    imbalance_percent: float = 0.0
    imbalance_state: ImbalanceState = ImbalanceState.BALANCED
    liquidity_state: LiquidityState = LiquidityState.THIN
    slippage_buy: tuple[SlippageEstimate, ...] = ()
    slippage_sell: tuple[SlippageEstimate, ...] = ()
    walls: tuple[LiquidityWall, ...] = ()

    @classmethod
    def empty(cls) -> "OrderbookDepthAnalysis":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.mid_price == 0.0


def cumulative_depth(levels: Sequence[OrderbookLevel]) -> list[DepthLevel]:
    """Running quantity total from the best price outward."""
    total = 0.0
    depth = []
    for level in levels:
        qty = finite_or_zero(level.quantity)
        total += qty
        depth.append(DepthLevel(price=level.price, quantity=qty, cumulative=total))
    return depth


def estimate_slippage(
    levels: Sequence[OrderbookLevel],
    notional: float,
    side: BookSide,
) -> SlippageEstimate:
    """
    Walk the opposite side of the book until notional is consumed.

    Args:
        levels: Levels to consume, best price first (asks for a buy)
        notional: Order size in quote currency
        side: ASK when buying, BID when selling

    Returns:
        SlippageEstimate; a zero fill reports 0 slippage
    """
    remaining = notional
    filled_notional = 0.0
    filled_qty = 0.0
    best = None

    for level in levels:
        if remaining <= 0:
            break
        qty = finite_or_zero(level.quantity)
        if qty <= 0 or not is_valid_price(level.price):
            continue
        if best is None:
            best = level.price
        take_notional = min(remaining, level.price * qty)
        filled_notional += take_notional
        filled_qty += take_notional / level.price
        remaining -= take_notional

    if filled_qty == 0:
        return SlippageEstimate(notional, 0.0, 0.0, 0.0, 0.0, False)

    average = filled_notional / filled_qty
    if side == BookSide.ASK:
        slippage = (average - best) / best * 100
    else:
        slippage = (best - average) / best * 100

    return SlippageEstimate(
        notional=notional,
        filled_notional=filled_notional,
        filled_quantity=filled_qty,
        average_price=average,
        slippage_percent=slippage,
        fully_filled=remaining <= 1e-9,
    )


class OrderbookLiquidityAnalyzer:
    """Liquidity metrics for an orderbook snapshot."""

    def __init__(
        self,
        depth_levels: int = 20,
        top_walls: int = 5,
        slippage_sizes: Sequence[float] = (10_000, 50_000, 100_000),
    ):
        """
        Initialize analyzer.

        Args:
            depth_levels: Levels per side included in liquidity totals
            top_walls: Number of walls to report
            slippage_sizes: Quote notionals to estimate slippage for
        """
        self.depth_levels = depth_levels
        self.top_walls = top_walls
        self.slippage_sizes = tuple(slippage_sizes)

    def analyze(self, snapshot: OrderbookSnapshot) -> OrderbookDepthAnalysis:
        """
        Analyze orderbook depth.

        Returns:
            OrderbookDepthAnalysis, empty when either side is missing or the
            best prices are invalid
        """
        bids = list(snapshot.bids[: self.depth_levels])
        asks = list(snapshot.asks[: self.depth_levels])
        if not bids or not asks:
            return OrderbookDepthAnalysis.empty()

        best_bid, best_ask = bids[0].price, asks[0].price
        if not is_valid_price(best_bid) or not is_valid_price(best_ask):
            logger.warning(f"Invalid best prices bid={best_bid} ask={best_ask}")
            return OrderbookDepthAnalysis.empty()

        mid = (best_bid + best_ask) / 2
        spread = best_ask - best_bid
        spread_percent = safe_div(spread, mid) * 100

        bid_depth = cumulative_depth(bids)
        ask_depth = cumulative_depth(asks)
        bid_liquidity = bid_depth[-1].cumulative
        ask_liquidity = ask_depth[-1].cumulative
        total = bid_liquidity + ask_liquidity

        imbalance = bid_liquidity - ask_liquidity
        imbalance_percent = safe_div(imbalance, total) * 100
        if imbalance_percent > 20:
            imbalance_state = ImbalanceState.BUYER_DOMINANT
        elif imbalance_percent < -20:
            imbalance_state = ImbalanceState.SELLER_DOMINANT
        else:
            imbalance_state = ImbalanceState.BALANCED

        analysis = OrderbookDepthAnalysis(
            best_bid=best_bid,
            best_ask=best_ask,
            mid_price=mid,
            spread=spread,
            spread_percent=spread_percent,
            bid_depth=tuple(bid_depth),
            ask_depth=tuple(ask_depth),
            bid_liquidity=bid_liquidity,
            ask_liquidity=ask_liquidity,
            imbalance=imbalance,
            imbalance_percent=imbalance_percent,
            imbalance_state=imbalance_state,
            liquidity_state=self._liquidity_state(spread_percent, imbalance_percent, total),
            slippage_buy=tuple(estimate_slippage(snapshot.asks, size, BookSide.ASK) for size in self.slippage_sizes),
            slippage_sell=tuple(estimate_slippage(snapshot.bids, size, BookSide.BID) for size in self.slippage_sizes),
            walls=tuple(self.walls(bid_depth, ask_depth)),
        )

        logger.debug(
            f"Book mid={mid:.2f} spread={spread_percent:.4f}% imbalance={imbalance_percent:.1f}% "
            f"({imbalance_state.value})"
        )
        return analysis

    def walls(self, bid_depth: Sequence[DepthLevel], ask_depth: Sequence[DepthLevel]) -> list[LiquidityWall]:
        """Largest levels across both sides, ranked 1..N."""
        bid_total = bid_depth[-1].cumulative if bid_depth else 0.0
        ask_total = ask_depth[-1].cumulative if ask_depth else 0.0

        candidates = [(lvl, BookSide.BID, bid_total) for lvl in bid_depth]
        candidates += [(lvl, BookSide.ASK, ask_total) for lvl in ask_depth]
        candidates.sort(key=lambda item: item[0].quantity, reverse=True)

        return [
            LiquidityWall(
                price=lvl.price,
                quantity=lvl.quantity,
                side=side,
                rank=rank,
                percent_of_total=safe_div(lvl.quantity, side_total) * 100,
            )
            for rank, (lvl, side, side_total) in enumerate(candidates[: self.top_walls], start=1)
        ]

    @staticmethod
    def _liquidity_state(spread_percent: float, imbalance_percent: float, total: float) -> LiquidityState:
        if spread_percent > 0.1 or total < 100:
            return LiquidityState.THIN
        if imbalance_percent > 20:
            return LiquidityState.THICK_BID
        if imbalance_percent < -20:
            return LiquidityState.THICK_ASK
        return LiquidityState.BALANCED
