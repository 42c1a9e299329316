"""
Taker Flow Analyzer

Aggressive (market-order) buy and sell volume shows who is pushing price.
Each period is tagged AGGRESSIVE_BUY / AGGRESSIVE_SELL from its buy/sell
ratio; the series is summarised into a dominant flow, a strength and a
current bias from the most recent periods. The summary can be read
against the volume profile (low/high volume nodes, position vs POC) and
accumulated into a running net flow.

Usage:
    flow = analyze_taker_flow(taker_volume)
    if flow.current_bias == FlowBias.BULLISH:
        ...
    signal = combine_with_volume_profile(flow, profile, price)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from oitrader.core.models import TakerVolume
from oitrader.features.volume_profile import VolumeProfile
from oitrader.utils.numeric import finite_or_zero, safe_div

logger = logger.bind(component="TakerFlowAnalyzer")

AGGRESSIVE_BUY_RATIO = 1.2
AGGRESSIVE_SELL_RATIO = 0.8
DOMINANCE_FACTOR = 1.5
BIAS_WINDOW = 10
LVN_FACTOR = 0.5
HVN_FACTOR = 1.5
CUMULATIVE_THRESHOLD = 0.1


class FlowType(str, Enum):
    AGGRESSIVE_BUY = "AGGRESSIVE_BUY"
    AGGRESSIVE_SELL = "AGGRESSIVE_SELL"
    NEUTRAL = "NEUTRAL"
    BALANCED = "BALANCED"


class FlowStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class FlowBias(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class TakerFlowPoint:
    timestamp: int
    buy_volume: float
    sell_volume: float
    net_flow: float
    buy_sell_ratio: float
    flow_type: FlowType
    intensity: float


@dataclass(frozen=True, slots=True)
class TakerFlowAnalysis:
    flows: tuple[TakerFlowPoint, ...] = ()
    avg_net_flow: float = 0.0
    total_buy_volume: float = 0.0
    total_sell_volume: float = 0.0
    dominant_flow: FlowType = FlowType.BALANCED
    flow_strength: FlowStrength = FlowStrength.WEAK
    current_bias: FlowBias = FlowBias.NEUTRAL


def _flow_type(ratio: float) -> FlowType:
    if ratio > AGGRESSIVE_BUY_RATIO:
        return FlowType.AGGRESSIVE_BUY
    if ratio < AGGRESSIVE_SELL_RATIO:
        return FlowType.AGGRESSIVE_SELL
    return FlowType.NEUTRAL


def analyze_taker_flow(points: Sequence[TakerVolume]) -> TakerFlowAnalysis:
    """
    Summarise taker buy/sell volume.

    Args:
        points: Taker volume samples, oldest first

    Returns:
        TakerFlowAnalysis (neutral and empty for no data)
    """
    if not points:
        return TakerFlowAnalysis()

    raw = []
    for p in points:
        buy = finite_or_zero(p.buy_volume)
        sell = finite_or_zero(p.sell_volume)
        raw.append((p.timestamp, buy, sell, buy - sell, finite_or_zero(p.buy_sell_ratio)))

    max_abs_net = max(abs(net) for _, _, _, net, _ in raw)
    flows = tuple(
        TakerFlowPoint(
            timestamp=ts,
            buy_volume=buy,
            sell_volume=sell,
            net_flow=net,
            buy_sell_ratio=ratio,
            flow_type=_flow_type(ratio),
            intensity=safe_div(abs(net), max_abs_net) * 100,
        )
        for ts, buy, sell, net, ratio in raw
    )

    buy_count = sum(1 for f in flows if f.flow_type == FlowType.AGGRESSIVE_BUY)
    sell_count = sum(1 for f in flows if f.flow_type == FlowType.AGGRESSIVE_SELL)
    if buy_count > sell_count * DOMINANCE_FACTOR:
        dominant = FlowType.AGGRESSIVE_BUY
    elif sell_count > buy_count * DOMINANCE_FACTOR:
        dominant = FlowType.AGGRESSIVE_SELL
    else:
        dominant = FlowType.BALANCED

    avg_intensity = sum(f.intensity for f in flows) / len(flows)
    if avg_intensity > 70:
        strength = FlowStrength.STRONG
    elif avg_intensity > 40:
        strength = FlowStrength.MODERATE
    else:
        strength = FlowStrength.WEAK

    recent_net = sum(f.net_flow for f in flows[-BIAS_WINDOW:])
    if recent_net > 0 and dominant == FlowType.AGGRESSIVE_BUY:
        bias = FlowBias.BULLISH
    elif recent_net < 0 and dominant == FlowType.AGGRESSIVE_SELL:
        bias = FlowBias.BEARISH
    else:
        bias = FlowBias.NEUTRAL

    logger.debug(f"Taker flow: dominant={dominant.value}, strength={strength.value}, bias={bias.value}")

    return TakerFlowAnalysis(
        flows=flows,
        avg_net_flow=sum(f.net_flow for f in flows) / len(flows),
        total_buy_volume=sum(f.buy_volume for f in flows),
        total_sell_volume=sum(f.sell_volume for f in flows),
        dominant_flow=dominant,
        flow_strength=strength,
        current_bias=bias,
    )


class PocPosition(str, Enum):
    ABOVE_POC = "ABOVE_POC"
    AT_POC = "AT_POC"
    BELOW_POC = "BELOW_POC"


class FlowProfileSignalType(str, Enum):
    STRONG_LONG = "STRONG_LONG"
    STRONG_SHORT = "STRONG_SHORT"
    BREAKOUT = "BREAKOUT"
    FAKEOUT = "FAKEOUT"
    WAIT = "WAIT"


@dataclass(frozen=True, slots=True)
class FlowProfileSignal:
    """Taker flow read against the volume structure at the current price."""

    signal: FlowProfileSignalType
    confidence: float
    reason: str
    is_low_volume_node: bool = False
    is_high_volume_node: bool = False
    poc_position: Optional[PocPosition] = None


@dataclass(frozen=True, slots=True)
class CumulativeFlowPoint:
    timestamp: int
    cumulative_net_flow: float
    trend: FlowBias


def poc_position(price: float, profile: VolumeProfile) -> Optional[PocPosition]:
    """Position of price relative to the POC bucket (None for an empty profile)."""
    level = profile.level_at(price)
    if level is None:
        return None
    if level.price == profile.poc:
        return PocPosition.AT_POC
    return PocPosition.ABOVE_POC if price > profile.poc else PocPosition.BELOW_POC


def combine_with_volume_profile(
    flow: TakerFlowAnalysis,
    profile: VolumeProfile,
    price: float,
) -> FlowProfileSignal:
    """
    Combine taker flow with the volume node at price.

    A node is low volume below half the average bucket volume and high
    volume above 1.5x. Rules are checked in order:

    - LVN + aggressive buying + bullish bias -> BREAKOUT (85 strong, else 70)
    - LVN + aggressive selling -> FAKEOUT (65)
    - HVN + balanced flow -> WAIT (50)
    - HVN + aggressive buying/selling at POC -> STRONG_LONG / STRONG_SHORT (80)
    - aggressive buying below POC -> STRONG_LONG (75)
    - aggressive selling above POC -> STRONG_SHORT (75)
    - otherwise WAIT (40)
    """
    level = profile.level_at(price)
    average = profile.average_volume
    is_lvn = level is not None and level.volume < LVN_FACTOR * average
    is_hvn = level is not None and level.volume > HVN_FACTOR * average
    position = poc_position(price, profile)
    dominant = flow.dominant_flow

    def signal(kind: FlowProfileSignalType, confidence: float, reason: str) -> FlowProfileSignal:
        return FlowProfileSignal(kind, confidence, reason, is_lvn, is_hvn, position)

    if is_lvn and dominant == FlowType.AGGRESSIVE_BUY and flow.current_bias == FlowBias.BULLISH:
        confidence = 85 if flow.flow_strength == FlowStrength.STRONG else 70
        return signal(FlowProfileSignalType.BREAKOUT, confidence, "LVN + aggressive taker buying = real breakout upward")
    if is_lvn and dominant == FlowType.AGGRESSIVE_SELL:
        return signal(FlowProfileSignalType.FAKEOUT, 65, "LVN + aggressive taker selling = potential fakeout or breakdown")
    if is_hvn and dominant == FlowType.BALANCED:
        return signal(FlowProfileSignalType.WAIT, 50, "HVN + balanced flow = accumulation zone, wait for direction")
    if is_hvn and position == PocPosition.AT_POC:
        if dominant == FlowType.AGGRESSIVE_BUY:
            return signal(FlowProfileSignalType.STRONG_LONG, 80, "HVN + aggressive buying at POC")
        if dominant == FlowType.AGGRESSIVE_SELL:
            return signal(FlowProfileSignalType.STRONG_SHORT, 80, "HVN + aggressive selling at POC")
    if dominant == FlowType.AGGRESSIVE_BUY and position == PocPosition.BELOW_POC:
        return signal(FlowProfileSignalType.STRONG_LONG, 75, "Aggressive buying below POC = mean reversion long")
    if dominant == FlowType.AGGRESSIVE_SELL and position == PocPosition.ABOVE_POC:
        return signal(FlowProfileSignalType.STRONG_SHORT, 75, "Aggressive selling above POC = mean reversion short")
    return signal(FlowProfileSignalType.WAIT, 40, "Mixed signals, wait for clearer setup")


def cumulative_taker_flow(flows: Sequence[TakerFlowPoint]) -> list[CumulativeFlowPoint]:
    """
    Running net taker flow.

    The trend is BULLISH/BEARISH once the running total exceeds 10% of the
    summed absolute net flow in that direction.
    """
    threshold = sum(abs(f.net_flow) for f in flows) * CUMULATIVE_THRESHOLD
    running = 0.0
    points = []
    for f in flows:
        running += f.net_flow
        if running > threshold:
            trend = FlowBias.BULLISH
        elif running < -threshold:
            trend = FlowBias.BEARISH
        else:
            trend = FlowBias.NEUTRAL
        points.append(CumulativeFlowPoint(f.timestamp, running, trend))
    return points
