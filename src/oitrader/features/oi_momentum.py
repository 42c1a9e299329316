"""
OI Momentum Analyzer

Separates real positioning from noise in open interest using its first and
second derivatives:

- momentum: percent OI change per hour between consecutive samples
- acceleration: change in momentum between consecutive samples

Each sample is classified into TREND_CONTINUATION, SWING_REVERSAL,
FORCED_UNWIND, POST_LIQ_BOUNCE, ACCUMULATION, DISTRIBUTION, FAKE_BUILDUP
or NEUTRAL with a strength grade. The latest sample drives alerts, a
0-100 signal score, a strategy recommendation and a position size
suggestion.

Usage:
    analyzer = OIMomentumAnalyzer()
    analysis = analyzer.analyze(open_interest)
    stats = momentum_statistics(analysis.points)
    print(analysis.current.signal, risk_mode(analysis.current, stats.regime))
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from oitrader.core.models import OpenInterestPoint
from oitrader.utils.numeric import finite_or_zero, safe_div

logger = logger.bind(component="OIMomentumAnalyzer")

HOUR_MS = 3_600_000
TREND_WINDOW = 10
STATS_WINDOW = 30


class MomentumSignal(str, Enum):
    TREND_CONTINUATION = "TREND_CONTINUATION"
    SWING_REVERSAL = "SWING_REVERSAL"
    FORCED_UNWIND = "FORCED_UNWIND"
    POST_LIQ_BOUNCE = "POST_LIQ_BOUNCE"
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"
    FAKE_BUILDUP = "FAKE_BUILDUP"
    NEUTRAL = "NEUTRAL"


class SignalStrength(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    EXTREME = "EXTREME"


class MomentumTrend(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class AlertLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class MomentumRegime(str, Enum):
    TRENDING = "TRENDING"
    RANGING = "RANGING"
    MIXED = "MIXED"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True, slots=True)
class MomentumPoint:
    timestamp: int
    oi: float
    momentum: float
    acceleration: float
    signal: MomentumSignal
    strength: SignalStrength


@dataclass(frozen=True, slots=True)
class MomentumAlert:
    level: AlertLevel
    message: str
    confidence: float


@dataclass(frozen=True, slots=True)
class OIMomentumAnalysis:
    """
    OI momentum summary.

    Attributes:
        current: Latest classified point (None when data is insufficient)
        trend: Direction of the average momentum over the last 10 points
        points: Every classified point, oldest first
        alerts: Alerts raised by the latest point
    """

    current: Optional[MomentumPoint] = None
    trend: MomentumTrend = MomentumTrend.NEUTRAL
    points: tuple[MomentumPoint, ...] = ()
    alerts: tuple[MomentumAlert, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.current is None

    def has_signal(self, signal: MomentumSignal) -> bool:
        return self.current is not None and self.current.signal == signal


@dataclass(frozen=True, slots=True)
class MomentumStatistics:
    trend_bars: int
    distribution_bars: int
    neutral_bars: int
    avg_momentum: float
    avg_acceleration: float
    trend_ratio: float
    regime: MomentumRegime
    total: int


@dataclass(frozen=True, slots=True)
class Interpretation:
    action: str
    reasoning: str
    risk: RiskLevel


@dataclass(frozen=True, slots=True)
class RiskMode:
    multiplier: float
    label: str
    reasoning: str


def calculate_momentum(points: Sequence[OpenInterestPoint]) -> list[float]:
    """
    Percent OI change per hour between consecutive points.

    The first point, a zero previous OI and a zero time step all give 0.
    """
    momentum = [0.0] if points else []
    for prev, cur in zip(points, points[1:]):
        pct = safe_div(finite_or_zero(cur.value) - finite_or_zero(prev.value), finite_or_zero(prev.value)) * 100
        momentum.append(pct * safe_div(HOUR_MS, cur.timestamp - prev.timestamp))
    return momentum


def calculate_acceleration(momentum: Sequence[float]) -> list[float]:
    """Change in momentum between consecutive points (0 for the first)."""
    return [0.0] + [cur - prev for prev, cur in zip(momentum, momentum[1:])] if momentum else []


def classify_momentum(
    oi_change: float,
    momentum: float,
    acceleration: float,
    avg_momentum: float,
) -> tuple[MomentumSignal, SignalStrength]:
    """
    Classify one point; rules are checked in order.

    FAKE_BUILDUP (fast OI growth on weak, flat momentum) is checked before
    ACCUMULATION, whose conditions it narrows.

    Args:
        oi_change: Percent OI change from the previous point
        momentum: Hourly momentum
        acceleration: Change in momentum
        avg_momentum: Mean momentum over the trailing window
    """
    abs_accel = abs(acceleration)

    if oi_change > 0 and momentum > 0 and acceleration > 0:
        if momentum > 5 and acceleration > 2:
            strength = SignalStrength.EXTREME
        elif momentum > 3 and acceleration > 1:
            strength = SignalStrength.STRONG
        elif momentum > 1:
            strength = SignalStrength.MODERATE
        else:
            strength = SignalStrength.WEAK
        return MomentumSignal.TREND_CONTINUATION, strength

    if momentum > 0 and acceleration < -1:
        if abs_accel > 3:
            strength = SignalStrength.STRONG
        elif abs_accel > 1.5:
            strength = SignalStrength.MODERATE
        else:
            strength = SignalStrength.WEAK
        return MomentumSignal.SWING_REVERSAL, strength

    if oi_change < -1 and momentum < -2 and acceleration < -2:
        if momentum < -5 and acceleration < -4:
            strength = SignalStrength.EXTREME
        elif momentum < -3:
            strength = SignalStrength.STRONG
        else:
            strength = SignalStrength.MODERATE
        return MomentumSignal.FORCED_UNWIND, strength

    if avg_momentum < -1 and momentum > 0 and acceleration > 1:
        strength = SignalStrength.STRONG if acceleration > 2 else SignalStrength.MODERATE
        return MomentumSignal.POST_LIQ_BOUNCE, strength

    if oi_change > 0.5 and 0 < momentum < 1 and abs_accel < 0.3:
        return MomentumSignal.FAKE_BUILDUP, SignalStrength.WEAK

    if oi_change > 0 and momentum > 0 and abs_accel < 0.5:
        return MomentumSignal.ACCUMULATION, SignalStrength.MODERATE

    if oi_change < 0 and momentum < 0 and abs_accel < 0.5:
        return MomentumSignal.DISTRIBUTION, SignalStrength.MODERATE

    return MomentumSignal.NEUTRAL, SignalStrength.WEAK


def _alerts(current: MomentumPoint) -> list[MomentumAlert]:
    signal, strength = current.signal, current.strength
    alerts = []
    if signal == MomentumSignal.FORCED_UNWIND and strength == SignalStrength.EXTREME:
        alerts.append(MomentumAlert(AlertLevel.CRITICAL, "Extreme forced unwind - large positions closing rapidly", 95))
    if signal == MomentumSignal.SWING_REVERSAL and strength == SignalStrength.STRONG:
        alerts.append(MomentumAlert(AlertLevel.CRITICAL, "Swing reversal - OI momentum turning negative", 85))
    if signal == MomentumSignal.POST_LIQ_BOUNCE:
        alerts.append(MomentumAlert(AlertLevel.WARNING, "Post-liquidation bounce - recovery after cascade", 75))
    if signal == MomentumSignal.FAKE_BUILDUP:
        alerts.append(MomentumAlert(AlertLevel.WARNING, "Fake OI buildup - likely arbitrage, not directional", 70))
    if signal == MomentumSignal.TREND_CONTINUATION and strength == SignalStrength.STRONG:
        alerts.append(MomentumAlert(AlertLevel.INFO, "Strong trend continuation - OI expanding with momentum", 80))
    if signal == MomentumSignal.ACCUMULATION:
        alerts.append(MomentumAlert(AlertLevel.INFO, "Accumulation phase - steady OI buildup", 65))
    return alerts


class OIMomentumAnalyzer:
    """Classify open interest momentum and acceleration."""

    def __init__(self, min_points: int = 3, trend_window: int = TREND_WINDOW):
        """
        Initialize analyzer.

        Args:
            min_points: Below this, the analysis is empty
            trend_window: Trailing points averaged for the trend and the
                post-liquidation bounce check
        """
        self.min_points = min_points
        self.trend_window = trend_window

    def analyze(self, points: Sequence[OpenInterestPoint]) -> OIMomentumAnalysis:
        """
        Analyze OI momentum.

        Args:
            points: Open interest samples, oldest first

        Returns:
            OIMomentumAnalysis; empty when fewer than min_points are given
        """
        if len(points) < self.min_points:
            logger.debug(f"Only {len(points)} OI points, need {self.min_points}")
            return OIMomentumAnalysis()

        momentum = calculate_momentum(points)
        acceleration = calculate_acceleration(momentum)

        classified = []
        for i, point in enumerate(points):
            prev_oi = finite_or_zero(points[i - 1].value) if i > 0 else finite_or_zero(point.value)
            oi = finite_or_zero(point.value)
            trailing = momentum[max(0, i + 1 - self.trend_window): i + 1]
            signal, strength = classify_momentum(
                safe_div(oi - prev_oi, prev_oi) * 100,
                momentum[i],
                acceleration[i],
                sum(trailing) / len(trailing),
            )
            classified.append(
                MomentumPoint(point.timestamp, oi, momentum[i], acceleration[i], signal, strength)
            )

        recent = momentum[-self.trend_window:]
        avg = sum(recent) / len(recent)
        if avg > 1:
            trend = MomentumTrend.BULLISH
        elif avg < -1:
            trend = MomentumTrend.BEARISH
        else:
            trend = MomentumTrend.NEUTRAL

        current = classified[-1]
        logger.debug(
            f"OI momentum {current.momentum:.2f}%/h accel={current.acceleration:.2f}: "
            f"{current.signal.value} ({current.strength.value}), trend={trend.value}"
        )

        return OIMomentumAnalysis(
            current=current,
            trend=trend,
            points=tuple(classified),
            alerts=tuple(_alerts(current)),
        )


_BASE_SCORES = {
    MomentumSignal.TREND_CONTINUATION: 70,
    MomentumSignal.SWING_REVERSAL: 80,
    MomentumSignal.FORCED_UNWIND: 90,
    MomentumSignal.POST_LIQ_BOUNCE: 75,
    MomentumSignal.ACCUMULATION: 60,
    MomentumSignal.DISTRIBUTION: 55,
    MomentumSignal.FAKE_BUILDUP: 30,
    MomentumSignal.NEUTRAL: 0,
}

_STRENGTH_MULTIPLIERS = {
    SignalStrength.EXTREME: 1.2,
    SignalStrength.STRONG: 1.1,
    SignalStrength.MODERATE: 1.0,
    SignalStrength.WEAK: 0.8,
}


def signal_score(point: MomentumPoint) -> int:
    """
    Signal score 0-100.

    Base score per signal times the strength multiplier, plus a magnitude
    bonus of (|momentum| + |acceleration|) / 2 capped at 10.
    """
    bonus = min((abs(point.momentum) + abs(point.acceleration)) / 2, 10)
    return min(round(_BASE_SCORES[point.signal] * _STRENGTH_MULTIPLIERS[point.strength] + bonus), 100)


_INTERPRETATIONS = {
    MomentumSignal.SWING_REVERSAL: Interpretation(
        "OI momentum fading with negative acceleration - watch for mean reversion and fake breakouts",
        "Position builders are slowing down, trend exhaustion likely",
        RiskLevel.HIGH,
    ),
    MomentumSignal.POST_LIQ_BOUNCE: Interpretation(
        "Recovery after liquidation cascade - short-term bounce likely, confirm with price",
        "OI stabilising after a sharp decline, weak hands flushed",
        RiskLevel.MEDIUM,
    ),
    MomentumSignal.ACCUMULATION: Interpretation(
        "Steady OI buildup - suitable for building positions over time",
        "Slow, steady OI increase without volatility",
        RiskLevel.LOW,
    ),
    MomentumSignal.DISTRIBUTION: Interpretation(
        "OI declining steadily - avoid new longs",
        "Gradual OI reduction suggests a distribution phase",
        RiskLevel.MEDIUM,
    ),
    MomentumSignal.FAKE_BUILDUP: Interpretation(
        "OI rising without momentum - likely arbitrage, do not chase",
        "Non-directional flow such as funding arbitrage or spread trades",
        RiskLevel.HIGH,
    ),
    MomentumSignal.NEUTRAL: Interpretation(
        "OI flow weak and choppy - reduce size or wait",
        "No clear directional conviction in OI",
        RiskLevel.MEDIUM,
    ),
}


def interpret(point: MomentumPoint) -> Interpretation:
    """Plain-language reading of a classified point."""
    strong = point.strength in (SignalStrength.STRONG, SignalStrength.EXTREME)
    if point.signal == MomentumSignal.TREND_CONTINUATION:
        if strong:
            return Interpretation(
                "New positions building with positive OI momentum - breakouts likely to continue",
                "Strong directional OI expansion indicates real money flow",
                RiskLevel.LOW,
            )
        return Interpretation(
            "Moderate OI expansion - add on pullbacks",
            "OI momentum positive but not extreme, wait for confirmation",
            RiskLevel.MEDIUM,
        )
    if point.signal == MomentumSignal.FORCED_UNWIND:
        if point.strength == SignalStrength.EXTREME:
            return Interpretation(
                "Massive position unwinding - close longs or prepare for a sharp move",
                "Extreme OI decline indicates forced liquidations",
                RiskLevel.HIGH,
            )
        return Interpretation(
            "Position unwinding - reduce exposure and wait for stabilisation",
            "OI contraction suggests players exiting",
            RiskLevel.MEDIUM,
        )
    return _INTERPRETATIONS[point.signal]


def momentum_statistics(points: Sequence[MomentumPoint], window: int = STATS_WINDOW) -> MomentumStatistics:
    """
    Signal counts over the last window points.

    Trend bars are TREND_CONTINUATION + ACCUMULATION; the regime is
    TRENDING above 60% trend bars, RANGING below 30%, else MIXED.
    """
    recent = list(points[-window:])
    if not recent:
        return MomentumStatistics(0, 0, 0, 0.0, 0.0, 0.0, MomentumRegime.RANGING, 0)

    trend_bars = sum(1 for p in recent if p.signal in (MomentumSignal.TREND_CONTINUATION, MomentumSignal.ACCUMULATION))
    distribution_bars = sum(
        1 for p in recent if p.signal in (MomentumSignal.DISTRIBUTION, MomentumSignal.SWING_REVERSAL)
    )
    neutral_bars = sum(1 for p in recent if p.signal == MomentumSignal.NEUTRAL)
    trend_ratio = trend_bars / len(recent) * 100

    if trend_ratio > 60:
        regime = MomentumRegime.TRENDING
    elif trend_ratio < 30:
        regime = MomentumRegime.RANGING
    else:
        regime = MomentumRegime.MIXED

    return MomentumStatistics(
        trend_bars=trend_bars,
        distribution_bars=distribution_bars,
        neutral_bars=neutral_bars,
        avg_momentum=sum(p.momentum for p in recent) / len(recent),
        avg_acceleration=sum(p.acceleration for p in recent) / len(recent),
        trend_ratio=trend_ratio,
        regime=regime,
        total=len(recent),
    )


def strategy_recommendation(signal: MomentumSignal, regime: MomentumRegime) -> str:
    """Strategy style suited to a signal in a momentum regime."""
    if signal == MomentumSignal.TREND_CONTINUATION and regime == MomentumRegime.TRENDING:
        return "Breakout entries / trend following"
    if signal in (MomentumSignal.SWING_REVERSAL, MomentumSignal.DISTRIBUTION):
        return "Mean reversion / counter-trend scalps"
    if signal == MomentumSignal.FORCED_UNWIND:
        return "Wait for stabilisation / avoid new entries"
    if signal == MomentumSignal.POST_LIQ_BOUNCE:
        return "Quick bounce scalps / reduced size"
    if signal == MomentumSignal.ACCUMULATION and regime == MomentumRegime.RANGING:
        return "Pullback entries in range / position building"
    if signal == MomentumSignal.FAKE_BUILDUP:
        return "Stay out / wait for real directional flow"
    if regime == MomentumRegime.RANGING:
        return "Range trading / avoid trend strategies"
    return "Wait for clearer signal / reduce position size"


def risk_mode(point: MomentumPoint, regime: MomentumRegime) -> RiskMode:
    """Position size multiplier for a classified point in a momentum regime."""
    signal, strength = point.signal, point.strength

    if signal == MomentumSignal.TREND_CONTINUATION:
        if strength == SignalStrength.EXTREME and regime == MomentumRegime.TRENDING:
            return RiskMode(1.5, "1.5R (Boosted)", "Extreme OI expansion in a strong trend")
        if strength in (SignalStrength.STRONG, SignalStrength.EXTREME):
            return RiskMode(1.2, "1.2R (Increased)", "Strong directional OI flow")
    if signal == MomentumSignal.ACCUMULATION and regime == MomentumRegime.TRENDING and point.momentum > 1:
        return RiskMode(1.0, "1R (Normal)", "Steady accumulation in trend")
    if signal == MomentumSignal.POST_LIQ_BOUNCE:
        return RiskMode(0.6, "0.6R (Reduced)", "Bounce after liquidation - take profit quickly")
    if signal == MomentumSignal.SWING_REVERSAL:
        return RiskMode(0.5, "0.5R (Reduced)", "OI momentum fading - mean reversion size")
    if signal in (MomentumSignal.FORCED_UNWIND, MomentumSignal.FAKE_BUILDUP):
        return RiskMode(0.0, "0R (Flat)", "No directional edge - stay flat")
    if regime == MomentumRegime.RANGING:
        return RiskMode(0.5, "0.5R (Reduced)", "Market in range - avoid trend strategies")
    if regime == MomentumRegime.MIXED or strength in (SignalStrength.WEAK, SignalStrength.MODERATE):
        return RiskMode(0.7, "0.7R (Cautious)", "Mixed signals or weak momentum")
    if signal == MomentumSignal.DISTRIBUTION:
        return RiskMode(0.5, "0.5R (Reduced)", "OI declining steadily - reduce exposure")
    return RiskMode(1.0, "1R (Normal)", "Standard conditions")
