"""
IV Skew and Max Pain Engine

Implied volatility analytics for a single-expiry options chain:
- Volatility smile: ATM IV, ATM put/call skew, OTM curve skew
- IV regime: rank/percentile vs history with absolute IV guards
- Defensive strikes: put-heavy support below spot, call-heavy resistance above
- Max pain: strike minimising total option holder payout at expiry
- Expected move: ATM straddle price
- Options flow: strikes whose volume is far above the chain average

Usage:
    engine = IVSkewAndMaxPainEngine()
    smile = engine.volatility_smile(chain)
    regime = engine.iv_regime(smile.atm_iv, historical_ivs)
    pain = engine.max_pain(chain)
    flow = engine.options_flow(chain)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from oitrader.core.models import OptionSide, OptionsChain
from oitrader.exceptions import MissingATMOptionError
from oitrader.utils.numeric import finite_or_zero, is_valid_price

logger = logger.bind(component="IVSkewAndMaxPainEngine")


class SkewDirection(str, Enum):
    PUT_SKEW = "PUT_SKEW"
    CALL_SKEW = "CALL_SKEW"
    BALANCED = "BALANCED"


class IVRegimeType(str, Enum):
    ELEVATED = "ELEVATED"
    COMPRESSED = "COMPRESSED"
    EXPANSION = "EXPANSION"
    COLLAPSE = "COLLAPSE"
    NORMAL = "NORMAL"


class DefensiveType(str, Enum):
    SUPPORT = "SUPPORT"
    RESISTANCE = "RESISTANCE"


class FlowKind(str, Enum):
    AGGRESSIVE_BUY = "AGGRESSIVE_BUY"
    LARGE_BLOCK = "LARGE_BLOCK"


class FlowBias(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class VolatilitySmile:
    """
    ATM and curve skew.

    skew > 0 means puts are bid over calls (downside protection demand).
    """

    atm_strike: Optional[float] = None
    atm_iv: float = 0.0
    atm_call_iv: float = 0.0
    atm_put_iv: float = 0.0
    skew: float = 0.0
    skew_direction: SkewDirection = SkewDirection.BALANCED
    otm_put_iv: float = 0.0
    otm_call_iv: float = 0.0
    curve_skew: float = 0.0
    curve_direction: SkewDirection = SkewDirection.BALANCED


@dataclass(frozen=True, slots=True)
class IVRegime:
    regime: IVRegimeType
    current_iv: float
    iv_rank: float
    iv_percentile: float
    expected_daily_move: float
    description: str
    implication: str


@dataclass(frozen=True, slots=True)
class DefensiveStrike:
    strike: float
    type: DefensiveType
    put_oi: float
    call_oi: float
    ratio: float
    strength: float


@dataclass(frozen=True, slots=True)
class MaxPainResult:
    """
    Max pain strike and the pain curve it was chosen from.

    Attributes:
        strike: Strike with the lowest total payout
        total_pain: Payout at that strike
        distance_percent: (strike - spot) / spot x 100
        pain_by_strike: (strike, payout) for every strike, ascending
    """

    strike: float
    total_pain: float
    distance_percent: float
    pain_by_strike: tuple[tuple[float, float], ...]


@dataclass(frozen=True, slots=True)
class ExpectedMove:
    straddle_price: float
    move_percent: float
    upper: float
    lower: float


@dataclass(frozen=True, slots=True)
class OptionsFlowSignal:
    """Unusual volume at one strike and side."""

    strike: float
    side: OptionSide
    kind: FlowKind
    volume: float
    open_interest: float
    implied_volatility: float
    bias: FlowBias
    strength: float
    description: str


@dataclass(frozen=True, slots=True)
class IVAnalysis:
    smile: VolatilitySmile
    regime: IVRegime
    defensive_strikes: tuple[DefensiveStrike, ...]
    max_pain: Optional[MaxPainResult]
    expected_move: Optional[ExpectedMove]
    flow: tuple[OptionsFlowSignal, ...] = ()


_REGIME_TEXT = {
    IVRegimeType.ELEVATED: (
        "IV elevated vs history",
        "Options expensive - favour selling premium",
    ),
    IVRegimeType.COMPRESSED: (
        "IV compressed vs history",
        "Options cheap - favour buying premium, expansion likely",
    ),
    IVRegimeType.EXPANSION: (
        "Absolute IV extremely high",
        "Panic pricing - expect mean reversion of IV",
    ),
    IVRegimeType.COLLAPSE: (
        "Absolute IV extremely low",
        "Complacency - cheap protection, watch for a volatility event",
    ),
    IVRegimeType.NORMAL: (
        "IV within normal range",
        "No volatility edge - trade direction, not premium",
    ),
}


class IVSkewAndMaxPainEngine:
    """IV skew, IV regime, defensive strikes and max pain for one chain."""

    def __init__(
        self,
        skew_threshold: float = 0.05,
        curve_skew_threshold: float = 0.03,
        ratio_threshold: float = 1.5,
        min_defensive_oi: float = 1000.0,
        trading_days: int = 252,
        flow_multiple: float = 3.0,
        block_multiple: float = 5.0,
        min_flow_volume: float = 500.0,
    ):
        """
        Initialize engine.

        Args:
            skew_threshold: |put IV - call IV| at ATM above which skew is directional
            curve_skew_threshold: Same for the OTM wings
            ratio_threshold: OI ratio qualifying a defensive strike
            min_defensive_oi: OI floor for a defensive strike
            trading_days: Days per year used for the daily move
            flow_multiple: Volume over this multiple of the side average is unusual
            block_multiple: Volume over this multiple is a LARGE_BLOCK
            min_flow_volume: Volume floor for an unusual flow signal
        """
        self.skew_threshold = skew_threshold
        self.curve_skew_threshold = curve_skew_threshold
        self.ratio_threshold = ratio_threshold
        self.min_defensive_oi = min_defensive_oi
        self.trading_days = trading_days
        self.flow_multiple = flow_multiple
        self.block_multiple = block_multiple
        self.min_flow_volume = min_flow_volume

    @staticmethod
    def _direction(skew: float, threshold: float) -> SkewDirection:
        if skew > threshold:
            return SkewDirection.PUT_SKEW
        if skew < -threshold:
            return SkewDirection.CALL_SKEW
        return SkewDirection.BALANCED

    def volatility_smile(self, chain: OptionsChain) -> VolatilitySmile:
        """
        ATM IV and skew.

        ATM IV is the mean of call and put IV at the ATM strike, or the
        available side when only one exists. The curve compares the put at
        the 20th-percentile strike with the call at the 80th.
        """
        atm = chain.atm_strike
        if atm is None or not is_valid_price(chain.spot_price):
            return VolatilitySmile()

        call = chain.contract(atm, OptionSide.CALL)
        put = chain.contract(atm, OptionSide.PUT)
        call_iv = finite_or_zero(call.implied_volatility) if call else 0.0
        put_iv = finite_or_zero(put.implied_volatility) if put else 0.0

        if call and put:
            atm_iv = (call_iv + put_iv) / 2
            skew = put_iv - call_iv
        else:
            atm_iv = call_iv if call else put_iv
            skew = 0.0

        puts = sorted(chain.puts, key=lambda c: c.strike)
        calls = sorted(chain.calls, key=lambda c: c.strike)
        otm_put_iv = (
            finite_or_zero(puts[int(len(puts) * 0.2)].implied_volatility) if puts else atm_iv
        )
        otm_call_iv = (
            finite_or_zero(calls[min(int(len(calls) * 0.8), len(calls) - 1)].implied_volatility)
            if calls else atm_iv
        )
        curve_skew = otm_put_iv - otm_call_iv

        return VolatilitySmile(
            atm_strike=atm,
            atm_iv=atm_iv,
            atm_call_iv=call_iv,
            atm_put_iv=put_iv,
            skew=skew,
            skew_direction=self._direction(skew, self.skew_threshold),
            otm_put_iv=otm_put_iv,
            otm_call_iv=otm_call_iv,
            curve_skew=curve_skew,
            curve_direction=self._direction(curve_skew, self.curve_skew_threshold),
        )

    def iv_regime(self, current_iv: float, historical_ivs: Sequence[float] = ()) -> IVRegime:
        """
        Rank current IV against history.

        Args:
            current_iv: Current ATM IV (fraction)
            historical_ivs: Past ATM IV samples

        Returns:
            IVRegime; rank and percentile are 50 without usable history
        """
        current_iv = finite_or_zero(current_iv)
        history = [finite_or_zero(v) for v in historical_ivs]

        if history:
            low, high = min(history), max(history)
            if high > low:
                iv_rank = min(max((current_iv - low) / (high - low) * 100, 0.0), 100.0)
            else:
                iv_rank = 50.0
            iv_percentile = sum(1 for v in history if v < current_iv) / len(history) * 100
        else:
            iv_rank = 50.0
            iv_percentile = 50.0

        if iv_rank > 75:
            regime = IVRegimeType.ELEVATED
        elif iv_rank < 25:
            regime = IVRegimeType.COMPRESSED
        elif current_iv > 0.8:
            regime = IVRegimeType.EXPANSION
        elif current_iv < 0.15:
            regime = IVRegimeType.COLLAPSE
        else:
            regime = IVRegimeType.NORMAL

        description, implication = _REGIME_TEXT[regime]
        return IVRegime(
            regime=regime,
            current_iv=current_iv,
            iv_rank=iv_rank,
            iv_percentile=iv_percentile,
            expected_daily_move=current_iv / math.sqrt(self.trading_days),
            description=description,
            implication=implication,
        )

    def defensive_strikes(self, chain: OptionsChain) -> list[DefensiveStrike]:
        """
        Strikes where one side's OI dominates.

        Below spot, heavy put OI marks support; above spot, heavy call OI
        marks resistance. Ratios use +1 smoothing on the denominator.
        """
        if chain.is_empty or not is_valid_price(chain.spot_price):
            return []

        spot = chain.spot_price
        found = []
        for strike in chain.strikes:
            call = chain.contract(strike, OptionSide.CALL)
            put = chain.contract(strike, OptionSide.PUT)
            call_oi = finite_or_zero(call.open_interest) if call else 0.0
            put_oi = finite_or_zero(put.open_interest) if put else 0.0

            if strike < spot:
                ratio = put_oi / (call_oi + 1)
                if ratio > self.ratio_threshold and put_oi > self.min_defensive_oi:
                    found.append(DefensiveStrike(
                        strike, DefensiveType.SUPPORT, put_oi, call_oi, ratio, min(ratio * 20, 100.0)
                    ))
            elif strike > spot:
                ratio = call_oi / (put_oi + 1)
                if ratio > self.ratio_threshold and call_oi > self.min_defensive_oi:
                    found.append(DefensiveStrike(
                        strike, DefensiveType.RESISTANCE, put_oi, call_oi, ratio, min(ratio * 20, 100.0)
                    ))

        found.sort(key=lambda d: d.strength, reverse=True)
        return found

    def max_pain(self, chain: OptionsChain) -> Optional[MaxPainResult]:
        """
        Strike minimising total payout to option holders.

        pain(S) = sum over K < S of putOI(K) x (S - K)
                + sum over K > S of callOI(K) x (K - S)

        Exact O(N^2) scan over ascending strikes; the lowest strike wins ties.
        Returns None for an empty chain.
        """
        strikes = chain.strikes
        if not strikes:
            return None

        call_oi = {c.strike: finite_or_zero(c.open_interest) for c in chain.calls}
        put_oi = {p.strike: finite_or_zero(p.open_interest) for p in chain.puts}

        curve = []
        best_strike, best_pain = None, None
        for settle in strikes:
            pain = 0.0
            for strike in strikes:
                if strike < settle:
                    pain += put_oi.get(strike, 0.0) * (settle - strike)
                elif strike > settle:
                    pain += call_oi.get(strike, 0.0) * (strike - settle)
            curve.append((settle, pain))
            if best_pain is None or pain < best_pain:
                best_strike, best_pain = settle, pain

        spot = chain.spot_price
        distance = (best_strike - spot) / spot * 100 if is_valid_price(spot) else 0.0
        return MaxPainResult(
            strike=best_strike,
            total_pain=best_pain,
            distance_percent=distance,
            pain_by_strike=tuple(curve),
        )

    def options_flow(self, chain: OptionsChain) -> list[OptionsFlowSignal]:
        """
        Unusual volume by strike.

        Each side's average is taken over every strike in the chain. A
        contract is flagged when its volume exceeds flow_multiple x that
        average and min_flow_volume. OTM calls read BULLISH, OTM puts
        BEARISH, everything else NEUTRAL. Strength is volume / average x 20,
        capped at 100; results are sorted strongest first.
        """
        strikes = chain.strikes
        if not strikes:
            return []

        spot = chain.spot_price
        signals = []
        for side, contracts in ((OptionSide.CALL, chain.calls), (OptionSide.PUT, chain.puts)):
            average = sum(finite_or_zero(c.volume) for c in contracts) / len(strikes)
            if average <= 0:
                continue
            for contract in contracts:
                volume = finite_or_zero(contract.volume)
                if volume <= average * self.flow_multiple or volume <= self.min_flow_volume:
                    continue

                kind = FlowKind.LARGE_BLOCK if volume > average * self.block_multiple else FlowKind.AGGRESSIVE_BUY
                if side == OptionSide.CALL:
                    bias = FlowBias.BULLISH if contract.strike > spot else FlowBias.NEUTRAL
                else:
                    bias = FlowBias.BEARISH if contract.strike < spot else FlowBias.NEUTRAL

                signals.append(OptionsFlowSignal(
                    strike=contract.strike,
                    side=side,
                    kind=kind,
                    volume=volume,
                    open_interest=finite_or_zero(contract.open_interest),
                    implied_volatility=finite_or_zero(contract.implied_volatility),
                    bias=bias,
                    strength=min(volume / average * 20, 100.0),
                    description=(
                        f"Heavy {side.value.lower()} buying at {contract.strike:g} "
                        f"({volume:.0f} contracts) - {bias.value.lower()} signal"
                    ),
                ))

        signals.sort(key=lambda s: s.strength, reverse=True)
        if signals:
            logger.debug(f"{chain.underlying}: {len(signals)} unusual flow signals")
        return signals

    def expected_move(self, chain: OptionsChain) -> Optional[ExpectedMove]:
        """
        Expected move to expiry from the ATM straddle.

        Returns:
            ExpectedMove, or None for an empty chain

        Raises:
            MissingATMOptionError: If the ATM call or put is missing
        """
        atm = chain.atm_strike
        if atm is None or not is_valid_price(chain.spot_price):
            return None

        call = chain.contract(atm, OptionSide.CALL)
        if call is None:
            raise MissingATMOptionError(chain.underlying, atm, OptionSide.CALL.value)
        put = chain.contract(atm, OptionSide.PUT)
        if put is None:
            raise MissingATMOptionError(chain.underlying, atm, OptionSide.PUT.value)

        straddle = finite_or_zero(call.mark_price) + finite_or_zero(put.mark_price)
        spot = chain.spot_price
        return ExpectedMove(
            straddle_price=straddle,
            move_percent=straddle / spot * 100,
            upper=spot + straddle,
            lower=spot - straddle,
        )

    def analyze(self, chain: OptionsChain, historical_ivs: Sequence[float] = ()) -> IVAnalysis:
        """Run every IV analysis on the chain."""
        smile = self.volatility_smile(chain)
        analysis = IVAnalysis(
            smile=smile,
            regime=self.iv_regime(smile.atm_iv, historical_ivs),
            defensive_strikes=tuple(self.defensive_strikes(chain)),
            max_pain=self.max_pain(chain),
            expected_move=self.expected_move(chain),
            flow=tuple(self.options_flow(chain)),
        )
        logger.debug(
            f"{chain.underlying}: ATM IV={smile.atm_iv:.3f}, skew={smile.skew_direction.value}, "
            f"max pain={analysis.max_pain.strike if analysis.max_pain else None}"
        )
        return analysis
