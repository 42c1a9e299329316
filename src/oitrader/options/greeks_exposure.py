"""
Options Greeks Exposure Aggregator

Aggregates per-contract Greeks into dealer exposure by strike:

    delta_exposure (DE) = delta x open_interest x multiplier
    gamma_exposure (GEX) = gamma x open_interest x multiplier

With spot_scaled=True, DE is additionally multiplied by spot and GEX by
spot squared (dollar exposure).

Per strike, net DE = call DE - put DE (put side negated, customers are
assumed long puts and dealers short them) while GEX adds both sides.

Derived outputs:
- Dealer bias from total net DE
- Gamma walls: strikes with the largest |GEX|
- Delta flip: where cumulative net DE crosses zero, nearest spot
- OI walls, call/put ratios, gamma regime

Usage:
    aggregator = OptionsGreeksAggregator(contract_multiplier=1.0)
    analysis = aggregator.analyze(chain)
    print(analysis.dealer_bias, analysis.delta_flip)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from oitrader.core.models import OptionContract, OptionSide, OptionsChain
from oitrader.utils.numeric import finite_or_zero, is_valid_price, safe_div

logger = logger.bind(component="OptionsGreeksAggregator")


class Moneyness(str, Enum):
    ITM = "ITM"
    ATM = "ATM"
    OTM = "OTM"


class DealerBias(str, Enum):
    """
    Dealer hedging direction implied by total net delta exposure.

    DEALERS_LONG: dealers long delta, hedge by selling (downward pressure)
    DEALERS_SHORT: dealers short delta, hedge by buying (upward pressure)
    """

    DEALERS_LONG = "DEALERS_LONG"
    DEALERS_SHORT = "DEALERS_SHORT"
    NEUTRAL = "NEUTRAL"


class GammaEffect(str, Enum):
    STABILIZING = "STABILIZING"
    ACCELERATING = "ACCELERATING"


class LevelType(str, Enum):
    SUPPORT = "SUPPORT"
    RESISTANCE = "RESISTANCE"


class GammaRegime(str, Enum):
    """Positive gamma damps moves, negative gamma amplifies them."""

    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class StrikeMetrics:
    """
    Exposure for one contract.

    Change fields are None when no previous chain was supplied or the
    contract did not exist in it.
    """

    strike: float
    side: OptionSide
    open_interest: float
    volume: float
    implied_volatility: float
    delta: float
    gamma: float
    delta_exposure: float
    gamma_exposure: float
    moneyness: Moneyness
    distance_from_spot: float
    iv_change: Optional[float] = None
    volume_change: Optional[float] = None
    oi_change: Optional[float] = None


@dataclass(frozen=True, slots=True)
class StrikeExposure:
    """Net exposure at one strike across both sides."""

    strike: float
    call_delta_exposure: float
    put_delta_exposure: float
    net_delta_exposure: float
    gamma_exposure: float
    call_oi: float
    put_oi: float


@dataclass(frozen=True, slots=True)
class GammaWall:
    strike: float
    gamma_exposure: float
    effect: GammaEffect
    level_type: LevelType
    strength: float


@dataclass(frozen=True, slots=True)
class OIWall:
    strike: float
    side: OptionSide
    open_interest: float
    distance_from_spot: float


@dataclass(frozen=True, slots=True)
class GreeksExposureAnalysis:
    """
    Chain-level exposure summary.

    Attributes:
        spot_price: Underlying price used for scaling and moneyness
        contracts: Per-contract metrics
        strikes: Net exposure per strike, ascending
        total_net_delta_exposure: Sum of per-strike net DE
        total_gamma_exposure: Sum of per-strike GEX
        dealer_bias: Dealer hedging direction
        gamma_regime: Sign of total GEX vs threshold
        gamma_walls: Largest |GEX| strikes, strongest first
        delta_flip: Zero crossing of cumulative net DE nearest spot
        call_oi_walls / put_oi_walls: Largest OI strikes per side
        put_call_oi_ratio / put_call_volume_ratio: 0 when calls are 0
    """

    spot_price: float = 0.0
    contracts: tuple[StrikeMetrics, ...] = ()
    strikes: tuple[StrikeExposure, ...] = ()
    total_net_delta_exposure: float = 0.0
    total_gamma_exposure: float = 0.0
    dealer_bias: DealerBias = DealerBias.NEUTRAL
    gamma_regime: GammaRegime = GammaRegime.NEUTRAL
    gamma_walls: tuple[GammaWall, ...] = ()
    delta_flip: Optional[float] = None
    call_oi_walls: tuple[OIWall, ...] = ()
    put_oi_walls: tuple[OIWall, ...] = ()
    total_call_oi: float = 0.0
    total_put_oi: float = 0.0
    put_call_oi_ratio: float = 0.0
    put_call_volume_ratio: float = 0.0

    @classmethod
    def empty(cls) -> "GreeksExposureAnalysis":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.strikes


class OptionsGreeksAggregator:
    """Aggregate options chain Greeks into dealer exposure."""

    def __init__(
        self,
        contract_multiplier: float = 1.0,
        spot_scaled: bool = False,
        top_walls: int = 5,
        atm_band: float = 0.01,
        gamma_regime_threshold: float = 0.0,
    ):
        """
        Initialize aggregator.

        Args:
            contract_multiplier: Underlying units per contract
            spot_scaled: Express DE in spot terms and GEX in spot-squared terms
            top_walls: Number of gamma/OI walls to report
            atm_band: Fractional distance from spot treated as ATM
            gamma_regime_threshold: |total GEX| below this is NEUTRAL
        """
        self.contract_multiplier = contract_multiplier
        self.spot_scaled = spot_scaled
        self.top_walls = top_walls
        self.atm_band = atm_band
        self.gamma_regime_threshold = gamma_regime_threshold

    def delta_exposure(self, contract: OptionContract, spot: float) -> float:
        exposure = (
            finite_or_zero(contract.delta)
            * finite_or_zero(contract.open_interest)
            * self.contract_multiplier
        )
        return exposure * spot if self.spot_scaled else exposure

    def gamma_exposure(self, contract: OptionContract, spot: float) -> float:
        exposure = (
            finite_or_zero(contract.gamma)
            * finite_or_zero(contract.open_interest)
            * self.contract_multiplier
        )
        return exposure * spot * spot if self.spot_scaled else exposure

    def moneyness(self, contract: OptionContract, spot: float) -> Moneyness:
        distance = (contract.strike - spot) / spot
        if abs(distance) < self.atm_band:
            return Moneyness.ATM
        if contract.side == OptionSide.CALL:
            return Moneyness.ITM if contract.strike < spot else Moneyness.OTM
        return Moneyness.ITM if contract.strike > spot else Moneyness.OTM

    def contract_metrics(
        self,
        contract: OptionContract,
        spot: float,
        previous: Optional[OptionContract] = None,
    ) -> StrikeMetrics:
        """Metrics for one contract, with changes vs its previous snapshot."""
        iv = finite_or_zero(contract.implied_volatility)
        volume = finite_or_zero(contract.volume)
        oi = finite_or_zero(contract.open_interest)

        return StrikeMetrics(
            strike=contract.strike,
            side=contract.side,
            open_interest=oi,
            volume=volume,
            implied_volatility=iv,
            delta=finite_or_zero(contract.delta),
            gamma=finite_or_zero(contract.gamma),
            delta_exposure=self.delta_exposure(contract, spot),
            gamma_exposure=self.gamma_exposure(contract, spot),
            moneyness=self.moneyness(contract, spot),
            distance_from_spot=(contract.strike - spot) / spot * 100,
            iv_change=iv - finite_or_zero(previous.implied_volatility) if previous else None,
            volume_change=volume - finite_or_zero(previous.volume) if previous else None,
            oi_change=oi - finite_or_zero(previous.open_interest) if previous else None,
        )

    def analyze(
        self,
        chain: OptionsChain,
        previous: Optional[OptionsChain] = None,
    ) -> GreeksExposureAnalysis:
        """
        Analyze dealer exposure for a chain.

        Args:
            chain: Current options chain
            previous: Earlier snapshot of the same chain, for change metrics

        Returns:
            GreeksExposureAnalysis, empty for an empty chain or invalid spot
        """
        if chain.is_empty:
            return GreeksExposureAnalysis.empty()
        if not is_valid_price(chain.spot_price):
            logger.warning(f"{chain.underlying}: invalid spot price {chain.spot_price}")
            return GreeksExposureAnalysis.empty()

        spot = chain.spot_price
        contracts = []
        for contract in (*chain.calls, *chain.puts):
            prior = previous.contract(contract.strike, contract.side) if previous else None
            contracts.append(self.contract_metrics(contract, spot, prior))

        strikes = self._strike_exposures(contracts)
        total_net_de = sum(s.net_delta_exposure for s in strikes)
        total_gex = sum(s.gamma_exposure for s in strikes)

        if total_net_de > 0:
            bias = DealerBias.DEALERS_LONG
        elif total_net_de < 0:
            bias = DealerBias.DEALERS_SHORT
        else:
            bias = DealerBias.NEUTRAL

        total_call_oi = sum(m.open_interest for m in contracts if m.side == OptionSide.CALL)
        total_put_oi = sum(m.open_interest for m in contracts if m.side == OptionSide.PUT)
        call_volume = sum(m.volume for m in contracts if m.side == OptionSide.CALL)
        put_volume = sum(m.volume for m in contracts if m.side == OptionSide.PUT)

        analysis = GreeksExposureAnalysis(
            spot_price=spot,
            contracts=tuple(contracts),
            strikes=tuple(strikes),
            total_net_delta_exposure=total_net_de,
            total_gamma_exposure=total_gex,
            dealer_bias=bias,
            gamma_regime=self._gamma_regime(total_gex),
            gamma_walls=tuple(self.gamma_walls(strikes, spot)),
            delta_flip=self.delta_flip(strikes, spot),
            call_oi_walls=tuple(self._oi_walls(contracts, OptionSide.CALL, spot)),
            put_oi_walls=tuple(self._oi_walls(contracts, OptionSide.PUT, spot)),
            total_call_oi=total_call_oi,
            total_put_oi=total_put_oi,
            put_call_oi_ratio=safe_div(total_put_oi, total_call_oi),
            put_call_volume_ratio=safe_div(put_volume, call_volume),
        )

        logger.debug(
            f"{chain.underlying} {chain.expiry_date}: net DE={total_net_de:.2f}, "
            f"GEX={total_gex:.4f}, bias={bias.value}, flip={analysis.delta_flip}"
        )
        return analysis

    @staticmethod
    def _strike_exposures(contracts: list[StrikeMetrics]) -> list[StrikeExposure]:
        by_strike: dict[float, dict[str, float]] = {}
        for m in contracts:
            row = by_strike.setdefault(
                m.strike, {"call_de": 0.0, "put_de": 0.0, "gex": 0.0, "call_oi": 0.0, "put_oi": 0.0}
            )
            if m.side == OptionSide.CALL:
                row["call_de"] += m.delta_exposure
                row["call_oi"] += m.open_interest
            else:
                row["put_de"] += m.delta_exposure
                row["put_oi"] += m.open_interest
            row["gex"] += m.gamma_exposure

        return [
            StrikeExposure(
                strike=strike,
                call_delta_exposure=row["call_de"],
                put_delta_exposure=row["put_de"],
                net_delta_exposure=row["call_de"] - row["put_de"],
                gamma_exposure=row["gex"],
                call_oi=row["call_oi"],
                put_oi=row["put_oi"],
            )
            for strike, row in sorted(by_strike.items())
        ]

    def gamma_walls(self, strikes: list[StrikeExposure], spot: float) -> list[GammaWall]:
        """Top strikes by |GEX|, strongest first."""
        ranked = sorted(
            (s for s in strikes if s.gamma_exposure != 0),
            key=lambda s: abs(s.gamma_exposure),
            reverse=True,
        )[: self.top_walls]
        if not ranked:
            return []

        max_gex = abs(ranked[0].gamma_exposure)
        return [
            GammaWall(
                strike=s.strike,
                gamma_exposure=s.gamma_exposure,
                effect=GammaEffect.STABILIZING if s.gamma_exposure > 0 else GammaEffect.ACCELERATING,
                level_type=LevelType.RESISTANCE if s.strike > spot else LevelType.SUPPORT,
                strength=abs(s.gamma_exposure) / max_gex * 100,
            )
            for s in ranked
        ]

    @staticmethod
    def delta_flip(strikes: list[StrikeExposure], spot: float) -> Optional[float]:
        """
        Price where cumulative net DE (summed from the lowest strike up)
        crosses zero, linearly interpolated between strikes. When several
        crossings exist the one nearest spot wins; None when there is none.
        """
        crossings = []
        cumulative = 0.0
        prev_strike = None
        prev_cumulative = 0.0

        for idx, s in enumerate(strikes):
            cumulative += s.net_delta_exposure
            if prev_strike is not None:
                if prev_cumulative * cumulative < 0:
                    weight = prev_cumulative / (prev_cumulative - cumulative)
                    crossings.append(prev_strike + weight * (s.strike - prev_strike))
                elif cumulative == 0 and prev_cumulative != 0 and idx + 1 < len(strikes):
                    following = cumulative + strikes[idx + 1].net_delta_exposure
                    if following * prev_cumulative < 0:
                        crossings.append(s.strike)
            prev_strike, prev_cumulative = s.strike, cumulative

        if not crossings:
            return None
        return min(crossings, key=lambda price: abs(price - spot))

    def _gamma_regime(self, total_gex: float) -> GammaRegime:
        if total_gex > self.gamma_regime_threshold:
            return GammaRegime.POSITIVE
        if total_gex < -self.gamma_regime_threshold:
            return GammaRegime.NEGATIVE
        return GammaRegime.NEUTRAL

    def _oi_walls(self, contracts: list[StrikeMetrics], side: OptionSide, spot: float) -> list[OIWall]:
        ranked = sorted(
            (m for m in contracts if m.side == side and m.open_interest > 0),
            key=lambda m: m.open_interest,
            reverse=True,
        )[: self.top_walls]
        return [
            OIWall(
                strike=m.strike,
                side=side,
                open_interest=m.open_interest,
                distance_from_spot=(m.strike - spot) / spot * 100,
            )
            for m in ranked
        ]
