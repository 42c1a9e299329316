"""
Liquidation Cluster Analyzer

Buckets forced liquidations by price, scores each bucket's intensity and
classifies it as a long squeeze, short squeeze or balanced cluster. Combined
with a volume profile, clusters sitting in low-volume nodes become
liquidation hunting zones: thin liquidity that price can travel through
quickly to trigger stops.

Usage:
    analyzer = LiquidationClusterAnalyzer(bucket_size=10.0)
    analysis = analyzer.analyze(events, current_price=price, profile=profile)
    for zone in analysis.hunting_zones:
        print(zone.price, zone.risk)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from oitrader.core.models import LiquidationEvent, LiquidationSide
from oitrader.features.volume_profile import VolumeProfile
from oitrader.utils.numeric import finite_or_zero, is_valid_price, safe_div

logger = logger.bind(component="LiquidationClusterAnalyzer")


class ClusterType(str, Enum):
    LONG_SQUEEZE = "LONG_SQUEEZE"
    SHORT_SQUEEZE = "SHORT_SQUEEZE"
    BALANCED = "BALANCED"
    MINIMAL = "MINIMAL"


class HuntingRisk(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class PressureBias(str, Enum):
    """Which side has been liquidated more."""

    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class LiquidationCluster:
    """
    Liquidations inside one price bucket.

    long_liquidations and short_liquidations are quantities;
    net_flow = short - long (positive means forced buying).
    """

    price: float
    long_liquidations: float
    short_liquidations: float
    total_value: float
    count: int
    net_flow: float
    intensity: float
    cluster_type: ClusterType

    @property
    def long_ratio(self) -> float:
        return safe_div(self.long_liquidations, self.long_liquidations + self.short_liquidations, 0.5)


@dataclass(frozen=True, slots=True)
class HuntingZone:
    price: float
    intensity: float
    is_low_volume_node: bool
    risk: HuntingRisk
    cluster_type: ClusterType


@dataclass(frozen=True, slots=True)
class LiquidationAnalysis:
    """
    Liquidation clustering result.

    Attributes:
        clusters: Buckets sorted by price ascending
        major_zones: Clusters with total_value >= zone_threshold x max
        hunting_zones: Clusters scored against the volume profile
        total_long / total_short: Liquidated quantities
        pressure: Dominant liquidated side
        nearest_cluster: Cluster closest to current price
        support_levels: Long-liquidation clusters below current price
        resistance_levels: Short-liquidation clusters above current price
    """

    clusters: tuple[LiquidationCluster, ...] = ()
    major_zones: tuple[LiquidationCluster, ...] = ()
    hunting_zones: tuple[HuntingZone, ...] = ()
    total_long: float = 0.0
    total_short: float = 0.0
    total_value: float = 0.0
    pressure: PressureBias = PressureBias.NEUTRAL
    nearest_cluster: Optional[LiquidationCluster] = None
    support_levels: tuple[float, ...] = ()
    resistance_levels: tuple[float, ...] = ()

    @classmethod
    def empty(cls) -> "LiquidationAnalysis":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.clusters


class LiquidationClusterAnalyzer:
    """Cluster liquidations by price."""

    def __init__(self, bucket_size: float = 10.0, zone_threshold: float = 0.7):
        """
        Initialize analyzer.

        Args:
            bucket_size: Price bucket width
            zone_threshold: Fraction of max bucket value defining a major zone
        """
        if bucket_size <= 0:
            raise ValueError(f"bucket_size must be positive, got {bucket_size}")
        self.bucket_size = bucket_size
        self.zone_threshold = zone_threshold

    @staticmethod
    def classify(intensity: float, long_ratio: float) -> ClusterType:
        if intensity < 20:
            return ClusterType.MINIMAL
        if long_ratio > 0.7:
            return ClusterType.LONG_SQUEEZE
        if long_ratio < 0.3:
            return ClusterType.SHORT_SQUEEZE
        return ClusterType.BALANCED

    def clusters(self, events: Sequence[LiquidationEvent]) -> list[LiquidationCluster]:
        """Bucket events; events with an invalid price are skipped."""
        buckets: dict[float, dict] = {}
        for event in events:
            if not is_valid_price(event.price):
                logger.warning(f"Skipping liquidation with invalid price at {event.timestamp}")
                continue
            qty = finite_or_zero(event.quantity)
            bucket = math.floor(event.price / self.bucket_size) * self.bucket_size
            row = buckets.setdefault(bucket, {"long": 0.0, "short": 0.0, "value": 0.0, "count": 0})
            if event.side == LiquidationSide.LONG:
                row["long"] += qty
            else:
                row["short"] += qty
            row["value"] += qty * event.price
            row["count"] += 1

        if not buckets:
            return []

        max_value = max(row["value"] for row in buckets.values())
        result = []
        for price, row in sorted(buckets.items()):
            intensity = safe_div(row["value"], max_value) * 100
            long_ratio = safe_div(row["long"], row["long"] + row["short"], 0.5)
            result.append(
                LiquidationCluster(
                    price=price,
                    long_liquidations=row["long"],
                    short_liquidations=row["short"],
                    total_value=row["value"],
                    count=row["count"],
                    net_flow=row["short"] - row["long"],
                    intensity=intensity,
                    cluster_type=self.classify(intensity, long_ratio),
                )
            )
        return result

    @staticmethod
    def hunting_zones(
        clusters: Sequence[LiquidationCluster],
        profile: VolumeProfile,
    ) -> list[HuntingZone]:
        """
        Score clusters against the volume profile.

        A cluster sits in a low-volume node when the nearest profile level
        carries less than half the average level volume. Risk is HIGH when
        that holds and intensity > 70, MEDIUM when only one holds.
        """
        if profile.is_empty:
            return []

        average = profile.average_volume
        zones = []
        for cluster in clusters:
            level = profile.level_at(cluster.price)
            is_lvn = level is not None and level.volume < 0.5 * average
            intense = cluster.intensity > 70

            if is_lvn and intense:
                risk = HuntingRisk.HIGH
            elif is_lvn or intense:
                risk = HuntingRisk.MEDIUM
            else:
                risk = HuntingRisk.LOW

            zones.append(
                HuntingZone(
                    price=cluster.price,
                    intensity=cluster.intensity,
                    is_low_volume_node=is_lvn,
                    risk=risk,
                    cluster_type=cluster.cluster_type,
                )
            )
        return zones

    def analyze(
        self,
        events: Sequence[LiquidationEvent],
        current_price: Optional[float] = None,
        profile: Optional[VolumeProfile] = None,
    ) -> LiquidationAnalysis:
        """
        Full liquidation analysis.

        Args:
            events: Liquidation events
            current_price: Price used for nearest cluster and support/resistance
            profile: Volume profile used for hunting zones

        Returns:
            LiquidationAnalysis, empty when there are no usable events
        """
        clusters = self.clusters(events)
        if not clusters:
            return LiquidationAnalysis.empty()

        max_value = max(c.total_value for c in clusters)
        major = [c for c in clusters if max_value > 0 and c.total_value >= max_value * self.zone_threshold]

        total_long = sum(c.long_liquidations for c in clusters)
        total_short = sum(c.short_liquidations for c in clusters)
        long_share = safe_div(total_long, total_long + total_short, 0.5)
        if long_share > 0.6:
            pressure = PressureBias.LONG
        elif long_share < 0.4:
            pressure = PressureBias.SHORT
        else:
            pressure = PressureBias.NEUTRAL

        nearest = None
        support: list[float] = []
        resistance: list[float] = []
        if current_price is not None and is_valid_price(current_price):
            nearest = min(clusters, key=lambda c: abs(c.price - current_price))
            support = sorted(
                (c.price for c in clusters if c.price < current_price and c.long_liquidations > c.short_liquidations),
                reverse=True,
            )
            resistance = sorted(
                c.price for c in clusters if c.price > current_price and c.short_liquidations > c.long_liquidations
            )

        hunting = self.hunting_zones(clusters, profile) if profile is not None else []

        logger.debug(
            f"{len(clusters)} liquidation clusters, {len(major)} major, pressure={pressure.value}"
        )

        return LiquidationAnalysis(
            clusters=tuple(clusters),
            major_zones=tuple(major),
            hunting_zones=tuple(hunting),
            total_long=total_long,
            total_short=total_short,
            total_value=sum(c.total_value for c in clusters),
            pressure=pressure,
            nearest_cluster=nearest,
            support_levels=tuple(support),
            resistance_levels=tuple(resistance),
        )
