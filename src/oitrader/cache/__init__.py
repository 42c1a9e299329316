"""Snapshot cache with explicit TTL."""

from oitrader.cache.snapshot_cache import CacheStats, SnapshotCache

__all__ = ["CacheStats", "SnapshotCache"]
