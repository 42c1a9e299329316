"""
Snapshot cache with explicit TTL.

Holds the current and previous value per key so analyzers can compute
changes between consecutive snapshots (IV, volume and OI change per
strike). The cache is an injected object, never module state.

**Thread-Safe:**
Uses threading.Lock; analyzers are synchronous.

Usage:
    cache = SnapshotCache(ttl_seconds=60)
    previous = cache.get("BTC:options")
    cache.put("BTC:options", chain)
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

logger = logger.bind(component="SnapshotCache")


@dataclass(slots=True)
class CacheEntry:
    value: Any
    stored_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class SnapshotCache:
    """
    TTL cache of current/previous snapshots.

    Expired entries read as missing; they are evicted lazily on access.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of an entry
            clock: Monotonic time source (injectable for tests)
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._current: dict[str, CacheEntry] = {}
        self._previous: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _fresh(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and self._clock() - entry.stored_at < self.ttl_seconds

    def put(self, key: str, value: Any) -> None:
        """Store value; the existing current entry becomes the previous one."""
        with self._lock:
            existing = self._current.get(key)
            if existing is not None:
                self._previous[key] = existing
            self._current[key] = CacheEntry(value=value, stored_at=self._clock())

    def get(self, key: str) -> Optional[Any]:
        """Current value, or None when missing or expired."""
        with self._lock:
            entry = self._current.get(key)
            if self._fresh(entry):
                self._hits += 1
                return entry.value
            if entry is not None:
                logger.debug(f"Cache entry expired: {key}")
                del self._current[key]
            self._misses += 1
            return None

    def get_previous(self, key: str) -> Optional[Any]:
        """Value stored before the current one, or None when missing or expired."""
        with self._lock:
            entry = self._previous.get(key)
            if self._fresh(entry):
                return entry.value
            self._previous.pop(key, None)
            return None

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._current.pop(key, None)
            self._previous.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._current.clear()
            self._previous.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._current))
