"""
In-process result cache — TTL-bound, size-bound, oldest-first eviction.

Provides:
    • Coordinate-keyed storage (rounded to 4 decimals ≈ 11 m, so nearby
      queries share an entry)
    • TTL expiry checked on read; stale entries are evicted as a side effect
    • Capacity bound: after an insert pushes the size past capacity, the
      entry with the oldest cached_at is evicted
    • Injected clock for deterministic tests
    • Lock-guarded map, safe for concurrent get/put

Usage:
    from jellywatch.core.cache import ResultCache

    cache = ResultCache(ttl_seconds=300, max_entries=100)
    cache.put(coordinate, report)
    cached = cache.get(coordinate)   # None on miss or expiry
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from jellywatch.core.config import settings
from jellywatch.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    cached_at: datetime


class ResultCache(Generic[T]):
    """
    Bounded TTL cache owned by the risk service.

    A benign race (two concurrent misses for the same key both fetching
    upstream, or one extra eviction) is acceptable; the map itself is
    never corrupted.
    """

    def __init__(
        self,
        *,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        precision: Optional[int] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.ttl = timedelta(
            seconds=settings.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self.max_entries = settings.CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self.precision = settings.CACHE_KEY_PRECISION if precision is None else precision
        self.clock = clock

        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def key_for(self, coordinate: Coordinate) -> str:
        return coordinate.cache_key(self.precision)

    def get(self, coordinate: Coordinate) -> Optional[T]:
        """Cached value, or None if absent or older than the TTL."""
        key = self.key_for(coordinate)
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if now - entry.cached_at >= self.ttl:
                del self._entries[key]
                self.misses += 1
                self.evictions += 1
                logger.debug("Cache EXPIRED: %s", key, extra={"cache_key": key})
                return None
            self.hits += 1
        logger.debug("Cache HIT: %s", key, extra={"cache_key": key})
        return entry.value

    def put(self, coordinate: Coordinate, value: T) -> None:
        """Insert or overwrite, then evict the oldest entry if over capacity."""
        key = self.key_for(coordinate)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, cached_at=self.clock())
            while len(self._entries) > self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].cached_at)
                del self._entries[oldest]
                self.evictions += 1
                logger.debug("Cache EVICT: %s", oldest, extra={"cache_key": oldest})

    def clear(self) -> int:
        """Drop every entry; returns how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, coordinate: Coordinate) -> bool:
        with self._lock:
            return self.key_for(coordinate) in self._entries

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            size = len(self._entries)
        return {
            "size": size,
            "capacity": self.max_entries,
            "ttl_seconds": self.ttl.total_seconds(),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
