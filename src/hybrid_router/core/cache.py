"""In-memory response cache for routed results.

Exact-match cache from a normalized input string to a previously produced
result. Lookups of expired entries behave as misses and evict the entry.
Every read-modify-write runs under one lock, so concurrent ``get``/``set``
calls are linearizable.

TTL is configurable per cache and per entry; the default is no expiry until
an explicit ``clear``/``invalidate``.

Usage:
    cache = ResponseCache(max_size=1000)
    key = ResponseCache.normalize_key("  What's my battery level ")
    cache.set(key, result, task_type="system_query")
    hit = cache.get(key)
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from hybrid_router.core.models import HealthStatus

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Below this many lookups the hit rate says nothing about cache health
_MIN_LOOKUPS_FOR_HEALTH = 10


@dataclass
class CacheEntry:
    """A cached value with its expiry bookkeeping.

    Attributes:
        key: Normalized input
        value: Cached result payload
        created_at: Clock reading at insertion
        ttl: Seconds to live, or None for no expiry
        task_type: Task type of the cached result, for bulk invalidation
        hit_count: Number of times served
        last_accessed: Clock reading of the last hit
    """

    key: str
    value: Any
    created_at: float
    ttl: Optional[float] = None
    task_type: Optional[str] = None
    hit_count: int = 0
    last_accessed: float = 0.0

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return now - self.created_at > self.ttl


@dataclass
class CacheStats:
    """Snapshot of cache counters."""

    total_entries: int = 0
    total_hits: int = 0
    total_misses: int = 0
    evictions: int = 0
    expirations: int = 0
    max_size: int = 0
    entries_by_task_type: Dict[str, int] = field(default_factory=dict)

    @property
    def total_lookups(self) -> int:
        return self.total_hits + self.total_misses

    @property
    def hit_rate(self) -> float:
        if self.total_lookups == 0:
            return 0.0
        return self.total_hits / self.total_lookups

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = round(self.hit_rate, 4)
        return data


class ResponseCache:
    """Thread-safe LRU response cache with optional TTL.

    When a new key would exceed ``max_size`` the least recently used entries
    are evicted down to 80% of capacity.

    Attributes:
        max_size: Maximum number of entries
        default_ttl: TTL applied when ``set`` gets none (None = no expiry)
        enabled: When False, ``get`` always misses and ``set`` is a no-op
    """

    EVICTION_TARGET_RATIO = 0.8

    def __init__(
        self,
        *,
        max_size: int = 1000,
        default_ttl: Optional[float] = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if default_ttl is not None and default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive or None, got {default_ttl}")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @staticmethod
    def normalize_key(text: str) -> str:
        """Trim, case-fold and collapse whitespace to form a cache key."""
        return _WHITESPACE.sub(" ", text.strip()).casefold()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for ``key``, or None on miss or expiry."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                logger.debug("Cache entry expired: %s", key[:50])
                return None
            entry.hit_count += 1
            entry.last_accessed = now
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def contains(self, key: str) -> bool:
        """Check for a live entry without touching hit/miss counters."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        task_type: Optional[str] = None,
    ) -> None:
        """Store ``value`` under ``key``.

        Args:
            key: Normalized input
            value: Result payload to cache
            ttl: Seconds to live (falls back to ``default_ttl``)
            task_type: Task type used by ``invalidate_task_type``
        """
        if not self.enabled:
            return
        effective_ttl = ttl if ttl is not None else self.default_ttl
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict_locked()
            now = self._clock()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl=effective_ttl,
                task_type=task_type,
                last_accessed=now,
            )
            self._entries.move_to_end(key)

    def _evict_locked(self) -> None:
        target = int(self.max_size * self.EVICTION_TARGET_RATIO)
        evicted = 0
        while self._entries and len(self._entries) > target:
            self._entries.popitem(last=False)
            evicted += 1
        self._evictions += evicted
        logger.debug("Cache evicted %d entries (max_size=%d)", evicted, self.max_size)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_task_type(self, task_type: str) -> int:
        """Remove every entry cached for ``task_type``. Returns the count removed."""
        with self._lock:
            doomed = [k for k, e in self._entries.items() if e.task_type == task_type]
            for k in doomed:
                del self._entries[k]
        if doomed:
            logger.debug("Invalidated %d cache entries for %s", len(doomed), task_type)
        return len(doomed)

    def cleanup_expired(self) -> int:
        """Drop all expired entries. Returns the count removed."""
        with self._lock:
            now = self._clock()
            doomed = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in doomed:
                del self._entries[k]
            self._expirations += len(doomed)
        return len(doomed)

    def preload(
        self,
        entries: Iterable[Tuple[str, Any]],
        *,
        ttl: Optional[float] = None,
        task_type: Optional[str] = None,
    ) -> int:
        """Seed the cache with known responses. Keys are normalized here."""
        count = 0
        for text, value in entries:
            self.set(self.normalize_key(text), value, ttl=ttl, task_type=task_type)
            count += 1
        return count

    def clear(self) -> None:
        """Remove every entry and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0
        logger.debug("Response cache cleared")

    def stats(self) -> CacheStats:
        """Return a snapshot of the cache counters."""
        with self._lock:
            by_type: Dict[str, int] = {}
            for entry in self._entries.values():
                name = entry.task_type or "unknown"
                by_type[name] = by_type.get(name, 0) + 1
            return CacheStats(
                total_entries=len(self._entries),
                total_hits=self._hits,
                total_misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                max_size=self.max_size,
                entries_by_task_type=by_type,
            )

    def health(self) -> HealthStatus:
        """Grade the cache by hit rate once it has seen enough lookups."""
        if not self.enabled:
            return HealthStatus.DEGRADED
        stats = self.stats()
        if stats.total_lookups < _MIN_LOOKUPS_FOR_HEALTH:
            return HealthStatus.HEALTHY
        if stats.hit_rate > 0.7:
            return HealthStatus.HEALTHY
        if stats.hit_rate > 0.4:
            return HealthStatus.DEGRADED
        return HealthStatus.UNHEALTHY

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
