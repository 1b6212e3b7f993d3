"""
Query Embedding Cache: short-lived, in-memory, keyed by normalized query.

Every value is reproducible by calling the embedding provider again, so
the cache never raises: internal failures turn into a miss on ``get`` and
a no-op on ``put``.

Entries expire ``ttl_minutes`` after they are written; reading an entry
does not extend its life.  When the cache is full, expired entries are
swept first and then the entry with the oldest ``created_at`` is evicted.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

if TYPE_CHECKING:
    from ..config import QueryCacheSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    vector: np.ndarray      # float32, read-only
    created_at: float       # epoch seconds


def is_expired(entry: CacheEntry, ttl_minutes: float, now: float) -> bool:
    """An entry is fresh while ``now - created_at < ttl``."""
    return (now - entry.created_at) >= ttl_minutes * 60.0


@dataclass(frozen=True)
class CacheStats:
    total_queries: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        return self.hits / self.total_queries if self.total_queries > 0 else 0.0


class QueryEmbeddingCache:
    """Thread-safe TTL cache of query embeddings.

    Parameters
    ----------
    settings:
        ``enabled``, ``ttl_minutes`` and ``max_entries``.
    clock:
        Returns the current time in epoch seconds.  Tests pass a fake.
    """

    def __init__(self, settings: "QueryCacheSettings",
                 clock: Callable[[], float] = time.time) -> None:
        self._enabled = bool(settings.enabled)
        self._ttl_minutes = float(settings.ttl_minutes)
        self._max_entries = int(settings.max_entries)
        if self._max_entries < 1:
            logger.warning("[QueryCache] max_entries=%d is not positive, using 1", self._max_entries)
            self._max_entries = 1
        if self._ttl_minutes <= 0:
            logger.warning("[QueryCache] ttl_minutes=%s: every entry expires immediately", settings.ttl_minutes)
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._total_queries = 0
        self._hits = 0
        self._misses = 0

        logger.info(
            "[QueryCache] Initialised | enabled=%s | ttl=%smin | max_entries=%d",
            self._enabled, settings.ttl_minutes, self._max_entries,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, normalized_query: str) -> Optional[np.ndarray]:
        """Return a copy of the cached vector, or None on a miss."""
        if not self._enabled:
            return None
        try:
            with self._lock:
                self._total_queries += 1
                entry = self._entries.get(normalized_query)
                if entry is None:
                    self._misses += 1
                    outcome = "MISS"
                elif is_expired(entry, self._ttl_minutes, self._clock()):
                    del self._entries[normalized_query]
                    self._misses += 1
                    entry = None
                    outcome = "EXPIRED"
                else:
                    self._hits += 1
                    outcome = "HIT"
            logger.info("[QueryCache] %s | key=%r", outcome, normalized_query)
            return entry.vector.copy() if entry is not None else None
        except Exception:
            logger.exception("[QueryCache] Lookup failed, treating as a miss")
            with self._lock:
                self._misses += 1
            return None

    def put(self, normalized_query: str, vector) -> None:
        """Cache *vector* under *normalized_query*, evicting if full."""
        if not self._enabled:
            return
        try:
            if normalized_query is None or vector is None:
                logger.warning("[QueryCache] Ignoring put with empty key or vector")
                return
            arr = np.array(vector, dtype=np.float32)
            if arr.ndim != 1 or arr.size == 0 or not np.all(np.isfinite(arr)):
                logger.warning("[QueryCache] Ignoring put with malformed vector | key=%r", normalized_query)
                return
            arr.flags.writeable = False

            with self._lock:
                now = self._clock()
                if normalized_query not in self._entries and len(self._entries) >= self._max_entries:
                    self._sweep_expired_locked(now)
                    if len(self._entries) >= self._max_entries:
                        self._evict_oldest_locked()
                self._entries[normalized_query] = CacheEntry(normalized_query, arr, now)
                size = len(self._entries)
            logger.debug("[QueryCache] Stored | key=%r | size=%d", normalized_query, size)
        except Exception:
            logger.exception("[QueryCache] Store failed, ignoring")

    def evict_expired(self) -> int:
        """Remove every expired entry.  Returns how many were removed."""
        if not self._enabled:
            return 0
        try:
            with self._lock:
                removed = self._sweep_expired_locked(self._clock())
                remaining = len(self._entries)
            if removed:
                logger.info("[QueryCache] Expired sweep | removed=%d | remaining=%d", removed, remaining)
            return removed
        except Exception:
            logger.exception("[QueryCache] Expired sweep failed, ignoring")
            return 0

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(self._total_queries, self._hits, self._misses)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop all entries and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._total_queries = 0
            self._hits = 0
            self._misses = 0
        logger.info("[QueryCache] Cleared")

    # ------------------------------------------------------------------
    # Eviction (caller holds self._lock)
    # ------------------------------------------------------------------

    def _sweep_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items()
                   if is_expired(e, self._ttl_minutes, now)]
        for key in expired:
            del self._entries[key]
            logger.debug("[QueryCache] Expired entry removed | key=%r", key)
        return len(expired)

    def _evict_oldest_locked(self) -> None:
        if not self._entries:
            return
        oldest = min(self._entries.values(), key=lambda e: (e.created_at, e.key))
        del self._entries[oldest.key]
        logger.debug("[QueryCache] Evicted oldest entry | key=%r", oldest.key)
