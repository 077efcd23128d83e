"""Read-through recommendation cache with TTL expiry and prefix invalidation.

Sits in front of the store reads that feed the engine (hazard catalog,
multiplier rules, strategies, business types, locations). It never holds
per-request RiskCalculationResult lists, which depend on caller input.

Semantics:
  - Entries expire ``ttl`` seconds after insertion. An entry is present
    while ``now < inserted_at + ttl`` and expired from that instant on.
  - ``get`` on an expired entry evicts it and returns ``None``.
  - ``invalidate()`` clears everything; ``invalidate("strategies")``
    removes only keys starting with ``"strategies"``.

Keys are namespaced ``<scope>:<name>`` (e.g. ``strategies:active``) so a
scope prefix evicts one family of entries without touching the others.

The cache is process-wide mutable state shared by concurrent requests.
Every operation holds a re-entrant lock, entries are immutable, and values
are deep-copied on the way in and on the way out, so a caller mutating a
returned list cannot corrupt what the next caller reads.
"""

import copy
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from src.config import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cache slot.

    Attributes:
        value: Cached value (a private deep copy).
        inserted_at: Clock reading when the entry was stored.
        expires_at: Clock reading from which the entry is expired.
    """

    value: Any
    inserted_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Hit / miss / eviction counters for operator visibility."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    invalidations: int = 0


class RecommendationCache:
    """Process-wide TTL cache with injectable clock for testing.

    Args:
        default_ttl: Entry lifetime in seconds when ``set`` gets no ttl.
        clock: Callable returning monotonic time in seconds.
               Defaults to time.monotonic. Inject a mock for deterministic tests.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ):
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        # Bumped by every invalidate(); get_or_load compares it across a load
        self._generation = 0
        self.stats = CacheStats()

    def get(self, key: str) -> Any | None:
        """Return a copy of the cached value, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self.stats.misses += 1
                self.stats.expirations += 1
                logger.debug("Cache entry %s expired", key)
                return None
            self.stats.hits += 1
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a copy of ``value`` under ``key`` for ``ttl`` seconds."""
        lifetime = self.default_ttl if ttl is None else ttl
        if lifetime <= 0:
            raise ValueError(f"ttl must be positive, got {lifetime}")
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(
                value=copy.deepcopy(value),
                inserted_at=now,
                expires_at=now + lifetime,
            )

    def get_or_load(
        self, key: str, loader: Callable[[], Any], ttl: float | None = None
    ) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss.

        The loader runs outside the lock so a slow store read never blocks
        other requests; concurrent misses may both load, last write wins.
        If any ``invalidate`` call lands while the loader runs, the loaded
        value is returned to this caller but not stored, so the next read
        goes back to the store. Exceptions raised by ``loader`` propagate
        and nothing is cached.
        """
        with self._lock:
            cached = self.get(key)
            if cached is not None:
                return cached
            generation = self._generation
        logger.debug("Cache miss for %s, loading from store", key)
        value = loader()
        with self._lock:
            if self._generation == generation:
                self.set(key, value, ttl)
            else:
                logger.debug("Cache invalidated while loading %s; not storing", key)
        return copy.deepcopy(value)

    def invalidate(self, prefix: str | None = None) -> int:
        """Remove all entries, or only those whose key starts with ``prefix``.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            if prefix is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [k for k in self._entries if k.startswith(prefix)]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)
            self._generation += 1
            self.stats.invalidations += 1
        logger.info(
            "Cache invalidated %s: %d entries removed",
            f"prefix '{prefix}'" if prefix is not None else "(all)",
            removed,
        )
        return removed

    def keys(self) -> list[str]:
        """Keys of entries that have not yet expired."""
        with self._lock:
            now = self._clock()
            return sorted(k for k, e in self._entries.items() if not e.is_expired(now))

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self.keys())
