"""
Process-lifetime TTL cache for registry lookups.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from ..error_handling.exceptions import AnalysisCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
TTL = Union[int, float, timedelta]


@dataclass
class CacheEntry:
    """A cached value with its absolute expiration time."""
    value: Any
    expires_at: float


def cache_key(kind: str, *parts: Any) -> str:
    """
    Build a namespaced cache key, e.g. ``versions:Newtonsoft.Json:False``.

    Namespaces (``versions``, ``license``, ``projecturl``, ``sources``) keep
    the different lookups for one package disjoint.
    """
    return ":".join([kind] + [str(p) for p in parts])


class MemoryCache:
    """
    Thread-safe in-memory cache with absolute per-entry expiration.

    Concurrent misses on the same key are coalesced: the first caller runs
    the factory and every other caller waits for its result, so the registry
    is queried once per key no matter how many packages ask at the same time.
    Factory exceptions propagate to all waiters and nothing is stored.
    ``None`` results are returned but not stored, so a lookup that found
    nothing is retried on the next call.

    The cache is created explicitly and handed to the components that use it.
    ``close()`` drops all entries; after closing, lookups still work but are
    no longer stored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            clock: Monotonic time source in seconds, injectable for tests
        """
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._closed = False

        self._cache_statistics = {
            "hits": 0,
            "misses": 0,
            "coalesced": 0,
            "factory_calls": 0,
            "factory_failures": 0,
            "expired": 0
        }

    @staticmethod
    def _ttl_seconds(ttl: TTL) -> float:
        if isinstance(ttl, timedelta):
            return ttl.total_seconds()
        return float(ttl)

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None."""
        with self._lock:
            return self._get_live(key)

    def _get_live(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() < entry.expires_at:
            return entry.value
        del self._entries[key]
        self._cache_statistics["expired"] += 1
        return None

    def set(self, key: str, value: Any, ttl: TTL) -> None:
        """Store ``value`` until now + ttl."""
        if value is None:
            return
        with self._lock:
            if self._closed:
                return
            self._entries[key] = CacheEntry(value, self._clock() + self._ttl_seconds(ttl))

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: TTL) -> T:
        """
        Return the cached value for ``key``, computing it with ``factory`` on a miss.

        Args:
            key: Namespaced cache key
            factory: Zero-argument callable producing the value
            ttl: Time to live, in seconds or as a timedelta

        Returns:
            The cached or freshly computed value
        """
        while True:
            with self._lock:
                value = self._get_live(key)
                if value is not None:
                    self._cache_statistics["hits"] += 1
                    return value

                future = self._in_flight.get(key)
                is_owner = future is None
                if is_owner:
                    future = Future()
                    self._in_flight[key] = future
                    self._cache_statistics["misses"] += 1
                    self._cache_statistics["factory_calls"] += 1
                else:
                    self._cache_statistics["coalesced"] += 1

            if is_owner:
                return self._compute(key, factory, ttl, future)

            try:
                return future.result()
            except AnalysisCancelledError:
                # The owner's batch was cancelled, not necessarily ours.
                logger.debug(f"Shared lookup for {key} was cancelled; retrying")
                continue

    def _compute(self, key: str, factory: Callable[[], T], ttl: TTL, future: Future) -> T:
        try:
            value = factory()
        except BaseException as e:
            with self._lock:
                self._in_flight.pop(key, None)
                self._cache_statistics["factory_failures"] += 1
            future.set_exception(e)
            raise

        with self._lock:
            if value is not None and not self._closed:
                self._entries[key] = CacheEntry(value, self._clock() + self._ttl_seconds(ttl))
            self._in_flight.pop(key, None)
        future.set_result(value)
        return value

    def invalidate(self, key: str) -> bool:
        """Remove one entry; returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove all entries and return how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def close(self) -> None:
        """Drop all entries and stop storing new ones. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cache closed, {count} entries dropped")

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_cache_statistics(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            stats = dict(self._cache_statistics)
            stats["entries"] = len(self._entries)
        return stats
