"""
Bright Guard - Shared Cache Utilities
=====================================

TTL-keyed maps used for actor counters, role-strip records, and dedupe
windows. Entries expire a fixed time after they were last written.

Author: John Hamwi
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

Clock = Callable[[], datetime]


class TTLCache(Generic[K, V]):
    """
    A simple TTL-based cache with automatic expiration.

    Expired entries are evicted lazily on access and in bulk through
    cleanup_expired(). Safe for single-threaded async use.
    """

    def __init__(self, ttl: timedelta, max_size: int = 100, clock: Optional[Clock] = None):
        """
        Initialize the TTL cache.

        Args:
            ttl: Time-to-live measured from the last set().
            max_size: Maximum number of items to store (oldest evicted).
            clock: Callable returning the current time, for tests.
        """
        self._ttl = ttl
        self._max_size = max_size
        self._clock: Clock = clock or datetime.now
        self._cache: Dict[K, Tuple[V, datetime]] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _expired(self, cached_at: datetime, now: datetime) -> bool:
        return now - cached_at > self._ttl

    def get(self, key: K) -> Optional[V]:
        """
        Get an item from the cache if it exists and hasn't expired.

        Returns:
            The cached value or None if not found/expired.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None

        value, cached_at = entry
        if self._expired(cached_at, self._clock()):
            self._cache.pop(key, None)
            return None

        return value

    def age(self, key: K) -> Optional[timedelta]:
        """Time since the key was last written, or None if absent/expired."""
        if self.get(key) is None:
            return None
        return self._clock() - self._cache[key][1]

    def set(self, key: K, value: V) -> None:
        """Store a value, restarting its TTL."""
        if len(self._cache) >= self._max_size and key not in self._cache:
            self._evict_oldest()

        self._cache[key] = (value, self._clock())

    def delete(self, key: K) -> bool:
        """
        Delete an item from the cache.

        Returns:
            True if item was deleted, False if not found.
        """
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all items from the cache."""
        self._cache.clear()

    def _evict_oldest(self) -> None:
        if not self._cache:
            return
        oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][1])
        del self._cache[oldest_key]

    def cleanup_expired(self) -> int:
        """
        Remove all expired items from the cache.

        Returns:
            Number of items removed.
        """
        now = self._clock()
        expired_keys = [
            k for k, (_, cached_at) in self._cache.items()
            if self._expired(cached_at, now)
        ]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def items(self) -> List[Tuple[K, V]]:
        """Live (key, value) pairs."""
        now = self._clock()
        return [
            (k, v) for k, (v, cached_at) in self._cache.items()
            if not self._expired(cached_at, now)
        ]

    def __iter__(self) -> Iterator[K]:
        return iter([k for k, _ in self.items()])

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None


__all__ = ["TTLCache", "Clock"]
