"""
Vigil - Shared Cache Utilities
==============================

TTL-based cache holding each member's short sliding window of recent
behavior. Nothing here is persisted: a restart resets every window.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_TTL = 300.0
"""Default entry lifetime in seconds."""


def window_key(channel: str, guild_id: int, user_id: int) -> str:
    """Build the namespaced cache key for one member's behavior window."""
    return f"trust:{channel}:{guild_id}:{user_id}"


class TTLCache(Generic[K, V]):
    """
    A TTL cache where every entry carries its own lifetime.

    Expiry is checked lazily on read and eagerly by cleanup(). When the
    cache is full the oldest entry is evicted to make room.

    Thread-safe for single-threaded async use.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        max_size: int = 5000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the TTL cache.

        Args:
            default_ttl: Lifetime in seconds for entries set without a ttl.
            max_size: Maximum number of entries to keep.
            clock: Monotonic time source, replaceable in tests.
        """
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock
        # key -> (value, stored_at, ttl)
        self._cache: Dict[K, Tuple[V, float, float]] = {}
        self._hits = 0
        self._misses = 0

    def _is_expired(self, stored_at: float, ttl: float, now: float) -> bool:
        return now - stored_at > ttl

    def get(self, key: K) -> Optional[V]:
        """Return the value for key, or None if absent or expired."""
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        value, stored_at, ttl = entry
        if self._is_expired(stored_at, ttl, self._clock()):
            self._cache.pop(key, None)
            self._misses += 1
            return None

        self._hits += 1
        return value

    def set(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        """Store value under key, replacing any previous entry."""
        if len(self._cache) >= self._max_size and key not in self._cache:
            self._evict_oldest()

        self._cache[key] = (
            value,
            self._clock(),
            self._default_ttl if ttl is None else ttl,
        )

    def delete(self, key: K) -> bool:
        """Delete key, returning True if it was present."""
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        self._cache.clear()

    def _evict_oldest(self) -> None:
        if not self._cache:
            return
        oldest_key = min(self._cache, key=lambda k: self._cache[k][1])
        del self._cache[oldest_key]

    def cleanup(self) -> int:
        """
        Remove every entry older than its own TTL.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired_keys = [
            k for k, (_, stored_at, ttl) in self._cache.items()
            if self._is_expired(stored_at, ttl, now)
        ]
        for key in expired_keys:
            self._cache.pop(key, None)
        return len(expired_keys)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
        }

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None


__all__ = [
    "DEFAULT_TTL",
    "TTLCache",
    "window_key",
]
