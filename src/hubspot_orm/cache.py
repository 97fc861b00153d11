"""
Property schema cache.

Property definitions change rarely, so each resource type's schema is
fetched once and kept for the life of the process. Entries can be dropped
individually or all at once (tests, or after creating a custom property).
"""

import threading
from typing import Any, Callable, Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class SchemaCache(Generic[K, V]):
    """
    Thread-safe, process-lifetime cache keyed by resource name.

    Example:
        cache = SchemaCache[str, list[Property]]()
        props = cache.get_or_load("contacts", lambda: fetch("contacts"))
    """

    def __init__(self) -> None:
        self._cache: dict[K, V] = {}
        self._lock = threading.Lock()

        # Statistics
        self._hits = 0
        self._misses = 0

    def get(self, key: K) -> V | None:
        """Return the cached value, or None on a miss."""
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1
            return None

    def set(self, key: K, value: V) -> None:
        with self._lock:
            self._cache[key] = value

    def get_or_load(self, key: K, loader: Callable[[], V]) -> V:
        """
        Get value from cache, or load and store it on a miss.

        The loader runs outside the lock; a concurrent miss may load twice
        and the last writer wins.
        """
        value = self.get(key)
        if value is not None:
            return value

        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: K) -> bool:
        """
        Remove key from cache.

        Returns True if key was present.
        """
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries from cache."""
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: K) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics for monitoring."""
        total = self._hits + self._misses
        hit_rate = self._hits / total if total > 0 else 0.0

        return {
            "size": len(self._cache),
            "keys": sorted(str(k) for k in self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 4),
        }


# Shared by every Resource subclass
property_cache: SchemaCache[str, list[Any]] = SchemaCache()
