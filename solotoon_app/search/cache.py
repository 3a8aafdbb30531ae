"""
Bounded in-memory caches for aggregation results.

Design:
  - One LRUCache per operation kind (search, details, chapters)
  - Fixed capacity, least-recently-used eviction (no TTL)
  - Thread-safe: get-and-promote and set-and-evict are atomic per call
  - clear() empties a cache as a unit

Usage:
    cache = LRUCache(max_size=50)

    key = make_cache_key("naruto", 1, "all", "all", 20)
    cache.set(key, response)
    cached = cache.get(key)

    stats = cache.stats()
"""

import json
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional


def make_cache_key(*parts: Any) -> str:
    """
    Deterministic key for the given request parameters.

    Parts are rendered as a JSON array, so a ':' inside a query can never make
    two different requests collide.
    """
    return json.dumps(list(parts), ensure_ascii=False, separators=(',', ':'))


class LRUCache:
    """Thread-safe least-recently-used cache."""

    def __init__(self, max_size: int = 100, name: str = "cache"):
        """
        Initialize cache.

        Args:
            max_size: Maximum cache entries
            name: Label used in stats output
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.name = name
        self._cache: OrderedDict = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """Return the cached value and mark it most recently used."""
        with self._lock:
            if key not in self._cache:
                self._misses += 1
                return default

            # Move to end (LRU)
            self._cache.move_to_end(key)
            self._hits += 1
            return self._cache[key]

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a value, evicting the least recently used entry when full."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = value

    def clear(self) -> None:
        """Clear all cache entries and reset statistics."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with size, max_size, hits, misses and hit_rate (percent)
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

            return {
                'name': self.name,
                'size': len(self._cache),
                'max_size': self.max_size,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': round(hit_rate, 2)
            }
