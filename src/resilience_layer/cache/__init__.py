"""
Response cache with stale-while-revalidate and request coalescing.

Components:
- ResponseCache: TTL store, read-through modes, invalidation, periodic sweep
- CacheEntry: Immutable cached value with lifetime
- CacheStats: Entry counts and hit rate
"""

from resilience_layer.cache.entry import CacheEntry, CacheStats
from resilience_layer.cache.response_cache import ResponseCache

__all__ = [
    "ResponseCache",
    "CacheEntry",
    "CacheStats",
]
