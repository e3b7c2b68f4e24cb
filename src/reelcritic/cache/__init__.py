"""Cache layer for ReelCritic.

Provides in-process TTL caching with the cache-aside pattern:
- Per-entry expiry through cachetools ``TLRUCache``
- Namespaced stores for TMDB responses, movies and review pages
- Substring invalidation across namespaces on mutations
"""

from reelcritic.cache.keys import CacheKeys
from reelcritic.cache.service import CacheService, Namespace
from reelcritic.cache.store import CacheEntry, StoreStats, TtlStore

__all__ = [
    "CacheEntry",
    "CacheKeys",
    "CacheService",
    "Namespace",
    "StoreStats",
    "TtlStore",
]
