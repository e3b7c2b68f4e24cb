"""Namespaced cache service.

Three independent stores live side by side:
- tmdb: raw TMDB responses and their stale fallback copies
- movie: resolved movie records
- review: paginated review listings

A key is routed to its namespace by prefix (see ``CacheKeys``), so the same
numeric identifier can appear in every namespace without collisions.
Pattern invalidation and flushing span all namespaces.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from reelcritic.cache.keys import CacheKeys
from reelcritic.cache.store import TtlStore

logger = logging.getLogger(__name__)

DEFAULT_TTLS = {"tmdb": 3600, "movie": 7200, "review": 1800}


class Namespace(str, Enum):
    TMDB = "tmdb"
    MOVIE = "movie"
    REVIEW = "review"

    @classmethod
    def for_key(cls, key: str) -> Namespace:
        if key.startswith(CacheKeys.MOVIE_PREFIX):
            return cls.MOVIE
        if key.startswith(CacheKeys.REVIEWS_PREFIX):
            return cls.REVIEW
        # tmdb:* and anything unprefixed are API-response entries
        return cls.TMDB


class CacheService:
    """Process-local cache with one TTL store per namespace.

    Constructed once at startup and handed to the components that need it;
    tests build their own instance with a fake timer.
    """

    def __init__(
        self,
        ttls: dict[str, int] | None = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._stores = {ns: TtlStore(ttls[ns.value], timer=timer) for ns in Namespace}

    def store(self, namespace: Namespace | str) -> TtlStore:
        return self._stores[Namespace(namespace)]

    def get(self, key: str) -> Any | None:
        return self._stores[Namespace.for_key(key)].get(key)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        if not self._stores[Namespace.for_key(key)].set(key, value, ttl):
            logger.debug(f"Refused cache write for {key} with non-positive TTL {ttl}")

    def delete(self, key: str) -> None:
        self._stores[Namespace.for_key(key)].delete(key)

    def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key, in every namespace, containing ``pattern``."""
        removed = sum(store.invalidate_pattern(pattern) for store in self._stores.values())
        if removed:
            logger.debug(f"Invalidated {removed} cache keys matching '{pattern}'")
        return removed

    def flush_namespace(self, namespace: Namespace | str) -> None:
        self.store(namespace).flush()

    def flush_all(self) -> None:
        for store in self._stores.values():
            store.flush()
        logger.info("All caches flushed")

    def stats(self) -> dict[str, dict[str, int]]:
        return {ns.value: store.stats().to_dict() for ns, store in self._stores.items()}
