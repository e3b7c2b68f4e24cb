"""In-process TTL store backed by cachetools.

Every entry carries its own time-to-live. ``TLRUCache`` computes the expiry
per item from the stored ``CacheEntry``, so one namespace can hold entries
with different lifetimes (e.g. the 24 h genre list next to 30 min search
results). The store has no size bound; entries leave only on expiry or
explicit deletion.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cachetools import TLRUCache


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    ttl: float


@dataclass(frozen=True, slots=True)
class StoreStats:
    hits: int
    misses: int
    keys: int

    def to_dict(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "keys": self.keys}


def _time_to_use(key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


class TtlStore:
    """A single cache namespace.

    All operations are total: missing and expired keys read as ``None``
    and deleting an absent key is a no-op.
    """

    def __init__(self, default_ttl: float, timer: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=math.inf, ttu=_time_to_use, timer=timer
        )
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store ``value`` for ``ttl`` seconds (namespace default when omitted).

        Returns False when the write was refused because the TTL is not
        positive.
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return False
        self._cache[key] = CacheEntry(value, ttl)
        return True

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def keys(self) -> list[str]:
        self._cache.expire()
        return list(self._cache.keys())

    def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key containing ``pattern``; returns the count."""
        matched = [key for key in self.keys() if pattern in key]
        for key in matched:
            self._cache.pop(key, None)
        return len(matched)

    def flush(self) -> None:
        self._cache.clear()

    def stats(self) -> StoreStats:
        return StoreStats(hits=self._hits, misses=self._misses, keys=len(self.keys()))

    def __len__(self) -> int:
        return len(self.keys())
