"""Cache key schema for ReelCritic.

Key formats, one family per namespace:
- tmdb:   tmdb:{endpoint_with_underscores}:{k1=v1&k2=v2}
- movie:  movie_{tmdb_id}
- review: reviews_{tmdb_id}_{page}_{limit}

TMDB parameters are sorted by name so that identical calls share one entry
regardless of argument order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def format_param(value: Any) -> str:
    """Render a query value the way it is sent on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class CacheKeys:
    """Cache key generator following a consistent naming convention."""

    TMDB_PREFIX = "tmdb:"
    MOVIE_PREFIX = "movie_"
    REVIEWS_PREFIX = "reviews_"
    STALE_SUFFIX = ":stale"

    @classmethod
    def tmdb_request(cls, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        """Key for a TMDB response, independent of parameter order."""
        path = endpoint.replace("/", "_")
        params = params or {}
        query = "&".join(f"{name}={format_param(params[name])}" for name in sorted(params))
        return f"{cls.TMDB_PREFIX}{path}:{query}"

    @classmethod
    def stale(cls, key: str) -> str:
        """Key holding the long-lived fallback copy of ``key``."""
        return f"{key}{cls.STALE_SUFFIX}"

    @classmethod
    def movie(cls, tmdb_id: int) -> str:
        return f"{cls.MOVIE_PREFIX}{tmdb_id}"

    @classmethod
    def review_page(cls, tmdb_id: int, page: int, limit: int) -> str:
        return f"{cls.REVIEWS_PREFIX}{tmdb_id}_{page}_{limit}"

    @classmethod
    def review_pattern(cls, tmdb_id: int) -> str:
        """Substring matching every review page of one movie.

        The trailing separator keeps ``reviews_5_`` from matching pages
        of movie 50.
        """
        return f"{cls.REVIEWS_PREFIX}{tmdb_id}_"
