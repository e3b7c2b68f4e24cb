"""Rate-limited, cached client for the TMDB v3 API.

Request pipeline:
1. Fresh cache hit for the (endpoint, sorted params) key -> return
2. Wait for a slot in the sliding-window governor
3. GET the endpoint; on success cache the body under the main key with an
   endpoint-specific TTL and under the stale key with a long TTL
4. On failure return the stale copy if one exists, otherwise raise a typed
   ``UpstreamError``

Authentication is chosen once at construction: credentials longer than 40
characters are v4 read access tokens (Bearer header), shorter ones are v3
API keys sent as the ``api_key`` query parameter.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

from reelcritic.cache.keys import CacheKeys
from reelcritic.cache.service import Namespace
from reelcritic.tmdb.errors import (
    UpstreamClientError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamUnreachableError,
)
from reelcritic.tmdb.governor import SlidingWindowGovernor

if TYPE_CHECKING:
    from reelcritic.cache.service import CacheService
    from reelcritic.config import Settings

logger = logging.getLogger(__name__)

BEARER_TOKEN_MIN_LENGTH = 41
DEFAULT_TTL = 3600
MOVIE_DETAILS_TTL = 14400
GENRES_TTL = 86400

ENDPOINT_TTLS: dict[str, int] = {
    "/movie/popular": 1800,
    "/movie/now_playing": 3600,
    "/movie/upcoming": 3600,
    "/movie/top_rated": 7200,
    "/genre/movie/list": GENRES_TTL,
    "/search/movie": 1800,
    "/discover/movie": 3600,
}

DETAILS_APPEND = "credits,videos,images,recommendations"


def endpoint_ttl(endpoint: str) -> int:
    """Cache lifetime for a TMDB endpoint, based on how often it changes."""
    if endpoint in ENDPOINT_TTLS:
        return ENDPOINT_TTLS[endpoint]
    # /movie/{id} (details) but not /movie/{id}/credits and friends
    if endpoint.startswith("/movie/") and len(endpoint.split("/")) == 3:
        return MOVIE_DETAILS_TTL
    return DEFAULT_TTL


class TmdbClient:
    """TMDB API client sharing one cache and one governor per process."""

    def __init__(
        self,
        api_key: str,
        cache: CacheService,
        governor: SlidingWindowGovernor | None = None,
        *,
        base_url: str = "https://api.themoviedb.org/3",
        image_base_url: str = "https://image.tmdb.org/t/p",
        timeout: float = 10.0,
        max_pages: int = 7,
        stale_ttl: int = 7 * 24 * 3600,
        popular_years: int = 2,
        min_vote_count: int = 10,
        top_rated_min_votes: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise UpstreamClientError("TMDB API key is required")

        self.cache = cache
        self.governor = governor or SlidingWindowGovernor()
        self.image_base_url = image_base_url
        self.max_pages = max_pages
        self.stale_ttl = stale_ttl
        self.popular_years = popular_years
        self.min_vote_count = min_vote_count
        self.top_rated_min_votes = top_rated_min_votes

        self.uses_bearer_token = len(api_key) >= BEARER_TOKEN_MIN_LENGTH
        headers = {"Accept": "application/json"}
        params: dict[str, str] = {}
        if self.uses_bearer_token:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            params["api_key"] = api_key

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            params=params,
            timeout=timeout,
            transport=transport,
        )
        logger.info(
            f"TMDB client ready ({'bearer token' if self.uses_bearer_token else 'API key'} auth)"
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: CacheService,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TmdbClient:
        governor = SlidingWindowGovernor(
            max_requests=settings.tmdb_max_requests,
            window_seconds=settings.tmdb_window_seconds,
        )
        return cls(
            settings.tmdb_api_key or "",
            cache,
            governor,
            base_url=settings.tmdb_base_url,
            image_base_url=settings.tmdb_image_base_url,
            timeout=settings.tmdb_timeout,
            max_pages=settings.tmdb_max_pages,
            stale_ttl=settings.tmdb_stale_ttl,
            popular_years=settings.tmdb_popular_years,
            min_vote_count=settings.tmdb_min_vote_count,
            top_rated_min_votes=settings.tmdb_top_rated_min_votes,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Core request pipeline
    # -------------------------------------------------------------------------

    async def request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        ttl: int | None = None,
    ) -> dict[str, Any]:
        params = params or {}
        key = CacheKeys.tmdb_request(endpoint, params)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        await self.governor.acquire()

        try:
            data = await self._fetch(endpoint, params)
        except UpstreamError as exc:
            stale = self.cache.get(CacheKeys.stale(key))
            if stale is not None:
                logger.warning(f"TMDB request failed ({exc}), serving stale copy of {key}")
                return stale
            raise

        if ttl is None:
            ttl = endpoint_ttl(endpoint)
        self.cache.set(key, data, ttl)
        self.cache.set(CacheKeys.stale(key), data, self.stale_ttl)
        logger.info(f"TMDB call {endpoint} cached for {ttl}s")
        return data

    async def _fetch(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(endpoint, params=params)
        except httpx.TransportError as exc:
            logger.error(f"TMDB request to {endpoint} failed: {exc!r}")
            raise UpstreamUnreachableError() from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise UpstreamClientError(f"TMDB API Error: {exc}") from exc

        if response.is_error:
            message = response.reason_phrase
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("status_message"):
                message = body["status_message"]
            logger.error(f"TMDB API error {response.status_code} on {endpoint}: {message}")
            raise UpstreamHTTPError(response.status_code, message)

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamHTTPError(response.status_code, "Invalid JSON in TMDB response") from exc

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    def _clamp_page(self, page: int) -> int:
        return max(1, min(page, self.max_pages))

    async def popular(self, page: int = 1) -> dict[str, Any]:
        """Popular releases of the last few years, excluding barely voted titles."""
        current_year = datetime.now(timezone.utc).year
        start_year = current_year - self.popular_years
        return await self.request(
            "/discover/movie",
            {
                "page": self._clamp_page(page),
                "sort_by": "popularity.desc",
                "primary_release_date.gte": f"{start_year}-01-01",
                "primary_release_date.lte": f"{current_year}-12-31",
                "include_adult": False,
                "include_video": False,
                "vote_count.gte": self.min_vote_count,
            },
        )

    async def now_playing(self, page: int = 1) -> dict[str, Any]:
        return await self.request("/movie/now_playing", {"page": self._clamp_page(page)})

    async def upcoming(self, page: int = 1) -> dict[str, Any]:
        return await self.request("/movie/upcoming", {"page": self._clamp_page(page)})

    async def top_rated(self, page: int = 1) -> dict[str, Any]:
        return await self.request(
            "/discover/movie",
            {
                "page": self._clamp_page(page),
                "sort_by": "vote_average.desc",
                "vote_count.gte": self.top_rated_min_votes,
                "include_adult": False,
                "include_video": False,
            },
        )

    async def genres(self) -> dict[str, Any]:
        return await self.request("/genre/movie/list", ttl=GENRES_TTL)

    async def discover(
        self,
        genre: int | str | None = None,
        page: int = 1,
        sort_by: str = "popularity.desc",
        **extra: Any,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "sort_by": sort_by, **extra}
        if genre:
            params["with_genres"] = genre
        return await self.request("/discover/movie", params)

    async def search(self, query: str, page: int = 1) -> dict[str, Any]:
        query = (query or "").strip()
        if len(query) < 2:
            raise UpstreamClientError("Search query must be at least 2 characters")
        return await self.request("/search/movie", {"query": query, "page": page})

    async def movie_details(self, tmdb_id: int) -> dict[str, Any]:
        return await self.request(f"/movie/{tmdb_id}", {"append_to_response": DETAILS_APPEND})

    async def movie_credits(self, tmdb_id: int) -> dict[str, Any]:
        return await self.request(f"/movie/{tmdb_id}/credits")

    async def movie_videos(self, tmdb_id: int) -> dict[str, Any]:
        return await self.request(f"/movie/{tmdb_id}/videos")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def image_url(self, path: str | None, size: str = "w500") -> str | None:
        if not path:
            return None
        return f"{self.image_base_url}/{size}{path}"

    @staticmethod
    def format_movie(movie: dict[str, Any]) -> dict[str, Any]:
        """Project a TMDB movie payload onto the fields the frontend uses."""
        return {
            "id": movie.get("id"),
            "title": movie.get("title"),
            "overview": movie.get("overview"),
            "posterPath": movie.get("poster_path"),
            "backdropPath": movie.get("backdrop_path"),
            "releaseDate": movie.get("release_date"),
            "genres": [
                g.get("name") if isinstance(g, dict) else g for g in movie.get("genres") or []
            ],
            "voteAverage": movie.get("vote_average"),
            "voteCount": movie.get("vote_count"),
            "popularity": movie.get("popularity"),
            "runtime": movie.get("runtime"),
            "tagline": movie.get("tagline"),
            "adult": movie.get("adult"),
        }

    def clear_cache(self) -> int:
        removed = self.cache.invalidate_pattern(CacheKeys.TMDB_PREFIX)
        logger.info(f"TMDB cache cleared ({removed} keys)")
        return removed

    def cache_stats(self) -> dict[str, int]:
        return self.cache.stats()[Namespace.TMDB.value]
