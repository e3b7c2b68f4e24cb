"""TMDB proxy endpoints.

Catalogue lists accept ``batch_size`` (1-3) to fetch that many consecutive
pages in one call; pages that fail are skipped as long as one succeeds.
All calls go through the shared cached, rate-limited ``TmdbClient``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Query

from reelcritic.api.deps import AdminUser, TmdbDep, TmdbIdPath
from reelcritic.errors import NotFoundError
from reelcritic.tmdb.client import TmdbClient
from reelcritic.tmdb.errors import UpstreamError, UpstreamHTTPError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tmdb", tags=["tmdb"])

MAX_BATCH_SIZE = 3

IMAGE_CONFIGURATION = {
    "backdrop_sizes": ["w300", "w780", "w1280", "original"],
    "logo_sizes": ["w45", "w92", "w154", "w185", "w300", "w500", "original"],
    "poster_sizes": ["w92", "w154", "w185", "w342", "w500", "w780", "original"],
    "profile_sizes": ["w45", "w185", "h632", "original"],
    "still_sizes": ["w92", "w185", "w300", "original"],
}

TmdbPageParam = Annotated[int, Query(ge=1, le=500, description="TMDB page number")]
BatchSizeParam = Annotated[
    int, Query(ge=1, le=MAX_BATCH_SIZE, description="Consecutive pages to fetch")
]

ListFetcher = Callable[[TmdbClient, int], Awaitable[dict[str, Any]]]


async def fetch_batch(
    fetch: ListFetcher, tmdb: TmdbClient, page: int, batch_size: int
) -> dict[str, Any]:
    """Fetch ``batch_size`` pages starting at ``page`` and merge their results."""
    if batch_size == 1:
        return {**await fetch(tmdb, page), "source": "tmdb", "batchSize": 1}

    outcomes = await asyncio.gather(
        *(fetch(tmdb, page + offset) for offset in range(batch_size)),
        return_exceptions=True,
    )
    pages = [outcome for outcome in outcomes if isinstance(outcome, dict)]
    if not pages:
        # Every page failed; surface the first failure
        first = next(o for o in outcomes if isinstance(o, BaseException))
        raise first

    for outcome in outcomes:
        if isinstance(outcome, UpstreamError):
            logger.warning(f"Batch page fetch failed: {outcome}")

    return {
        "page": page,
        "results": [movie for data in pages for movie in data.get("results") or []],
        "total_pages": pages[0].get("total_pages", 1),
        "total_results": pages[0].get("total_results", 0),
        "batchSize": batch_size,
        "source": "tmdb",
    }


async def _details_or_404(coro: Awaitable[dict[str, Any]], tmdb_id: int) -> dict[str, Any]:
    try:
        return await coro
    except UpstreamHTTPError as exc:
        if exc.status == 404:
            raise NotFoundError("Movie", tmdb_id) from exc
        raise


# =============================================================================
# Catalogue lists
# =============================================================================


@router.get("/popular")
async def popular(
    tmdb: TmdbDep, page: TmdbPageParam = 1, batch_size: BatchSizeParam = 1
) -> dict[str, Any]:
    return await fetch_batch(TmdbClient.popular, tmdb, page, batch_size)


@router.get("/now_playing")
async def now_playing(
    tmdb: TmdbDep, page: TmdbPageParam = 1, batch_size: BatchSizeParam = 1
) -> dict[str, Any]:
    return await fetch_batch(TmdbClient.now_playing, tmdb, page, batch_size)


@router.get("/upcoming")
async def upcoming(
    tmdb: TmdbDep, page: TmdbPageParam = 1, batch_size: BatchSizeParam = 1
) -> dict[str, Any]:
    return await fetch_batch(TmdbClient.upcoming, tmdb, page, batch_size)


@router.get("/top_rated")
async def top_rated(
    tmdb: TmdbDep, page: TmdbPageParam = 1, batch_size: BatchSizeParam = 1
) -> dict[str, Any]:
    return await fetch_batch(TmdbClient.top_rated, tmdb, page, batch_size)


@router.get("/genres")
async def genres(tmdb: TmdbDep) -> dict[str, Any]:
    data = await tmdb.genres()
    return {"genres": data.get("genres", []), "source": "tmdb"}


@router.get("/discover")
async def discover(
    tmdb: TmdbDep,
    genre: str | None = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "popularity.desc",
    page: TmdbPageParam = 1,
    year: Annotated[int | None, Query(ge=1870, le=2100)] = None,
    min_rating: Annotated[float | None, Query(alias="minRating", ge=0, le=10)] = None,
    max_rating: Annotated[float | None, Query(alias="maxRating", ge=0, le=10)] = None,
) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    if year is not None:
        extra["primary_release_year"] = year
    if min_rating is not None:
        extra["vote_average.gte"] = min_rating
    if max_rating is not None:
        extra["vote_average.lte"] = max_rating

    data = await tmdb.discover(genre=genre, page=page, sort_by=sort_by, **extra)
    return {
        **data,
        "source": "tmdb",
        "filters": {
            "genre": genre,
            "sortBy": sort_by,
            "year": year,
            "minRating": min_rating,
            "maxRating": max_rating,
        },
    }


@router.get("/search")
async def search(
    tmdb: TmdbDep,
    q: Annotated[str, Query(min_length=2, max_length=100)],
    page: TmdbPageParam = 1,
) -> dict[str, Any]:
    return {**await tmdb.search(q, page), "source": "tmdb", "query": q}


# =============================================================================
# Configuration and cache (declared before /{tmdbId})
# =============================================================================


@router.get("/config/images")
async def image_configuration(tmdb: TmdbDep) -> dict[str, Any]:
    base_url = f"{tmdb.image_base_url}/"
    return {
        "images": {"base_url": base_url, "secure_base_url": base_url, **IMAGE_CONFIGURATION},
        "source": "tmdb",
    }


@router.get("/cache/stats")
async def cache_stats(tmdb: TmdbDep) -> dict[str, Any]:
    governor = tmdb.governor
    return {
        "cache": tmdb.cache_stats(),
        "governor": {
            "inWindow": governor.in_window(),
            "maxRequests": governor.max_requests,
            "windowSeconds": governor.window_seconds,
        },
    }


@router.delete("/cache/clear")
async def clear_cache(tmdb: TmdbDep, _admin: AdminUser) -> dict[str, Any]:
    removed = tmdb.clear_cache()
    return {"message": "TMDB cache cleared", "keysRemoved": removed}


# =============================================================================
# Single movie
# =============================================================================


@router.get("/{tmdbId}")
async def movie_details(tmdb: TmdbDep, tmdb_id: TmdbIdPath) -> dict[str, Any]:
    data = await _details_or_404(tmdb.movie_details(tmdb_id), tmdb_id)
    return {"movie": TmdbClient.format_movie(data), "source": "tmdb", "raw": data}


@router.get("/{tmdbId}/credits")
async def movie_credits(tmdb: TmdbDep, tmdb_id: TmdbIdPath) -> dict[str, Any]:
    return {**await _details_or_404(tmdb.movie_credits(tmdb_id), tmdb_id), "source": "tmdb"}


@router.get("/{tmdbId}/videos")
async def movie_videos(tmdb: TmdbDep, tmdb_id: TmdbIdPath) -> dict[str, Any]:
    return {**await _details_or_404(tmdb.movie_videos(tmdb_id), tmdb_id), "source": "tmdb"}
