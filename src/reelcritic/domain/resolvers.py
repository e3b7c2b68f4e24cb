"""Read-through resolvers for movies and review pages.

Movie resolution order:
1. ``movie_{tmdbId}`` in the movie cache
2. Local record by TMDB id (an inactive one is reported as not found)
3. One TMDB details call, persisted as a new record

A local record older than the refresh threshold is refreshed from TMDB
before it is returned. A failed refresh is logged and the stored record is
served as is.

Concurrent resolutions of the same id are not deduplicated; each may fetch
and the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.cache.keys import CacheKeys
from reelcritic.domain.pagination import offset_for, page_envelope
from reelcritic.domain.text import as_utc, slugify
from reelcritic.domain.views import movie_view, review_view
from reelcritic.errors import NotFoundError, ServiceNotReadyError
from reelcritic.persistence.repositories import MovieRepository, ReviewRepository
from reelcritic.persistence.tables import MovieTable
from reelcritic.tmdb.errors import UpstreamError, UpstreamHTTPError

if TYPE_CHECKING:
    from reelcritic.cache.service import CacheService
    from reelcritic.tmdb.client import TmdbClient

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_AFTER = timedelta(days=7)
CAST_LIMIT = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def apply_tmdb_details(movie: MovieTable, data: dict[str, Any], now: datetime) -> MovieTable:
    """Copy TMDB details (with appended credits) onto a movie record."""
    movie.title = data.get("title") or movie.title or "Untitled"
    movie.overview = data.get("overview") or ""
    movie.tagline = data.get("tagline") or ""
    movie.poster_path = data.get("poster_path")
    movie.backdrop_path = data.get("backdrop_path")
    movie.release_date = _parse_date(data.get("release_date"))
    movie.runtime = data.get("runtime")
    movie.genres = [g["name"] for g in data.get("genres") or [] if g.get("name")]
    movie.vote_average = data.get("vote_average") or 0.0
    movie.vote_count = data.get("vote_count") or 0
    movie.popularity = data.get("popularity") or 0.0
    movie.adult = bool(data.get("adult"))
    movie.original_language = data.get("original_language")
    movie.tmdb_last_updated = now

    credits = data.get("credits") or {}
    if credits.get("cast"):
        movie.cast = [
            {
                "name": actor.get("name"),
                "character": actor.get("character"),
                "profilePath": actor.get("profile_path"),
            }
            for actor in credits["cast"][:CAST_LIMIT]
        ]
    director = next(
        (person for person in credits.get("crew") or [] if person.get("job") == "Director"),
        None,
    )
    if director is not None:
        movie.director = {"name": director.get("name"), "profilePath": director.get("profile_path")}
    return movie


def invalidate_movie(cache: CacheService, tmdb_id: int) -> int:
    """Drop the cached movie and every cached review page of ``tmdb_id``."""
    cache.delete(CacheKeys.movie(tmdb_id))
    return cache.invalidate_pattern(CacheKeys.review_pattern(tmdb_id))


class MovieWriteService:
    """Base for services whose writes change what a cached movie shows.

    Writes mark the movie stale; the cached view and review pages are
    dropped by :meth:`commit`, after the transaction is durable, so a read
    racing the commit cannot leave a pre-commit page in the cache.
    """

    def __init__(self, session: AsyncSession, cache: CacheService) -> None:
        self.session = session
        self.cache = cache
        self._stale: set[int] = set()

    def mark_stale(self, tmdb_id: int) -> None:
        self._stale.add(tmdb_id)

    async def commit(self) -> None:
        await self.session.commit()
        stale, self._stale = self._stale, set()
        for tmdb_id in sorted(stale):
            invalidate_movie(self.cache, tmdb_id)


class MovieResolver:
    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService,
        tmdb: TmdbClient | None,
        refresh_after: timedelta = DEFAULT_REFRESH_AFTER,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.movies = MovieRepository(session)
        self.cache = cache
        self.tmdb = tmdb
        self.refresh_after = refresh_after
        self.clock = clock

    async def resolve(self, tmdb_id: int) -> dict[str, Any]:
        """Movie view for ``tmdb_id``, served from cache when possible."""
        key = CacheKeys.movie(tmdb_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        movie = await self.ensure(tmdb_id)
        view = movie_view(movie)
        self.cache.set(key, view)
        return view

    async def ensure(self, tmdb_id: int) -> MovieTable:
        """Local record for ``tmdb_id``, created or refreshed from TMDB as needed."""
        movie = await self.movies.get_by_tmdb_id(tmdb_id, active_only=False)
        if movie is not None and not movie.is_active:
            raise NotFoundError("Movie", tmdb_id)

        if movie is None:
            data = await self._fetch(tmdb_id)
            movie = MovieTable(tmdb_id=tmdb_id, cast=[], genres=[])
            apply_tmdb_details(movie, data, self.clock())
            movie.slug = f"{slugify(movie.title) or 'movie'}-{tmdb_id}"
            await self.movies.add(movie)
            logger.info(f"Created movie {movie.title} (TMDB ID: {tmdb_id})")
            return movie

        if self.needs_refresh(movie):
            try:
                await self.refresh(movie)
            except (UpstreamError, NotFoundError, ServiceNotReadyError) as exc:
                logger.warning(f"Refresh of movie {tmdb_id} failed, serving stored record: {exc}")
        return movie

    def needs_refresh(self, movie: MovieTable) -> bool:
        return self.clock() - as_utc(movie.tmdb_last_updated) > self.refresh_after

    async def refresh(self, movie: MovieTable) -> MovieTable:
        data = await self._fetch(movie.tmdb_id)
        apply_tmdb_details(movie, data, self.clock())
        await self.movies.session.flush()
        self.cache.delete(CacheKeys.movie(movie.tmdb_id))
        logger.info(f"Refreshed movie {movie.title} (TMDB ID: {movie.tmdb_id})")
        return movie

    async def _fetch(self, tmdb_id: int) -> dict[str, Any]:
        if self.tmdb is None:
            raise ServiceNotReadyError("TMDB service")
        try:
            return await self.tmdb.movie_details(tmdb_id)
        except UpstreamHTTPError as exc:
            if exc.status == 404:
                raise NotFoundError("Movie", tmdb_id) from exc
            raise


class ReviewPageResolver:
    """Cached pages of published reviews for one movie, newest first."""

    def __init__(self, session: AsyncSession, cache: CacheService) -> None:
        self.reviews = ReviewRepository(session)
        self.cache = cache

    async def page(self, tmdb_id: int, page: int = 1, limit: int = 10) -> dict[str, Any]:
        key = CacheKeys.review_page(tmdb_id, page, limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows, total = await self.reviews.published_page(tmdb_id, offset_for(page, limit), limit)
        result = {
            "reviews": [review_view(review, author) for review, author in rows],
            "pagination": page_envelope(page, limit, total),
        }
        self.cache.set(key, result)
        return result

    def invalidate(self, tmdb_id: int) -> int:
        return invalidate_movie(self.cache, tmdb_id)
