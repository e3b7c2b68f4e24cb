"""Tests for the read-through movie and review page resolvers."""

from datetime import datetime, timedelta, timezone

import pytest

from reelcritic.cache.service import CacheService
from reelcritic.domain.resolvers import (
    MovieResolver,
    ReviewPageResolver,
    apply_tmdb_details,
    invalidate_movie,
)
from reelcritic.errors import NotFoundError, ServiceNotReadyError
from reelcritic.persistence.repositories import MovieRepository
from reelcritic.persistence.tables import MovieTable
from tests.fakes import movie_payload

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestApplyTmdbDetails:
    """Test copying TMDB details onto a movie record."""

    def test_copies_fields_and_credits(self) -> None:
        movie = apply_tmdb_details(MovieTable(tmdb_id=5), movie_payload(5, "Heat"), NOW)
        assert movie.title == "Heat"
        assert movie.genres == ["Action", "Drama"]
        assert movie.release_date.isoformat() == "2020-05-01"
        assert movie.director == {"name": "The Director", "profilePath": "/dir.jpg"}
        assert movie.cast[0] == {
            "name": "Lead Actor",
            "character": "Hero",
            "profilePath": "/lead.jpg",
        }
        assert movie.tmdb_last_updated == NOW

    def test_cast_is_capped(self) -> None:
        cast = [{"name": f"Actor {i}"} for i in range(25)]
        data = movie_payload(5, credits={"cast": cast, "crew": []})
        movie = apply_tmdb_details(MovieTable(tmdb_id=5), data, NOW)
        assert len(movie.cast) == 10
        assert movie.director is None

    def test_bad_release_date_is_dropped(self) -> None:
        data = movie_payload(5, release_date="soon")
        movie = apply_tmdb_details(MovieTable(tmdb_id=5), data, NOW)
        assert movie.release_date is None


class TestMovieResolver:
    """Test cache, local record and TMDB resolution order."""

    async def test_first_resolution_fetches_once_and_persists(
        self, resolver: MovieResolver, session, tmdb_stub
    ) -> None:
        """An unseen id costs exactly one TMDB call and creates one record."""
        view = await resolver.resolve(99)

        assert tmdb_stub.calls_to("/movie/99") == 1
        assert await MovieRepository(session).count() == 1
        assert view["tmdbId"] == 99
        assert view["title"] == "Movie 99"
        assert view["slug"] == "movie-99-99"
        assert view["director"]["name"] == "The Director"

    async def test_second_resolution_makes_no_external_call(
        self, resolver: MovieResolver, cache: CacheService, tmdb_stub
    ) -> None:
        """Within the freshness window the local record is enough."""
        await resolver.resolve(99)
        cache.flush_all()
        await resolver.resolve(99)
        assert tmdb_stub.calls_to("/movie/99") == 1

    async def test_resolution_is_cached(
        self, resolver: MovieResolver, cache: CacheService
    ) -> None:
        view = await resolver.resolve(99)
        assert cache.get("movie_99") == view

    async def test_stale_record_is_refreshed(
        self, session, cache: CacheService, tmdb, tmdb_stub
    ) -> None:
        """A record older than seven days is refreshed from TMDB."""
        await MovieResolver(session, cache, tmdb, clock=lambda: NOW).resolve(99)
        cache.flush_all()
        tmdb_stub.overrides["/movie/99"] = movie_payload(99, "Director's Cut")

        later = MovieResolver(session, cache, tmdb, clock=lambda: NOW + timedelta(days=8))
        movie = await later.ensure(99)

        assert tmdb_stub.calls_to("/movie/99") == 2
        assert movie.title == "Director's Cut"
        assert movie.tmdb_last_updated == NOW + timedelta(days=8)

    async def test_failed_refresh_serves_stored_record(
        self, session, cache: CacheService, tmdb, tmdb_stub
    ) -> None:
        """A refresh failure is swallowed and the stored record returned."""
        await MovieResolver(session, cache, tmdb, clock=lambda: NOW).resolve(99)
        cache.flush_all()
        tmdb_stub.fail_with = 500

        later = MovieResolver(session, cache, tmdb, clock=lambda: NOW + timedelta(days=8))
        view = await later.resolve(99)

        assert view["title"] == "Movie 99"
        assert tmdb_stub.calls_to("/movie/99") == 2

    async def test_fresh_record_is_not_refreshed(
        self, session, cache: CacheService, tmdb, tmdb_stub
    ) -> None:
        await MovieResolver(session, cache, tmdb, clock=lambda: NOW).resolve(99)
        cache.flush_all()
        later = MovieResolver(session, cache, tmdb, clock=lambda: NOW + timedelta(days=6))
        await later.ensure(99)
        assert tmdb_stub.calls_to("/movie/99") == 1

    async def test_unknown_movie(self, resolver: MovieResolver, session, tmdb_stub) -> None:
        """A TMDB 404 becomes NotFoundError and nothing is stored."""
        tmdb_stub.missing.add(12345)
        with pytest.raises(NotFoundError):
            await resolver.resolve(12345)
        assert await MovieRepository(session).count() == 0

    async def test_inactive_movie_is_not_found(
        self, resolver: MovieResolver, cache: CacheService, tmdb_stub
    ) -> None:
        movie = await resolver.ensure(99)
        movie.is_active = False
        cache.flush_all()
        with pytest.raises(NotFoundError):
            await resolver.resolve(99)
        assert tmdb_stub.calls_to("/movie/99") == 1

    async def test_without_tmdb(self, session, cache: CacheService) -> None:
        """Unseen ids cannot be resolved when TMDB is not configured."""
        with pytest.raises(ServiceNotReadyError):
            await MovieResolver(session, cache, None).resolve(99)


class TestReviewPages:
    """Test cached review pages and their invalidation."""

    async def test_empty_page(self, session, cache: CacheService) -> None:
        page = await ReviewPageResolver(session, cache).page(5, 1, 10)
        assert page["reviews"] == []
        assert page["pagination"] == {
            "currentPage": 1,
            "totalPages": 0,
            "totalItems": 0,
            "hasNextPage": False,
            "hasPrevPage": False,
        }
        assert cache.get("reviews_5_1_10") == page

    def test_invalidate_movie_is_exact(self, cache: CacheService) -> None:
        """Only the movie entry and review pages of that id are dropped."""
        cache.set("movie_42", {"title": "X"})
        cache.set("reviews_42_1_10", {})
        cache.set("reviews_42_2_5", {})
        cache.set("reviews_420_1_10", {})
        cache.set("movie_420", {"title": "Y"})

        assert invalidate_movie(cache, 42) == 2
        assert cache.get("movie_42") is None
        assert cache.get("reviews_42_1_10") is None
        assert cache.get("reviews_420_1_10") == {}
        assert cache.get("movie_420") == {"title": "Y"}
