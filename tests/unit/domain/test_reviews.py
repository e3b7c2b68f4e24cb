"""Tests for the review and comment lifecycle."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from reelcritic.cache.service import CacheService
from reelcritic.config import Settings
from reelcritic.domain.resolvers import MovieResolver, ReviewPageResolver
from reelcritic.domain.reviews import ReviewService
from reelcritic.errors import AuthorizationError, ConflictError, ValidationError
from reelcritic.persistence.db import Database
from reelcritic.persistence.repositories import (
    CommentRepository,
    ReviewRepository,
    UserRepository,
)
from reelcritic.persistence.tables import UserTable
from reelcritic.tmdb.client import TmdbClient

CONTENT = "A tense, beautifully shot crime saga with two great leads."


class TestCreateReview:
    """Test publishing reviews."""

    async def test_creating_a_review_invalidates_cached_pages(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        """A new review under movie 5 drops every cached page of movie 5."""
        movie = await resolver.ensure(5)
        author = await make_user()
        pages = ReviewPageResolver(session, cache)
        await pages.page(5, 1, 10)
        await pages.page(5, 2, 10)
        cache.set("reviews_50_1_10", {"reviews": []})
        assert cache.get("reviews_5_1_10") is not None

        reviews = ReviewService(session, cache)
        await reviews.create(movie, author, "Heat", CONTENT, 5)
        assert cache.get("reviews_5_1_10") is not None

        await reviews.commit()

        assert cache.get("reviews_5_1_10") is None
        assert cache.get("reviews_5_2_10") is None
        assert cache.get("reviews_50_1_10") == {"reviews": []}
        page = await pages.page(5, 1, 10)
        assert [r["title"] for r in page["reviews"]] == ["Heat"]
        assert page["reviews"][0]["author"]["username"] == "alice"

    async def test_aggregates_are_recomputed(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        alice = await make_user("alice")
        bob = await make_user("bob")
        reviews = ReviewService(session, cache)

        await reviews.create(movie, alice, "Great", CONTENT, 5)
        await reviews.create(movie, bob, "Fine", CONTENT, 2)

        assert movie.review_count == 2
        assert movie.average_rating == 3.5
        assert alice.total_reviews == 1

    async def test_reading_statistics_and_slug(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        review = await ReviewService(session, cache).create(
            movie, await make_user(), "Heat: A Study!", CONTENT, 4
        )
        assert review.word_count == 10
        assert review.read_time == 1
        assert review.slug == "heat-a-study"
        assert review.tmdb_id == 5

    async def test_one_review_per_author_and_movie(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        author = await make_user()
        reviews = ReviewService(session, cache)
        await reviews.create(movie, author, "First", CONTENT, 4)

        with pytest.raises(ConflictError) as exc_info:
            await reviews.create(movie, author, "Second", CONTENT, 3)
        assert exc_info.value.status_code == 400


class TestChangeReview:
    """Test updating and deleting reviews."""

    async def test_only_author_or_admin_may_update(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        author = await make_user("author")
        stranger = await make_user("stranger")
        admin = await make_user("admin", is_admin=True)
        reviews = ReviewService(session, cache)
        review = await reviews.create(movie, author, "Heat", CONTENT, 4)

        with pytest.raises(AuthorizationError):
            await reviews.update(review, stranger, rating=1)

        await reviews.update(review, admin, rating=2)
        assert review.rating == 2
        assert movie.average_rating == 2.0

    async def test_update_recounts_words(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        author = await make_user()
        reviews = ReviewService(session, cache)
        review = await reviews.create(movie, author, "Heat", CONTENT, 4)
        cache.set("movie_5", {"title": "cached"})

        await reviews.update(review, author, content="word " * 450)

        assert review.word_count == 450
        assert review.read_time == 3
        assert cache.get("movie_5") is None

    async def test_delete_removes_comments_and_resets_stats(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        author = await make_user()
        reviews = ReviewService(session, cache)
        review = await reviews.create(movie, author, "Heat", CONTENT, 4)
        await reviews.add_comment(review, author, "Thanks for reading")

        await reviews.delete(review, author)

        assert await ReviewRepository(session).count() == 0
        assert await CommentRepository(session).count() == 0
        assert movie.review_count == 0
        assert movie.average_rating == 0.0
        assert author.total_reviews == 0


class TestComments:
    """Test comments and replies."""

    async def test_reply_counters(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        movie = await resolver.ensure(5)
        author = await make_user()
        reviews = ReviewService(session, cache)
        review = await reviews.create(movie, author, "Heat", CONTENT, 4)

        parent = await reviews.add_comment(review, author, "First!")
        reply = await reviews.add_comment(review, author, "Agreed", parent_id=parent.id)

        assert review.comment_count == 2
        assert parent.reply_count == 1
        assert reply.parent_id == parent.id

    async def test_parent_must_belong_to_review(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        author = await make_user()
        reviews = ReviewService(session, cache)
        first = await reviews.create(await resolver.ensure(5), author, "Heat", CONTENT, 4)
        second = await reviews.create(await resolver.ensure(6), author, "Ronin", CONTENT, 4)
        parent = await reviews.add_comment(first, author, "On the first review")

        with pytest.raises(ValidationError):
            await reviews.add_comment(second, author, "Misplaced", parent_id=parent.id)

    async def test_commenting_invalidates_movie(
        self, session, cache: CacheService, resolver: MovieResolver, make_user
    ) -> None:
        author = await make_user()
        reviews = ReviewService(session, cache)
        review = await reviews.create(await resolver.ensure(5), author, "Heat", CONTENT, 4)
        cache.set("reviews_5_1_10", {"reviews": []})

        await reviews.add_comment(review, author, "Nice")
        await reviews.commit()

        assert cache.get("reviews_5_1_10") is None


class TestConcurrentReaders:
    """A reader racing the writer's commit must not pin a stale page."""

    @pytest.fixture
    async def file_databases(self, tmp_path: Path) -> AsyncIterator[tuple[Database, Database]]:
        settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'reviews.db'}")
        writer, reader = Database.from_settings(settings), Database.from_settings(settings)
        await writer.create_all()
        yield writer, reader
        await writer.close()
        await reader.close()

    async def test_page_read_before_commit_is_dropped(
        self, file_databases, cache: CacheService, tmdb: TmdbClient
    ) -> None:
        writer_db, reader_db = file_databases
        async with writer_db.session_factory() as writer:
            movie = await MovieResolver(writer, cache, tmdb).ensure(5)
            author = await UserRepository(writer).add(
                UserTable(username="alice", email="alice@example.com", password_hash="x")
            )
            await writer.commit()

            reviews = ReviewService(writer, cache)
            await reviews.create(movie, author, "Heat", CONTENT, 5)
            async with reader_db.session_factory() as reader:
                before = await ReviewPageResolver(reader, cache).page(5, 1, 10)
            assert before["pagination"]["totalItems"] == 0

            await reviews.commit()

        async with reader_db.session_factory() as reader:
            after = await ReviewPageResolver(reader, cache).page(5, 1, 10)
        assert after["pagination"]["totalItems"] == 1
        assert after["reviews"][0]["title"] == "Heat"
