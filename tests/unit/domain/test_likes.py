"""Tests for likes on reviews and comments."""

import pytest

from reelcritic.cache.service import CacheService
from reelcritic.domain.content import CONTENT_REPOSITORIES, ContentKind, content_repository
from reelcritic.domain.likes import LikeService
from reelcritic.domain.resolvers import MovieResolver
from reelcritic.domain.reviews import ReviewService
from reelcritic.errors import NotFoundError
from reelcritic.persistence.repositories import CommentRepository, ReviewRepository

CONTENT = "Slow burn that pays off in the final act."


class TestContentKind:
    """Every kind maps to the repository holding its rows."""

    def test_lookup_table_is_complete(self) -> None:
        assert set(CONTENT_REPOSITORIES) == set(ContentKind)

    def test_repositories(self, session) -> None:
        assert isinstance(content_repository(ContentKind.REVIEW, session), ReviewRepository)
        assert isinstance(content_repository(ContentKind.COMMENT, session), CommentRepository)

    def test_wire_values(self) -> None:
        assert ContentKind("Review") is ContentKind.REVIEW
        with pytest.raises(ValueError):
            ContentKind("Movie")


class TestLikeService:
    """Test toggling, counting and batch checks."""

    @pytest.fixture
    async def review(self, session, cache: CacheService, resolver: MovieResolver, make_user):
        author = await make_user("author")
        return await ReviewService(session, cache).create(
            await resolver.ensure(5), author, "Slow burn", CONTENT, 4
        )

    async def test_toggle_likes_then_unlikes(
        self, session, cache: CacheService, review, make_user
    ) -> None:
        fan = await make_user("fan")
        likes = LikeService(session, cache)

        first = await likes.toggle(fan.id, ContentKind.REVIEW, review.id)
        assert first == {"liked": True, "action": "liked", "likeCount": 1}
        assert await likes.has_liked(fan.id, ContentKind.REVIEW, review.id)

        second = await likes.toggle(fan.id, ContentKind.REVIEW, review.id)
        assert second == {"liked": False, "action": "unliked", "likeCount": 0}
        assert review.likes == 0
        assert await likes.count(ContentKind.REVIEW, review.id) == 0

    async def test_toggle_invalidates_movie(
        self, session, cache: CacheService, review, make_user
    ) -> None:
        fan = await make_user("fan")
        cache.set("movie_5", {"title": "cached"})
        cache.set("reviews_5_1_10", {"reviews": []})

        likes = LikeService(session, cache)
        await likes.toggle(fan.id, ContentKind.REVIEW, review.id)
        await likes.commit()

        assert cache.get("movie_5") is None
        assert cache.get("reviews_5_1_10") is None

    async def test_comment_likes(
        self, session, cache: CacheService, review, make_user
    ) -> None:
        fan = await make_user("fan")
        comment = await ReviewService(session, cache).add_comment(review, fan, "Agreed")
        likes = LikeService(session, cache)

        result = await likes.toggle(fan.id, ContentKind.COMMENT, comment.id)

        assert result["likeCount"] == 1
        assert comment.likes == 1
        assert await likes.stats(ContentKind.COMMENT, comment.id) == {
            "totalLikes": 1,
            "recentLikes": 1,
        }

    async def test_unknown_target(self, session, cache: CacheService, make_user) -> None:
        fan = await make_user("fan")
        with pytest.raises(NotFoundError):
            await LikeService(session, cache).toggle(fan.id, ContentKind.COMMENT, "missing")

    async def test_batch_check(self, session, cache: CacheService, review, make_user) -> None:
        """Results are keyed by kind and id."""
        fan = await make_user("fan")
        likes = LikeService(session, cache)
        await likes.toggle(fan.id, ContentKind.REVIEW, review.id)

        result = await likes.batch_check(
            fan.id, [(ContentKind.REVIEW, review.id), (ContentKind.COMMENT, "c1")]
        )

        assert result == {f"Review_{review.id}": True, "Comment_c1": False}
