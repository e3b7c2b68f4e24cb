"""Review and comment lifecycle.

Every mutation recomputes the aggregates that depend on it (movie rating
and review count, author review total, comment and reply counters) and
marks the affected movie stale. Callers finish with ``commit()``, which
commits the session and then drops that movie's cached view and review
pages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.domain.resolvers import MovieWriteService
from reelcritic.domain.text import read_time, slugify, word_count
from reelcritic.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from reelcritic.persistence.repositories import (
    CommentRepository,
    MovieRepository,
    ReviewRepository,
    UserRepository,
)
from reelcritic.persistence.tables import CommentTable, MovieTable, ReviewTable, UserTable

if TYPE_CHECKING:
    from reelcritic.cache.service import CacheService

logger = logging.getLogger(__name__)


class ReviewService(MovieWriteService):
    def __init__(self, session: AsyncSession, cache: CacheService) -> None:
        super().__init__(session, cache)
        self.movies = MovieRepository(session)
        self.reviews = ReviewRepository(session)
        self.comments = CommentRepository(session)
        self.users = UserRepository(session)

    async def get(self, review_id: str) -> tuple[ReviewTable, UserTable]:
        found = await self.reviews.get_with_author(review_id)
        if found is None:
            raise NotFoundError("Review", review_id)
        return found

    async def create(
        self, movie: MovieTable, author: UserTable, title: str, content: str, rating: int
    ) -> ReviewTable:
        """Publish ``author``'s review of ``movie``; one review per author and movie."""
        if await self.reviews.find_by_author(movie.id, author.id) is not None:
            raise ConflictError("You have already reviewed this movie", status_code=400)

        words = word_count(content)
        review = await self.reviews.add(
            ReviewTable(
                movie_id=movie.id,
                tmdb_id=movie.tmdb_id,
                author_id=author.id,
                title=title,
                content=content,
                rating=rating,
                word_count=words,
                read_time=read_time(words),
                slug=slugify(title),
            )
        )
        await self._after_change(movie, author)
        logger.info(f"Review created by {author.username} for movie {movie.title}")
        return review

    async def update(
        self,
        review: ReviewTable,
        editor: UserTable,
        *,
        title: str | None = None,
        content: str | None = None,
        rating: int | None = None,
    ) -> ReviewTable:
        self._check_owner(review.author_id, editor, "update", "reviews")
        if title:
            review.title = title
        if content:
            review.content = content
            review.word_count = word_count(content)
            review.read_time = read_time(review.word_count)
        if rating:
            review.rating = rating
        await self.session.flush()

        await self._after_change(await self._movie_of(review))
        logger.info(f"Review {review.id} updated by {editor.username}")
        return review

    async def delete(self, review: ReviewTable, editor: UserTable) -> None:
        self._check_owner(review.author_id, editor, "delete", "reviews")
        movie = await self._movie_of(review)
        author = await self.users.get(review.author_id)
        await self.reviews.remove(review)
        await self._after_change(movie, author)
        logger.info(f"Review {review.id} deleted by {editor.username}")

    async def add_comment(
        self,
        review: ReviewTable,
        author: UserTable,
        content: str,
        parent_id: str | None = None,
    ) -> CommentTable:
        parent: CommentTable | None = None
        if parent_id is not None:
            parent = await self.comments.get(parent_id)
            if parent is None or parent.review_id != review.id:
                raise ValidationError("Parent comment does not belong to this review")

        comment = await self.comments.add(
            CommentTable(
                review_id=review.id,
                author_id=author.id,
                content=content,
                parent_id=parent_id,
                word_count=word_count(content),
            )
        )
        review.comment_count += 1
        if parent is not None:
            parent.reply_count += 1
        await self.session.flush()

        self.mark_stale(review.tmdb_id)
        logger.info(f"Comment added by {author.username} to review {review.id}")
        return comment

    @staticmethod
    def _check_owner(owner_id: str, editor: UserTable, action: str, what: str) -> None:
        if owner_id != editor.id and not editor.is_admin:
            raise AuthorizationError(f"You can only {action} your own {what}")

    async def _movie_of(self, review: ReviewTable) -> MovieTable:
        movie = await self.movies.get(review.movie_id)
        if movie is None:
            raise NotFoundError("Movie", review.tmdb_id)
        return movie

    async def _after_change(self, movie: MovieTable, author: UserTable | None = None) -> None:
        await self.movies.update_review_stats(movie)
        if author is not None:
            author.total_reviews = await self.reviews.count(
                ReviewTable.author_id == author.id, ReviewTable.is_published.is_(True)
            )
            await self.session.flush()
        self.mark_stale(movie.tmdb_id)
