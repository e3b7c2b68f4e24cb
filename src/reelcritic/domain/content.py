"""Likeable content kinds.

A like targets either a review or a comment. Each kind maps to the
repository that can load the target, adjust its like counter and name the
movie it belongs to, so callers never branch on the kind themselves.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.persistence.repositories import CommentRepository, ReviewRepository


class ContentKind(str, Enum):
    REVIEW = "Review"
    COMMENT = "Comment"


class LikeableRepository(Protocol):
    async def get(self, row_id: str) -> Any | None: ...

    async def adjust_likes(self, row: Any, delta: int) -> int: ...

    async def movie_tmdb_id(self, row: Any) -> int: ...


CONTENT_REPOSITORIES: dict[ContentKind, type[ReviewRepository] | type[CommentRepository]] = {
    ContentKind.REVIEW: ReviewRepository,
    ContentKind.COMMENT: CommentRepository,
}


def content_repository(kind: ContentKind, session: AsyncSession) -> LikeableRepository:
    return CONTENT_REPOSITORIES[kind](session)
