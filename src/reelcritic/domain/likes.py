"""Likes on reviews and comments."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.domain.content import ContentKind, content_repository
from reelcritic.domain.resolvers import MovieWriteService
from reelcritic.errors import NotFoundError
from reelcritic.persistence.repositories import LikeRepository
from reelcritic.persistence.tables import LikeTable

if TYPE_CHECKING:
    from reelcritic.cache.service import CacheService

logger = logging.getLogger(__name__)


class LikeService(MovieWriteService):
    def __init__(self, session: AsyncSession, cache: CacheService) -> None:
        super().__init__(session, cache)
        self.likes = LikeRepository(session)

    async def toggle(self, user_id: str, kind: ContentKind, content_id: str) -> dict[str, Any]:
        """Like the target, or remove the like if it already exists."""
        targets = content_repository(kind, self.session)
        target = await targets.get(content_id)
        if target is None:
            raise NotFoundError(kind.value, content_id)

        existing = await self.likes.find(user_id, kind.value, content_id)
        if existing is not None:
            await self.likes.delete(existing)
            count = await targets.adjust_likes(target, -1)
            liked, action = False, "unliked"
        else:
            await self.likes.add(
                LikeTable(user_id=user_id, content_kind=kind.value, content_id=content_id)
            )
            count = await targets.adjust_likes(target, 1)
            liked, action = True, "liked"

        self.mark_stale(await targets.movie_tmdb_id(target))
        logger.debug(f"User {user_id} {action} {kind.value} {content_id}")
        return {"liked": liked, "action": action, "likeCount": count}

    async def has_liked(self, user_id: str, kind: ContentKind, content_id: str) -> bool:
        return await self.likes.find(user_id, kind.value, content_id) is not None

    async def count(self, kind: ContentKind, content_id: str) -> int:
        return await self.likes.count_for(kind.value, content_id)

    async def stats(self, kind: ContentKind, content_id: str) -> dict[str, int]:
        since = datetime.now(timezone.utc) - timedelta(hours=24)
        return {
            "totalLikes": await self.likes.count_for(kind.value, content_id),
            "recentLikes": await self.likes.count_for(kind.value, content_id, since=since),
        }

    async def batch_check(
        self, user_id: str, items: list[tuple[ContentKind, str]]
    ) -> dict[str, bool]:
        """Map ``"{kind}_{id}"`` to whether the user liked that item."""
        result: dict[str, bool] = {}
        for kind in ContentKind:
            ids = [content_id for item_kind, content_id in items if item_kind is kind]
            liked = await self.likes.liked_ids(user_id, kind.value, ids)
            for content_id in ids:
                result[f"{kind.value}_{content_id}"] = content_id in liked
        return result
