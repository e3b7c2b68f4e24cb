"""Likes on reviews and comments.

Responses follow ``{success, message?, data}``; ``kind`` path segments are
``Review`` or ``Comment``.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Path, Query

from reelcritic.api.deps import CurrentUser, LikeServiceDep, SessionDep
from reelcritic.api.schemas import BatchLikeCheck, LikeTarget
from reelcritic.domain.content import ContentKind
from reelcritic.domain.views import author_view
from reelcritic.persistence.repositories import LikeRepository

router = APIRouter(prefix="/likes", tags=["likes"])

KindPath = Annotated[ContentKind, Path(alias="kind")]
ContentIdPath = Annotated[str, Path(alias="id", min_length=1)]


@router.post("/toggle")
async def toggle_like(
    body: LikeTarget, user: CurrentUser, likes: LikeServiceDep
) -> dict[str, Any]:
    kind = body.content_type
    result = await likes.toggle(user.id, kind, body.content_id)
    await likes.commit()
    return {
        "success": True,
        "message": f"{kind.value} {result['action']} successfully",
        "data": {**result, "contentId": body.content_id, "contentType": kind.value},
    }


@router.post("/batch-check")
async def batch_check(
    body: BatchLikeCheck, user: CurrentUser, likes: LikeServiceDep
) -> dict[str, Any]:
    items = [(item.content_type, item.content_id) for item in body.items]
    return {"success": True, "data": await likes.batch_check(user.id, items)}


@router.get("/user/recent")
async def recent_likes(
    user: CurrentUser,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> dict[str, Any]:
    rows = await LikeRepository(session).recent_for_user(user.id, limit)
    recent = [
        {
            "contentId": like.content_id,
            "contentType": like.content_kind,
            "createdAt": like.created_at.isoformat(),
        }
        for like in rows
    ]
    return {"success": True, "data": {"likes": recent, "count": len(recent)}}


@router.get("/count/{kind}/{id}")
async def like_count(
    kind: KindPath, content_id: ContentIdPath, likes: LikeServiceDep
) -> dict[str, Any]:
    return {
        "success": True,
        "data": {
            "contentId": content_id,
            "contentType": kind.value,
            "likeCount": await likes.count(kind, content_id),
        },
    }


@router.get("/check/{kind}/{id}")
async def check_like(
    kind: KindPath, content_id: ContentIdPath, user: CurrentUser, likes: LikeServiceDep
) -> dict[str, Any]:
    return {
        "success": True,
        "data": {
            "contentId": content_id,
            "contentType": kind.value,
            "hasLiked": await likes.has_liked(user.id, kind, content_id),
        },
    }


@router.get("/stats/{kind}/{id}")
async def like_stats(
    kind: KindPath, content_id: ContentIdPath, likes: LikeServiceDep
) -> dict[str, Any]:
    stats = await likes.stats(kind, content_id)
    return {
        "success": True,
        "data": {"contentId": content_id, "contentType": kind.value, **stats},
    }


@router.get("/{kind}/{id}/users")
async def liking_users(
    kind: KindPath,
    content_id: ContentIdPath,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict[str, Any]:
    rows = await LikeRepository(session).users_for(kind.value, content_id, 0, limit)
    users = [
        {"user": author_view(user), "createdAt": like.created_at.isoformat()}
        for like, user in rows
    ]
    return {
        "success": True,
        "data": {
            "contentId": content_id,
            "contentType": kind.value,
            "likes": users,
            "count": len(users),
        },
    }
