"""Admin dashboard - site totals and recent activity at a glance."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from reelcritic.api.deps import AdminUser, SessionDep
from reelcritic.domain.text import as_utc
from reelcritic.persistence.repositories import (
    CommentRepository,
    GenreRepository,
    MovieRepository,
    ReviewRepository,
    UserRepository,
)
from reelcritic.persistence.tables import CommentTable, ReviewTable, UserTable

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

ACTIVE_WINDOW = timedelta(days=30)
RECENT_PER_KIND = 5
RECENT_TOTAL = 10


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityItem(_CamelModel):
    """One line of the recent activity feed."""

    id: str
    type: Literal["review", "comment", "user"]
    action: str
    time: str
    created_at: datetime


class DashboardStats(_CamelModel):
    total_users: int
    total_movies: int
    total_reviews: int
    total_comments: int
    total_genres: int
    active_users: int
    recent_activity: list[ActivityItem]


class DashboardResponse(_CamelModel):
    message: str
    stats: DashboardStats


def time_ago(moment: datetime, now: datetime | None = None) -> str:
    seconds = int(((now or datetime.now(timezone.utc)) - as_utc(moment)).total_seconds())
    if seconds < 60:
        return f"{seconds} seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


@router.get("/stats", response_model=DashboardResponse)
async def dashboard_stats(_admin: AdminUser, session: SessionDep) -> DashboardResponse:
    """Totals per entity, users active in the last 30 days, latest activity."""
    users = UserRepository(session)
    reviews = ReviewRepository(session)
    comments = CommentRepository(session)
    now = datetime.now(timezone.utc)

    activity = [
        ActivityItem(
            id=review.id,
            type="review",
            action=f'New review "{review.title}" by {author.username}',
            time=time_ago(review.created_at, now),
            created_at=as_utc(review.created_at),
        )
        for review, _, author in await reviews.recent_with_movies(RECENT_PER_KIND)
    ]
    activity += [
        ActivityItem(
            id=comment.id,
            type="comment",
            action=f"New comment by {author.username}",
            time=time_ago(comment.created_at, now),
            created_at=as_utc(comment.created_at),
        )
        for comment, author in await comments.recent_with_authors(RECENT_PER_KIND)
    ]
    activity += [
        ActivityItem(
            id=user.id,
            type="user",
            action=f"New user registered: {user.username}",
            time=time_ago(user.created_at, now),
            created_at=as_utc(user.created_at),
        )
        for user in await users.recent(RECENT_PER_KIND)
    ]
    activity.sort(key=lambda item: item.created_at, reverse=True)

    stats = DashboardStats(
        total_users=await users.count(),
        total_movies=await MovieRepository(session).count(),
        total_reviews=await reviews.count(ReviewTable.is_published.is_(True)),
        total_comments=await comments.count(CommentTable.is_published.is_(True)),
        total_genres=await GenreRepository(session).count(),
        active_users=await users.count(UserTable.updated_at >= now - ACTIVE_WINDOW),
        recent_activity=activity[:RECENT_TOTAL],
    )
    return DashboardResponse(message="Dashboard statistics retrieved successfully", stats=stats)
