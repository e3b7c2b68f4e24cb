"""User accounts, profiles and personal movie lists.

Endpoints:
- POST   /users                        - Register (sets the session cookie)
- POST   /users/auth                   - Log in
- POST   /users/logout                 - Clear the session cookie
- GET    /users                        - List users (admin)
- DELETE /users                        - Delete a user by email (admin)
- GET    /users/profile                - Current profile
- PUT    /users/profile                - Update profile and preferences
- GET    /users/favorites              - Favorites of the current user
- POST   /users/favorites/{tmdbId}     - Add a favorite
- DELETE /users/favorites/{tmdbId}     - Remove a favorite
- GET    /users/watch-later            - Watch-later list
- POST   /users/watch-later/{tmdbId}   - Add to watch later
- DELETE /users/watch-later/{tmdbId}   - Remove from watch later
- GET    /users/movie-status/{tmdbId}  - Favorite / watch-later flags
- GET    /users/stats                  - Personal counters
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Response

from reelcritic.api.deps import (
    AdminUser,
    CurrentUser,
    ServicesDep,
    SessionDep,
    TmdbDep,
    TmdbIdPath,
)
from reelcritic.api.schemas import DeleteUserRequest, LoginRequest, ProfileUpdate, RegisterRequest
from reelcritic.domain.views import favorite_view, user_view, watch_later_view
from reelcritic.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from reelcritic.persistence.repositories import (
    FavoriteRepository,
    MovieRepository,
    ReviewRepository,
    UserRepository,
    WatchLaterRepository,
)
from reelcritic.persistence.tables import FavoriteTable, UserTable, WatchLaterTable
from reelcritic.runtime import AppServices
from reelcritic.tmdb.client import TmdbClient
from reelcritic.tmdb.errors import UpstreamHTTPError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _account(user: UserTable) -> dict[str, Any]:
    return {
        "_id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": user.is_admin,
    }


def _set_session_cookie(response: Response, services: AppServices, user: UserTable) -> None:
    settings = services.settings
    response.set_cookie(
        settings.auth_cookie_name,
        services.tokens.issue(user.id),
        max_age=settings.jwt_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.env != "dev",
        samesite="strict",
    )


async def _tmdb_snapshot(tmdb: TmdbClient, tmdb_id: int) -> dict[str, Any]:
    """The subset of TMDB details stored alongside a personal list entry."""
    try:
        data = await tmdb.movie_details(tmdb_id)
    except UpstreamHTTPError as exc:
        if exc.status == 404:
            raise NotFoundError("Movie", tmdb_id) from exc
        raise
    if not data.get("title"):
        raise ValidationError("Movie data from TMDB is incomplete")
    return {
        "title": data["title"],
        "posterPath": data.get("poster_path"),
        "releaseDate": data.get("release_date"),
        "overview": data.get("overview"),
        "genres": [g.get("name") for g in data.get("genres") or []],
        "voteAverage": data.get("vote_average") or 0,
    }


def _is_released(release_date: str | None) -> bool:
    if not release_date:
        return False
    try:
        return date.fromisoformat(release_date) <= date.today()
    except ValueError:
        return False


# =============================================================================
# Account
# =============================================================================


@router.post("", status_code=201)
async def register(
    body: RegisterRequest, response: Response, services: ServicesDep, session: SessionDep
) -> dict[str, Any]:
    """Create an account and start a session for it."""
    users = UserRepository(session)
    if await users.get_by_email(body.email) or await users.get_by_username(body.username):
        raise ConflictError("User already exists", status_code=400)

    user = await users.add(
        UserTable(
            username=body.username,
            email=body.email,
            password_hash=services.passwords.hash(body.password),
        )
    )
    await session.commit()
    logger.info(f"Registered user {user.username}")

    _set_session_cookie(response, services, user)
    return _account(user)


@router.post("/auth")
async def login(
    body: LoginRequest, response: Response, services: ServicesDep, session: SessionDep
) -> dict[str, Any]:
    user = await UserRepository(session).get_by_email(body.email)
    if user is None:
        raise AuthenticationError("User not found")
    if not services.passwords.verify(body.password, user.password_hash):
        raise AuthenticationError("Invalid password")

    _set_session_cookie(response, services, user)
    return _account(user)


@router.post("/logout")
async def logout(response: Response, services: ServicesDep) -> dict[str, str]:
    response.delete_cookie(services.settings.auth_cookie_name, httponly=True)
    return {"message": "Logged out successfully"}


@router.get("")
async def list_users(_admin: AdminUser, session: SessionDep) -> list[dict[str, Any]]:
    return [user_view(user) for user in await UserRepository(session).list_all()]


@router.delete("")
async def delete_user(
    body: DeleteUserRequest, _admin: AdminUser, session: SessionDep
) -> dict[str, str]:
    """Delete a user together with their reviews, comments, likes and lists."""
    users = UserRepository(session)
    user = await users.get_by_email(body.email)
    if user is None:
        raise NotFoundError("User", body.email)
    await users.remove(user)
    await session.commit()
    logger.info(f"Deleted user {body.email}")
    return {"message": "User deleted successfully"}


@router.get("/profile")
async def get_profile(user: CurrentUser) -> dict[str, Any]:
    return user_view(user)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate, user: CurrentUser, services: ServicesDep, session: SessionDep
) -> dict[str, Any]:
    users = UserRepository(session)
    if body.email and body.email.lower() != user.email:
        if await users.is_taken("email", body.email.lower(), exclude_id=user.id):
            raise ConflictError("Email already exists for another user", status_code=400)
        user.email = body.email.lower()
    if body.username and body.username != user.username:
        if await users.is_taken("username", body.username, exclude_id=user.id):
            raise ConflictError("Username already exists for another user", status_code=400)
        user.username = body.username
    if body.password:
        user.password_hash = services.passwords.hash(body.password)

    if body.preferences is not None:
        prefs = body.preferences
        if prefs.favorite_genres is not None:
            user.favorite_genres = prefs.favorite_genres
        if prefs.email_notifications is not None:
            user.email_notifications = prefs.email_notifications
        if prefs.public_profile is not None:
            user.public_profile = prefs.public_profile

    await session.commit()
    return _account(user)


# =============================================================================
# Favorites
# =============================================================================


@router.get("/favorites")
async def get_favorites(user: CurrentUser, session: SessionDep) -> dict[str, Any]:
    favorites = await FavoriteRepository(session).for_user(user.id)
    return {
        "favorites": [favorite_view(f) for f in favorites],
        "totalFavorites": len(favorites),
    }


@router.post("/favorites/{tmdbId}")
async def add_favorite(
    user: CurrentUser,
    services: ServicesDep,
    session: SessionDep,
    tmdb_id: TmdbIdPath,
) -> dict[str, Any]:
    """Add a movie to the current user's favorites.

    Admins may only favorite movies they have reviewed; the favorite then
    links their review. Other users store a snapshot of the TMDB details.
    """
    favorites = FavoriteRepository(session)
    if await favorites.find(user.id, tmdb_id) is not None:
        raise ConflictError("Movie already in favorites", status_code=400)

    if user.is_admin:
        movie = await MovieRepository(session).get_by_tmdb_id(tmdb_id)
        review = (
            await ReviewRepository(session).find_by_author(movie.id, user.id)
            if movie is not None
            else None
        )
        if movie is None or review is None or not review.is_published:
            raise ValidationError("As an admin, you can only favorite movies you have reviewed")
        await favorites.add(
            FavoriteTable(user_id=user.id, tmdb_id=tmdb_id, movie_id=movie.id, review_id=review.id)
        )
        summary = {"tmdbId": tmdb_id, "title": movie.title, "posterPath": movie.poster_path}
    else:
        snapshot = await _tmdb_snapshot(services.require_tmdb(), tmdb_id)
        await favorites.add(FavoriteTable(user_id=user.id, tmdb_id=tmdb_id, tmdb_data=snapshot))
        summary = {
            "tmdbId": tmdb_id,
            "title": snapshot["title"],
            "posterPath": snapshot["posterPath"],
        }

    await session.commit()
    return {"message": "Movie added to favorites", "movie": summary}


@router.delete("/favorites/{tmdbId}")
async def remove_favorite(
    user: CurrentUser, session: SessionDep, tmdb_id: TmdbIdPath
) -> dict[str, str]:
    favorites = FavoriteRepository(session)
    favorite = await favorites.find(user.id, tmdb_id)
    if favorite is None:
        raise NotFoundError("Favorite", tmdb_id)
    await favorites.delete(favorite)
    await session.commit()
    return {"message": "Movie removed from favorites"}


# =============================================================================
# Watch later
# =============================================================================


@router.get("/watch-later")
async def get_watch_later(user: CurrentUser, session: SessionDep) -> dict[str, Any]:
    items = await WatchLaterRepository(session).for_user(user.id)
    return {
        "watchLater": [watch_later_view(item) for item in items],
        "totalWatchLater": len(items),
    }


@router.post("/watch-later/{tmdbId}")
async def add_watch_later(
    user: CurrentUser, tmdb: TmdbDep, session: SessionDep, tmdb_id: TmdbIdPath
) -> dict[str, Any]:
    watch_later = WatchLaterRepository(session)
    if await watch_later.find(user.id, tmdb_id) is not None:
        raise ConflictError("Movie already in watch later", status_code=400)

    snapshot = await _tmdb_snapshot(tmdb, tmdb_id)
    await watch_later.add(
        WatchLaterTable(
            user_id=user.id,
            tmdb_id=tmdb_id,
            tmdb_data=snapshot,
            is_released=_is_released(snapshot["releaseDate"]),
        )
    )
    await session.commit()
    return {
        "message": "Movie added to watch later",
        "movie": {
            "tmdbId": tmdb_id,
            "title": snapshot["title"],
            "posterPath": snapshot["posterPath"],
            "releaseDate": snapshot["releaseDate"],
        },
    }


@router.delete("/watch-later/{tmdbId}")
async def remove_watch_later(
    user: CurrentUser, session: SessionDep, tmdb_id: TmdbIdPath
) -> dict[str, str]:
    watch_later = WatchLaterRepository(session)
    item = await watch_later.find(user.id, tmdb_id)
    if item is None:
        raise NotFoundError("Watch later entry", tmdb_id)
    await watch_later.delete(item)
    await session.commit()
    return {"message": "Movie removed from watch later"}


# =============================================================================
# Status and stats
# =============================================================================


@router.get("/movie-status/{tmdbId}")
async def movie_status(
    user: CurrentUser, session: SessionDep, tmdb_id: TmdbIdPath
) -> dict[str, Any]:
    return {
        "tmdbId": tmdb_id,
        "isFavorite": await FavoriteRepository(session).find(user.id, tmdb_id) is not None,
        "isInWatchLater": await WatchLaterRepository(session).find(user.id, tmdb_id) is not None,
    }


@router.get("/stats")
async def user_stats(user: CurrentUser, session: SessionDep) -> dict[str, int]:
    return {
        "totalReviews": user.total_reviews,
        "totalFavorites": await FavoriteRepository(session).count(
            FavoriteTable.user_id == user.id
        ),
        "totalWatchLater": await WatchLaterRepository(session).count(
            WatchLaterTable.user_id == user.id
        ),
    }
