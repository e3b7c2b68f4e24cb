"""Shared FastAPI dependencies for ReelCritic routers.

Provides:
- Access to the startup-built ``AppServices`` container
- Per-request database sessions
- Current-user resolution from the session cookie or bearer token
- Resolver and service factories bound to the request session
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.domain.likes import LikeService
from reelcritic.domain.resolvers import MovieResolver, ReviewPageResolver
from reelcritic.domain.reviews import ReviewService
from reelcritic.errors import AuthenticationError, AuthorizationError, ServiceNotReadyError
from reelcritic.observability.logging import bind_user
from reelcritic.persistence.repositories import UserRepository
from reelcritic.persistence.tables import UserTable
from reelcritic.runtime import AppServices
from reelcritic.security.tokens import token_from_request
from reelcritic.tmdb.client import TmdbClient

# =============================================================================
# Services and sessions
# =============================================================================


def get_services(request: Request) -> AppServices:
    """The service container, or 503 while the application is starting."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceNotReadyError("Application services")
    return services


ServicesDep = Annotated[AppServices, Depends(get_services)]


async def get_session(services: ServicesDep) -> AsyncGenerator[AsyncSession, None]:
    async for session in services.db.session():
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_tmdb(services: ServicesDep) -> TmdbClient:
    return services.require_tmdb()


TmdbDep = Annotated[TmdbClient, Depends(get_tmdb)]

TmdbIdPath = Annotated[int, Path(alias="tmdbId", ge=1, description="TMDB movie id")]

# =============================================================================
# Authentication
# =============================================================================


async def get_optional_user(
    request: Request, services: ServicesDep, session: SessionDep
) -> UserTable | None:
    token = token_from_request(request, services.settings.auth_cookie_name)
    if token is None:
        return None
    user_id = services.tokens.decode(token)
    if user_id is None:
        return None
    user = await UserRepository(session).get(user_id)
    if user is not None:
        bind_user(user.id)
    return user


OptionalUser = Annotated[UserTable | None, Depends(get_optional_user)]


async def get_current_user(request: Request, user: OptionalUser) -> UserTable:
    if user is None:
        has_token = "authorization" in request.headers or request.cookies
        raise AuthenticationError(
            "Not authorized, token failed" if has_token else "Not authorized, no token"
        )
    return user


CurrentUser = Annotated[UserTable, Depends(get_current_user)]


async def get_admin_user(user: CurrentUser) -> UserTable:
    if not user.is_admin:
        raise AuthorizationError("Not authorized as an admin")
    return user


AdminUser = Annotated[UserTable, Depends(get_admin_user)]

# =============================================================================
# Domain services bound to the request session
# =============================================================================


def get_movie_resolver(services: ServicesDep, session: SessionDep) -> MovieResolver:
    return MovieResolver(
        session,
        services.cache,
        services.tmdb,
        refresh_after=timedelta(days=services.settings.movie_refresh_days),
    )


def get_review_pages(services: ServicesDep, session: SessionDep) -> ReviewPageResolver:
    return ReviewPageResolver(session, services.cache)


def get_like_service(services: ServicesDep, session: SessionDep) -> LikeService:
    return LikeService(session, services.cache)


def get_review_service(services: ServicesDep, session: SessionDep) -> ReviewService:
    return ReviewService(session, services.cache)


MovieResolverDep = Annotated[MovieResolver, Depends(get_movie_resolver)]
ReviewPagesDep = Annotated[ReviewPageResolver, Depends(get_review_pages)]
LikeServiceDep = Annotated[LikeService, Depends(get_like_service)]
ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]
