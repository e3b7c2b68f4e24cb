"""Fixtures for domain tests backed by the in-memory database."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.cache.service import CacheService
from reelcritic.domain.resolvers import MovieResolver
from reelcritic.persistence.repositories import UserRepository
from reelcritic.persistence.tables import UserTable
from reelcritic.tmdb.client import TmdbClient

UserFactory = Callable[..., Awaitable[UserTable]]


@pytest.fixture
def make_user(session: AsyncSession) -> UserFactory:
    async def factory(username: str = "alice", is_admin: bool = False) -> UserTable:
        return await UserRepository(session).add(
            UserTable(
                username=username,
                email=f"{username}@example.com",
                password_hash="not-a-real-hash",
                is_admin=is_admin,
            )
        )

    return factory


@pytest.fixture
def resolver(session: AsyncSession, cache: CacheService, tmdb: TmdbClient) -> MovieResolver:
    return MovieResolver(session, cache, tmdb)
