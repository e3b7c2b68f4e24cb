"""Shared fixtures: fake clocks, an in-memory database and a stubbed TMDB."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from reelcritic.cache.service import CacheService
from reelcritic.config import Settings
from reelcritic.persistence.db import Database
from reelcritic.tmdb.client import TmdbClient
from reelcritic.tmdb.governor import SlidingWindowGovernor
from tests.fakes import SQLITE_URL, TMDB_KEY, FakeClock, TmdbStub


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> CacheService:
    return CacheService(timer=clock)


@pytest.fixture
def tmdb_stub() -> TmdbStub:
    return TmdbStub()


@pytest_asyncio.fixture
async def tmdb(cache: CacheService, tmdb_stub: TmdbStub) -> AsyncIterator[TmdbClient]:
    client = TmdbClient(
        TMDB_KEY,
        cache,
        SlidingWindowGovernor(max_requests=100),
        transport=httpx.MockTransport(tmdb_stub),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def database() -> AsyncIterator[Database]:
    db = Database.from_settings(Settings(database_url=SQLITE_URL))
    await db.create_all()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session_factory() as session:
        yield session
