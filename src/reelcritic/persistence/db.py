"""Async database engine and session factory.

Provides PostgreSQL async connectivity using the SQLAlchemy 2.0 asyncio
extension with the asyncpg driver. SQLite URLs (``sqlite+aiosqlite://``)
are accepted for local development and tests.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from reelcritic.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL."""
    url = settings.database_url
    kwargs: dict[str, Any] = {"echo": False}
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        kwargs.update(
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Database:
    """Engine plus session factory, owned by the application services."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(create_engine(settings))

    async def create_all(self) -> None:
        """Create tables if they do not exist."""
        from reelcritic.persistence.tables import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session for FastAPI dependency injection."""
        session = self.session_factory()
        try:
            yield session
        finally:
            await session.close()

    @asynccontextmanager
    async def session_context(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations.

        Usage:
            async with db.session_context() as session:
                session.add(row)
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session_context() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False

    async def close(self) -> None:
        await self.engine.dispose()
