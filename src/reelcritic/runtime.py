"""Runtime wiring for ReelCritic services.

Everything with process-wide state (database engine, caches, the TMDB
client and its request governor) is built once by ``build_services`` at
startup and stored on ``app.state.services``. Request handlers receive the
container through a dependency; until it exists they get a 503.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from reelcritic.cache.service import CacheService
from reelcritic.config import Settings
from reelcritic.errors import ServiceNotReadyError
from reelcritic.persistence.db import Database
from reelcritic.security.passwords import PasswordHasher
from reelcritic.security.tokens import TokenService
from reelcritic.tmdb.client import TmdbClient

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    db: Database
    cache: CacheService
    passwords: PasswordHasher
    tokens: TokenService
    tmdb: TmdbClient | None = None

    def require_tmdb(self) -> TmdbClient:
        if self.tmdb is None:
            raise ServiceNotReadyError("TMDB service")
        return self.tmdb


def create_cache(settings: Settings) -> CacheService:
    return CacheService(
        ttls={
            "tmdb": settings.cache_tmdb_ttl,
            "movie": settings.cache_movie_ttl,
            "review": settings.cache_review_ttl,
        }
    )


async def build_services(
    settings: Settings,
    *,
    database: Database | None = None,
    tmdb_transport: httpx.AsyncBaseTransport | None = None,
    create_tables: bool = True,
) -> AppServices:
    """Construct and start every service the API depends on."""
    db = database or Database.from_settings(settings)
    if create_tables:
        await db.create_all()

    cache = create_cache(settings)

    tmdb: TmdbClient | None = None
    if settings.tmdb_api_key:
        tmdb = TmdbClient.from_settings(settings, cache, transport=tmdb_transport)
    else:
        logger.warning("TMDB_API_KEY is not set; TMDB-backed endpoints will return 503")

    services = AppServices(
        settings=settings,
        db=db,
        cache=cache,
        passwords=PasswordHasher(settings.password_schemes),
        tokens=TokenService(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_days=settings.jwt_expire_days,
        ),
        tmdb=tmdb,
    )
    logger.info("Services initialized")
    return services


async def close_services(services: AppServices) -> None:
    if services.tmdb is not None:
        await services.tmdb.aclose()
    await services.db.close()
    logger.info("Services closed")
