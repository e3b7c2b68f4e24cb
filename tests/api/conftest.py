"""Fixtures for exercising the HTTP API in-process.

The app runs on an in-memory SQLite database with TMDB answered by
``TmdbStub``. Requests go through ``httpx.ASGITransport``, which does not
run the lifespan, so the service container is built here and handed to
``create_app``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio

from reelcritic.api.app import create_app
from reelcritic.config import Settings
from reelcritic.persistence.tables import UserTable
from reelcritic.runtime import AppServices, build_services, close_services
from tests.fakes import SQLITE_URL, TMDB_KEY, TmdbStub

PASSWORD = "Secret123"

Headers = dict[str, str]
Register = Callable[..., Awaitable[Headers]]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="dev",
        database_url=SQLITE_URL,
        tmdb_api_key=TMDB_KEY,
        jwt_secret="api-test-secret",
        enable_rate_limiting=False,
    )


@pytest_asyncio.fixture
async def services(settings: Settings, tmdb_stub: TmdbStub) -> AsyncIterator[AppServices]:
    services = await build_services(settings, tmdb_transport=httpx.MockTransport(tmdb_stub))
    yield services
    await close_services(services)


@pytest_asyncio.fixture
async def client(services: AppServices) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(services.settings, services)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(client: httpx.AsyncClient, services: AppServices) -> Register:
    """Create an account and return bearer headers for it.

    The session cookie set by registration is discarded so that several
    accounts can be used from one client.
    """

    async def factory(username: str = "alice", admin: bool = False) -> Headers:
        response = await client.post(
            "/api/v1/users",
            json={"username": username, "email": f"{username}@example.com", "password": PASSWORD},
        )
        assert response.status_code == 201, response.text
        client.cookies.clear()
        user_id = response.json()["_id"]

        if admin:
            async with services.db.session_context() as session:
                user = await session.get(UserTable, user_id)
                assert user is not None
                user.is_admin = True

        return {"Authorization": f"Bearer {services.tokens.issue(user_id)}"}

    return factory


@pytest_asyncio.fixture
async def admin(register: Register) -> Headers:
    return await register("admin", admin=True)


@pytest_asyncio.fixture
async def user(register: Register) -> Headers:
    return await register("alice")


REVIEW = {
    "title": "A modern classic",
    "content": "Sharp writing, patient direction and a score that lingers for days.",
    "rating": 5,
}


@pytest.fixture
def post_review(client: httpx.AsyncClient) -> Callable[..., Awaitable[dict]]:
    async def factory(headers: Headers, tmdb_id: int = 550, **overrides: object) -> dict:
        response = await client.post(
            f"/api/v1/movies/{tmdb_id}/reviews", json={**REVIEW, **overrides}, headers=headers
        )
        assert response.status_code == 201, response.text
        return response.json()["review"]

    return factory
