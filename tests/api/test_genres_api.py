"""API tests for the local genre catalogue."""

from __future__ import annotations

import httpx


class TestGenreCrud:
    """Tests for list, create, read, rename and delete."""

    async def test_create_and_list(self, client: httpx.AsyncClient, admin) -> None:
        created = await client.post("/api/v1/genre", json={"name": " Noir "}, headers=admin)

        assert created.status_code == 201
        assert created.json()["name"] == "Noir"
        listed = (await client.get("/api/v1/genre")).json()
        legacy = (await client.get("/api/v1/genre/genres")).json()
        assert [g["name"] for g in listed] == ["Noir"]
        assert legacy == listed

    async def test_duplicate_name(self, client: httpx.AsyncClient, admin) -> None:
        await client.post("/api/v1/genre", json={"name": "Noir"}, headers=admin)
        response = await client.post("/api/v1/genre", json={"name": "Noir"}, headers=admin)
        assert response.status_code == 409
        assert response.json()["message"] == "Genre already exists"

    async def test_create_requires_admin(self, client: httpx.AsyncClient, user) -> None:
        response = await client.post("/api/v1/genre", json={"name": "Noir"}, headers=user)
        assert response.status_code == 403

    async def test_get_rename_delete(self, client: httpx.AsyncClient, admin) -> None:
        genre = (
            await client.post("/api/v1/genre", json={"name": "Noir"}, headers=admin)
        ).json()
        url = f"/api/v1/genre/{genre['id']}"

        assert (await client.get(url)).json() == genre
        renamed = await client.put(url, json={"name": "Neo-noir"}, headers=admin)
        assert renamed.json()["name"] == "Neo-noir"

        deleted = await client.delete(url, headers=admin)
        assert deleted.json()["name"] == "Neo-noir"
        assert (await client.get(url)).status_code == 404

    async def test_rename_to_existing(self, client: httpx.AsyncClient, admin) -> None:
        await client.post("/api/v1/genre", json={"name": "Noir"}, headers=admin)
        western = (
            await client.post("/api/v1/genre", json={"name": "Western"}, headers=admin)
        ).json()
        response = await client.put(
            f"/api/v1/genre/{western['id']}", json={"name": "Noir"}, headers=admin
        )
        assert response.status_code == 409

    async def test_unknown_genre(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/genre/unknown")
        assert response.status_code == 404
        assert response.json()["message"] == "Genre 'unknown' not found"


class TestGenreMaintenance:
    """Tests for TMDB sync, movie relinking and stats."""

    async def test_sync_from_tmdb(self, client: httpx.AsyncClient, admin) -> None:
        await client.post("/api/v1/genre", json={"name": "Action"}, headers=admin)

        response = await client.post("/api/v1/genre/sync-tmdb", headers=admin)

        assert response.json()["stats"] == {"created": 1, "existing": 1, "total": 2}
        names = [g["name"] for g in (await client.get("/api/v1/genre")).json()]
        assert sorted(names) == ["Action", "Comedy"]

    async def test_relink_movies_and_stats(self, client: httpx.AsyncClient, admin) -> None:
        await client.get("/api/v1/movies/550")
        await client.get("/api/v1/movies/551")
        await client.post("/api/v1/genre/sync-tmdb", headers=admin)

        relinked = (await client.post("/api/v1/genre/update-movie-genres", headers=admin)).json()
        again = (await client.post("/api/v1/genre/update-movie-genres", headers=admin)).json()
        stats = (await client.get("/api/v1/genre/stats", headers=admin)).json()

        assert relinked["stats"] == {"updated": 2, "total": 2}
        assert again["stats"] == {"updated": 0, "total": 2}
        assert stats["totalGenres"] == 2
        assert stats["genresWithMovies"] == 1
        assert stats["distribution"] == [{"genre": "Action", "movieCount": 2}]

        movie = (await client.get("/api/v1/movies/550")).json()["movie"]
        action = next(
            g for g in (await client.get("/api/v1/genre")).json() if g["name"] == "Action"
        )
        assert movie["genre"] == action["id"]

    async def test_stats_require_admin(self, client: httpx.AsyncClient, user) -> None:
        response = await client.get("/api/v1/genre/stats", headers=user)
        assert response.status_code == 403
