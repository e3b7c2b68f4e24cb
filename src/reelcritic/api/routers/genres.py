"""Local genre catalogue.

Reads are public; creating, renaming, deleting, syncing from TMDB and
relinking movies require an admin.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Path

from reelcritic.api.deps import AdminUser, ServicesDep, SessionDep, TmdbDep
from reelcritic.api.schemas import GenreBody
from reelcritic.cache.keys import CacheKeys
from reelcritic.domain.views import genre_view
from reelcritic.errors import ConflictError, NotFoundError
from reelcritic.persistence.repositories import GenreRepository, MovieRepository
from reelcritic.persistence.tables import GenreTable, MovieTable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/genre", tags=["genres"])

GenreIdPath = Annotated[str, Path(alias="id", min_length=1)]


async def _get_or_404(genres: GenreRepository, genre_id: str) -> GenreTable:
    genre = await genres.get(genre_id)
    if genre is None:
        raise NotFoundError("Genre", genre_id)
    return genre


@router.get("")
@router.get("/genres")
async def list_genres(session: SessionDep) -> list[dict[str, Any]]:
    return [genre_view(g) for g in await GenreRepository(session).list_all()]


@router.post("", status_code=201)
async def create_genre(body: GenreBody, _admin: AdminUser, session: SessionDep) -> dict[str, Any]:
    genres = GenreRepository(session)
    if await genres.get_by_name(body.name) is not None:
        raise ConflictError("Genre already exists")
    genre = await genres.add(GenreTable(name=body.name))
    await session.commit()
    return genre_view(genre)


@router.post("/sync-tmdb")
async def sync_tmdb_genres(tmdb: TmdbDep, _admin: AdminUser, session: SessionDep) -> dict[str, Any]:
    """Create a local genre for every TMDB genre that is not known yet."""
    tmdb_genres = (await tmdb.genres()).get("genres") or []
    genres = GenreRepository(session)
    created = existing = 0
    for item in tmdb_genres:
        name = (item.get("name") or "").strip()
        if not name:
            continue
        if await genres.get_by_name(name) is not None:
            existing += 1
            continue
        await genres.add(GenreTable(name=name))
        created += 1
    await session.commit()

    logger.info(f"Genre sync completed: {created} created, {existing} existing")
    return {
        "message": "TMDB genres synced successfully",
        "stats": {"created": created, "existing": existing, "total": len(tmdb_genres)},
    }


@router.post("/update-movie-genres")
async def update_movie_genres(
    services: ServicesDep, _admin: AdminUser, session: SessionDep
) -> dict[str, Any]:
    """Point every movie at the first of its TMDB genre names known locally."""
    by_name = {g.name.lower(): g for g in await GenreRepository(session).list_all()}
    movies = await MovieRepository(session).list_all()
    updated = 0
    for movie in movies:
        match = _first_known_genre(movie, by_name)
        if match is not None and movie.genre_id != match.id:
            movie.genre_id = match.id
            updated += 1
    await session.commit()
    services.cache.invalidate_pattern(CacheKeys.MOVIE_PREFIX)

    logger.info(f"Movie genre update completed: {updated} updated")
    return {
        "message": "Movie genre relationships updated successfully",
        "stats": {"updated": updated, "total": len(movies)},
    }


def _first_known_genre(movie: MovieTable, by_name: dict[str, GenreTable]) -> GenreTable | None:
    for name in movie.genres or []:
        genre = by_name.get(name.lower())
        if genre is not None:
            return genre
    return None


@router.get("/stats")
async def genre_stats(_admin: AdminUser, session: SessionDep) -> dict[str, Any]:
    genres = GenreRepository(session)
    distribution = [
        {"genre": genre.name, "movieCount": count}
        for genre, count in await genres.movie_counts()
        if count > 0
    ]
    return {
        "totalGenres": await genres.count(),
        "genresWithMovies": len(distribution),
        "distribution": distribution,
    }


@router.get("/{id}")
async def get_genre(session: SessionDep, genre_id: GenreIdPath) -> dict[str, Any]:
    return genre_view(await _get_or_404(GenreRepository(session), genre_id))


@router.put("/{id}")
async def update_genre(
    body: GenreBody, _admin: AdminUser, session: SessionDep, genre_id: GenreIdPath
) -> dict[str, Any]:
    genres = GenreRepository(session)
    genre = await _get_or_404(genres, genre_id)
    other = await genres.get_by_name(body.name)
    if other is not None and other.id != genre.id:
        raise ConflictError("Genre already exists")
    genre.name = body.name
    await session.commit()
    return genre_view(genre)


@router.delete("/{id}")
async def delete_genre(
    _admin: AdminUser, session: SessionDep, genre_id: GenreIdPath
) -> dict[str, Any]:
    genres = GenreRepository(session)
    genre = await _get_or_404(genres, genre_id)
    view = genre_view(genre)
    await genres.remove(genre)
    await session.commit()
    return view
