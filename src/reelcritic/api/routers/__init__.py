"""API routers for ReelCritic, one module per resource."""

from reelcritic.api.routers import dashboard, genres, health, likes, movies, tmdb, users

__all__ = [
    "dashboard",
    "genres",
    "health",
    "likes",
    "movies",
    "tmdb",
    "users",
]
