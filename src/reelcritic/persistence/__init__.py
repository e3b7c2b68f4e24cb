"""Persistence layer for ReelCritic.

This module provides:
- Async engine and session factory (PostgreSQL via asyncpg, SQLite for tests)
- SQLAlchemy ORM models for users, movies, reviews, comments and likes
- Repositories that keep query logic out of the request handlers
"""

from reelcritic.persistence.db import Database, create_engine
from reelcritic.persistence.repositories import (
    CommentRepository,
    FavoriteRepository,
    GenreRepository,
    LikeRepository,
    MovieRepository,
    ReviewRepository,
    UserRepository,
    WatchLaterRepository,
)
from reelcritic.persistence.tables import (
    Base,
    CommentTable,
    FavoriteTable,
    GenreTable,
    LikeTable,
    MovieTable,
    ReviewTable,
    UserTable,
    WatchLaterTable,
)

__all__ = [
    # DB
    "Database",
    "create_engine",
    # Tables
    "Base",
    "CommentTable",
    "FavoriteTable",
    "GenreTable",
    "LikeTable",
    "MovieTable",
    "ReviewTable",
    "UserTable",
    "WatchLaterTable",
    # Repositories
    "CommentRepository",
    "FavoriteRepository",
    "GenreRepository",
    "LikeRepository",
    "MovieRepository",
    "ReviewRepository",
    "UserRepository",
    "WatchLaterRepository",
]
