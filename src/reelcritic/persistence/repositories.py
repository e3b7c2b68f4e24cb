"""Repository pattern for ReelCritic persistence.

Repositories wrap one ``AsyncSession`` each and expose the queries the
handlers and resolvers need. They never commit; the caller owns the
transaction. Lookups return ``None`` (or ``False``) when nothing matches.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, String, cast, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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

TableT = TypeVar("TableT", bound=Base)


class BaseRepository(Generic[TableT]):
    """Base repository with common CRUD operations."""

    model: type[TableT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, row_id: str) -> TableT | None:
        return await self.session.get(self.model, row_id)

    async def add(self, row: TableT) -> TableT:
        self.session.add(row)
        await self.session.flush()
        return row

    async def delete(self, row: TableT) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return (await self.session.execute(stmt)).scalar_one()

    async def _all(self, stmt: Select[Any]) -> list[TableT]:
        return list((await self.session.scalars(stmt)).all())


class UserRepository(BaseRepository[UserTable]):
    model = UserTable

    async def get_by_email(self, email: str) -> UserTable | None:
        stmt = select(UserTable).where(UserTable.email == email.lower())
        return (await self.session.scalars(stmt)).first()

    async def get_by_username(self, username: str) -> UserTable | None:
        stmt = select(UserTable).where(UserTable.username == username)
        return (await self.session.scalars(stmt)).first()

    async def is_taken(self, field: str, value: str, exclude_id: str | None = None) -> bool:
        column = getattr(UserTable, field)
        stmt = select(UserTable.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(UserTable.id != exclude_id)
        return (await self.session.execute(stmt)).first() is not None

    async def list_all(self) -> list[UserTable]:
        return await self._all(select(UserTable).order_by(UserTable.created_at.desc()))

    async def recent(self, limit: int = 5) -> list[UserTable]:
        return await self._all(select(UserTable).order_by(UserTable.created_at.desc()).limit(limit))

    async def first_admin(self) -> UserTable | None:
        stmt = select(UserTable).where(UserTable.is_admin.is_(True)).order_by(UserTable.created_at)
        return (await self.session.scalars(stmt)).first()

    async def remove(self, user: UserTable) -> None:
        """Delete a user and everything they authored."""
        review_ids = select(ReviewTable.id).where(ReviewTable.author_id == user.id)
        await self.session.execute(
            delete(CommentTable).where(CommentTable.review_id.in_(review_ids))
        )
        await self.session.execute(delete(CommentTable).where(CommentTable.author_id == user.id))
        await self.session.execute(delete(ReviewTable).where(ReviewTable.author_id == user.id))
        await self.session.execute(delete(LikeTable).where(LikeTable.user_id == user.id))
        await self.session.execute(delete(FavoriteTable).where(FavoriteTable.user_id == user.id))
        await self.session.execute(
            delete(WatchLaterTable).where(WatchLaterTable.user_id == user.id)
        )
        await self.delete(user)


class GenreRepository(BaseRepository[GenreTable]):
    model = GenreTable

    async def get_by_name(self, name: str) -> GenreTable | None:
        stmt = select(GenreTable).where(func.lower(GenreTable.name) == name.lower())
        return (await self.session.scalars(stmt)).first()

    async def list_all(self) -> list[GenreTable]:
        return await self._all(select(GenreTable).order_by(GenreTable.name))

    async def movie_counts(self) -> list[tuple[GenreTable, int]]:
        stmt = (
            select(GenreTable, func.count(MovieTable.id))
            .outerjoin(MovieTable, MovieTable.genre_id == GenreTable.id)
            .group_by(GenreTable.id)
            .order_by(func.count(MovieTable.id).desc(), GenreTable.name)
        )
        return [(genre, count) for genre, count in (await self.session.execute(stmt)).all()]

    async def remove(self, genre: GenreTable) -> None:
        """Delete a genre and unlink the movies pointing at it."""
        await self.session.execute(
            update(MovieTable).where(MovieTable.genre_id == genre.id).values(genre_id=None)
        )
        await self.delete(genre)


class MovieRepository(BaseRepository[MovieTable]):
    model = MovieTable

    async def get_by_tmdb_id(self, tmdb_id: int, active_only: bool = True) -> MovieTable | None:
        stmt = select(MovieTable).where(MovieTable.tmdb_id == tmdb_id)
        if active_only:
            stmt = stmt.where(MovieTable.is_active.is_(True))
        return (await self.session.scalars(stmt)).first()

    async def list_all(self) -> list[MovieTable]:
        return await self._all(select(MovieTable).order_by(MovieTable.created_at))

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(MovieTable.id).where(MovieTable.slug == slug)
        return (await self.session.execute(stmt)).first() is not None

    async def featured(self, limit: int = 5) -> list[MovieTable]:
        stmt = (
            select(MovieTable)
            .where(MovieTable.is_featured.is_(True), MovieTable.is_active.is_(True))
            .order_by(MovieTable.created_at.desc())
            .limit(limit)
        )
        return await self._all(stmt)

    async def top_rated(self, limit: int = 10) -> list[MovieTable]:
        stmt = (
            select(MovieTable)
            .where(MovieTable.is_active.is_(True), MovieTable.review_count > 0)
            .order_by(MovieTable.average_rating.desc(), MovieTable.review_count.desc())
            .limit(limit)
        )
        return await self._all(stmt)

    async def search(self, query: str, limit: int = 20) -> list[MovieTable]:
        pattern = f"%{query}%"
        stmt = (
            select(MovieTable)
            .where(
                MovieTable.is_active.is_(True),
                or_(MovieTable.title.ilike(pattern), MovieTable.overview.ilike(pattern)),
            )
            .order_by(MovieTable.popularity.desc())
            .limit(limit)
        )
        return await self._all(stmt)

    async def with_reviews(
        self,
        *,
        sort_by: str = "latest",
        genre: str | None = None,
        min_rating: float | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[MovieTable], int]:
        """Active movies that have at least one review, filtered and paged."""
        criteria: list[Any] = [MovieTable.is_active.is_(True), MovieTable.review_count > 0]
        if genre:
            # JSON text containment works on both PostgreSQL and SQLite
            criteria.append(cast(MovieTable.genres, String).like(f"%\"{genre.strip()}\"%"))
        if min_rating is not None:
            criteria.append(MovieTable.average_rating >= min_rating)
        if search:
            criteria.append(MovieTable.title.ilike(f"%{search}%"))

        order = {
            "rating": (MovieTable.average_rating.desc(), MovieTable.review_count.desc()),
            "reviews": (MovieTable.review_count.desc(), MovieTable.average_rating.desc()),
            "title": (MovieTable.title.asc(),),
        }.get(sort_by, (MovieTable.created_at.desc(),))

        stmt = select(MovieTable).where(*criteria).order_by(*order).offset(offset).limit(limit)
        return await self._all(stmt), await self.count(*criteria)

    async def update_review_stats(self, movie: MovieTable) -> MovieTable:
        """Recompute review count and average rating from published reviews."""
        stmt = select(func.avg(ReviewTable.rating), func.count(ReviewTable.id)).where(
            ReviewTable.movie_id == movie.id, ReviewTable.is_published.is_(True)
        )
        average, count = (await self.session.execute(stmt)).one()
        movie.review_count = count or 0
        movie.average_rating = round(float(average), 1) if count else 0.0
        await self.session.flush()
        return movie


class ReviewRepository(BaseRepository[ReviewTable]):
    model = ReviewTable

    async def get_with_author(self, review_id: str) -> tuple[ReviewTable, UserTable] | None:
        stmt = (
            select(ReviewTable, UserTable)
            .join(UserTable, UserTable.id == ReviewTable.author_id)
            .where(ReviewTable.id == review_id)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        return row[0], row[1]

    async def find_by_author(self, movie_id: str, author_id: str) -> ReviewTable | None:
        stmt = select(ReviewTable).where(
            ReviewTable.movie_id == movie_id, ReviewTable.author_id == author_id
        )
        return (await self.session.scalars(stmt)).first()

    async def published_page(
        self, tmdb_id: int, offset: int, limit: int
    ) -> tuple[list[tuple[ReviewTable, UserTable]], int]:
        """Published reviews of one movie, newest first, with their authors."""
        criteria = (ReviewTable.tmdb_id == tmdb_id, ReviewTable.is_published.is_(True))
        stmt = (
            select(ReviewTable, UserTable)
            .join(UserTable, UserTable.id == ReviewTable.author_id)
            .where(*criteria)
            .order_by(ReviewTable.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = [(review, author) for review, author in (await self.session.execute(stmt)).all()]
        return rows, await self.count(*criteria)

    async def recent_with_movies(
        self, limit: int = 10, author_id: str | None = None
    ) -> list[tuple[ReviewTable, MovieTable, UserTable]]:
        stmt = (
            select(ReviewTable, MovieTable, UserTable)
            .join(MovieTable, MovieTable.id == ReviewTable.movie_id)
            .join(UserTable, UserTable.id == ReviewTable.author_id)
            .where(ReviewTable.is_published.is_(True))
            .order_by(ReviewTable.created_at.desc())
            .limit(limit)
        )
        if author_id is not None:
            stmt = stmt.where(ReviewTable.author_id == author_id)
        rows = (await self.session.execute(stmt)).all()
        return [(review, movie, author) for review, movie, author in rows]

    async def highest_rated(
        self, limit: int = 10, author_id: str | None = None
    ) -> list[tuple[ReviewTable, MovieTable, UserTable]]:
        stmt = (
            select(ReviewTable, MovieTable, UserTable)
            .join(MovieTable, MovieTable.id == ReviewTable.movie_id)
            .join(UserTable, UserTable.id == ReviewTable.author_id)
            .where(ReviewTable.is_published.is_(True))
            .order_by(ReviewTable.rating.desc(), ReviewTable.created_at.desc())
            .limit(limit)
        )
        if author_id is not None:
            stmt = stmt.where(ReviewTable.author_id == author_id)
        rows = (await self.session.execute(stmt)).all()
        return [(review, movie, author) for review, movie, author in rows]

    async def remove(self, review: ReviewTable) -> None:
        """Delete a review with its comments and likes."""
        comment_ids = select(CommentTable.id).where(CommentTable.review_id == review.id)
        await self.session.execute(
            delete(LikeTable).where(
                LikeTable.content_kind == "Comment", LikeTable.content_id.in_(comment_ids)
            )
        )
        await self.session.execute(delete(CommentTable).where(CommentTable.review_id == review.id))
        await self.session.execute(
            delete(LikeTable).where(
                LikeTable.content_kind == "Review", LikeTable.content_id == review.id
            )
        )
        await self.session.execute(
            update(FavoriteTable)
            .where(FavoriteTable.review_id == review.id)
            .values(review_id=None)
        )
        await self.delete(review)

    async def adjust_likes(self, review: ReviewTable, delta: int) -> int:
        review.likes = max(0, review.likes + delta)
        await self.session.flush()
        return review.likes

    async def movie_tmdb_id(self, review: ReviewTable) -> int:
        return review.tmdb_id

    async def latest_by_admin(self, movie_id: str) -> tuple[ReviewTable, UserTable] | None:
        stmt = (
            select(ReviewTable, UserTable)
            .join(UserTable, UserTable.id == ReviewTable.author_id)
            .where(
                ReviewTable.movie_id == movie_id,
                ReviewTable.is_published.is_(True),
                UserTable.is_admin.is_(True),
            )
            .order_by(ReviewTable.created_at.desc())
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        return row[0], row[1]


class CommentRepository(BaseRepository[CommentTable]):
    model = CommentTable

    async def published_for_review(self, review_id: str) -> list[tuple[CommentTable, UserTable]]:
        stmt = (
            select(CommentTable, UserTable)
            .join(UserTable, UserTable.id == CommentTable.author_id)
            .where(CommentTable.review_id == review_id, CommentTable.is_published.is_(True))
            .order_by(CommentTable.created_at.asc())
        )
        return [(c, u) for c, u in (await self.session.execute(stmt)).all()]

    async def recent_with_authors(self, limit: int = 5) -> list[tuple[CommentTable, UserTable]]:
        stmt = (
            select(CommentTable, UserTable)
            .join(UserTable, UserTable.id == CommentTable.author_id)
            .where(CommentTable.is_published.is_(True))
            .order_by(CommentTable.created_at.desc())
            .limit(limit)
        )
        return [(c, u) for c, u in (await self.session.execute(stmt)).all()]

    async def adjust_likes(self, comment: CommentTable, delta: int) -> int:
        comment.likes = max(0, comment.likes + delta)
        await self.session.flush()
        return comment.likes

    async def movie_tmdb_id(self, comment: CommentTable) -> int:
        stmt = select(ReviewTable.tmdb_id).where(ReviewTable.id == comment.review_id)
        return (await self.session.execute(stmt)).scalar_one()


class LikeRepository(BaseRepository[LikeTable]):
    model = LikeTable

    async def find(self, user_id: str, kind: str, content_id: str) -> LikeTable | None:
        stmt = select(LikeTable).where(
            LikeTable.user_id == user_id,
            LikeTable.content_kind == kind,
            LikeTable.content_id == content_id,
        )
        return (await self.session.scalars(stmt)).first()

    async def count_for(self, kind: str, content_id: str, since: datetime | None = None) -> int:
        criteria = [LikeTable.content_kind == kind, LikeTable.content_id == content_id]
        if since is not None:
            criteria.append(LikeTable.created_at >= since)
        return await self.count(*criteria)

    async def liked_ids(self, user_id: str, kind: str, content_ids: list[str]) -> set[str]:
        if not content_ids:
            return set()
        stmt = select(LikeTable.content_id).where(
            LikeTable.user_id == user_id,
            LikeTable.content_kind == kind,
            LikeTable.content_id.in_(content_ids),
        )
        return set((await self.session.scalars(stmt)).all())

    async def users_for(
        self, kind: str, content_id: str, offset: int, limit: int
    ) -> list[tuple[LikeTable, UserTable]]:
        stmt = (
            select(LikeTable, UserTable)
            .join(UserTable, UserTable.id == LikeTable.user_id)
            .where(LikeTable.content_kind == kind, LikeTable.content_id == content_id)
            .order_by(LikeTable.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [(like, user) for like, user in (await self.session.execute(stmt)).all()]

    async def recent_for_user(self, user_id: str, limit: int = 10) -> list[LikeTable]:
        stmt = (
            select(LikeTable)
            .where(LikeTable.user_id == user_id)
            .order_by(LikeTable.created_at.desc())
            .limit(limit)
        )
        return await self._all(stmt)


class FavoriteRepository(BaseRepository[FavoriteTable]):
    model = FavoriteTable

    async def find(self, user_id: str, tmdb_id: int) -> FavoriteTable | None:
        stmt = select(FavoriteTable).where(
            FavoriteTable.user_id == user_id, FavoriteTable.tmdb_id == tmdb_id
        )
        return (await self.session.scalars(stmt)).first()

    async def for_user(self, user_id: str) -> list[FavoriteTable]:
        stmt = (
            select(FavoriteTable)
            .where(FavoriteTable.user_id == user_id)
            .order_by(FavoriteTable.added_at.desc())
        )
        return await self._all(stmt)

    async def admin_movies(self, limit: int = 8) -> list[MovieTable]:
        """Active movies that an admin has favorited, best rated first."""
        favorited = (
            select(FavoriteTable.movie_id)
            .join(UserTable, UserTable.id == FavoriteTable.user_id)
            .where(UserTable.is_admin.is_(True), FavoriteTable.movie_id.is_not(None))
        )
        stmt = (
            select(MovieTable)
            .where(MovieTable.id.in_(favorited), MovieTable.is_active.is_(True))
            .order_by(MovieTable.average_rating.desc(), MovieTable.review_count.desc())
            .limit(limit)
        )
        return await self._all(stmt)


class WatchLaterRepository(BaseRepository[WatchLaterTable]):
    model = WatchLaterTable

    async def find(self, user_id: str, tmdb_id: int) -> WatchLaterTable | None:
        stmt = select(WatchLaterTable).where(
            WatchLaterTable.user_id == user_id, WatchLaterTable.tmdb_id == tmdb_id
        )
        return (await self.session.scalars(stmt)).first()

    async def for_user(self, user_id: str) -> list[WatchLaterTable]:
        stmt = (
            select(WatchLaterTable)
            .where(WatchLaterTable.user_id == user_id)
            .order_by(WatchLaterTable.added_at.desc())
        )
        return await self._all(stmt)

    async def admin_entries(self, limit: int = 8) -> list[tuple[WatchLaterTable, UserTable]]:
        stmt = (
            select(WatchLaterTable, UserTable)
            .join(UserTable, UserTable.id == WatchLaterTable.user_id)
            .where(UserTable.is_admin.is_(True))
            .order_by(WatchLaterTable.added_at.desc())
            .limit(limit)
        )
        return [(item, admin) for item, admin in (await self.session.execute(stmt)).all()]
