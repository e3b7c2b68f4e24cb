"""Movies, reviews and comments.

Endpoints:
- GET    /movies/with-reviews               - Reviewed movies, filtered and paged
- GET    /movies/featured                   - Featured movies
- GET    /movies/top-rated                  - Best rated reviewed movies
- GET    /movies/search                     - Local title/overview search
- GET    /movies/recently-reviewed          - Movies with the newest reviews
- GET    /movies/admin-favorites            - Movies favorited by admins
- GET    /movies/admin-watch-later          - Admin watch-later entries
- GET    /movies/highest-rated              - Highest average rating
- GET    /movies/admin/cache/stats          - Cache statistics (admin)
- DELETE /movies/admin/cache/{type}         - Clear a cache namespace (admin)
- GET    /movies/reviews/{reviewId}         - Review with its comment tree
- PUT    /movies/reviews/{reviewId}         - Update a review (author or admin)
- DELETE /movies/reviews/{reviewId}         - Delete a review (author or admin)
- GET    /movies/reviews/{reviewId}/comments
- POST   /movies/reviews/{reviewId}/comments
- POST   /movies/reviews/{reviewId}/like
- POST   /movies/comments/{commentId}/like
- GET    /movies/{tmdbId}                   - Movie details with the first reviews
- GET    /movies/{tmdbId}/reviews           - Paged published reviews
- POST   /movies/{tmdbId}/reviews           - Write a review (admin)
- PUT    /movies/{tmdbId}/feature           - Toggle featured flag (admin)

Static paths are registered before the ``/{tmdbId}`` routes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Path, Query

from reelcritic.api.deps import (
    AdminUser,
    CurrentUser,
    LikeServiceDep,
    MovieResolverDep,
    ReviewPagesDep,
    ReviewServiceDep,
    ServicesDep,
    SessionDep,
    TmdbIdPath,
)
from reelcritic.api.pagination import (
    DEFAULT_LIMIT,
    LimitParam,
    PageParam,
    offset_for,
    page_envelope,
)
from reelcritic.api.schemas import CommentCreate, ReviewCreate, ReviewUpdate
from reelcritic.cache.keys import CacheKeys
from reelcritic.cache.service import Namespace
from reelcritic.domain.content import ContentKind
from reelcritic.domain.text import as_utc
from reelcritic.domain.views import (
    comment_tree,
    comment_view,
    movie_view,
    review_view,
    watch_later_view,
)
from reelcritic.errors import NotFoundError, ValidationError
from reelcritic.persistence.repositories import (
    CommentRepository,
    FavoriteRepository,
    MovieRepository,
    ReviewRepository,
    WatchLaterRepository,
)
from reelcritic.tmdb.errors import UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/movies", tags=["movies"])

ReviewIdPath = Annotated[str, Path(alias="reviewId", min_length=1)]
CommentIdPath = Annotated[str, Path(alias="commentId", min_length=1)]

DETAIL_REVIEW_COUNT = 5
TOP_RATED_THRESHOLD = 4.0
RECENT_WINDOW = timedelta(days=30)
CACHE_TYPES = ("all", "movies", "reviews", "tmdb")


def _listing(movies: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    return {"movies": movies, "total": len(movies), **extra}


# =============================================================================
# Listings
# =============================================================================


@router.get("/with-reviews")
async def movies_with_reviews(
    session: SessionDep,
    page: PageParam = 1,
    limit: LimitParam = 20,
    search: str | None = None,
    genre: str | None = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    min_rating: Annotated[float | None, Query(alias="minRating", ge=0, le=5)] = None,
) -> dict[str, Any]:
    """Movies that have at least one review, for the movies page.

    ``sortBy`` is one of ``latest`` (default), ``rating``, ``reviews``, ``title``.
    """
    rows, total = await MovieRepository(session).with_reviews(
        sort_by=sort_by or "latest",
        genre=genre.strip() if genre and genre.strip() else None,
        min_rating=min_rating,
        search=search.strip() if search and search.strip() else None,
        offset=offset_for(page, limit),
        limit=limit,
    )
    recent_since = datetime.now(timezone.utc) - RECENT_WINDOW
    movies = [movie_view(movie) for movie in rows]
    return {
        "movies": movies,
        "pagination": {**page_envelope(page, limit, total), "limit": limit},
        "categories": {
            "featured": [view for movie, view in zip(rows, movies) if movie.is_featured],
            "topRated": [
                view
                for movie, view in zip(rows, movies)
                if movie.average_rating >= TOP_RATED_THRESHOLD
            ],
            "recent": [
                view
                for movie, view in zip(rows, movies)
                if as_utc(movie.created_at) >= recent_since
            ],
        },
        "filters": {"search": search, "genre": genre, "sortBy": sort_by},
    }


@router.get("/featured")
async def featured_movies(
    session: SessionDep, limit: Annotated[int, Query(ge=1, le=50)] = 5
) -> dict[str, Any]:
    movies = await MovieRepository(session).featured(limit)
    return _listing([movie_view(m) for m in movies])


@router.get("/top-rated")
async def top_rated_movies(
    session: SessionDep, limit: LimitParam = DEFAULT_LIMIT
) -> dict[str, Any]:
    movies = await MovieRepository(session).top_rated(limit)
    return _listing([movie_view(m) for m in movies])


@router.get("/highest-rated")
async def highest_rated_movies(session: SessionDep, limit: LimitParam = 8) -> dict[str, Any]:
    movies = [m for m in await MovieRepository(session).top_rated(limit) if m.average_rating > 0]
    return _listing([movie_view(m) for m in movies])


@router.get("/search")
async def search_movies(
    session: SessionDep,
    q: Annotated[str, Query(min_length=2, max_length=100)],
    limit: LimitParam = 20,
) -> dict[str, Any]:
    movies = await MovieRepository(session).search(q.strip(), limit)
    return _listing([movie_view(m) for m in movies], query=q)


@router.get("/recently-reviewed")
async def recently_reviewed_movies(session: SessionDep, limit: LimitParam = 6) -> dict[str, Any]:
    """Distinct movies ordered by their newest published review."""
    rows = await ReviewRepository(session).recent_with_movies(limit * 2)
    seen: set[str] = set()
    movies = []
    for review, movie, _ in rows:
        if movie.id in seen:
            continue
        seen.add(movie.id)
        movies.append({**movie_view(movie), "latestReviewDate": review.created_at.isoformat()})
        if len(movies) >= limit:
            break
    return _listing(movies)


@router.get("/admin-favorites")
async def admin_favorite_movies(session: SessionDep, limit: LimitParam = 8) -> dict[str, Any]:
    """Movies favorited by admins, each with the latest admin review."""
    reviews = ReviewRepository(session)
    movies = []
    for movie in await FavoriteRepository(session).admin_movies(limit):
        latest = await reviews.latest_by_admin(movie.id)
        movies.append(
            {**movie_view(movie), "reviews": [review_view(*latest)] if latest else []}
        )
    if not movies:
        return _listing([], message="No admin favorites found")
    return _listing(movies)


@router.get("/admin-watch-later")
async def admin_watch_later_movies(session: SessionDep, limit: LimitParam = 8) -> dict[str, Any]:
    entries = await WatchLaterRepository(session).admin_entries(limit)
    movies = [
        {**watch_later_view(item), "adminId": admin.id, "adminUsername": admin.username}
        for item, admin in entries
    ]
    if not movies:
        return _listing([], message="No admin watch later movies found")
    return _listing(movies)


# =============================================================================
# Cache administration
# =============================================================================


@router.get("/admin/cache/stats")
async def cache_stats(services: ServicesDep, _admin: AdminUser) -> dict[str, Any]:
    return {
        "message": "Cache statistics",
        "stats": services.cache.stats(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.delete("/admin/cache/{type}")
async def clear_cache(
    services: ServicesDep, admin: AdminUser, cache_type: Annotated[str, Path(alias="type")]
) -> dict[str, str]:
    cache = services.cache
    if cache_type == "all":
        cache.flush_all()
    elif cache_type == "movies":
        cache.flush_namespace(Namespace.MOVIE)
    elif cache_type == "reviews":
        cache.flush_namespace(Namespace.REVIEW)
    elif cache_type == "tmdb":
        if services.tmdb is not None:
            services.tmdb.clear_cache()
        else:
            cache.invalidate_pattern(CacheKeys.TMDB_PREFIX)
    else:
        raise ValidationError(f"Cache type must be one of: {', '.join(CACHE_TYPES)}")

    logger.info(f"Cache cleared ({cache_type}) by {admin.username}")
    return {"message": f"Cache cleared successfully ({cache_type})"}


# =============================================================================
# Reviews and comments by id
# =============================================================================


@router.get("/reviews/{reviewId}")
async def get_review(
    reviews: ReviewServiceDep, session: SessionDep, review_id: ReviewIdPath
) -> dict[str, Any]:
    review, author = await reviews.get(review_id)
    comments = await CommentRepository(session).published_for_review(review.id)
    return {"review": review_view(review, author), "comments": comment_tree(comments)}


@router.put("/reviews/{reviewId}")
async def update_review(
    body: ReviewUpdate,
    user: CurrentUser,
    reviews: ReviewServiceDep,
    review_id: ReviewIdPath,
) -> dict[str, Any]:
    review, author = await reviews.get(review_id)
    await reviews.update(
        review, user, title=body.title, content=body.content, rating=body.rating
    )
    await reviews.commit()
    return {"message": "Review updated successfully", "review": review_view(review, author)}


@router.delete("/reviews/{reviewId}")
async def delete_review(
    user: CurrentUser, reviews: ReviewServiceDep, review_id: ReviewIdPath
) -> dict[str, str]:
    review, _ = await reviews.get(review_id)
    await reviews.delete(review, user)
    await reviews.commit()
    return {"message": "Review deleted successfully"}


@router.get("/reviews/{reviewId}/comments")
async def get_review_comments(
    reviews: ReviewServiceDep, session: SessionDep, review_id: ReviewIdPath
) -> dict[str, Any]:
    review, _ = await reviews.get(review_id)
    tree = comment_tree(await CommentRepository(session).published_for_review(review.id))
    return {"comments": tree, "total": len(tree)}


@router.post("/reviews/{reviewId}/comments", status_code=201)
async def add_comment(
    body: CommentCreate,
    user: CurrentUser,
    reviews: ReviewServiceDep,
    review_id: ReviewIdPath,
) -> dict[str, Any]:
    review, _ = await reviews.get(review_id)
    comment = await reviews.add_comment(review, user, body.content, body.parent_comment)
    await reviews.commit()
    return {"message": "Comment added successfully", "comment": comment_view(comment, user)}


@router.post("/reviews/{reviewId}/like")
async def like_review(
    user: CurrentUser, likes: LikeServiceDep, review_id: ReviewIdPath
) -> dict[str, Any]:
    result = await likes.toggle(user.id, ContentKind.REVIEW, review_id)
    await likes.commit()
    return {"message": f"Review {result['action']}", **result}


@router.post("/comments/{commentId}/like")
async def like_comment(
    user: CurrentUser, likes: LikeServiceDep, comment_id: CommentIdPath
) -> dict[str, Any]:
    result = await likes.toggle(user.id, ContentKind.COMMENT, comment_id)
    await likes.commit()
    return {"message": f"Comment {result['action']}", **result}


# =============================================================================
# Movies by TMDB id
# =============================================================================


@router.get("/{tmdbId}")
async def movie_details(
    resolver: MovieResolverDep,
    review_pages: ReviewPagesDep,
    session: SessionDep,
    tmdb_id: TmdbIdPath,
) -> dict[str, Any]:
    """Resolved movie with its first reviews.

    A record without cast or director is refreshed from TMDB once more
    before it is returned.
    """
    view = await resolver.resolve(tmdb_id)
    if not view["cast"] or not view["director"]:
        movie = await resolver.ensure(tmdb_id)
        try:
            await resolver.refresh(movie)
        except (UpstreamError, NotFoundError) as exc:
            logger.warning(f"Could not complete credits for movie {tmdb_id}: {exc}")
        view = movie_view(movie)
    await session.commit()

    first = await review_pages.page(tmdb_id, 1, DETAIL_REVIEW_COUNT)
    review_count = first["pagination"]["totalItems"]
    return {
        "movie": {**view, "reviews": first["reviews"]},
        "reviewCount": review_count,
        "hasMoreReviews": review_count > DETAIL_REVIEW_COUNT,
    }


@router.get("/{tmdbId}/reviews")
async def movie_reviews(
    resolver: MovieResolverDep,
    review_pages: ReviewPagesDep,
    session: SessionDep,
    tmdb_id: TmdbIdPath,
    page: PageParam = 1,
    limit: LimitParam = DEFAULT_LIMIT,
) -> dict[str, Any]:
    await resolver.resolve(tmdb_id)
    await session.commit()
    return await review_pages.page(tmdb_id, page, limit)


@router.post("/{tmdbId}/reviews", status_code=201)
async def create_review(
    body: ReviewCreate,
    admin: AdminUser,
    resolver: MovieResolverDep,
    reviews: ReviewServiceDep,
    tmdb_id: TmdbIdPath,
) -> dict[str, Any]:
    movie = await resolver.ensure(tmdb_id)
    review = await reviews.create(movie, admin, body.title, body.content, body.rating)
    await reviews.commit()
    return {"message": "Review created successfully", "review": review_view(review, admin)}


@router.put("/{tmdbId}/feature")
async def toggle_feature(
    services: ServicesDep, admin: AdminUser, session: SessionDep, tmdb_id: TmdbIdPath
) -> dict[str, Any]:
    movie = await MovieRepository(session).get_by_tmdb_id(tmdb_id)
    if movie is None:
        raise NotFoundError("Movie", tmdb_id)
    movie.is_featured = not movie.is_featured
    await session.commit()
    services.cache.delete(CacheKeys.movie(tmdb_id))

    state = "featured" if movie.is_featured else "unfeatured"
    logger.info(f"Movie {movie.title} {state} by {admin.username}")
    return {"message": f"Movie {state} successfully", "movie": movie_view(movie)}
