"""JSON views of persisted rows.

Views are plain dicts with camelCase keys, safe to cache and to hand to
``ORJSONResponse`` unchanged.
"""

from __future__ import annotations

from typing import Any

from reelcritic.persistence.tables import (
    CommentTable,
    FavoriteTable,
    GenreTable,
    MovieTable,
    ReviewTable,
    UserTable,
    WatchLaterTable,
)


def author_view(user: UserTable) -> dict[str, Any]:
    return {"id": user.id, "username": user.username}


def user_view(user: UserTable) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": user.is_admin,
        "preferences": {
            "favoriteGenres": list(user.favorite_genres or []),
            "emailNotifications": user.email_notifications,
            "publicProfile": user.public_profile,
        },
        "stats": {"totalReviews": user.total_reviews},
        "createdAt": user.created_at.isoformat(),
    }


def genre_view(genre: GenreTable) -> dict[str, Any]:
    return {"id": genre.id, "name": genre.name}


def movie_view(movie: MovieTable) -> dict[str, Any]:
    return {
        "id": movie.id,
        "tmdbId": movie.tmdb_id,
        "title": movie.title,
        "overview": movie.overview,
        "tagline": movie.tagline,
        "posterPath": movie.poster_path,
        "backdropPath": movie.backdrop_path,
        "releaseDate": movie.release_date.isoformat() if movie.release_date else None,
        "runtime": movie.runtime,
        "genre": movie.genre_id,
        "genres": list(movie.genres or []),
        "cast": list(movie.cast or []),
        "director": movie.director,
        "voteAverage": movie.vote_average,
        "voteCount": movie.vote_count,
        "popularity": movie.popularity,
        "reviewCount": movie.review_count,
        "averageRating": movie.average_rating,
        "adult": movie.adult,
        "originalLanguage": movie.original_language,
        "isFeatured": movie.is_featured,
        "slug": movie.slug,
        "tmdbLastUpdated": movie.tmdb_last_updated.isoformat(),
        "createdAt": movie.created_at.isoformat(),
    }


def review_view(review: ReviewTable, author: UserTable | None = None) -> dict[str, Any]:
    return {
        "id": review.id,
        "movieId": review.movie_id,
        "tmdbId": review.tmdb_id,
        "author": author_view(author) if author is not None else {"id": review.author_id},
        "title": review.title,
        "content": review.content,
        "rating": review.rating,
        "likes": review.likes,
        "isPublished": review.is_published,
        "isFeatured": review.is_featured,
        "wordCount": review.word_count,
        "readTime": review.read_time,
        "commentCount": review.comment_count,
        "slug": review.slug,
        "createdAt": review.created_at.isoformat(),
        "updatedAt": review.updated_at.isoformat(),
    }


def comment_view(comment: CommentTable, author: UserTable | None = None) -> dict[str, Any]:
    return {
        "id": comment.id,
        "reviewId": comment.review_id,
        "author": author_view(author) if author is not None else {"id": comment.author_id},
        "content": comment.content,
        "parentComment": comment.parent_id,
        "likes": comment.likes,
        "wordCount": comment.word_count,
        "replyCount": comment.reply_count,
        "createdAt": comment.created_at.isoformat(),
    }


def comment_tree(rows: list[tuple[CommentTable, UserTable]]) -> list[dict[str, Any]]:
    """Nest replies under their parents; ``rows`` must be oldest first.

    Replies whose parent is not among ``rows`` are dropped.
    """
    by_id: dict[str, dict[str, Any]] = {}
    for comment, author in rows:
        by_id[comment.id] = {**comment_view(comment, author), "replies": []}

    top_level = []
    for comment, _ in rows:
        node = by_id[comment.id]
        if comment.parent_id is None:
            top_level.append(node)
        elif comment.parent_id in by_id:
            by_id[comment.parent_id]["replies"].append(node)
    return top_level


def favorite_view(favorite: FavoriteTable) -> dict[str, Any]:
    return {
        "tmdbId": favorite.tmdb_id,
        "movieId": favorite.movie_id,
        "reviewId": favorite.review_id,
        "tmdbData": favorite.tmdb_data,
        "addedAt": favorite.added_at.isoformat(),
    }


def watch_later_view(item: WatchLaterTable) -> dict[str, Any]:
    return {
        "tmdbId": item.tmdb_id,
        "tmdbData": item.tmdb_data,
        "isReleased": item.is_released,
        "addedAt": item.added_at.isoformat(),
    }
