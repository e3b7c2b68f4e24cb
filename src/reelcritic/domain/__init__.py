"""Domain layer: resolvers, likes and JSON views."""

from reelcritic.domain.content import CONTENT_REPOSITORIES, ContentKind, content_repository
from reelcritic.domain.likes import LikeService
from reelcritic.domain.resolvers import (
    MovieResolver,
    MovieWriteService,
    ReviewPageResolver,
    apply_tmdb_details,
    invalidate_movie,
)
from reelcritic.domain.reviews import ReviewService

__all__ = [
    "CONTENT_REPOSITORIES",
    "ContentKind",
    "LikeService",
    "MovieResolver",
    "MovieWriteService",
    "ReviewPageResolver",
    "ReviewService",
    "apply_tmdb_details",
    "content_repository",
    "invalidate_movie",
]
