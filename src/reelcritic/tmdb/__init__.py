"""TMDB integration: rate-limited, cached API client."""

from reelcritic.tmdb.client import TmdbClient, endpoint_ttl
from reelcritic.tmdb.errors import (
    UpstreamClientError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamUnreachableError,
)
from reelcritic.tmdb.governor import SlidingWindowGovernor

__all__ = [
    "SlidingWindowGovernor",
    "TmdbClient",
    "UpstreamClientError",
    "UpstreamError",
    "UpstreamHTTPError",
    "UpstreamUnreachableError",
    "endpoint_ttl",
]
