"""Typed failures of the TMDB client."""

from __future__ import annotations


class UpstreamError(Exception):
    """Base class for TMDB failures that could not be served from a stale copy."""


class UpstreamHTTPError(UpstreamError):
    """TMDB answered with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"TMDB API Error {status}: {message}")


class UpstreamUnreachableError(UpstreamError):
    """No response was received from TMDB."""

    def __init__(self, message: str = "No response received from TMDB") -> None:
        self.message = message
        super().__init__(message)


class UpstreamClientError(UpstreamError):
    """The request could not be built or sent (bad arguments, missing credentials)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
