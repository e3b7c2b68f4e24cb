"""Error taxonomy shared by the domain layer and the HTTP surface.

Each error carries an HTTP status, a machine-stable ``code`` and a human
``message``. The API layer renders them as ``{"error": code, "message": ...}``.
"""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base class for errors that map onto a structured HTTP response."""

    status_code = 500
    code = "InternalServerError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """Malformed or missing input (400)."""

    status_code = 400
    code = "ValidationError"


class AuthenticationError(ApiError):
    """No valid credentials (401)."""

    status_code = 401
    code = "AuthenticationError"

    def __init__(self, message: str = "Not authorized, no token") -> None:
        super().__init__(message)


class AuthorizationError(ApiError):
    """Caller lacks the rights for this action (403)."""

    status_code = 403
    code = "AuthorizationError"

    def __init__(self, message: str = "Not authorized for this action") -> None:
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found (404)."""

    status_code = 404
    code = "NotFound"

    def __init__(self, resource_type: str, identifier: Any = None) -> None:
        message = f"{resource_type} not found"
        if identifier is not None:
            message = f"{resource_type} '{identifier}' not found"
        super().__init__(message)
        self.resource_type = resource_type


class ConflictError(ApiError):
    """Duplicate resource (409 unless the handler asks for 400)."""

    status_code = 409
    code = "Conflict"


class RateLimitedError(ApiError):
    """Too many requests (429)."""

    status_code = 429
    code = "TooManyRequests"

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "retryAfter": self.retry_after}


class ServiceNotReadyError(ApiError):
    """A required service has not been initialized (503)."""

    status_code = 503
    code = "ServiceNotReady"

    def __init__(self, service: str) -> None:
        super().__init__(f"{service} is not available")
        self.service = service
