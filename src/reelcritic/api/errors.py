"""Exception handlers rendering the ``{error, message}`` envelope.

Every failure path produces a structured body with a machine-stable
``error`` code and a human ``message``. Stack traces are attached only
when the application runs with ``env == "dev"``.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from reelcritic.errors import ApiError, RateLimitedError
from reelcritic.tmdb.errors import UpstreamError, UpstreamUnreachableError

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: "BadRequest",
    401: "AuthenticationError",
    403: "AuthorizationError",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    429: "TooManyRequests",
}


def _is_dev(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is not None and settings.env == "dev"


def _with_stack(request: Request, body: dict[str, Any], exc: BaseException) -> dict[str, Any]:
    if _is_dev(request):
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


async def api_error_handler(request: Request, exc: ApiError) -> ORJSONResponse:
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return ORJSONResponse(
        status_code=exc.status_code,
        content=_with_stack(request, exc.to_dict(), exc),
        headers=headers,
    )


async def upstream_error_handler(request: Request, exc: UpstreamError) -> ORJSONResponse:
    """TMDB failures without a stale fallback; upstream detail is not exposed."""
    logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc}")
    if isinstance(exc, UpstreamUnreachableError):
        status_code, message = 503, "Movie data service is unavailable"
    else:
        status_code, message = 502, "Movie data service request failed"
    body = {"error": "UpstreamError", "message": message}
    return ORJSONResponse(status_code=status_code, content=_with_stack(request, body, exc))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return ORJSONResponse(
        status_code=400,
        content={"error": "ValidationError", "message": "Validation failed", "details": details},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "Error")
    message = exc.detail if isinstance(exc.detail, str) else code
    if exc.status_code == 404 and message == "Not Found":
        message = f"Not Found - {request.url.path}"
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"error": code, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = {"error": "InternalServerError", "message": "An unexpected error occurred"}
    return ORJSONResponse(status_code=500, content=_with_stack(request, body, exc))
