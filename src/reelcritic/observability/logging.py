"""Logging setup for ReelCritic.

Production writes one JSON object per line; development logs through a
rich console handler. Both attach the ids of the request being served:
``CorrelationMiddleware`` opens a ``request_context`` and the auth
dependency adds the user with ``bind_user``.

Usage:
    configure_logging(json_format=settings.env != "dev", level="INFO")
    logger = logging.getLogger(__name__)
    logger.info("Resolving movie", extra={"tmdb_id": 550})
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

import orjson
from rich.console import Console
from rich.logging import RichHandler

_context: contextvars.ContextVar[dict[str, str] | None] = contextvars.ContextVar(
    "reelcritic_log_context", default=None
)

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

_QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
}


def log_context() -> dict[str, str]:
    """Ids bound to the current request, empty outside of one."""
    return dict(_context.get() or {})


@contextmanager
def request_context(request_id: str, correlation_id: str) -> Iterator[None]:
    token = _context.set({"request_id": request_id, "correlation_id": correlation_id})
    try:
        yield
    finally:
        _context.reset(token)


def bind_user(user_id: str) -> None:
    """Add the authenticated user to the current request's log context."""
    _context.set({**log_context(), "user_id": user_id})


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    Example:
        {"timestamp": "2026-01-10T12:34:56.789+00:00", "level": "INFO",
         "logger": "reelcritic.domain.resolvers", "message": "Created movie Heat",
         "request_id": "9f2c...", "correlation_id": "9f2c...", "tmdb_id": 949}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **log_context(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Message text for ``RichHandler``, which draws time, level and tracebacks."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.name}: {record.getMessage()}"
        request_id = log_context().get("request_id")
        if request_id:
            line += f" [req {request_id[:8]}]"
        return line


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Replace the root handlers with a single JSON or console handler."""
    handler: logging.Handler
    if json_format:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
