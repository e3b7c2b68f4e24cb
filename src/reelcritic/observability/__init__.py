"""Observability for ReelCritic: structured logging with request ids."""

from reelcritic.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    bind_user,
    configure_logging,
    log_context,
    request_context,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "bind_user",
    "configure_logging",
    "log_context",
    "request_context",
]
