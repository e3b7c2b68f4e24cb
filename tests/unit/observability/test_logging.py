"""Tests for structured logging."""

from __future__ import annotations

import logging

import orjson
from rich.logging import RichHandler

from reelcritic.observability import (
    ConsoleFormatter,
    JsonFormatter,
    bind_user,
    configure_logging,
    log_context,
    request_context,
)


def _record(message: str = "Resolving movie 550", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "reelcritic.domain.resolvers", logging.INFO, __file__, 10, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContext:
    def test_empty_outside_requests(self) -> None:
        assert log_context() == {}

    def test_bound_and_restored(self) -> None:
        with request_context("req-1", "corr-1"):
            bind_user("user-9")
            assert log_context() == {
                "request_id": "req-1",
                "correlation_id": "corr-1",
                "user_id": "user-9",
            }
        assert log_context() == {}


class TestJsonFormatter:
    def test_basic_fields(self) -> None:
        data = orjson.loads(JsonFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "reelcritic.domain.resolvers"
        assert data["message"] == "Resolving movie 550"
        assert "request_id" not in data

    def test_request_context_is_attached(self) -> None:
        with request_context("req-123", "corr-456"):
            data = orjson.loads(JsonFormatter().format(_record()))
        assert data["request_id"] == "req-123"
        assert data["correlation_id"] == "corr-456"

    def test_extra_fields(self) -> None:
        """Values passed through ``extra=`` become top-level keys."""
        data = orjson.loads(JsonFormatter().format(_record(tmdb_id=550)))
        assert data["tmdb_id"] == 550
        assert "lineno" not in data


class TestConsoleFormatter:
    def test_plain_line(self) -> None:
        line = ConsoleFormatter().format(_record())
        assert line == "reelcritic.domain.resolvers: Resolving movie 550"

    def test_short_request_id(self) -> None:
        with request_context("0123456789abcdef", "x"):
            line = ConsoleFormatter().format(_record())
        assert line.endswith("[req 01234567]")


class TestConfigureLogging:
    def test_installs_single_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(json_format=True, level="DEBUG")
            assert isinstance(root.handlers[0].formatter, JsonFormatter)

            configure_logging(json_format=False, level="warning")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0], RichHandler)
            assert root.level == logging.WARNING
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
