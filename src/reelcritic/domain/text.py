"""Text helpers for slugs and reading statistics."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

WORDS_PER_MINUTE = 200


def slugify(text: str) -> str:
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def word_count(text: str) -> int:
    return len(text.split())


def read_time(words: int) -> int:
    """Minutes needed to read ``words`` words, never less than one."""
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
