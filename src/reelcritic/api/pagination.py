"""Page-number pagination parameters for list endpoints.

Responses carry the envelope from ``reelcritic.domain.pagination``:
``{currentPage, totalPages, totalItems, hasNextPage, hasPrevPage}``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Query

from reelcritic.domain.pagination import offset_for, page_envelope

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

PageParam = Annotated[int, Query(ge=1, description="1-based page number")]
LimitParam = Annotated[
    int,
    Query(ge=1, le=MAX_LIMIT, description=f"Items per page (1-{MAX_LIMIT})"),
]

__all__ = [
    "DEFAULT_LIMIT",
    "LimitParam",
    "MAX_LIMIT",
    "PageParam",
    "offset_for",
    "page_envelope",
]
