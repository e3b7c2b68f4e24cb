"""Page arithmetic and the pagination envelope."""

from __future__ import annotations

import math
from typing import Any


def offset_for(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def page_envelope(page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
