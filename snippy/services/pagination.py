"""Pagination helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from snippy.config import settings


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class PaginationParams:
    """Validated page/limit pair and the derived row offset."""

    page: int
    limit: int
    offset: int

    @classmethod
    def from_query(
        cls,
        page: Any = None,
        limit: Any = None,
        *,
        default_page: int | None = None,
        default_limit: int | None = None,
        max_limit: int | None = None,
    ) -> PaginationParams:
        """Clamp raw query values: page >= 1 and 1 <= limit <= max_limit."""
        default_page = default_page or settings.pagination_default_page
        default_limit = default_limit or settings.pagination_default_limit
        max_limit = max_limit or settings.pagination_max_limit

        resolved_page = max(1, _coerce_int(page, default=default_page) if page else default_page)
        resolved_limit = min(
            max_limit,
            max(1, _coerce_int(limit, default=default_limit) if limit else default_limit),
        )
        return cls(
            page=resolved_page,
            limit=resolved_limit,
            offset=(resolved_page - 1) * resolved_limit,
        )
