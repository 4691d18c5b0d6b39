"""
Skip/limit windowing for list endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

UNBOUNDED = "all"
# Keeps skip = (page-1)*limit inside a signed 64-bit OFFSET
_MAX_VALUE = 2**31 - 1


@dataclass(frozen=True)
class Page:
    number: int
    limit: int | None  # None → no limit ("all")
    skip: int
    prev: int | None
    next: int | None


def parse_page(raw: str | None) -> int:
    try:
        page = int(raw) if raw is not None else 1
    except ValueError:
        return 1
    return min(page, _MAX_VALUE) if page >= 1 else 1


def parse_limit(raw: str | None, default: int) -> int | None:
    if raw == UNBOUNDED:
        return None
    try:
        limit = int(raw) if raw is not None else default
    except ValueError:
        return default
    return min(limit, _MAX_VALUE) if limit >= 1 else default


def paginate(total: int, page: int, limit: int | None) -> Page:
    """Compute the window and prev/next markers for *total* matches."""
    if limit is None:
        return Page(number=page, limit=None, skip=0, prev=None, next=None)
    skip = (page - 1) * limit
    return Page(
        number=page,
        limit=limit,
        skip=skip,
        prev=page - 1 if skip > 0 else None,
        next=page + 1 if page * limit < total else None,
    )
