"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: T
    error: bool = False


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    error: bool = False


# ── List endpoints ─────────────────────────────────────────────────
class PaginationRead(BaseModel):
    prev: int | None = None
    next: int | None = None


class ListEnvelope(BaseModel):
    """Either ``data`` or ``message`` is set, never both."""

    success: bool
    count: int
    pagination: PaginationRead
    data: list[dict[str, Any]] | None = None
    message: str | None = None
    error: bool


# ── Health ─────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
