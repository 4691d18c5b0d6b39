"""Pydantic schemas for JWT tokens."""

from __future__ import annotations

from pydantic import BaseModel


class Token(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
