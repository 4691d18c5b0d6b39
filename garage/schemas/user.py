"""Pydantic schemas for User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(
    r"^(([^<>()\[\]\\.,;:\s@\"]+(\.[^<>()\[\]\\.,;:\s@\"]+)*)|(\".+\"))"
    r"@((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$"
)


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("must be a valid email address")
    return v


def _clean_user_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name is mandatory")
    return v


class UserCreate(BaseModel):
    user_name: str = Field(max_length=100)
    email: str
    password: str

    @field_validator("user_name")
    @classmethod
    def _user_name(cls, v: str) -> str:
        return _clean_user_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class UserUpdate(BaseModel):
    user_name: str | None = Field(default=None, max_length=100)
    email: str | None = None

    @field_validator("user_name")
    @classmethod
    def _user_name(cls, v: str | None) -> str | None:
        return None if v is None else _clean_user_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return None if v is None else _normalise_email(v)


class UserRead(BaseModel):
    id: int
    user_name: str
    email: str
    checked_out: int | None = Field(default=None, validation_alias="checked_out_id")
    created_at: datetime | None

    model_config = {"from_attributes": True, "populate_by_name": True}


class PasswordChange(BaseModel):
    old_password: str
    new_password: str
