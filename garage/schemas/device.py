"""Pydantic schemas for Device CRUD and checkout."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class DeviceCreate(BaseModel):
    device: str = Field(max_length=50)
    os: str = Field(max_length=25)
    manufacturer: str = Field(max_length=100)

    @field_validator("device", "os", "manufacturer")
    @classmethod
    def _required(cls, v: str) -> str:
        return _not_blank(v)


class DeviceUpdate(BaseModel):
    """Body of ``PUT /devices/{id}``.

    ``is_checkedout`` is only honoured on the checkout route (``?check``);
    the general edit route rejects it.
    """

    device: str | None = Field(default=None, max_length=50)
    os: str | None = Field(default=None, max_length=25)
    manufacturer: str | None = Field(default=None, max_length=100)
    is_checkedout: bool | None = None

    @field_validator("device", "os", "manufacturer")
    @classmethod
    def _required(cls, v: str | None) -> str | None:
        return None if v is None else _not_blank(v)

    def edits(self) -> dict:
        """Explicitly supplied general-edit fields."""
        return self.model_dump(exclude_unset=True, exclude={"is_checkedout"})

    @property
    def carries_checkout_flag(self) -> bool:
        return "is_checkedout" in self.model_fields_set


class DeviceImage(BaseModel):
    data: bytes
    content_type: str | None = None

    model_config = {"ser_json_bytes": "base64", "val_json_bytes": "base64"}


class DeviceRead(BaseModel):
    id: int
    device: str
    os: str
    manufacturer: str
    image: DeviceImage | None = None
    is_checkedout: bool
    last_checkedout_date: datetime | None = None
    last_checkedout_by: int | None = Field(default=None, validation_alias="last_checkedout_by_id")
    user: int = Field(validation_alias="user_id")
    created_at: datetime | None = None

    model_config = {"from_attributes": True, "populate_by_name": True}
