"""
User model: registration, token sessions and device ownership.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from garage.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    reset_password_token: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    reset_password_expire: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    # Plain column: devices.user_id already points back at users
    checked_out_id: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def owner_id(self) -> int:
        return self.id
