"""
Device model: borrowable hardware and its checkout state.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer,
                        LargeBinary, String)
from sqlalchemy.orm import relationship

from garage.db.base import Base


class Device(Base):
    __tablename__ = "devices"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    device: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    os: str = Column(String(25), nullable=False)  # type: ignore[assignment]
    manufacturer: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    image_data: bytes | None = Column(LargeBinary, nullable=True)  # type: ignore[assignment]
    image_content_type: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    is_checkedout: bool = Column(  # type: ignore[assignment]
        Boolean, nullable=False, default=False, server_default="false", index=True
    )
    last_checkedout_date: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    last_checkedout_by_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    user = relationship("User", foreign_keys=[user_id])
    last_checkedout_by = relationship("User", foreign_keys=[last_checkedout_by_id])

    @property
    def owner_id(self) -> int:
        return self.user_id

    @property
    def image(self) -> dict | None:
        if self.image_data is None:
            return None
        return {"data": self.image_data, "content_type": self.image_content_type}
