from __future__ import annotations
"""SQLAlchemy model for unlocked achievements (at most one per owner and type)."""
from typing import TYPE_CHECKING, Any
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .owners import Owner
from sqlalchemy.sql import func
from driver_finance.database import Base


class Achievement(Base):
    __tablename__ = "achievements"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    details: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    owner: Mapped["Owner"] = relationship("Owner", back_populates="achievements")

    __table_args__ = (
        UniqueConstraint("owner_id", "type", name="uq_achievement_owner_type"),
    )
