from __future__ import annotations
"""SQLAlchemy model for revenue goals."""
from typing import TYPE_CHECKING
from datetime import date, datetime
from sqlalchemy import Integer, Boolean, Date, DateTime, ForeignKey, Numeric, Enum, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .owners import Owner
from sqlalchemy.sql import func
from driver_finance.database import Base
from .enums import GoalType


class Goal(Base):
    __tablename__ = "goals"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    type: Mapped[GoalType] = mapped_column(Enum(GoalType), nullable=False, index=True)
    target_period: Mapped[date] = mapped_column(Date, nullable=False)
    target_value: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    # Kept in sync with summed revenue for the goal's window
    current_value: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    achieved: Mapped[bool] = mapped_column(Boolean, default=False)
    achieved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    owner: Mapped["Owner"] = relationship("Owner", back_populates="goals")

    __table_args__ = (
        UniqueConstraint("owner_id", "type", "target_period", name="uq_goal_owner_type_period"),
    )
