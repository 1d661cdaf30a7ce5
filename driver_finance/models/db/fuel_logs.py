from __future__ import annotations
"""SQLAlchemy model for fuel purchases."""
from typing import TYPE_CHECKING
import datetime as dt
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .owners import Owner
from sqlalchemy.sql import func
from driver_finance.database import Base


class FuelLog(Base):
    __tablename__ = "fuel_logs"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    liters: Mapped[float] = mapped_column(Numeric(8, 2, asdecimal=False), nullable=False)
    price: Mapped[float] = mapped_column(Numeric(8, 3, asdecimal=False), nullable=False)
    total_cost: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    odometer: Mapped[float | None] = mapped_column(Numeric(10, 1, asdecimal=False), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    owner: Mapped["Owner"] = relationship("Owner", back_populates="fuel_logs")
