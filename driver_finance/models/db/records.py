from __future__ import annotations
"""SQLAlchemy model for daily financial records (one row per owner per calendar day)."""
from typing import TYPE_CHECKING
import datetime as dt
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .owners import Owner
from sqlalchemy.sql import func
from driver_finance.database import Base

Money = Numeric(12, 2, asdecimal=False)

ITEMIZED_EXPENSE_FIELDS = (
    "expense_fuel",
    "expense_maintenance",
    "expense_food",
    "expense_wash",
    "expense_toll",
    "expense_parking",
    "expense_other",
)


class DailyRecord(Base):
    __tablename__ = "daily_records"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)

    platforms: Mapped[list[str]] = mapped_column(JSON, default=list)
    revenue: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    # platform -> amount, when the driver split the day's revenue
    revenue_breakdown: Mapped[dict[str, float] | None] = mapped_column(JSON, nullable=True)

    expenses: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    expense_fuel: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_maintenance: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_food: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_wash: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_toll: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_parking: Mapped[float | None] = mapped_column(Money, nullable=True)
    expense_other: Mapped[float | None] = mapped_column(Money, nullable=True)

    distance: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    fuel_efficiency: Mapped[float | None] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=True)
    trips_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_worked: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # Always revenue - expenses, recomputed on every write
    profit: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    owner: Mapped["Owner"] = relationship("Owner", back_populates="records")

    __table_args__ = (
        UniqueConstraint("owner_id", "date", name="uq_daily_record_owner_date"),
    )
