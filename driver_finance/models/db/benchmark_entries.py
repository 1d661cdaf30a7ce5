from __future__ import annotations
"""SQLAlchemy model for anonymized benchmark snapshots.

``owner_id`` is retained only so an owner's snapshots can be removed on
request; aggregation queries never read it back except to exclude the
requester.
"""
from datetime import date
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, Numeric, Enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from driver_finance.database import Base
from .enums import BenchmarkPeriod


class BenchmarkEntry(Base):
    __tablename__ = "benchmark_entries"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True, index=True)
    vehicle_type: Mapped[str | None] = mapped_column(String, nullable=True)
    platform: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    period: Mapped[BenchmarkPeriod] = mapped_column(Enum(BenchmarkPeriod), nullable=False)
    period_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    avg_daily_profit: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    avg_profit_per_distance: Mapped[float] = mapped_column(Numeric(8, 4, asdecimal=False), nullable=False)
    avg_days_worked: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    efficiency: Mapped[float] = mapped_column(Numeric(8, 4, asdecimal=False), nullable=False)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
