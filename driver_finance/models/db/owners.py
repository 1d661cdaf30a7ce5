from __future__ import annotations
"""SQLAlchemy model for owners (the drivers whose finances are tracked)."""
from typing import TYPE_CHECKING, Any
from sqlalchemy import Integer, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .records import DailyRecord
    from .fuel_logs import FuelLog
    from .maintenances import Maintenance
    from .goals import Goal
    from .alerts import Alert
    from .achievements import Achievement
    from .api_keys import ApiKey
from sqlalchemy.sql import func
from driver_finance.database import Base


class Owner(Base):
    __tablename__ = "owners"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    # primary key issued at registration; further keys live in api_keys
    api_key: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Attributes used to scope anonymous benchmark comparisons
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    vehicle_type: Mapped[str | None] = mapped_column(String, nullable=True)

    # notifications / display / privacy sections, deep-merged on update
    preferences: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    records: Mapped[list["DailyRecord"]] = relationship("DailyRecord", back_populates="owner", cascade="all, delete-orphan")
    fuel_logs: Mapped[list["FuelLog"]] = relationship("FuelLog", back_populates="owner", cascade="all, delete-orphan")
    maintenances: Mapped[list["Maintenance"]] = relationship("Maintenance", back_populates="owner", cascade="all, delete-orphan")
    goals: Mapped[list["Goal"]] = relationship("Goal", back_populates="owner", cascade="all, delete-orphan")
    alerts: Mapped[list["Alert"]] = relationship("Alert", back_populates="owner", cascade="all, delete-orphan")
    achievements: Mapped[list["Achievement"]] = relationship("Achievement", back_populates="owner", cascade="all, delete-orphan")
    api_keys: Mapped[list["ApiKey"]] = relationship("ApiKey", back_populates="owner", cascade="all, delete-orphan")

    @property
    def participates_in_benchmarking(self) -> bool:
        privacy = (self.preferences or {}).get("privacy") or {}
        return bool(privacy.get("participate_benchmarking", False))
