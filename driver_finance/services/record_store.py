"""Owner-scoped queries over the relational store.

Every query takes an explicit filter dataclass rather than a free-form dict,
and every filter is validated before it reaches SQLAlchemy. Writes for daily
records go through :func:`apply_record_fields` so the stored ``expenses`` and
``profit`` always follow the same rule.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from driver_finance.exceptions import ValidationFailed
from driver_finance.models.db import (
    Achievement,
    Alert,
    BenchmarkEntry,
    DailyRecord,
    FuelLog,
    Goal,
    Maintenance,
    ITEMIZED_EXPENSE_FIELDS,
)
from driver_finance.models.db.enums import AlertCategory, BenchmarkPeriod, GoalType
from driver_finance.utils.metrics import as_float, round_money

ModelT = TypeVar("ModelT", DailyRecord, FuelLog, Maintenance)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range; either bound may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValidationFailed("start_date must not be after end_date", field="start_date")

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    @property
    def days(self) -> int:
        if self.start is None or self.end is None:
            raise ValueError("open range has no length")
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class RecordFilter:
    owner_id: int
    date_range: DateRange = field(default_factory=DateRange)
    newest_first: bool = False
    limit: Optional[int] = None
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValidationFailed("limit must be positive", field="limit")
        if self.offset < 0:
            raise ValidationFailed("offset must be >= 0", field="offset")


@dataclass(frozen=True)
class AlertFilter:
    owner_id: int
    category: Optional[AlertCategory] = None
    read: Optional[bool] = None
    limit: int = 50
    offset: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.limit <= 500:
            raise ValidationFailed("limit must be between 1 and 500", field="limit")
        if self.offset < 0:
            raise ValidationFailed("offset must be >= 0", field="offset")


@dataclass(frozen=True)
class GoalFilter:
    owner_id: int
    goal_type: Optional[GoalType] = None
    window: DateRange = field(default_factory=DateRange)


@dataclass(frozen=True)
class BenchmarkFilter:
    """Peer selection. ``exclude_owner_id`` is always the requester."""
    exclude_owner_id: int
    period: BenchmarkPeriod = BenchmarkPeriod.MONTH
    city: Optional[str] = None
    state: Optional[str] = None
    vehicle_type: Optional[str] = None
    platform: Optional[str] = None
    period_date: Optional[date] = None


# ------------------------------ generic reads ------------------------------ #

def _dated_query(session: Session, model: type[ModelT], owner_id: int, date_range: DateRange):
    query = session.query(model).filter(model.owner_id == owner_id)
    if date_range.start is not None:
        query = query.filter(model.date >= date_range.start)
    if date_range.end is not None:
        query = query.filter(model.date <= date_range.end)
    return query


def find_records(session: Session, flt: RecordFilter) -> list[DailyRecord]:
    query = _dated_query(session, DailyRecord, flt.owner_id, flt.date_range)
    order = DailyRecord.date.desc() if flt.newest_first else DailyRecord.date.asc()
    query = query.order_by(order).offset(flt.offset)
    if flt.limit is not None:
        query = query.limit(flt.limit)
    return query.all()


def find_record(session: Session, owner_id: int, record_id: int) -> DailyRecord | None:
    return session.query(DailyRecord).filter(
        DailyRecord.id == record_id, DailyRecord.owner_id == owner_id
    ).first()


def find_record_by_date(session: Session, owner_id: int, day: date) -> DailyRecord | None:
    return session.query(DailyRecord).filter(
        DailyRecord.owner_id == owner_id, DailyRecord.date == day
    ).first()


def count_records(session: Session, owner_id: int, date_range: DateRange | None = None) -> int:
    return _dated_query(session, DailyRecord, owner_id, date_range or DateRange()).count()


def sum_revenue(session: Session, owner_id: int, date_range: DateRange) -> float:
    query = session.query(func.coalesce(func.sum(DailyRecord.revenue), 0)).filter(DailyRecord.owner_id == owner_id)
    if date_range.start is not None:
        query = query.filter(DailyRecord.date >= date_range.start)
    if date_range.end is not None:
        query = query.filter(DailyRecord.date <= date_range.end)
    return round_money(as_float(query.scalar()))


def find_fuel_logs(session: Session, owner_id: int, date_range: DateRange | None = None) -> list[FuelLog]:
    query = _dated_query(session, FuelLog, owner_id, date_range or DateRange())
    return query.order_by(FuelLog.date.desc(), FuelLog.id.desc()).all()


def find_fuel_log(session: Session, owner_id: int, fuel_log_id: int) -> FuelLog | None:
    return session.query(FuelLog).filter(FuelLog.id == fuel_log_id, FuelLog.owner_id == owner_id).first()


def latest_fuel_log(session: Session, owner_id: int) -> FuelLog | None:
    return (
        session.query(FuelLog)
        .filter(FuelLog.owner_id == owner_id)
        .order_by(FuelLog.date.desc(), FuelLog.id.desc())
        .first()
    )


def find_maintenances(session: Session, owner_id: int, date_range: DateRange | None = None) -> list[Maintenance]:
    query = _dated_query(session, Maintenance, owner_id, date_range or DateRange())
    return query.order_by(Maintenance.date.desc(), Maintenance.id.desc()).all()


def find_maintenance(session: Session, owner_id: int, maintenance_id: int) -> Maintenance | None:
    return session.query(Maintenance).filter(
        Maintenance.id == maintenance_id, Maintenance.owner_id == owner_id
    ).first()


def latest_maintenance(session: Session, owner_id: int) -> Maintenance | None:
    return (
        session.query(Maintenance)
        .filter(Maintenance.owner_id == owner_id)
        .order_by(Maintenance.date.desc(), Maintenance.id.desc())
        .first()
    )


def find_goals(session: Session, flt: GoalFilter) -> list[Goal]:
    query = session.query(Goal).filter(Goal.owner_id == flt.owner_id)
    if flt.goal_type is not None:
        query = query.filter(Goal.type == flt.goal_type)
    if flt.window.start is not None:
        query = query.filter(Goal.target_period >= flt.window.start)
    if flt.window.end is not None:
        query = query.filter(Goal.target_period <= flt.window.end)
    return query.order_by(Goal.target_period.desc(), Goal.id.desc()).all()


def find_goal(session: Session, owner_id: int, goal_id: int) -> Goal | None:
    return session.query(Goal).filter(Goal.id == goal_id, Goal.owner_id == owner_id).first()


def latest_goal_in_window(session: Session, owner_id: int, goal_type: GoalType, window: DateRange) -> Goal | None:
    """Most recent ``target_period`` inside the window; earlier goals in the same window are ignored."""
    goals = find_goals(session, GoalFilter(owner_id=owner_id, goal_type=goal_type, window=window))
    return goals[0] if goals else None


def find_alerts(session: Session, flt: AlertFilter) -> list[Alert]:
    query = session.query(Alert).filter(Alert.owner_id == flt.owner_id)
    if flt.category is not None:
        query = query.filter(Alert.category == flt.category)
    if flt.read is not None:
        query = query.filter(Alert.read == flt.read)
    return query.order_by(Alert.created_at.desc(), Alert.id.desc()).offset(flt.offset).limit(flt.limit).all()


def find_alert(session: Session, owner_id: int, alert_id: int) -> Alert | None:
    return session.query(Alert).filter(Alert.id == alert_id, Alert.owner_id == owner_id).first()


def find_achievements(session: Session, owner_id: int) -> list[Achievement]:
    return (
        session.query(Achievement)
        .filter(Achievement.owner_id == owner_id)
        .order_by(Achievement.unlocked_at.desc(), Achievement.id.desc())
        .all()
    )


def _benchmark_query(session: Session, flt: BenchmarkFilter):
    query = session.query(BenchmarkEntry).filter(
        BenchmarkEntry.owner_id != flt.exclude_owner_id,
        BenchmarkEntry.period == flt.period,
    )
    if flt.city:
        query = query.filter(BenchmarkEntry.city == flt.city)
    if flt.state:
        query = query.filter(BenchmarkEntry.state == flt.state)
    if flt.vehicle_type:
        query = query.filter(BenchmarkEntry.vehicle_type == flt.vehicle_type)
    if flt.platform:
        query = query.filter(BenchmarkEntry.platform == flt.platform)
    if flt.period_date is not None:
        query = query.filter(BenchmarkEntry.period_date == flt.period_date)
    return query


def latest_benchmark_period(session: Session, flt: BenchmarkFilter) -> date | None:
    entry = _benchmark_query(session, flt).order_by(BenchmarkEntry.period_date.desc()).first()
    return entry.period_date if entry else None


def find_benchmark_entries(session: Session, flt: BenchmarkFilter) -> list[BenchmarkEntry]:
    return _benchmark_query(session, flt).order_by(BenchmarkEntry.id.asc()).all()


# --------------------------------- writes --------------------------------- #

def itemized_total(values: Mapping[str, Any] | DailyRecord) -> float:
    if isinstance(values, DailyRecord):
        return sum(as_float(getattr(values, name)) for name in ITEMIZED_EXPENSE_FIELDS)
    return sum(as_float(values.get(name)) for name in ITEMIZED_EXPENSE_FIELDS)


def apply_record_fields(record: DailyRecord, fields: Mapping[str, Any], *, explicit_expenses: Optional[float] = None) -> DailyRecord:
    """Copy validated fields onto ``record`` and recompute ``expenses``/``profit``.

    Stored expenses: the explicit total when given and non-zero, else the sum
    of itemized fields, else 0. Itemized zeros are stored as NULL.
    """
    for name, value in fields.items():
        if name in ITEMIZED_EXPENSE_FIELDS and not value:
            value = None
        setattr(record, name, value)

    itemized = itemized_total(record)
    if explicit_expenses:
        expenses = float(explicit_expenses)
    elif itemized > 0:
        expenses = itemized
    else:
        expenses = 0.0
    record.expenses = round_money(expenses)
    record.profit = round_money(as_float(record.revenue) - record.expenses)
    return record


__all__ = [
    "DateRange",
    "RecordFilter",
    "AlertFilter",
    "GoalFilter",
    "BenchmarkFilter",
    "find_records",
    "find_record",
    "find_record_by_date",
    "count_records",
    "sum_revenue",
    "find_fuel_logs",
    "find_fuel_log",
    "latest_fuel_log",
    "find_maintenances",
    "find_maintenance",
    "latest_maintenance",
    "find_goals",
    "find_goal",
    "latest_goal_in_window",
    "find_alerts",
    "find_alert",
    "find_achievements",
    "latest_benchmark_period",
    "find_benchmark_entries",
    "itemized_total",
    "apply_record_fields",
]
