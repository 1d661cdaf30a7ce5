"""Period statistics over daily records.

Expense precedence is made explicit: every resolver returns the amount and
the :class:`ExpenseStrategy` that produced it.

Fuel for one record:
  1. itemized ``expense_fuel`` when positive
  2. derived: distance / fuel_efficiency * owner-wide average fuel price
  3. none (0)

Expenses for one record:
  1. itemized fields (fuel as above; maintenance falls back to maintenance
     logs dated the same day)
  2. raw ``expenses`` field

Expenses for a period:
  1. sum of per-record itemized amounts (fuel as above)
  2. sum of raw ``expenses`` when the itemized sum is zero

All ratios go through ``safe_div`` so empty distance/hours/trips yield 0.
Nothing here touches the database.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from driver_finance.exceptions import ValidationFailed
from driver_finance.models.db import DailyRecord, FuelLog, Maintenance
from driver_finance.models.db.enums import ExpenseStrategy, StatsPeriod
from driver_finance.services.record_store import DateRange
from driver_finance.utils.metrics import as_float, round_money, safe_div
from driver_finance.utils.time import month_start, sunday_first_weekday, week_start_sunday

_NON_FUEL_FIELDS = ("expense_food", "expense_wash", "expense_toll", "expense_parking", "expense_other")


@dataclass(frozen=True)
class ExpenseResolution:
    amount: float
    strategy: ExpenseStrategy


@dataclass
class DayMetrics:
    date: date
    revenue: float
    expenses: float
    profit: float
    expense_strategy: ExpenseStrategy


@dataclass
class PeriodStats:
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    distance: float = 0.0
    fuel_cost: float = 0.0
    maintenance_cost: float = 0.0
    food_expenses: float = 0.0
    wash_expenses: float = 0.0
    toll_expenses: float = 0.0
    parking_expenses: float = 0.0
    other_expenses: float = 0.0
    days_worked: int = 0
    avg_profit_per_day: float = 0.0
    profit_per_distance: float = 0.0
    cost_per_distance: float = 0.0
    revenue_per_distance: float = 0.0
    total_trips: int = 0
    total_hours: float = 0.0
    avg_ticket: float = 0.0
    profit_per_hour: float = 0.0
    revenue_per_hour: float = 0.0
    platforms: list[str] = field(default_factory=list)
    expense_strategy: ExpenseStrategy = ExpenseStrategy.NONE
    best_day: Optional[DayMetrics] = None
    worst_day: Optional[DayMetrics] = None
    daily: list[DayMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def average_fuel_price(fuel_logs: Iterable[FuelLog]) -> Optional[float]:
    """Owner-wide price per litre: total spent / total litres."""
    total_cost = 0.0
    total_liters = 0.0
    for log in fuel_logs:
        total_cost += as_float(log.total_cost)
        total_liters += as_float(log.liters)
    if total_liters <= 0:
        return None
    return total_cost / total_liters


def resolve_fuel_cost(record: DailyRecord, average_price: Optional[float]) -> ExpenseResolution:
    itemized = as_float(record.expense_fuel)
    if itemized > 0:
        return ExpenseResolution(itemized, ExpenseStrategy.ITEMIZED)
    distance = as_float(record.distance)
    efficiency = as_float(record.fuel_efficiency)
    if average_price and distance > 0 and efficiency > 0:
        return ExpenseResolution(distance / efficiency * average_price, ExpenseStrategy.DERIVED_FUEL)
    return ExpenseResolution(0.0, ExpenseStrategy.NONE)


def _itemized_amount(record: DailyRecord, fuel: ExpenseResolution, maintenance: float) -> float:
    return fuel.amount + maintenance + sum(as_float(getattr(record, name)) for name in _NON_FUEL_FIELDS)


def resolve_record_expenses(
    record: DailyRecord,
    average_price: Optional[float],
    maintenance_on_day: float = 0.0,
) -> ExpenseResolution:
    fuel = resolve_fuel_cost(record, average_price)
    maintenance = as_float(record.expense_maintenance) or maintenance_on_day
    itemized = _itemized_amount(record, fuel, maintenance)
    if itemized > 0:
        strategy = ExpenseStrategy.DERIVED_FUEL if fuel.strategy == ExpenseStrategy.DERIVED_FUEL else ExpenseStrategy.ITEMIZED
        return ExpenseResolution(itemized, strategy)
    raw = as_float(record.expenses)
    if raw > 0:
        return ExpenseResolution(raw, ExpenseStrategy.RAW)
    return ExpenseResolution(0.0, ExpenseStrategy.NONE)


def resolve_period_expenses(records: Sequence[DailyRecord], average_price: Optional[float]) -> ExpenseResolution:
    itemized = 0.0
    derived = False
    for record in records:
        fuel = resolve_fuel_cost(record, average_price)
        derived = derived or fuel.strategy == ExpenseStrategy.DERIVED_FUEL
        itemized += _itemized_amount(record, fuel, as_float(record.expense_maintenance))
    if itemized > 0:
        return ExpenseResolution(itemized, ExpenseStrategy.DERIVED_FUEL if derived else ExpenseStrategy.ITEMIZED)
    raw = sum(as_float(r.expenses) for r in records)
    if raw > 0:
        return ExpenseResolution(raw, ExpenseStrategy.RAW)
    return ExpenseResolution(0.0, ExpenseStrategy.NONE)


def _maintenance_by_day(maintenances: Iterable[Maintenance]) -> dict[date, float]:
    totals: dict[date, float] = defaultdict(float)
    for item in maintenances:
        totals[item.date] += as_float(item.cost)
    return totals


def aggregate_period(
    records: Sequence[DailyRecord],
    *,
    average_price: Optional[float] = None,
    maintenances: Sequence[Maintenance] = (),
) -> PeriodStats:
    """Reduce one period's records (and its maintenance logs) to a PeriodStats."""
    stats = PeriodStats()
    if not records:
        stats.maintenance_cost = round_money(sum(as_float(m.cost) for m in maintenances))
        return stats

    maintenance_days = _maintenance_by_day(maintenances)
    platforms: dict[str, None] = {}

    for record in records:
        revenue = as_float(record.revenue)
        day = resolve_record_expenses(record, average_price, maintenance_days.get(record.date, 0.0))
        metrics = DayMetrics(
            date=record.date,
            revenue=round_money(revenue),
            expenses=round_money(day.amount),
            profit=round_money(revenue - day.amount),
            expense_strategy=day.strategy,
        )
        stats.daily.append(metrics)
        # strict comparisons: the first record seen keeps a tie
        if stats.best_day is None or metrics.profit > stats.best_day.profit:
            stats.best_day = metrics
        if stats.worst_day is None or metrics.profit < stats.worst_day.profit:
            stats.worst_day = metrics

        stats.revenue += revenue
        stats.distance += as_float(record.distance)
        stats.fuel_cost += resolve_fuel_cost(record, average_price).amount
        stats.food_expenses += as_float(record.expense_food)
        stats.wash_expenses += as_float(record.expense_wash)
        stats.toll_expenses += as_float(record.expense_toll)
        stats.parking_expenses += as_float(record.expense_parking)
        stats.other_expenses += as_float(record.expense_other)
        stats.total_trips += int(record.trips_count or 0)
        stats.total_hours += as_float(record.hours_worked)
        for platform in record.platforms or []:
            platforms.setdefault(platform, None)

    period = resolve_period_expenses(records, average_price)
    stats.expenses = period.amount
    stats.expense_strategy = period.strategy
    stats.profit = stats.revenue - stats.expenses
    stats.maintenance_cost = sum(as_float(m.cost) for m in maintenances)
    stats.days_worked = len(records)
    stats.platforms = list(platforms)

    stats.avg_profit_per_day = safe_div(stats.profit, stats.days_worked)
    stats.profit_per_distance = safe_div(stats.profit, stats.distance)
    stats.cost_per_distance = safe_div(stats.expenses, stats.distance)
    stats.revenue_per_distance = safe_div(stats.revenue, stats.distance)
    stats.avg_ticket = safe_div(stats.revenue, stats.total_trips)
    stats.profit_per_hour = safe_div(stats.profit, stats.total_hours)
    stats.revenue_per_hour = safe_div(stats.revenue, stats.total_hours)

    for name in (
        "revenue", "expenses", "profit", "distance", "fuel_cost", "maintenance_cost",
        "food_expenses", "wash_expenses", "toll_expenses", "parking_expenses", "other_expenses",
        "total_hours", "avg_profit_per_day", "profit_per_distance", "cost_per_distance",
        "revenue_per_distance", "avg_ticket", "profit_per_hour", "revenue_per_hour",
    ):
        setattr(stats, name, round_money(getattr(stats, name)))
    return stats


def resolve_stats_window(
    period: StatsPeriod,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> DateRange:
    """Dashboard windows: today, week (Sunday start), month to date, or custom."""
    if period == StatsPeriod.TODAY:
        return DateRange(today, today)
    if period == StatsPeriod.WEEK:
        return DateRange(week_start_sunday(today), today)
    if period == StatsPeriod.CUSTOM:
        if start is None or end is None:
            raise ValidationFailed("custom period requires start_date and end_date", field="start_date" if start is None else "end_date")
        return DateRange(start, end)
    return DateRange(month_start(today), today)


def parse_hour(value: Optional[str], default: int = 12) -> int:
    if not value:
        return default
    try:
        hour = int(value.split(":", 1)[0])
    except ValueError:
        return default
    return hour if 0 <= hour <= 23 else default


def activity_heatmap(records: Iterable[DailyRecord]) -> list[dict[str, Any]]:
    """One point per record that has a start time: weekday (Sunday=0), hour, profit, revenue."""
    points = []
    for record in records:
        if not record.start_time:
            continue
        points.append({
            "date": record.date,
            "day_of_week": sunday_first_weekday(record.date),
            "hour": parse_hour(record.start_time),
            "profit": as_float(record.profit),
            "revenue": as_float(record.revenue),
        })
    return points


def heatmap_window(today: date, days: int) -> DateRange:
    return DateRange(today - timedelta(days=days), today)


__all__ = [
    "ExpenseResolution",
    "DayMetrics",
    "PeriodStats",
    "average_fuel_price",
    "resolve_fuel_cost",
    "resolve_record_expenses",
    "resolve_period_expenses",
    "aggregate_period",
    "resolve_stats_window",
    "activity_heatmap",
    "heatmap_window",
    "parse_hour",
]
