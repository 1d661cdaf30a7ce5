"""Per-platform profitability.

A day worked on several platforms is split before aggregation:

* with a revenue breakdown, each listed platform gets its own revenue and
  ``platform_revenue / total_revenue`` of every other metric;
* otherwise the record is split evenly across its platform tags.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional, Sequence

from driver_finance.models.db import DailyRecord
from driver_finance.models.db.enums import ComparisonPeriod, EvolutionPeriod
from driver_finance.services.record_store import DateRange
from driver_finance.utils.metrics import as_float, safe_div
from driver_finance.utils.time import add_months, month_start


@dataclass(frozen=True)
class Allocation:
    platform: str
    share: float
    revenue: float


@dataclass
class PlatformTotals:
    platform: str
    revenue: float = 0.0
    profit: float = 0.0
    expenses: float = 0.0
    distance: float = 0.0
    trips: float = 0.0
    hours: float = 0.0
    records: int = 0
    active_days: set[date] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        days = len(self.active_days)
        return {
            "platform": self.platform,
            "revenue": self.revenue,
            "profit": self.profit,
            "expenses": self.expenses,
            "distance": self.distance,
            "trips": self.trips,
            "hours": self.hours,
            "days": days,
            "records": self.records,
            "avg_revenue_per_day": safe_div(self.revenue, days),
            "avg_profit_per_day": safe_div(self.profit, days),
            "profit_per_distance": safe_div(self.profit, self.distance),
            "revenue_per_distance": safe_div(self.revenue, self.distance),
            "profit_per_trip": safe_div(self.profit, self.trips),
            "revenue_per_trip": safe_div(self.revenue, self.trips),
            "profit_per_hour": safe_div(self.profit, self.hours),
            "revenue_per_hour": safe_div(self.revenue, self.hours),
            "avg_trips_per_day": safe_div(self.trips, days),
            "margin": safe_div(self.profit, self.revenue) * 100,
        }


def allocate_record(record: DailyRecord) -> list[Allocation]:
    revenue = as_float(record.revenue)
    breakdown = record.revenue_breakdown or {}
    if breakdown:
        return [
            Allocation(platform=name, share=safe_div(as_float(amount), revenue), revenue=as_float(amount))
            for name, amount in breakdown.items()
        ]
    platforms = record.platforms or []
    if not platforms:
        return []
    share = 1 / len(platforms)
    return [Allocation(platform=name, share=share, revenue=revenue * share) for name in platforms]


def compare_platforms(records: Sequence[DailyRecord]) -> dict[str, Any]:
    stats: dict[str, PlatformTotals] = {}
    counted = 0
    for record in records:
        allocations = allocate_record(record)
        if not allocations:
            continue
        counted += 1
        for item in allocations:
            totals = stats.setdefault(item.platform, PlatformTotals(platform=item.platform))
            totals.revenue += item.revenue
            totals.profit += as_float(record.profit) * item.share
            totals.expenses += as_float(record.expenses) * item.share
            totals.distance += as_float(record.distance) * item.share
            totals.trips += (record.trips_count or 0) * item.share
            totals.hours += as_float(record.hours_worked) * item.share
            totals.active_days.add(record.date)
            totals.records += 1

    rows = sorted((t.to_dict() for t in stats.values()), key=lambda row: row["revenue"], reverse=True)
    return {
        "platforms": rows,
        "totals": {
            "revenue": sum(r["revenue"] for r in rows),
            "profit": sum(r["profit"] for r in rows),
            "expenses": sum(r["expenses"] for r in rows),
            "distance": sum(r["distance"] for r in rows),
            "trips": sum(r["trips"] for r in rows),
            "hours": sum(r["hours"] for r in rows),
            "records": counted,
        },
    }


def platform_evolution(records: Sequence[DailyRecord]) -> list[dict[str, Any]]:
    """Revenue per platform grouped by calendar month (``YYYY-MM``)."""
    grouped: dict[str, dict[str, float]] = {}
    for record in records:
        key = f"{record.date.year}-{record.date.month:02d}"
        bucket = grouped.setdefault(key, {})
        for item in allocate_record(record):
            bucket[item.platform] = bucket.get(item.platform, 0.0) + item.revenue
    return [{"period": key, "platforms": grouped[key]} for key in sorted(grouped)]


def comparison_window(period: ComparisonPeriod, today: date) -> DateRange:
    start: Optional[date]
    if period == ComparisonPeriod.WEEK:
        start = today - timedelta(days=7)
    elif period == ComparisonPeriod.MONTH:
        start = month_start(today)
    elif period == ComparisonPeriod.YEAR:
        start = date(today.year, 1, 1)
    else:
        start = None
    return DateRange(start=start)


def evolution_window(period: EvolutionPeriod, today: date) -> DateRange:
    if period == EvolutionPeriod.YEAR:
        return DateRange(start=date(today.year - 1, 1, 1))
    return DateRange(start=add_months(today, -5))


__all__ = [
    "Allocation",
    "PlatformTotals",
    "allocate_record",
    "compare_platforms",
    "platform_evolution",
    "comparison_window",
    "evolution_window",
]
