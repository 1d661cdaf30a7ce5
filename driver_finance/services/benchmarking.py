"""Anonymous peer benchmarking.

Submission writes one BenchmarkEntry per platform the owner used in the
period (or a single unscoped entry), tagged with the owner's locale and
vehicle so peers can filter on them. Only opted-in owners may submit.

The read side averages the latest matching period across *other* owners and
ranks the requester's average daily profit among those entries:

    percentile = count(peer values <= mine) / peers * 100

No interpolation; ties count as "at or below".
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from driver_finance.config import BENCHMARK_SETTINGS
from driver_finance.exceptions import PermissionDenied, ValidationFailed
from driver_finance.models.db import BenchmarkEntry, DailyRecord, Owner
from driver_finance.models.db.enums import BenchmarkPeriod
from driver_finance.services import record_store
from driver_finance.services.record_store import BenchmarkFilter, DateRange, RecordFilter
from driver_finance.utils import get_logger
from driver_finance.utils.metrics import as_float, mean, safe_div
from driver_finance.utils.time import month_end

logger = get_logger(__name__)


@dataclass
class BenchmarkMetrics:
    avg_daily_profit: float
    avg_profit_per_distance: float
    avg_days_worked: float
    efficiency: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PeerStats(BenchmarkMetrics):
    sample_size: int = 0


def percentile_rank(values: Sequence[float], value: float) -> Optional[float]:
    if not values:
        return None
    at_or_below = sum(1 for v in values if v <= value)
    return at_or_below / len(values) * 100


def period_window(period: BenchmarkPeriod, period_date: date) -> DateRange:
    if period == BenchmarkPeriod.WEEK:
        return DateRange(period_date, period_date + timedelta(days=6))
    return DateRange(period_date, month_end(period_date))


def owner_metrics(records: Sequence[DailyRecord]) -> BenchmarkMetrics:
    """Aggregate one owner's records the way they are published to peers."""
    revenue = sum(as_float(r.revenue) for r in records)
    expenses = sum(as_float(r.expenses) for r in records)
    distance = sum(as_float(r.distance) for r in records)
    profit = revenue - expenses
    days = len(records)
    return BenchmarkMetrics(
        avg_daily_profit=safe_div(profit, days),
        avg_profit_per_distance=safe_div(profit, distance),
        avg_days_worked=float(days),
        efficiency=safe_div(profit, expenses),
    )


def distinct_platforms(records: Iterable[DailyRecord]) -> list[Optional[str]]:
    seen: dict[str, None] = {}
    for record in records:
        for platform in record.platforms or []:
            seen.setdefault(platform, None)
    return list(seen) or [None]


def submit_benchmark(
    session: Session,
    owner: Owner,
    period: BenchmarkPeriod,
    period_date: date,
) -> list[BenchmarkEntry]:
    if not owner.participates_in_benchmarking:
        raise PermissionDenied("Benchmark participation is disabled in your privacy preferences")

    window = period_window(period, period_date)
    records = record_store.find_records(session, RecordFilter(owner_id=owner.id, date_range=window))
    if not records:
        raise ValidationFailed("No records found for the selected period", field="period_date")

    metrics = owner_metrics(records)
    entries = [
        BenchmarkEntry(
            owner_id=owner.id,
            city=owner.city,
            state=owner.state,
            vehicle_type=owner.vehicle_type,
            platform=platform,
            period=period,
            period_date=period_date,
            **metrics.to_dict(),
        )
        for platform in distinct_platforms(records)
    ]
    for entry in entries:
        session.add(entry)
    session.commit()

    logger.info(
        "Benchmark entries submitted",
        owner_id=owner.id,
        period=period.value,
        period_date=period_date.isoformat(),
        entries=len(entries),
    )
    return entries


def peer_stats(entries: Sequence[BenchmarkEntry]) -> PeerStats:
    return PeerStats(
        avg_daily_profit=mean(as_float(e.avg_daily_profit) for e in entries),
        avg_profit_per_distance=mean(as_float(e.avg_profit_per_distance) for e in entries),
        avg_days_worked=mean(as_float(e.avg_days_worked) for e in entries),
        efficiency=mean(as_float(e.efficiency) for e in entries),
        sample_size=len(entries),
    )


def benchmark_stats(
    session: Session,
    owner: Owner,
    *,
    period: BenchmarkPeriod = BenchmarkPeriod.MONTH,
    city: Optional[str] = None,
    state: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    platform: Optional[str] = None,
) -> dict[str, Any]:
    """Peer averages for the latest matching period plus the requester's standing.

    Locale and vehicle filters default to the requester's own profile.
    """
    flt = BenchmarkFilter(
        exclude_owner_id=owner.id,
        period=period,
        city=city or owner.city,
        state=state or owner.state,
        vehicle_type=vehicle_type or owner.vehicle_type,
        platform=platform,
    )
    latest = record_store.latest_benchmark_period(session, flt)
    if latest is None:
        return {
            "stats": None,
            "user_stats": None,
            "percentile": None,
            "message": BENCHMARK_SETTINGS["insufficient_data_message"],
        }

    entries = record_store.find_benchmark_entries(
        session,
        BenchmarkFilter(**{**asdict(flt), "period_date": latest}),
    )
    peers = peer_stats(entries)

    window = period_window(period, latest)
    own_records = record_store.find_records(session, RecordFilter(owner_id=owner.id, date_range=window))
    mine = owner_metrics(own_records)
    percentile = percentile_rank([as_float(e.avg_daily_profit) for e in entries], mine.avg_daily_profit)

    return {
        "period": period,
        "period_date": latest,
        "filters": {
            "city": flt.city,
            "state": flt.state,
            "vehicle_type": flt.vehicle_type,
            "platform": flt.platform,
        },
        "stats": asdict(peers),
        "user_stats": mine.to_dict(),
        "percentile": round(percentile, 2) if percentile is not None else None,
        "message": None,
    }


__all__ = [
    "BenchmarkMetrics",
    "PeerStats",
    "percentile_rank",
    "period_window",
    "owner_metrics",
    "distinct_platforms",
    "submit_benchmark",
    "peer_stats",
    "benchmark_stats",
]
