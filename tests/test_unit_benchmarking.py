from datetime import date

import pytest

from driver_finance.exceptions import PermissionDenied, ValidationFailed
from driver_finance.models.db import BenchmarkEntry, DailyRecord
from driver_finance.models.db.enums import BenchmarkPeriod
from driver_finance.services.benchmarking import (
    benchmark_stats,
    distinct_platforms,
    owner_metrics,
    percentile_rank,
    period_window,
    submit_benchmark,
)


def test_percentile_counts_ties_as_at_or_below():
    assert percentile_rank([10, 20, 30, 40, 50], 30) == 60.0
    assert percentile_rank([10, 20, 30, 40, 50], 5) == 0.0
    assert percentile_rank([10, 20, 30, 40, 50], 50) == 100.0
    assert percentile_rank([], 30) is None


def test_period_window():
    assert period_window(BenchmarkPeriod.MONTH, date(2024, 2, 1)).end == date(2024, 2, 29)
    assert period_window(BenchmarkPeriod.WEEK, date(2024, 5, 6)).end == date(2024, 5, 12)


def test_owner_metrics_with_no_distance_or_expenses():
    records = [DailyRecord(revenue=200.0, expenses=0.0, distance=0.0, profit=200.0)]
    metrics = owner_metrics(records)
    assert metrics.avg_daily_profit == 200.0
    assert metrics.avg_profit_per_distance == 0.0
    assert metrics.efficiency == 0.0


def test_distinct_platforms_defaults_to_single_unscoped_entry():
    assert distinct_platforms([DailyRecord(platforms=[])]) == [None]
    records = [DailyRecord(platforms=["uber", "99"]), DailyRecord(platforms=["99", "ifood"])]
    assert distinct_platforms(records) == ["uber", "99", "ifood"]


def test_submit_requires_opt_in(db_session, owner_factory, record_factory):
    owner = owner_factory(benchmarking=False)
    record_factory(owner, date(2024, 5, 6))
    with pytest.raises(PermissionDenied):
        submit_benchmark(db_session, owner, BenchmarkPeriod.MONTH, date(2024, 5, 1))
    assert db_session.query(BenchmarkEntry).count() == 0


def test_submit_without_records_is_rejected(db_session, owner_factory):
    owner = owner_factory(benchmarking=True)
    with pytest.raises(ValidationFailed):
        submit_benchmark(db_session, owner, BenchmarkPeriod.MONTH, date(2024, 5, 1))


def test_submit_writes_one_entry_per_platform(db_session, owner_factory, record_factory):
    owner = owner_factory(benchmarking=True)
    record_factory(owner, date(2024, 5, 6), revenue=300, distance=100, expenses=100, platforms=["uber"])
    record_factory(owner, date(2024, 5, 7), revenue=200, distance=100, expenses=0, platforms=["uber", "99"])
    record_factory(owner, date(2024, 6, 1), revenue=900, platforms=["ifood"])  # next month

    entries = submit_benchmark(db_session, owner, BenchmarkPeriod.MONTH, date(2024, 5, 1))
    assert sorted(e.platform for e in entries) == ["99", "uber"]
    for entry in entries:
        assert entry.city == "Campinas"
        assert entry.avg_daily_profit == 200.0
        assert entry.avg_profit_per_distance == 2.0
        assert entry.avg_days_worked == 2.0
        assert entry.efficiency == 4.0


def _peer_entry(db_session, owner, avg_daily_profit, period_date=date(2024, 5, 1), **overrides):
    values = dict(
        owner_id=owner.id,
        city=owner.city,
        state=owner.state,
        vehicle_type=owner.vehicle_type,
        platform=None,
        period=BenchmarkPeriod.MONTH,
        period_date=period_date,
        avg_daily_profit=avg_daily_profit,
        avg_profit_per_distance=1.0,
        avg_days_worked=20,
        efficiency=2.0,
    )
    values.update(overrides)
    entry = BenchmarkEntry(**values)
    db_session.add(entry)
    db_session.commit()
    return entry


def test_stats_use_latest_period_and_exclude_requester(db_session, owner_factory, record_factory):
    me = owner_factory(benchmarking=True)
    for value in (10, 20, 40, 50):
        _peer_entry(db_session, owner_factory(), value)
    _peer_entry(db_session, owner_factory(), 999, period_date=date(2024, 4, 1))
    _peer_entry(db_session, me, 30)
    record_factory(me, date(2024, 5, 6), revenue=30, expenses=0)

    result = benchmark_stats(db_session, me)
    assert result["period_date"] == date(2024, 5, 1)
    assert result["stats"]["sample_size"] == 4
    assert result["stats"]["avg_daily_profit"] == 30.0
    assert result["user_stats"]["avg_daily_profit"] == 30.0
    assert result["percentile"] == 50.0


def test_stats_filter_by_region(db_session, owner_factory):
    me = owner_factory(city="Campinas", state="SP")
    _peer_entry(db_session, owner_factory(city="Recife", state="PE"), 100)
    result = benchmark_stats(db_session, me)
    assert result["stats"] is None
    assert result["percentile"] is None
    assert result["message"]

    other_region = benchmark_stats(db_session, me, city="Recife", state="PE")
    assert other_region["stats"]["sample_size"] == 1
