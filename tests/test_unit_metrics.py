from datetime import date

import pytest

from driver_finance.exceptions import ValidationFailed
from driver_finance.models.db import DailyRecord, FuelLog, Maintenance
from driver_finance.models.db.enums import ExpenseStrategy, StatsPeriod
from driver_finance.services.metrics import (
    activity_heatmap,
    aggregate_period,
    average_fuel_price,
    parse_hour,
    resolve_fuel_cost,
    resolve_period_expenses,
    resolve_record_expenses,
    resolve_stats_window,
)
from driver_finance.services.record_store import DateRange, apply_record_fields
from driver_finance.utils.metrics import pct_change, safe_div


def _record(day: date, revenue: float = 100.0, distance: float = 50.0, expenses: float | None = None, **fields):
    record = DailyRecord(owner_id=1)
    apply_record_fields(record, {"date": day, "revenue": revenue, "distance": distance, **fields}, explicit_expenses=expenses)
    return record


def test_safe_div_and_pct_change_never_raise():
    assert safe_div(10, 0) == 0.0
    assert safe_div(0, 0) == 0.0
    assert safe_div(9, 3) == 3.0
    assert pct_change(150, 0) == 0.0
    assert pct_change(120, 100) == pytest.approx(20.0)


def test_empty_period_has_zero_ratios():
    stats = aggregate_period([])
    assert stats.revenue == 0
    assert stats.days_worked == 0
    assert stats.profit_per_distance == 0
    assert stats.best_day is None and stats.worst_day is None
    assert stats.expense_strategy == ExpenseStrategy.NONE


def test_zero_distance_and_hours_yield_zero_ratios():
    stats = aggregate_period([_record(date(2024, 5, 6), revenue=200, distance=0, expenses=50)])
    assert stats.profit == 150
    assert stats.profit_per_distance == 0
    assert stats.cost_per_distance == 0
    assert stats.profit_per_hour == 0
    assert stats.avg_ticket == 0


def test_average_fuel_price_is_weighted_by_liters():
    logs = [
        FuelLog(liters=10, price=5.0, total_cost=50.0),
        FuelLog(liters=30, price=6.0, total_cost=180.0),
    ]
    assert average_fuel_price(logs) == pytest.approx(230 / 40)
    assert average_fuel_price([]) is None


def test_fuel_cost_precedence():
    itemized = _record(date(2024, 5, 6), expense_fuel=40.0, fuel_efficiency=10.0)
    assert resolve_fuel_cost(itemized, 6.0).strategy == ExpenseStrategy.ITEMIZED
    assert resolve_fuel_cost(itemized, 6.0).amount == 40.0

    derived = _record(date(2024, 5, 7), distance=120.0, fuel_efficiency=12.0)
    resolution = resolve_fuel_cost(derived, 6.0)
    assert resolution.strategy == ExpenseStrategy.DERIVED_FUEL
    assert resolution.amount == pytest.approx(60.0)

    # No price known: nothing can be derived
    assert resolve_fuel_cost(derived, None).strategy == ExpenseStrategy.NONE


def test_record_expenses_fall_back_to_raw_total():
    raw = _record(date(2024, 5, 6), expenses=80.0)
    resolution = resolve_record_expenses(raw, None)
    assert resolution.amount == 80.0
    assert resolution.strategy == ExpenseStrategy.RAW

    itemized = _record(date(2024, 5, 7), expense_food=20.0, expense_toll=10.0)
    assert resolve_record_expenses(itemized, None).amount == 30.0
    assert resolve_record_expenses(itemized, None).strategy == ExpenseStrategy.ITEMIZED

    nothing = _record(date(2024, 5, 8))
    assert resolve_record_expenses(nothing, None).strategy == ExpenseStrategy.NONE


def test_record_expenses_use_same_day_maintenance_log():
    record = _record(date(2024, 5, 6), expense_food=10.0)
    resolution = resolve_record_expenses(record, None, maintenance_on_day=150.0)
    assert resolution.amount == 160.0


def test_period_expenses_prefer_itemized_sum():
    records = [
        _record(date(2024, 5, 6), expense_food=20.0),
        _record(date(2024, 5, 7), expenses=70.0),
    ]
    resolution = resolve_period_expenses(records, None)
    assert resolution.amount == 20.0
    assert resolution.strategy == ExpenseStrategy.ITEMIZED

    raw_only = [_record(date(2024, 5, 6), expenses=30.0), _record(date(2024, 5, 7), expenses=70.0)]
    assert resolve_period_expenses(raw_only, None).amount == 100.0
    assert resolve_period_expenses(raw_only, None).strategy == ExpenseStrategy.RAW


def test_aggregate_totals_and_ratios():
    records = [
        _record(date(2024, 5, 6), revenue=300, distance=150, expense_fuel=60, trips_count=15, hours_worked=10,
                platforms=["uber"]),
        _record(date(2024, 5, 7), revenue=200, distance=100, expense_fuel=40, trips_count=10, hours_worked=5,
                platforms=["uber", "99"]),
    ]
    maintenances = [Maintenance(date=date(2024, 5, 20), type="oil", description="Oil change", cost=120.0)]
    stats = aggregate_period(records, maintenances=maintenances)
    assert stats.revenue == 500
    assert stats.expenses == 100
    assert stats.profit == 400
    assert stats.fuel_cost == 100
    assert stats.maintenance_cost == 120
    assert stats.days_worked == 2
    assert stats.avg_profit_per_day == 200
    assert stats.profit_per_distance == pytest.approx(1.6)
    assert stats.avg_ticket == 20
    assert stats.profit_per_hour == pytest.approx(26.67)
    assert stats.platforms == ["uber", "99"]


def test_best_and_worst_day_ties_keep_first_record():
    first = _record(date(2024, 5, 6), revenue=100, expenses=0)
    second = _record(date(2024, 5, 7), revenue=100, expenses=0)
    stats = aggregate_period([first, second])
    assert stats.best_day.date == date(2024, 5, 6)
    assert stats.worst_day.date == date(2024, 5, 6)


def test_stats_windows():
    today = date(2024, 5, 15)  # Wednesday
    assert resolve_stats_window(StatsPeriod.TODAY, today) == DateRange(today, today)
    assert resolve_stats_window(StatsPeriod.WEEK, today) == DateRange(date(2024, 5, 12), today)
    assert resolve_stats_window(StatsPeriod.MONTH, today) == DateRange(date(2024, 5, 1), today)
    custom = resolve_stats_window(StatsPeriod.CUSTOM, today, date(2024, 1, 1), date(2024, 1, 31))
    assert custom.days == 31
    with pytest.raises(ValidationFailed):
        resolve_stats_window(StatsPeriod.CUSTOM, today, date(2024, 1, 1), None)


def test_inverted_range_is_rejected():
    with pytest.raises(ValidationFailed) as exc:
        DateRange(date(2024, 2, 1), date(2024, 1, 1))
    assert exc.value.field == "start_date"


def test_heatmap_skips_records_without_start_time():
    records = [
        _record(date(2024, 5, 5), start_time="07:30"),   # Sunday
        _record(date(2024, 5, 6)),
        _record(date(2024, 5, 7), start_time="99:00"),
    ]
    points = activity_heatmap(records)
    assert len(points) == 2
    assert points[0]["day_of_week"] == 0
    assert points[0]["hour"] == 7
    assert points[1]["hour"] == 12
    assert parse_hour(None) == 12
