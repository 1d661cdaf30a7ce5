"""Heuristic insights and alerts over an owner's trailing 30 days.

Two variants share the rule helpers:

* ``generate_insights`` - short messages for the dashboard, at most
  ``max_insights`` in rule order, never persisted.
* ``generate_alerts`` - categorized alerts with severity and an action link;
  ``create_alerts`` persists them, skipping any whose category, title and
  message match one of the owner's most recent unread alerts.

Every rule is evaluated independently; all that match fire. Records are
expected newest first, so "last 7" means ``records[:7]``.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from sqlalchemy.orm import Session

from driver_finance.config import ACTION_URLS, INSIGHT_RULES, InsightRules
from driver_finance.models.db import Alert, DailyRecord, FuelLog, Maintenance
from driver_finance.models.db.enums import AlertCategory, AlertSeverity, GoalType, InsightTone
from driver_finance.services import record_store
from driver_finance.services.goal_tracker import GoalProgress, sync_goal_progress
from driver_finance.services.record_store import AlertFilter, DateRange, RecordFilter
from driver_finance.utils import get_logger
from driver_finance.utils.metrics import as_float, mean, safe_div
from driver_finance.utils.time import month_start, sunday_first_weekday, utc_now

logger = get_logger(__name__)

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass
class WeekdayStat:
    weekday: int          # Sunday = 0
    name: str
    avg_profit: float
    samples: int


@dataclass
class Insight:
    key: str
    tone: InsightTone
    message: str
    icon: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AlertDraft:
    category: AlertCategory
    title: str
    message: str
    severity: AlertSeverity
    action_url: Optional[str] = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (AlertCategory(self.category).value, self.title, self.message)


@dataclass
class AlertContext:
    records: Sequence[DailyRecord]            # trailing window, newest first
    month_start: date
    goal: Optional[GoalProgress] = None
    latest_maintenance: Optional[Maintenance] = None
    latest_fuel_log: Optional[FuelLog] = None


def _stored_profit(record: DailyRecord) -> float:
    return as_float(record.profit)


def _computed_profit(record: DailyRecord) -> float:
    return as_float(record.revenue) - as_float(record.expenses)


def _expenses(record: DailyRecord) -> float:
    return as_float(record.expenses)


def best_weekday(
    records: Sequence[DailyRecord],
    *,
    min_samples: int = 1,
    profit: Callable[[DailyRecord], float] = _computed_profit,
) -> Optional[WeekdayStat]:
    """Weekday with the strictly highest mean profit.

    Weekdays are scanned Sunday first; a later weekday must beat the current
    best outright, so ties go to the earlier weekday.
    """
    totals: dict[int, list[float]] = {}
    for record in records:
        bucket = totals.setdefault(sunday_first_weekday(record.date), [0.0, 0])
        bucket[0] += profit(record)
        bucket[1] += 1

    best: Optional[WeekdayStat] = None
    for weekday in sorted(totals):
        total, count = totals[weekday]
        if count < min_samples:
            continue
        avg = total / count
        if best is None or avg > best.avg_profit:
            best = WeekdayStat(weekday=weekday, name=WEEKDAY_NAMES[weekday], avg_profit=avg, samples=int(count))
    return best


def _per_distance(records: Sequence[DailyRecord], value: Callable[[DailyRecord], float]) -> float:
    """Mean of per-record value/distance; records without distance count as 0."""
    return mean(safe_div(value(r), as_float(r.distance)) for r in records)


def _money(value: float) -> str:
    return f"R$ {value:.2f}"


# --------------------------------- insights -------------------------------- #

def generate_insights(records: Sequence[DailyRecord], rules: InsightRules = INSIGHT_RULES) -> list[Insight]:
    if not records:
        return []
    insights: list[Insight] = []

    if len(records) >= rules.insight_best_day_min_records:
        best = best_weekday(records)
        if best is not None:
            insights.append(Insight(
                key="best-day",
                tone=InsightTone.POSITIVE,
                message=f"{best.name}s are your most profitable days! Average of {_money(best.avg_profit)}",
                icon="chart",
            ))

    n = rules.sample_size
    if len(records) >= n:
        recent, older = records[:n], records[n:2 * n]
        if older:
            recent_cost = _per_distance(recent, _expenses)
            older_cost = _per_distance(older, _expenses)
            if older_cost > 0 and recent_cost > older_cost * rules.cost_increase_factor:
                increase = (recent_cost - older_cost) / older_cost * 100
                insights.append(Insight(
                    key="cost-increase",
                    tone=InsightTone.WARNING,
                    message=f"Your cost per km rose {increase:.0f}% this week. Check your maintenance.",
                    icon="warning",
                ))

    expected = rules.expected_workdays * rules.workday_ratio
    if len(records) < expected:
        missing = int(round(expected - len(records)))
        insights.append(Insight(
            key="days-worked",
            tone=InsightTone.INFO,
            message=f"You worked {missing} days fewer than usual. Goal adjusted!",
            icon="calendar",
        ))

    total_profit = sum(_computed_profit(r) for r in records)
    total_distance = sum(as_float(r.distance) for r in records)
    profit_per_distance = safe_div(total_profit, total_distance)
    if 0 < profit_per_distance < rules.low_profit_per_distance:
        insights.append(Insight(
            key="low-profit-km",
            tone=InsightTone.WARNING,
            message=f"Your profit per km is {_money(profit_per_distance)}. Consider optimizing your routes.",
            icon="bulb",
        ))
    elif profit_per_distance >= rules.high_profit_per_distance:
        insights.append(Insight(
            key="high-profit-km",
            tone=InsightTone.POSITIVE,
            message=f"Excellent! Your profit per km of {_money(profit_per_distance)} is above average.",
            icon="star",
        ))

    return insights[:rules.max_insights]


# ---------------------------------- alerts --------------------------------- #

def generate_alerts(ctx: AlertContext, rules: InsightRules = INSIGHT_RULES) -> list[AlertDraft]:
    records = ctx.records
    if not records:
        return []
    drafts: list[AlertDraft] = []
    n = rules.sample_size
    month_records = [r for r in records if r.date >= ctx.month_start]

    if len(records) >= n:
        avg = _per_distance(records[:n], _stored_profit)
        if 0 < avg < rules.low_profit_per_distance:
            drafts.append(AlertDraft(
                category=AlertCategory.PERFORMANCE,
                title="Profit per km below target",
                message=(
                    f"Your profit per km is {_money(avg)}. "
                    "Consider optimizing routes or cutting costs to improve profitability."
                ),
                severity=AlertSeverity.WARNING,
                action_url=ACTION_URLS["dashboard"],
            ))

    if len(records) >= rules.opportunity_min_records:
        best = best_weekday(records, min_samples=rules.opportunity_min_samples, profit=_stored_profit)
        if best is not None:
            drafts.append(AlertDraft(
                category=AlertCategory.OPPORTUNITY,
                title="Opportunity spotted",
                message=(
                    f"{best.name}s are your most profitable days! Average of {best.avg_profit:.2f} per day. "
                    "Consider working more on those days."
                ),
                severity=AlertSeverity.INFO,
                action_url=ACTION_URLS["history"],
            ))

    goal = ctx.goal
    if goal is not None and month_records:
        if goal.progress_raw < rules.goal_risk_progress_pct and goal.days_remaining <= rules.goal_risk_days:
            drafts.append(AlertDraft(
                category=AlertCategory.OPPORTUNITY,
                title="Monthly goal at risk",
                message=(
                    f"You are at {goal.progress_raw:.0f}% of your goal. "
                    f"{_money(goal.remaining)} to go in {goal.days_remaining} days. There is still time!"
                ),
                severity=AlertSeverity.WARNING,
                action_url=ACTION_URLS["goals"],
            ))
        elif goal.progress_raw >= 100 and not goal.achieved:
            drafts.append(AlertDraft(
                category=AlertCategory.OPPORTUNITY,
                title="Monthly goal reached!",
                message=f"Congratulations! You reached your monthly goal of {_money(goal.target_value)}. Keep it up!",
                severity=AlertSeverity.SUCCESS,
                action_url=ACTION_URLS["goals"],
            ))

    maintenance, fuel = ctx.latest_maintenance, ctx.latest_fuel_log
    if maintenance is not None and maintenance.next_odometer and fuel is not None and fuel.odometer:
        remaining = as_float(maintenance.next_odometer) - as_float(fuel.odometer)
        if 0 <= remaining < rules.maintenance_warning_distance:
            drafts.append(AlertDraft(
                category=AlertCategory.MAINTENANCE,
                title="Maintenance due soon",
                message=f"Your next service is close! About {remaining:.0f} km to go. Book your check-up.",
                severity=AlertSeverity.WARNING,
                action_url=ACTION_URLS["maintenance"],
            ))

    if len(month_records) >= n:
        sample = month_records[:n]
        avg_expenses = mean(as_float(r.expenses) for r in sample)
        avg_revenue = mean(as_float(r.revenue) for r in sample)
        if avg_expenses > 0 and avg_revenue > 0:
            ratio = avg_expenses / avg_revenue * 100
            if ratio > rules.expense_ratio_pct:
                drafts.append(AlertDraft(
                    category=AlertCategory.PERFORMANCE,
                    title="Expenses above normal",
                    message=(
                        f"Your expenses are {ratio:.0f}% of revenue. "
                        "Consider reviewing your costs to improve profitability."
                    ),
                    severity=AlertSeverity.WARNING,
                    action_url=ACTION_URLS["dashboard"],
                ))

    return drafts


def trailing_window(today: date, rules: InsightRules = INSIGHT_RULES) -> DateRange:
    return DateRange(today - timedelta(days=rules.window_days), today)


def recent_records(session: Session, owner_id: int, today: date, rules: InsightRules = INSIGHT_RULES) -> list[DailyRecord]:
    return record_store.find_records(
        session,
        RecordFilter(owner_id=owner_id, date_range=trailing_window(today, rules), newest_first=True),
    )


def build_alert_context(
    session: Session,
    owner_id: int,
    now: datetime,
    rules: InsightRules = INSIGHT_RULES,
) -> AlertContext:
    today = now.date()
    records = recent_records(session, owner_id, today, rules)
    goal = sync_goal_progress(session, owner_id, GoalType.MONTHLY, now=now, persist=False).progress
    return AlertContext(
        records=records,
        month_start=month_start(today),
        goal=goal,
        latest_maintenance=record_store.latest_maintenance(session, owner_id),
        latest_fuel_log=record_store.latest_fuel_log(session, owner_id),
    )


def create_alerts(
    session: Session,
    owner_id: int,
    drafts: Sequence[AlertDraft],
    rules: InsightRules = INSIGHT_RULES,
) -> int:
    """Insert drafts that are not already pending; returns the number inserted."""
    existing = record_store.find_alerts(
        session, AlertFilter(owner_id=owner_id, read=False, limit=rules.dedup_scan_limit)
    )
    seen = {(AlertCategory(a.category).value, a.title, a.message) for a in existing}

    created = 0
    for draft in drafts:
        if draft.dedup_key in seen:
            continue
        seen.add(draft.dedup_key)
        session.add(Alert(
            owner_id=owner_id,
            category=draft.category,
            title=draft.title,
            message=draft.message,
            severity=draft.severity,
            action_url=draft.action_url,
        ))
        created += 1

    if created:
        session.commit()
    logger.info(
        "Alerts generated",
        owner_id=owner_id,
        candidates=len(drafts),
        created=created,
        skipped=len(drafts) - created,
    )
    return created


def generate_and_store_alerts(
    session: Session,
    owner_id: int,
    *,
    now: Optional[datetime] = None,
    rules: InsightRules = INSIGHT_RULES,
) -> int:
    ctx = build_alert_context(session, owner_id, now or utc_now(), rules)
    return create_alerts(session, owner_id, generate_alerts(ctx, rules), rules)


__all__ = [
    "WEEKDAY_NAMES",
    "WeekdayStat",
    "Insight",
    "AlertDraft",
    "AlertContext",
    "best_weekday",
    "generate_insights",
    "generate_alerts",
    "trailing_window",
    "recent_records",
    "build_alert_context",
    "create_alerts",
    "generate_and_store_alerts",
]
