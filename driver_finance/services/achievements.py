"""Achievement unlocking.

Each definition is a predicate over an :class:`AchievementContext` built once
per check. Types already unlocked by the owner are skipped, so an achievement
is never re-evaluated (or re-inserted) once it exists.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from driver_finance.config import ACHIEVEMENT_RULES, AchievementRules
from driver_finance.models.db import Achievement, DailyRecord, Goal
from driver_finance.models.db.enums import GoalType
from driver_finance.services import record_store
from driver_finance.services.record_store import DateRange, GoalFilter, RecordFilter
from driver_finance.utils import get_logger
from driver_finance.utils.metrics import as_float, pct_change
from driver_finance.utils.time import add_months, month_end, month_start, quarter_start, utc_now

logger = get_logger(__name__)


@dataclass
class AchievementContext:
    records_count: int
    latest_records: Sequence[DailyRecord]       # newest first
    trailing_records: Sequence[DailyRecord]     # efficiency window
    month_goals: Sequence[Goal]
    current_quarter_revenue: float
    previous_quarter_revenue: float
    rules: AchievementRules = field(default_factory=AchievementRules)


@dataclass(frozen=True)
class AchievementDefinition:
    type: str
    title: str
    description: str
    icon: str
    check: Callable[[AchievementContext], bool]


def _first_record(ctx: AchievementContext) -> bool:
    return ctx.records_count >= 1


def _week_streak(ctx: AchievementContext) -> bool:
    records = list(ctx.latest_records[: ctx.rules.streak_days])
    if len(records) < ctx.rules.streak_days:
        return False
    return all(
        (current.date - following.date).days == 1
        for current, following in zip(records, records[1:])
    )


def _month_goal(ctx: AchievementContext) -> bool:
    return any(goal.achieved for goal in ctx.month_goals)


def _hundred_days(ctx: AchievementContext) -> bool:
    return ctx.records_count >= ctx.rules.hundred_days


def _efficiency_master(ctx: AchievementContext) -> bool:
    records = ctx.trailing_records
    if len(records) < ctx.rules.efficiency_min_records:
        return False
    for record in records:
        distance = as_float(record.distance)
        if distance == 0:
            return False
        per_distance = (as_float(record.revenue) - as_float(record.expenses)) / distance
        if per_distance < ctx.rules.efficiency_min_profit_per_distance:
            return False
    return True


def _growth_champion(ctx: AchievementContext) -> bool:
    if ctx.previous_quarter_revenue == 0:
        return False
    growth = pct_change(ctx.current_quarter_revenue, ctx.previous_quarter_revenue)
    return growth >= ctx.rules.growth_min_pct


ACHIEVEMENT_DEFINITIONS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition("first_record", "First Step", "Logged your first working day", "🎯", _first_record),
    AchievementDefinition("week_streak", "Full Week", "Worked 7 consecutive days", "🔥", _week_streak),
    AchievementDefinition("month_goal", "Goal Reached", "Reached your monthly goal", "🏆", _month_goal),
    AchievementDefinition("hundred_days", "Centurion", "Completed 100 working days", "💯", _hundred_days),
    AchievementDefinition(
        "efficiency_master",
        "Efficiency Master",
        "Kept profit per km above R$ 3.00 for 30 days",
        "⚡",
        _efficiency_master,
    ),
    AchievementDefinition("growth_champion", "Growth Champion", "Grew 20% over the quarter", "📈", _growth_champion),
)


def build_context(
    session: Session,
    owner_id: int,
    now: datetime,
    rules: AchievementRules = ACHIEVEMENT_RULES,
) -> AchievementContext:
    today = now.date()
    current_quarter = quarter_start(today)
    previous_quarter = add_months(current_quarter, -3)
    return AchievementContext(
        records_count=record_store.count_records(session, owner_id),
        latest_records=record_store.find_records(
            session, RecordFilter(owner_id=owner_id, newest_first=True, limit=rules.streak_days)
        ),
        trailing_records=record_store.find_records(
            session,
            RecordFilter(
                owner_id=owner_id,
                date_range=DateRange(start=today - timedelta(days=rules.efficiency_window_days)),
            ),
        ),
        month_goals=record_store.find_goals(
            session,
            GoalFilter(
                owner_id=owner_id,
                goal_type=GoalType.MONTHLY,
                window=DateRange(month_start(today), month_end(today)),
            ),
        ),
        current_quarter_revenue=record_store.sum_revenue(session, owner_id, DateRange(start=current_quarter)),
        previous_quarter_revenue=record_store.sum_revenue(
            session, owner_id, DateRange(previous_quarter, current_quarter - timedelta(days=1))
        ),
        rules=rules,
    )


def check_and_unlock(
    session: Session,
    owner_id: int,
    *,
    now: Optional[datetime] = None,
    definitions: Sequence[AchievementDefinition] = ACHIEVEMENT_DEFINITIONS,
    rules: AchievementRules = ACHIEVEMENT_RULES,
) -> list[str]:
    """Unlock every satisfied achievement the owner does not have yet; returns the new types."""
    now = now or utc_now()
    owned = {a.type for a in record_store.find_achievements(session, owner_id)}
    pending = [d for d in definitions if d.type not in owned]
    if not pending:
        return []

    ctx = build_context(session, owner_id, now, rules)
    unlocked: list[str] = []
    for definition in pending:
        if not definition.check(ctx):
            continue
        session.add(Achievement(
            owner_id=owner_id,
            type=definition.type,
            title=definition.title,
            description=definition.description,
            icon=definition.icon,
            unlocked_at=now,
            details={},
        ))
        unlocked.append(definition.type)

    if unlocked:
        session.commit()
        logger.info("Achievements unlocked", owner_id=owner_id, unlocked=unlocked)
    return unlocked


__all__ = [
    "AchievementContext",
    "AchievementDefinition",
    "ACHIEVEMENT_DEFINITIONS",
    "build_context",
    "check_and_unlock",
]
