"""Goal progress tracking.

Windows:
  monthly -> first..last calendar day of ``now``'s month
  weekly  -> Monday..Sunday containing ``now``
  custom  -> caller supplied bounds

Progress is recomputed from live records whenever it is requested. The stored
goal is written only when the recomputed ``current_value`` differs from the
stored one, so asking twice in a row performs a single write at most.
``achieved_at`` is stamped on the first transition to achieved and never
overwritten by a sync.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from driver_finance.exceptions import ValidationFailed
from driver_finance.models.db import Goal
from driver_finance.models.db.enums import GoalType
from driver_finance.services import record_store
from driver_finance.services.record_store import DateRange
from driver_finance.utils import get_logger
from driver_finance.utils.metrics import as_float, round_money, safe_div
from driver_finance.utils.time import month_end, month_start, utc_now, week_start_monday

logger = get_logger(__name__)


@dataclass
class GoalProgress:
    goal_id: int
    type: GoalType
    target_period: date
    window_start: date
    window_end: date
    target_value: float
    current_value: float
    progress: float          # display value, capped at 100
    progress_raw: float      # uncapped
    remaining: float
    days_remaining: int
    daily_target: float
    achieved: bool
    achieved_at: Optional[datetime]
    exists: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SyncResult:
    progress: Optional[GoalProgress]
    updated: bool = False

    @property
    def exists(self) -> bool:
        return self.progress is not None

    def to_dict(self) -> dict[str, Any]:
        if self.progress is None:
            return {"exists": False}
        return self.progress.to_dict()


def resolve_period_window(
    period_type: GoalType,
    now: datetime,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> DateRange:
    today = now.date()
    if period_type == GoalType.MONTHLY:
        return DateRange(month_start(today), month_end(today))
    if period_type == GoalType.WEEKLY:
        monday = week_start_monday(today)
        return DateRange(monday, monday + timedelta(days=6))
    if start is None or end is None:
        raise ValidationFailed(
            "custom goals require start_date and end_date",
            field="start_date" if start is None else "end_date",
        )
    return DateRange(start, end)


def normalize_target_period(period_type: GoalType, target_period: date) -> date:
    """Anchor monthly goals on the 1st and weekly goals on Monday so one window holds one goal."""
    if period_type == GoalType.MONTHLY:
        return month_start(target_period)
    if period_type == GoalType.WEEKLY:
        return week_start_monday(target_period)
    return target_period


def days_remaining(window_end: date, now: datetime) -> int:
    """Whole days from ``now`` until the start of ``window_end``, rounded up, never negative."""
    end_at = datetime.combine(window_end, time.min, tzinfo=now.tzinfo)
    seconds = (end_at - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def compute_goal_progress(goal: Goal, current_value: float, window: DateRange, now: datetime) -> GoalProgress:
    target = as_float(goal.target_value)
    current = round_money(current_value)
    raw = round(safe_div(current, target) * 100, 2)
    remaining = round_money(max(0.0, target - current))
    days = days_remaining(window.end, now)
    return GoalProgress(
        goal_id=goal.id,
        type=goal.type,
        target_period=goal.target_period,
        window_start=window.start,
        window_end=window.end,
        target_value=target,
        current_value=current,
        progress=min(100.0, raw),
        progress_raw=raw,
        remaining=remaining,
        days_remaining=days,
        daily_target=round_money(safe_div(remaining, days)),
        achieved=bool(goal.achieved),
        achieved_at=goal.achieved_at,
    )


def apply_sync(goal: Goal, current_value: float, now: datetime) -> bool:
    """Persist a recomputed current value onto ``goal``; returns whether anything changed."""
    current = round_money(current_value)
    if as_float(goal.current_value) == current:
        return False
    goal.current_value = current
    goal.achieved = current >= as_float(goal.target_value)
    if goal.achieved and goal.achieved_at is None:
        goal.achieved_at = now
    return True


def sync_goal_progress(
    session: Session,
    owner_id: int,
    period_type: GoalType,
    *,
    now: Optional[datetime] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    persist: bool = True,
) -> SyncResult:
    """Look up the owner's goal for the current window and bring it up to date.

    With ``persist=False`` the progress is computed without touching the row
    (used by the alert rules).
    """
    now = now or utc_now()
    window = resolve_period_window(period_type, now, start, end)
    goal = record_store.latest_goal_in_window(session, owner_id, period_type, window)
    if goal is None:
        return SyncResult(progress=None)

    current = record_store.sum_revenue(session, owner_id, window)
    updated = False
    if persist:
        updated = apply_sync(goal, current, now)
        if updated:
            session.commit()
            session.refresh(goal)
            logger.info(
                "Goal progress synced",
                owner_id=owner_id,
                goal_id=goal.id,
                current_value=goal.current_value,
                achieved=goal.achieved,
            )

    return SyncResult(progress=compute_goal_progress(goal, current, window, now), updated=updated)


def set_achieved(goal: Goal, achieved: bool, now: Optional[datetime] = None) -> None:
    """Explicit toggle from the API: stamp once when achieved, clear when un-achieved."""
    goal.achieved = achieved
    if achieved:
        if goal.achieved_at is None:
            goal.achieved_at = now or utc_now()
    else:
        goal.achieved_at = None


__all__ = [
    "GoalProgress",
    "SyncResult",
    "resolve_period_window",
    "normalize_target_period",
    "days_remaining",
    "compute_goal_progress",
    "apply_sync",
    "sync_goal_progress",
    "set_achieved",
]
