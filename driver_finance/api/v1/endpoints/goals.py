"""
Revenue goal endpoints and live progress tracking.
"""
from datetime import date
from typing import List, Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import Conflict, DomainError, NotFound
from driver_finance.models.db import Goal, Owner
from driver_finance.models.db.enums import GoalType
from driver_finance.models.schemas.goals import GoalCreate, GoalUpdate, GoalRead
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services import record_store
from driver_finance.services.goal_tracker import normalize_target_period, set_achieved, sync_goal_progress
from driver_finance.services.record_store import DateRange, GoalFilter
from driver_finance.utils import get_logger, log_business_event, log_performance
from driver_finance.utils.time import month_end, month_start, utc_now

router = APIRouter()
logger = get_logger(__name__)


def _get_owned(db: Session, owner_id: int, goal_id: int) -> Goal:
    goal = record_store.find_goal(db, owner_id, goal_id)
    if goal is None:
        raise NotFound(f"Goal with id {goal_id} not found")
    return goal


@router.get("/", response_model=List[GoalRead], summary="List goals")
async def list_goals(
    goal_type: Optional[GoalType] = Query(None, alias="type"),
    period: Optional[date] = Query(None, description="Any date in the month to list"),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[GoalRead]:
    window = DateRange(month_start(period), month_end(period)) if period else DateRange()
    goals = record_store.find_goals(db, GoalFilter(owner_id=current_owner.id, goal_type=goal_type, window=window))
    return [GoalRead.model_validate(g) for g in goals]


@router.post(
    "/",
    response_model=GoalRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create goal"
)
async def create_goal(
    goal_data: GoalCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> GoalRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Goal creation started",
        owner_id=current_owner.id,
        goal_type=goal_data.type.value,
        target_period=goal_data.target_period,
        target_value=goal_data.target_value,
        request_id=request_id
    )

    target_period = normalize_target_period(goal_data.type, goal_data.target_period)

    try:
        duplicate = db.query(Goal).filter(
            Goal.owner_id == current_owner.id,
            Goal.type == goal_data.type,
            Goal.target_period == target_period,
        ).first()
        if duplicate:
            logger.warning(
                "Goal creation failed: duplicate period",
                owner_id=current_owner.id,
                existing_goal_id=duplicate.id,
                request_id=request_id
            )
            raise Conflict("A goal of this type already exists for this period", field="target_period")

        goal = Goal(
            owner_id=current_owner.id,
            type=goal_data.type,
            target_period=target_period,
            target_value=goal_data.target_value,
            current_value=0,
            achieved=False,
        )
        db.add(goal)
        db.commit()
        db.refresh(goal)

        log_business_event(
            event_type="goal_created",
            details={
                "goal_id": goal.id,
                "goal_type": goal_data.type.value,
                "target_value": goal.target_value,
            },
            owner_id=current_owner.id,
            request_id=request_id
        )
        duration_ms = (time.time() - start_time) * 1000
        log_performance(operation="create_goal", duration_ms=duration_ms)
        return GoalRead.model_validate(goal)

    except (HTTPException, DomainError):
        raise
    except IntegrityError as e:
        db.rollback()
        logger.error(
            "Goal creation failed: database constraint violation",
            error=str(e),
            request_id=request_id
        )
        raise Conflict("A goal of this type already exists for this period", field="target_period")
    except Exception as e:
        db.rollback()
        logger.error(
            "Goal creation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during goal creation"
        )


@router.get(
    "/current/progress",
    response_model=Dict[str, Any],
    summary="Progress of the current goal",
    description="Recompute progress from live records; the stored goal is written only when its value changed"
)
async def get_current_progress(
    request: Request,
    goal_type: GoalType = Query(GoalType.MONTHLY, alias="type"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    result = sync_goal_progress(
        db,
        current_owner.id,
        goal_type,
        now=utc_now(),
        start=start_date,
        end=end_date,
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="goal_progress",
        duration_ms=duration_ms,
        additional_data={"exists": result.exists, "updated": result.updated}
    )
    logger.info(
        "Goal progress computed",
        owner_id=current_owner.id,
        goal_type=goal_type.value,
        exists=result.exists,
        updated=result.updated,
        request_id=request_id
    )

    if not result.exists:
        return {"exists": False, "updated": False, "message": "No goal found for this period"}
    return {**result.to_dict(), "updated": result.updated}


@router.get("/{goal_id}", response_model=GoalRead, summary="Get goal")
async def get_goal(
    goal_id: int,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> GoalRead:
    return GoalRead.model_validate(_get_owned(db, current_owner.id, goal_id))


@router.put("/{goal_id}", response_model=GoalRead, summary="Update goal")
async def update_goal(
    goal_id: int,
    goal_data: GoalUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> GoalRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    goal = _get_owned(db, current_owner.id, goal_id)

    if goal_data.target_value is not None:
        goal.target_value = goal_data.target_value
    if goal_data.current_value is not None:
        goal.current_value = goal_data.current_value
    if goal_data.achieved is not None:
        set_achieved(goal, goal_data.achieved, utc_now())
    db.commit()
    db.refresh(goal)

    log_business_event(
        event_type="goal_updated",
        details={
            "goal_id": goal.id,
            "fields": sorted(goal_data.model_dump(exclude_none=True)),
            "achieved": goal.achieved,
        },
        owner_id=current_owner.id,
        request_id=request_id
    )
    return GoalRead.model_validate(goal)


@router.delete("/{goal_id}", response_model=ResponseBase, summary="Delete goal")
async def delete_goal(
    goal_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    goal = _get_owned(db, current_owner.id, goal_id)
    db.delete(goal)
    db.commit()

    log_business_event(
        event_type="goal_deleted",
        details={"goal_id": goal_id},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="Goal deleted successfully", data={"goal_id": goal_id})
