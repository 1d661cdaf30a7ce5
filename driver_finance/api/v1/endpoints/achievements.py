"""
Achievement endpoints.
"""
from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.models.db import Owner
from driver_finance.models.schemas.achievements import AchievementCheckResult, AchievementRead
from driver_finance.services import record_store
from driver_finance.services.achievements import check_and_unlock
from driver_finance.utils import get_logger, log_business_event
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=List[AchievementRead], summary="List unlocked achievements")
async def list_achievements(
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[AchievementRead]:
    return [AchievementRead.model_validate(a) for a in record_store.find_achievements(db, current_owner.id)]


@router.post(
    "/",
    response_model=AchievementCheckResult,
    summary="Check and unlock achievements"
)
async def check_achievements(
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> AchievementCheckResult:
    request_id = request.headers.get("X-Request-ID", "unknown")
    unlocked = check_and_unlock(db, current_owner.id, now=utc_now())

    if not unlocked:
        return AchievementCheckResult(message="No new achievements", unlocked=[])

    log_business_event(
        event_type="achievements_unlocked",
        details={"unlocked": unlocked},
        owner_id=current_owner.id,
        request_id=request_id
    )
    achievements = record_store.find_achievements(db, current_owner.id)
    return AchievementCheckResult(
        message=f"{len(unlocked)} new achievement(s) unlocked!",
        unlocked=unlocked,
        achievements=[AchievementRead.model_validate(a) for a in achievements],
    )
