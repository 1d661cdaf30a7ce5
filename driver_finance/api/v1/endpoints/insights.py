"""
Insight messages over the trailing activity window.
"""
from typing import Dict, Any
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.models.db import Owner
from driver_finance.services.insights import generate_insights, recent_records
from driver_finance.utils import get_logger, log_performance
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/",
    response_model=Dict[str, Any],
    summary="Get insights",
    description="Up to four short messages about the last 30 days; nothing is stored"
)
async def get_insights(
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    records = recent_records(db, current_owner.id, utc_now().date())
    insights = generate_insights(records)

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="get_insights",
        duration_ms=duration_ms,
        additional_data={"records": len(records), "insights": len(insights)}
    )
    logger.info(
        "Insights generated",
        owner_id=current_owner.id,
        insights=[i.key for i in insights],
        request_id=request_id
    )
    return {"insights": [i.to_dict() for i in insights], "records_analyzed": len(records)}
