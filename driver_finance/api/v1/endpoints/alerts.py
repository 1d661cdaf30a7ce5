"""
Alert management endpoints.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import DomainError, NotFound
from driver_finance.models.db import Alert, Owner
from driver_finance.models.db.enums import AlertCategory
from driver_finance.models.schemas.alerts import AlertCreate, AlertRead, AlertUpdate
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services import record_store
from driver_finance.services.insights import generate_and_store_alerts
from driver_finance.services.record_store import AlertFilter
from driver_finance.utils import get_logger, log_business_event, log_performance
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


def _get_owned(db: Session, owner_id: int, alert_id: int) -> Alert:
    alert = record_store.find_alert(db, owner_id, alert_id)
    if alert is None:
        raise NotFound(f"Alert with id {alert_id} not found")
    return alert


@router.get(
    "/",
    response_model=List[AlertRead],
    summary="List alerts"
)
async def get_alerts(
    request: Request,
    category: Optional[AlertCategory] = Query(None, alias="type"),
    read: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[AlertRead]:
    """Get alerts with filtering and pagination, newest first."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Alerts list requested",
        owner_id=current_owner.id,
        category=category.value if category else None,
        read=read,
        limit=limit,
        offset=offset,
        request_id=request_id
    )

    alerts = record_store.find_alerts(
        db,
        AlertFilter(owner_id=current_owner.id, category=category, read=read, limit=limit, offset=offset),
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="get_alerts",
        duration_ms=duration_ms,
        additional_data={"alerts_returned": len(alerts)}
    )
    return [AlertRead.model_validate(a) for a in alerts]


@router.post(
    "/",
    response_model=AlertRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create alert"
)
async def create_alert(
    alert_data: AlertCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> AlertRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    alert = Alert(owner_id=current_owner.id, read=False, **alert_data.model_dump())
    db.add(alert)
    db.commit()
    db.refresh(alert)

    log_business_event(
        event_type="alert_created",
        details={"alert_id": alert.id, "category": alert_data.category.value},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return AlertRead.model_validate(alert)


@router.post(
    "/generate",
    response_model=ResponseBase,
    summary="Generate alerts",
    description="Run the alert rules over recent activity and store alerts that are not already pending"
)
async def generate_alerts(
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info("Alert generation started", owner_id=current_owner.id, request_id=request_id)

    try:
        created = generate_and_store_alerts(db, current_owner.id, now=utc_now())

        log_business_event(
            event_type="alerts_generated",
            details={"created": created},
            owner_id=current_owner.id,
            request_id=request_id
        )
        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="generate_alerts",
            duration_ms=duration_ms,
            additional_data={"created": created}
        )
        return ResponseBase(
            success=True,
            message=f"{created} alert(s) generated",
            data={"count": created}
        )

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Alert generation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during alert generation"
        )


@router.get("/{alert_id}", response_model=AlertRead, summary="Get alert")
async def get_alert(
    alert_id: int,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> AlertRead:
    return AlertRead.model_validate(_get_owned(db, current_owner.id, alert_id))


@router.put("/{alert_id}", response_model=AlertRead, summary="Mark alert read or unread")
async def update_alert(
    alert_id: int,
    alert_data: AlertUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> AlertRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    alert = _get_owned(db, current_owner.id, alert_id)
    alert.read = alert_data.read
    db.commit()
    db.refresh(alert)

    logger.info(
        "Alert updated",
        owner_id=current_owner.id,
        alert_id=alert_id,
        read=alert.read,
        request_id=request_id
    )
    return AlertRead.model_validate(alert)


@router.delete("/{alert_id}", response_model=ResponseBase, summary="Delete alert")
async def delete_alert(
    alert_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    alert = _get_owned(db, current_owner.id, alert_id)
    db.delete(alert)
    db.commit()

    log_business_event(
        event_type="alert_deleted",
        details={"alert_id": alert_id},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="Alert deleted successfully", data={"alert_id": alert_id})
