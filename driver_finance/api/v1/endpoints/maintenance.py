"""
Vehicle maintenance endpoints.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import DomainError, NotFound
from driver_finance.models.db import Maintenance, Owner
from driver_finance.models.schemas.maintenance import MaintenanceCreate, MaintenanceUpdate, MaintenanceRead
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services import record_store
from driver_finance.services.record_store import DateRange
from driver_finance.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)

NULLABLE_FIELDS = ("odometer", "next_date", "next_odometer", "notes")


def _get_owned(db: Session, owner_id: int, maintenance_id: int) -> Maintenance:
    maintenance = record_store.find_maintenance(db, owner_id, maintenance_id)
    if maintenance is None:
        raise NotFound(f"Maintenance with id {maintenance_id} not found")
    return maintenance


@router.get("/", response_model=List[MaintenanceRead], summary="List maintenances")
async def list_maintenances(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[MaintenanceRead]:
    items = record_store.find_maintenances(db, current_owner.id, DateRange(start_date, end_date))
    return [MaintenanceRead.model_validate(m) for m in items]


@router.post(
    "/",
    response_model=MaintenanceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create maintenance"
)
async def create_maintenance(
    maintenance_data: MaintenanceCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> MaintenanceRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Maintenance creation started",
        owner_id=current_owner.id,
        maintenance_type=maintenance_data.type,
        cost=maintenance_data.cost,
        request_id=request_id
    )

    try:
        maintenance = Maintenance(owner_id=current_owner.id, **maintenance_data.model_dump())
        db.add(maintenance)
        db.commit()
        db.refresh(maintenance)

        log_business_event(
            event_type="maintenance_created",
            details={
                "maintenance_id": maintenance.id,
                "maintenance_type": maintenance.type,
                "cost": maintenance.cost,
                "next_odometer": maintenance.next_odometer,
            },
            owner_id=current_owner.id,
            request_id=request_id
        )
        duration_ms = (time.time() - start_time) * 1000
        log_performance(operation="create_maintenance", duration_ms=duration_ms)
        return MaintenanceRead.model_validate(maintenance)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Maintenance creation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during maintenance creation"
        )


@router.get("/{maintenance_id}", response_model=MaintenanceRead, summary="Get maintenance")
async def get_maintenance(
    maintenance_id: int,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> MaintenanceRead:
    return MaintenanceRead.model_validate(_get_owned(db, current_owner.id, maintenance_id))


@router.put("/{maintenance_id}", response_model=MaintenanceRead, summary="Update maintenance")
async def update_maintenance(
    maintenance_id: int,
    maintenance_data: MaintenanceUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> MaintenanceRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    maintenance = _get_owned(db, current_owner.id, maintenance_id)

    changes = {k: v for k, v in maintenance_data.model_dump(exclude_unset=True).items()
               if v is not None or k in NULLABLE_FIELDS}
    for name, value in changes.items():
        setattr(maintenance, name, value)
    db.commit()
    db.refresh(maintenance)

    log_business_event(
        event_type="maintenance_updated",
        details={"maintenance_id": maintenance.id, "fields": sorted(changes)},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return MaintenanceRead.model_validate(maintenance)


@router.delete("/{maintenance_id}", response_model=ResponseBase, summary="Delete maintenance")
async def delete_maintenance(
    maintenance_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    maintenance = _get_owned(db, current_owner.id, maintenance_id)
    db.delete(maintenance)
    db.commit()

    log_business_event(
        event_type="maintenance_deleted",
        details={"maintenance_id": maintenance_id},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="Maintenance deleted successfully", data={"maintenance_id": maintenance_id})
