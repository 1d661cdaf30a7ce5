"""
Fuel log endpoints.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import DomainError, NotFound
from driver_finance.models.db import FuelLog, Owner
from driver_finance.models.schemas.fuel import FuelLogCreate, FuelLogUpdate, FuelLogRead
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services import record_store
from driver_finance.services.record_store import DateRange
from driver_finance.utils import get_logger, log_business_event, log_performance
from driver_finance.utils.metrics import round_money

router = APIRouter()
logger = get_logger(__name__)


def _get_owned(db: Session, owner_id: int, fuel_log_id: int) -> FuelLog:
    fuel_log = record_store.find_fuel_log(db, owner_id, fuel_log_id)
    if fuel_log is None:
        raise NotFound(f"Fuel log with id {fuel_log_id} not found")
    return fuel_log


@router.get("/", response_model=List[FuelLogRead], summary="List fuel logs")
async def list_fuel_logs(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[FuelLogRead]:
    logs = record_store.find_fuel_logs(db, current_owner.id, DateRange(start_date, end_date))
    return [FuelLogRead.model_validate(f) for f in logs]


@router.post(
    "/",
    response_model=FuelLogRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create fuel log"
)
async def create_fuel_log(
    fuel_data: FuelLogCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> FuelLogRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Fuel log creation started",
        owner_id=current_owner.id,
        date=fuel_data.date,
        liters=fuel_data.liters,
        request_id=request_id
    )

    try:
        total_cost = fuel_data.total_cost
        if total_cost is None:
            total_cost = round_money(fuel_data.liters * fuel_data.price)
        fuel_log = FuelLog(
            owner_id=current_owner.id,
            **fuel_data.model_dump(exclude={"total_cost"}),
            total_cost=total_cost,
        )
        db.add(fuel_log)
        db.commit()
        db.refresh(fuel_log)

        log_business_event(
            event_type="fuel_log_created",
            details={"fuel_log_id": fuel_log.id, "liters": fuel_log.liters, "total_cost": fuel_log.total_cost},
            owner_id=current_owner.id,
            request_id=request_id
        )
        duration_ms = (time.time() - start_time) * 1000
        log_performance(operation="create_fuel_log", duration_ms=duration_ms)
        return FuelLogRead.model_validate(fuel_log)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Fuel log creation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during fuel log creation"
        )


@router.get("/{fuel_log_id}", response_model=FuelLogRead, summary="Get fuel log")
async def get_fuel_log(
    fuel_log_id: int,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> FuelLogRead:
    return FuelLogRead.model_validate(_get_owned(db, current_owner.id, fuel_log_id))


@router.put("/{fuel_log_id}", response_model=FuelLogRead, summary="Update fuel log")
async def update_fuel_log(
    fuel_log_id: int,
    fuel_data: FuelLogUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> FuelLogRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    fuel_log = _get_owned(db, current_owner.id, fuel_log_id)

    changes = {k: v for k, v in fuel_data.model_dump(exclude_unset=True).items()
               if v is not None or k in ("odometer", "notes")}
    for name, value in changes.items():
        setattr(fuel_log, name, value)
    if "total_cost" not in changes and ("liters" in changes or "price" in changes):
        fuel_log.total_cost = round_money(fuel_log.liters * fuel_log.price)
    db.commit()
    db.refresh(fuel_log)

    log_business_event(
        event_type="fuel_log_updated",
        details={"fuel_log_id": fuel_log.id, "fields": sorted(changes)},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return FuelLogRead.model_validate(fuel_log)


@router.delete("/{fuel_log_id}", response_model=ResponseBase, summary="Delete fuel log")
async def delete_fuel_log(
    fuel_log_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    fuel_log = _get_owned(db, current_owner.id, fuel_log_id)
    db.delete(fuel_log)
    db.commit()

    log_business_event(
        event_type="fuel_log_deleted",
        details={"fuel_log_id": fuel_log_id},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="Fuel log deleted successfully", data={"fuel_log_id": fuel_log_id})
