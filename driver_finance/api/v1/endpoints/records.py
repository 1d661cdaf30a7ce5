"""
Daily record endpoints: CRUD, export, activity heatmap and per-platform analytics.
"""
from datetime import date
from typing import List, Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import Conflict, DomainError, NotFound
from driver_finance.models.db import DailyRecord, Owner, ITEMIZED_EXPENSE_FIELDS
from driver_finance.models.db.enums import ComparisonPeriod, EvolutionPeriod, ExportFormat
from driver_finance.models.schemas.records import RecordCreate, RecordUpdate, RecordRead
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services import record_store
from driver_finance.services.metrics import activity_heatmap, heatmap_window
from driver_finance.services.platform_comparison import (
    compare_platforms, comparison_window, evolution_window, platform_evolution,
)
from driver_finance.services.record_export import XLSX_MEDIA_TYPE, render_records_csv, render_records_xlsx
from driver_finance.services.record_store import DateRange, RecordFilter
from driver_finance.utils import get_logger, log_business_event, log_performance
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


def _ensure_free_date(db: Session, owner_id: int, day: date, record_id: Optional[int] = None) -> None:
    existing = record_store.find_record_by_date(db, owner_id, day)
    if existing is not None and existing.id != record_id:
        raise Conflict(f"A record for {day.isoformat()} already exists", field="date")


@router.get(
    "/",
    response_model=List[RecordRead],
    summary="List daily records"
)
async def list_records(
    request: Request,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[RecordRead]:
    """Records newest first, optionally restricted to an inclusive date range."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Records list requested",
        owner_id=current_owner.id,
        start_date=start_date,
        end_date=end_date,
        request_id=request_id
    )

    flt = RecordFilter(
        owner_id=current_owner.id,
        date_range=DateRange(start_date, end_date),
        newest_first=True,
        limit=limit,
        offset=offset,
    )
    records = record_store.find_records(db, flt)

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="list_records",
        duration_ms=duration_ms,
        additional_data={"records_returned": len(records)}
    )
    return [RecordRead.model_validate(r) for r in records]


@router.post(
    "/",
    response_model=RecordRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create daily record",
    description="Store one working day; expenses and profit are computed server-side"
)
async def create_record(
    record_data: RecordCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> RecordRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Record creation started",
        owner_id=current_owner.id,
        date=record_data.date,
        platforms=record_data.platforms,
        request_id=request_id
    )

    try:
        _ensure_free_date(db, current_owner.id, record_data.date)

        fields = record_data.model_dump(exclude={"expenses"})
        fields["platforms"] = fields.get("platforms") or []
        record = DailyRecord(owner_id=current_owner.id)
        record_store.apply_record_fields(record, fields, explicit_expenses=record_data.expenses)
        db.add(record)
        db.commit()
        db.refresh(record)

        log_business_event(
            event_type="record_created",
            details={
                "record_id": record.id,
                "date": record.date.isoformat(),
                "revenue": record.revenue,
                "expenses": record.expenses,
                "profit": record.profit,
            },
            owner_id=current_owner.id,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="create_record",
            duration_ms=duration_ms,
            additional_data={"record_id": record.id}
        )

        logger.info(
            "Record created successfully",
            owner_id=current_owner.id,
            record_id=record.id,
            duration_ms=duration_ms,
            request_id=request_id
        )
        return RecordRead.model_validate(record)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Record creation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during record creation"
        )


@router.get(
    "/heatmap",
    response_model=List[Dict[str, Any]],
    summary="Activity heatmap"
)
async def get_heatmap(
    request: Request,
    days: int = Query(30, ge=1, le=366),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    """Weekday/hour points for records with a start time in the last ``days`` days."""
    request_id = request.headers.get("X-Request-ID", "unknown")
    window = heatmap_window(utc_now().date(), days)
    records = record_store.find_records(db, RecordFilter(owner_id=current_owner.id, date_range=window))
    points = activity_heatmap(records)
    logger.info(
        "Heatmap generated",
        owner_id=current_owner.id,
        days=days,
        points=len(points),
        request_id=request_id
    )
    return points


@router.get(
    "/platforms/comparison",
    response_model=Dict[str, Any],
    summary="Compare platforms"
)
async def get_platform_comparison(
    request: Request,
    period: ComparisonPeriod = Query(ComparisonPeriod.MONTH),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    window = comparison_window(period, utc_now().date())
    records = record_store.find_records(db, RecordFilter(owner_id=current_owner.id, date_range=window))
    comparison = compare_platforms(records)

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="platform_comparison",
        duration_ms=duration_ms,
        additional_data={"period": period.value, "platforms": len(comparison["platforms"])}
    )
    logger.info(
        "Platform comparison completed",
        owner_id=current_owner.id,
        period=period.value,
        request_id=request_id
    )
    return {"period": period.value, **comparison}


@router.get(
    "/platforms/evolution",
    response_model=Dict[str, Any],
    summary="Monthly revenue per platform"
)
async def get_platform_evolution(
    request: Request,
    period: EvolutionPeriod = Query(EvolutionPeriod.MONTH),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    request_id = request.headers.get("X-Request-ID", "unknown")
    window = evolution_window(period, utc_now().date())
    records = record_store.find_records(db, RecordFilter(owner_id=current_owner.id, date_range=window))
    rows = platform_evolution(records)
    logger.info(
        "Platform evolution completed",
        owner_id=current_owner.id,
        period=period.value,
        months=len(rows),
        request_id=request_id
    )
    return {"period": period.value, "evolution": rows}


@router.get(
    "/export",
    summary="Export records",
    description="Records newest first as CSV (with fuel and maintenance sections) or an XLSX workbook"
)
async def export_records(
    request: Request,
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Response:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    window = DateRange(start_date, end_date)
    records = record_store.find_records(
        db, RecordFilter(owner_id=current_owner.id, date_range=window, newest_first=True)
    )
    fuel_logs = record_store.find_fuel_logs(db, current_owner.id, window)
    maintenances = record_store.find_maintenances(db, current_owner.id, window)

    stamp = utc_now().date().isoformat()
    if export_format == ExportFormat.XLSX:
        content = render_records_xlsx(records, current_owner.name, window, fuel_logs, maintenances)
        media_type = XLSX_MEDIA_TYPE
    else:
        content = render_records_csv(records, fuel_logs, maintenances)
        media_type = "text/csv"
    filename = f"records-{stamp}.{export_format.value}"

    log_business_event(
        event_type="records_exported",
        details={"format": export_format.value, "records": len(records)},
        owner_id=current_owner.id,
        request_id=request_id
    )
    log_performance(
        operation="export_records",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"format": export_format.value, "records": len(records)}
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{record_id}",
    response_model=RecordRead,
    summary="Get daily record"
)
async def get_record(
    record_id: int,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> RecordRead:
    record = record_store.find_record(db, current_owner.id, record_id)
    if record is None:
        raise NotFound(f"Record with id {record_id} not found")
    return RecordRead.model_validate(record)


@router.put(
    "/{record_id}",
    response_model=RecordRead,
    summary="Update daily record"
)
async def update_record(
    record_id: int,
    record_data: RecordUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> RecordRead:
    """Partial update; expenses and profit are recomputed with the same rule as creation."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    changes = record_data.model_dump(exclude_unset=True)
    logger.info(
        "Record update started",
        owner_id=current_owner.id,
        record_id=record_id,
        fields=sorted(changes),
        request_id=request_id
    )

    try:
        record = record_store.find_record(db, current_owner.id, record_id)
        if record is None:
            raise NotFound(f"Record with id {record_id} not found")

        if changes.get("date") is not None:
            _ensure_free_date(db, current_owner.id, changes["date"], record_id=record.id)

        explicit = changes.pop("expenses", None)
        touches_itemized = any(name in changes for name in ITEMIZED_EXPENSE_FIELDS)
        if "expenses" not in record_data.model_fields_set and not touches_itemized:
            # expense inputs untouched: the stored total stands
            explicit = record.expenses
        if "platforms" in changes and changes["platforms"] is None:
            changes["platforms"] = []
        for required in ("date", "revenue", "distance"):
            if required in changes and changes[required] is None:
                changes.pop(required)

        record_store.apply_record_fields(record, changes, explicit_expenses=explicit)
        db.commit()
        db.refresh(record)

        log_business_event(
            event_type="record_updated",
            details={
                "record_id": record.id,
                "fields": sorted(changes),
                "expenses": record.expenses,
                "profit": record.profit,
            },
            owner_id=current_owner.id,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="update_record",
            duration_ms=duration_ms,
            additional_data={"record_id": record.id}
        )
        return RecordRead.model_validate(record)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Record update failed",
            owner_id=current_owner.id,
            record_id=record_id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during record update"
        )


@router.delete(
    "/{record_id}",
    response_model=ResponseBase,
    summary="Delete daily record"
)
async def delete_record(
    record_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    record = record_store.find_record(db, current_owner.id, record_id)
    if record is None:
        raise NotFound(f"Record with id {record_id} not found")

    record_date = record.date
    db.delete(record)
    db.commit()

    log_business_event(
        event_type="record_deleted",
        details={"record_id": record_id, "date": record_date.isoformat()},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="Record deleted successfully", data={"record_id": record_id})
