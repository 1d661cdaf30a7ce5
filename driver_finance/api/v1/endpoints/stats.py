"""
Dashboard statistics endpoint.
"""
from datetime import date
from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.models.db import Owner
from driver_finance.models.db.enums import StatsPeriod
from driver_finance.services import record_store
from driver_finance.services.metrics import aggregate_period, average_fuel_price, resolve_stats_window
from driver_finance.services.record_store import RecordFilter
from driver_finance.utils import get_logger, log_performance
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/dashboard",
    response_model=Dict[str, Any],
    summary="Dashboard statistics",
    description="Aggregates for the selected period plus all-time totals"
)
async def dashboard(
    request: Request,
    period: StatsPeriod = Query(StatsPeriod.MONTH),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    window = resolve_stats_window(period, utc_now().date(), start_date, end_date)
    average_price = average_fuel_price(record_store.find_fuel_logs(db, current_owner.id))

    records = record_store.find_records(db, RecordFilter(owner_id=current_owner.id, date_range=window))
    current = aggregate_period(
        records,
        average_price=average_price,
        maintenances=record_store.find_maintenances(db, current_owner.id, window),
    )
    all_time = aggregate_period(
        record_store.find_records(db, RecordFilter(owner_id=current_owner.id)),
        average_price=average_price,
        maintenances=record_store.find_maintenances(db, current_owner.id),
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="dashboard_stats",
        duration_ms=duration_ms,
        additional_data={"period": period.value, "records": len(records)}
    )
    logger.info(
        "Dashboard stats computed",
        owner_id=current_owner.id,
        period=period.value,
        request_id=request_id
    )

    return {
        "period": period.value,
        "window": {"start": window.start, "end": window.end},
        "average_fuel_price": average_price,
        "stats": current.to_dict(),
        "all_time": {
            "revenue": all_time.revenue,
            "expenses": all_time.expenses,
            "profit": all_time.profit,
            "distance": all_time.distance,
            "days_worked": all_time.days_worked,
        },
    }
