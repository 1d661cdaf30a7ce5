"""
Anonymous peer benchmark endpoints.
"""
from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import DomainError
from driver_finance.models.db import Owner
from driver_finance.models.db.enums import BenchmarkPeriod
from driver_finance.models.schemas.benchmark import BenchmarkSubmit
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services.benchmarking import benchmark_stats, submit_benchmark
from driver_finance.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/submit",
    response_model=ResponseBase,
    status_code=status.HTTP_201_CREATED,
    summary="Submit benchmark data",
    description="Publish anonymized period metrics; requires benchmark participation in privacy preferences"
)
async def submit(
    payload: BenchmarkSubmit,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Benchmark submission started",
        owner_id=current_owner.id,
        period=payload.period.value,
        period_date=payload.period_date,
        request_id=request_id
    )

    try:
        entries = submit_benchmark(db, current_owner, payload.period, payload.period_date)

        log_business_event(
            event_type="benchmark_submitted",
            details={
                "period": payload.period.value,
                "period_date": payload.period_date.isoformat(),
                "entries": len(entries),
            },
            owner_id=current_owner.id,
            request_id=request_id
        )
        duration_ms = (time.time() - start_time) * 1000
        log_performance(operation="submit_benchmark", duration_ms=duration_ms)
        return ResponseBase(
            success=True,
            message="Benchmark data submitted",
            data={"entries": len(entries), "platforms": [e.platform for e in entries]}
        )

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            "Benchmark submission failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during benchmark submission"
        )


@router.get(
    "/stats",
    response_model=Dict[str, Any],
    summary="Peer statistics"
)
async def stats(
    request: Request,
    period: BenchmarkPeriod = Query(BenchmarkPeriod.MONTH),
    city: Optional[str] = Query(None),
    state: Optional[str] = Query(None, min_length=2, max_length=2),
    vehicle_type: Optional[str] = Query(None),
    platform: Optional[str] = Query(None),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Averages of matching peers for the latest period plus the caller's percentile."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    result = benchmark_stats(
        db,
        current_owner,
        period=period,
        city=city,
        state=state.upper() if state else None,
        vehicle_type=vehicle_type,
        platform=platform,
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="benchmark_stats",
        duration_ms=duration_ms,
        additional_data={"has_peers": result["stats"] is not None}
    )
    logger.info(
        "Benchmark stats computed",
        owner_id=current_owner.id,
        percentile=result["percentile"],
        request_id=request_id
    )
    return result
