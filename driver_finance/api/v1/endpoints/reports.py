"""
Fiscal (income tax) report endpoint.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.models.db import Owner
from driver_finance.models.db.enums import ReportFormat
from driver_finance.services.fiscal_report import generate_fiscal_report, render_fiscal_report_csv
from driver_finance.utils import get_logger, log_business_event, log_performance
from driver_finance.utils.time import utc_now

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/fiscal",
    summary="Annual income tax report",
    description="Revenue, deductible expenses, progressive tax estimate and monthly Carne-Leao table"
)
async def fiscal_report(
    request: Request,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    report_format: ReportFormat = Query(ReportFormat.JSON, alias="format"),
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> Response:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")
    year = year or utc_now().year

    logger.info(
        "Fiscal report requested",
        owner_id=current_owner.id,
        year=year,
        format=report_format.value,
        request_id=request_id
    )

    report = generate_fiscal_report(db, current_owner, year)

    log_business_event(
        event_type="fiscal_report_generated",
        details={"year": year, "format": report_format.value, "records": report["records_count"]},
        owner_id=current_owner.id,
        request_id=request_id
    )
    duration_ms = (time.time() - start_time) * 1000
    log_performance(operation="fiscal_report", duration_ms=duration_ms)

    if report_format == ReportFormat.CSV:
        return Response(
            content=render_fiscal_report_csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="income-tax-report-{year}.csv"'},
        )
    return JSONResponse(content=jsonable_encoder(report))
