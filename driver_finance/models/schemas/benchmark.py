"""
Pydantic schemas for anonymous benchmarking.
"""
import datetime as dt
from pydantic import BaseModel, Field
from ..db.enums import BenchmarkPeriod


class BenchmarkSubmit(BaseModel):
    period: BenchmarkPeriod = BenchmarkPeriod.MONTH
    period_date: dt.date = Field(description="First day of the submitted period")
