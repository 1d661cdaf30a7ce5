"""
Pydantic schemas for daily records.
"""
import datetime as dt
from typing import Optional, Dict, List
from pydantic import BaseModel, Field, ConfigDict, field_validator

TIME_PATTERN = r"^\d{2}:\d{2}$"


class RecordFields(BaseModel):
    platforms: Optional[List[str]] = None
    revenue_breakdown: Optional[Dict[str, float]] = None
    expenses: Optional[float] = Field(None, ge=0)
    expense_fuel: Optional[float] = Field(None, ge=0)
    expense_maintenance: Optional[float] = Field(None, ge=0)
    expense_food: Optional[float] = Field(None, ge=0)
    expense_wash: Optional[float] = Field(None, ge=0)
    expense_toll: Optional[float] = Field(None, ge=0)
    expense_parking: Optional[float] = Field(None, ge=0)
    expense_other: Optional[float] = Field(None, ge=0)
    fuel_efficiency: Optional[float] = Field(None, ge=0, description="Distance per litre")
    trips_count: Optional[int] = Field(None, ge=0)
    hours_worked: Optional[float] = Field(None, ge=0)
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    notes: Optional[str] = Field(None, max_length=300)

    @field_validator('revenue_breakdown')
    @classmethod
    def validate_breakdown(cls, v):
        if v is None:
            return v
        for platform, amount in v.items():
            if amount < 0:
                raise ValueError(f"revenue for platform '{platform}' must be >= 0")
        return v


class RecordCreate(RecordFields):
    date: dt.date
    revenue: float = Field(ge=0)
    distance: float = Field(ge=0)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "date": "2024-05-06",
            "platforms": ["uber", "99"],
            "revenue": 320.0,
            "revenue_breakdown": {"uber": 200.0, "99": 120.0},
            "expense_fuel": 60.0,
            "expense_food": 25.0,
            "distance": 180.0,
            "fuel_efficiency": 12.5,
            "trips_count": 18,
            "hours_worked": 9.5,
            "start_time": "07:30",
            "end_time": "17:00"
        }
    })


class RecordUpdate(RecordFields):
    date: Optional[dt.date] = None
    revenue: Optional[float] = Field(None, ge=0)
    distance: Optional[float] = Field(None, ge=0)


class RecordRead(BaseModel):
    id: int
    date: dt.date
    platforms: List[str]
    revenue: float
    revenue_breakdown: Optional[Dict[str, float]]
    expenses: float
    expense_fuel: Optional[float]
    expense_maintenance: Optional[float]
    expense_food: Optional[float]
    expense_wash: Optional[float]
    expense_toll: Optional[float]
    expense_parking: Optional[float]
    expense_other: Optional[float]
    distance: float
    fuel_efficiency: Optional[float]
    trips_count: Optional[int]
    hours_worked: Optional[float]
    start_time: Optional[str]
    end_time: Optional[str]
    notes: Optional[str]
    profit: float
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
