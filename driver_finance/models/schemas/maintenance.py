"""
Pydantic schemas for vehicle maintenance entries.
"""
import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class MaintenanceCreate(BaseModel):
    date: dt.date
    type: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=200)
    cost: float = Field(ge=0)
    odometer: Optional[float] = Field(None, ge=0)
    next_date: Optional[dt.date] = None
    next_odometer: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=200)


class MaintenanceUpdate(BaseModel):
    date: Optional[dt.date] = None
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    cost: Optional[float] = Field(None, ge=0)
    odometer: Optional[float] = Field(None, ge=0)
    next_date: Optional[dt.date] = None
    next_odometer: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=200)


class MaintenanceRead(BaseModel):
    id: int
    date: dt.date
    type: str
    description: str
    cost: float
    odometer: Optional[float]
    next_date: Optional[dt.date]
    next_odometer: Optional[float]
    notes: Optional[str]
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
