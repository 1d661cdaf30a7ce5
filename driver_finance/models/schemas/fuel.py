"""
Pydantic schemas for fuel logs.
"""
import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class FuelLogCreate(BaseModel):
    date: dt.date
    liters: float = Field(ge=0.01)
    price: float = Field(ge=0.01, description="Price per litre")
    total_cost: Optional[float] = Field(None, ge=0, description="Defaults to liters * price")
    odometer: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=200)


class FuelLogUpdate(BaseModel):
    date: Optional[dt.date] = None
    liters: Optional[float] = Field(None, ge=0.01)
    price: Optional[float] = Field(None, ge=0.01)
    total_cost: Optional[float] = Field(None, ge=0)
    odometer: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=200)


class FuelLogRead(BaseModel):
    id: int
    date: dt.date
    liters: float
    price: float
    total_cost: float
    odometer: Optional[float]
    notes: Optional[str]
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
