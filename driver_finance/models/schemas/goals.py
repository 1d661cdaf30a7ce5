"""
Pydantic schemas for revenue goals.
"""
import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from ..db.enums import GoalType


class GoalCreate(BaseModel):
    type: GoalType
    target_value: float = Field(ge=0)
    target_period: dt.date = Field(description="Any date inside the goal's window")

    model_config = ConfigDict(json_schema_extra={
        "example": {"type": "monthly", "target_value": 6000.0, "target_period": "2024-05-01"}
    })


class GoalUpdate(BaseModel):
    target_value: Optional[float] = Field(None, ge=0)
    current_value: Optional[float] = Field(None, ge=0)
    achieved: Optional[bool] = None


class GoalRead(BaseModel):
    id: int
    type: GoalType
    target_period: dt.date
    target_value: float
    current_value: float
    achieved: bool
    achieved_at: Optional[dt.datetime]
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
