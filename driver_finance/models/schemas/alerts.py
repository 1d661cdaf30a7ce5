"""
Pydantic schemas for alert management.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from ..db.enums import AlertCategory, AlertSeverity


class AlertCreate(BaseModel):
    category: AlertCategory
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    severity: AlertSeverity = AlertSeverity.INFO
    action_url: Optional[str] = Field(None, max_length=200)


class AlertRead(BaseModel):
    id: int
    category: AlertCategory
    title: str
    message: str
    severity: AlertSeverity
    read: bool
    action_url: Optional[str]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AlertUpdate(BaseModel):
    read: bool
