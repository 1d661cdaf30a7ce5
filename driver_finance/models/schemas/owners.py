"""
Pydantic schemas for owner registration and preferences.
"""
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator


class OwnerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    vehicle_type: Optional[str] = Field(None, max_length=50)
    preferences: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('state')
    @classmethod
    def normalize_state(cls, v):
        return v.upper() if v else v

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Maria Souza",
            "email": "maria@example.com",
            "city": "Campinas",
            "state": "SP",
            "vehicle_type": "car",
            "preferences": {"privacy": {"participate_benchmarking": True}}
        }
    })


class OwnerRead(BaseModel):
    id: int
    name: str
    email: str
    api_key: Optional[str]
    is_active: bool
    city: Optional[str]
    state: Optional[str]
    vehicle_type: Optional[str]
    preferences: Dict[str, Any]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferences(BaseModel):
    weekly_summary: Optional[bool] = None
    monthly_summary: Optional[bool] = None
    expense_alerts: Optional[bool] = None
    registration_reminders: Optional[bool] = None
    achievements: Optional[bool] = None
    tips: Optional[bool] = None


class DisplayPreferences(BaseModel):
    currency: Optional[str] = None
    date_format: Optional[str] = None
    number_format: Optional[str] = None
    theme: Optional[str] = Field(None, pattern=r"^(light|dark|auto)$")
    language: Optional[str] = None


class PrivacyPreferences(BaseModel):
    participate_benchmarking: Optional[bool] = None
    share_data_for_improvements: Optional[bool] = None


class PreferencesUpdate(BaseModel):
    """Partial preferences; only the keys present are merged into the stored document."""
    notifications: Optional[NotificationPreferences] = None
    display: Optional[DisplayPreferences] = None
    privacy: Optional[PrivacyPreferences] = None


class ApiKeyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)

    model_config = ConfigDict(json_schema_extra={
        "example": {"name": "spreadsheet sync", "expires_in_days": 90}
    })


class ApiKeyRead(BaseModel):
    id: int
    name: str
    key_prefix: str
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ApiKeyIssued(ApiKeyRead):
    """Only response that carries the raw key."""
    key: str
    warning: str = "Store this key securely. It will not be shown again."
