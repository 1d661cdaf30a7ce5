"""
Pydantic schemas for achievements.
"""
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, ConfigDict


class AchievementRead(BaseModel):
    id: int
    type: str
    title: str
    description: str
    icon: str
    unlocked_at: Optional[datetime]
    details: Dict[str, Any] = Field(default_factory=dict, serialization_alias="metadata")

    model_config = ConfigDict(from_attributes=True)


class AchievementCheckResult(BaseModel):
    message: str
    unlocked: List[str]
    achievements: List[AchievementRead] = Field(default_factory=list)
