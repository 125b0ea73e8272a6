from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ActivityRuleWrite(BaseModel):
    """Create and update both require every field; hours_per_class is always derived."""

    name: Optional[str] = Field(None, max_length=255)
    course_type: Optional[str] = Field(None, max_length=100)
    days: Optional[int] = None
    total_hours: Optional[Decimal] = None


class ActivityRuleResponse(BaseModel):
    id: int
    name: str
    course_type: str
    days: int
    total_hours: Decimal
    hours_per_class: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
