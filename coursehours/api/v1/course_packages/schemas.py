from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CoursePackageCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    total_hours: Optional[Decimal] = None
    course_type: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)


class CoursePackageUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    total_hours: Optional[Decimal] = Field(None, gt=0)
    course_type: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)


class CoursePackageResponse(BaseModel):
    id: int
    name: str
    total_hours: Decimal
    course_type: str
    price: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
