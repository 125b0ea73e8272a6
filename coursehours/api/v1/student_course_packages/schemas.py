from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class StudentCoursePackageCreate(BaseModel):
    student_id: Optional[int] = None
    course_package_id: Optional[int] = None
    # Omitted or 0 -> the package's total_hours
    remaining_hours: Optional[Decimal] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class StudentCoursePackageResponse(BaseModel):
    id: int
    student_id: int
    course_package_id: int
    remaining_hours: Decimal
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    class Config:
        from_attributes = True
