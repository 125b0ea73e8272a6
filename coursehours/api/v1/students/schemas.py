from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    # Optional here so a missing name is reported as a 400 by the service
    name: Optional[str] = Field(None, max_length=255)
    nickname: Optional[str] = Field(None, max_length=255)
    parent_contact: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    nickname: Optional[str] = Field(None, max_length=255)
    parent_contact: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class StudentResponse(BaseModel):
    id: int
    name: str
    nickname: str = ""
    parent_contact: str = ""
    phone: str = ""
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentCoursePackageDetail(BaseModel):
    """Assignment row joined with its course package (student detail view)."""

    id: int
    student_id: int
    course_package_id: int
    remaining_hours: Decimal
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    package_name: str
    course_type: str
    total_hours: Decimal


class StudentDeleteResponse(BaseModel):
    message: str
    deleted_consumption_records: int
    deleted_course_packages: int
