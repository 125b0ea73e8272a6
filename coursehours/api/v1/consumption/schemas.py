"""Consumption schemas: batch consume request/result, records, reversal."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from coursehours.core.enums import ConsumeFailureReason


class ConsumeRequest(BaseModel):
    student_ids: List[int] = Field(default_factory=list)
    activity_id: Optional[int] = None
    # Used only when positive; otherwise the activity's hours_per_class (or 1)
    hours_consumed: Optional[Decimal] = None
    remark: Optional[str] = None
    consume_date: Optional[datetime] = None


class ConsumeFailure(BaseModel):
    student_id: int
    reason: ConsumeFailureReason


class ConsumeResult(BaseModel):
    message: str
    hours_consumed: Decimal
    success_count: int
    failed_count: int
    success_students: List[int]
    failed_students: List[int]
    failures: List[ConsumeFailure] = Field(default_factory=list)


class ConsumptionRecordResponse(BaseModel):
    id: int
    student_id: int
    course_package_id: int
    student_course_package_id: Optional[int] = None
    activity_id: Optional[int] = None
    hours_consumed: Decimal
    consume_date: datetime
    remark: Optional[str] = None
    student_name: str
    package_name: str
    activity_name: Optional[str] = None


class ReverseResult(BaseModel):
    message: str
    record_id: int
    student_id: int
    hours_restored: Decimal
