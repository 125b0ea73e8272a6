"""Consumption router: batch consume, record listing, reversal."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursehours.core.exceptions import ServiceError
from coursehours.db.session import get_db, get_sessionmaker

from .schemas import ConsumeRequest, ConsumeResult, ConsumptionRecordResponse, ReverseResult
from . import service

router = APIRouter(prefix="/api/v1", tags=["consumption"])


@router.post("/consume", response_model=ConsumeResult)
async def consume_hours(
    payload: ConsumeRequest,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
) -> ConsumeResult:
    """
    Consume hours for a batch of students.

    - **student_ids**: required, non-empty
    - **activity_id**: optional; supplies the course type filter and the default hours
    - **hours_consumed**: optional; overrides the activity's hours_per_class when positive
    - **remark**, **consume_date**: optional; consume_date defaults to now
    """
    try:
        return await service.consume_hours(db, session_factory, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/consumption-records", response_model=List[ConsumptionRecordResponse])
async def list_consumption_records(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    student_name: Optional[str] = Query(None),
    course_package: Optional[int] = Query(None, description="Course package id"),
    db: AsyncSession = Depends(get_db),
) -> List[ConsumptionRecordResponse]:
    return await service.list_consumption_records(
        db,
        page=page,
        limit=limit,
        student_name=student_name,
        course_package_id=course_package,
    )


@router.delete("/consumption-records/{record_id}", response_model=ReverseResult)
async def reverse_consumption_record(
    record_id: int,
    db: AsyncSession = Depends(get_db),
) -> ReverseResult:
    try:
        return await service.reverse_consumption(db, record_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
