from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ServiceError
from coursehours.db.session import get_db

from .schemas import StudentCoursePackageCreate, StudentCoursePackageResponse
from . import service

router = APIRouter(prefix="/api/v1/student-course-packages", tags=["student-course-packages"])


@router.get("", response_model=List[StudentCoursePackageResponse])
async def list_student_course_packages(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    student_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[StudentCoursePackageResponse]:
    return await service.list_student_course_packages(db, page=page, limit=limit, student_id=student_id)


@router.post("", response_model=StudentCoursePackageResponse, status_code=status.HTTP_201_CREATED)
async def assign_course_package(
    payload: StudentCoursePackageCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentCoursePackageResponse:
    try:
        return await service.assign_course_package(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
