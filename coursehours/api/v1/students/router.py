from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ServiceError
from coursehours.db.session import get_db

from .schemas import (
    StudentCoursePackageDetail,
    StudentCreate,
    StudentDeleteResponse,
    StudentResponse,
    StudentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("", response_model=List[StudentResponse])
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    name: Optional[str] = Query(None, description="Case-insensitive substring match on name"),
    db: AsyncSession = Depends(get_db),
) -> List[StudentResponse]:
    return await service.list_students(db, page=page, limit=limit, name=name)


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        student = await service.update_student(db, student_id, payload)
        if not student:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
        return student
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{student_id}", response_model=StudentDeleteResponse)
async def delete_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
) -> StudentDeleteResponse:
    try:
        return await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}/course-packages", response_model=List[StudentCoursePackageDetail])
async def list_student_course_packages(
    student_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[StudentCoursePackageDetail]:
    return await service.list_student_course_packages(db, student_id)
