from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ServiceError
from coursehours.db.session import get_db

from .schemas import CoursePackageCreate, CoursePackageResponse, CoursePackageUpdate
from . import service

router = APIRouter(prefix="/api/v1/course-packages", tags=["course-packages"])


@router.get("", response_model=List[CoursePackageResponse])
async def list_course_packages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> List[CoursePackageResponse]:
    return await service.list_course_packages(db, page=page, limit=limit)


@router.post("", response_model=CoursePackageResponse, status_code=status.HTTP_201_CREATED)
async def create_course_package(
    payload: CoursePackageCreate,
    db: AsyncSession = Depends(get_db),
) -> CoursePackageResponse:
    try:
        return await service.create_course_package(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{course_package_id}", response_model=CoursePackageResponse)
async def update_course_package(
    course_package_id: int,
    payload: CoursePackageUpdate,
    db: AsyncSession = Depends(get_db),
) -> CoursePackageResponse:
    try:
        cp = await service.update_course_package(db, course_package_id, payload)
        if not cp:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course package not found")
        return cp
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{course_package_id}")
async def delete_course_package(
    course_package_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        deleted = await service.delete_course_package(db, course_package_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course package not found")
        return {"message": "Course package deleted"}
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
