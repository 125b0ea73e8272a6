"""Course package service layer."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ConflictError, ValidationError
from coursehours.core.hours import to_hours
from coursehours.core.models import CoursePackage

from .schemas import CoursePackageCreate, CoursePackageResponse, CoursePackageUpdate


def _to_response(cp: CoursePackage) -> CoursePackageResponse:
    return CoursePackageResponse(
        id=cp.id,
        name=cp.name,
        total_hours=cp.total_hours,
        course_type=cp.course_type,
        price=cp.price,
        created_at=cp.created_at,
    )


async def list_course_packages(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
) -> List[CoursePackageResponse]:
    stmt = select(CoursePackage).order_by(CoursePackage.id).offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)
    return [_to_response(cp) for cp in result.scalars().all()]


async def create_course_package(
    db: AsyncSession,
    payload: CoursePackageCreate,
) -> CoursePackageResponse:
    name = (payload.name or "").strip()
    course_type = (payload.course_type or "").strip()
    if not name or not payload.total_hours or not course_type:
        raise ValidationError("Course package name, total hours and course type are required")
    if payload.total_hours < 0:
        raise ValidationError("Total hours must be positive")
    cp = CoursePackage(
        name=name,
        total_hours=to_hours(payload.total_hours),
        course_type=course_type,
        price=payload.price,
    )
    db.add(cp)
    await db.commit()
    await db.refresh(cp)
    return _to_response(cp)


async def update_course_package(
    db: AsyncSession,
    course_package_id: int,
    payload: CoursePackageUpdate,
) -> Optional[CoursePackageResponse]:
    cp = await db.get(CoursePackage, course_package_id)
    if not cp:
        return None
    if payload.name is not None:
        if not payload.name.strip():
            raise ValidationError("Course package name cannot be empty")
        cp.name = payload.name.strip()
    if payload.total_hours is not None:
        cp.total_hours = to_hours(payload.total_hours)
    if payload.course_type is not None:
        if not payload.course_type.strip():
            raise ValidationError("Course type cannot be empty")
        cp.course_type = payload.course_type.strip()
    if payload.price is not None:
        cp.price = payload.price
    await db.commit()
    await db.refresh(cp)
    return _to_response(cp)


async def delete_course_package(db: AsyncSession, course_package_id: int) -> bool:
    cp = await db.get(CoursePackage, course_package_id)
    if not cp:
        return False
    try:
        await db.delete(cp)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Cannot delete course package: it is still assigned to students")
    return True
