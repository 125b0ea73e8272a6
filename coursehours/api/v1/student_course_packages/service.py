"""Assignment service: grants a course package's hours to a student."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import NotFoundError, ValidationError
from coursehours.core.hours import to_hours
from coursehours.core.models import CoursePackage, Student, StudentCoursePackage

from .schemas import StudentCoursePackageCreate, StudentCoursePackageResponse

logger = logging.getLogger(__name__)


def _to_response(scp: StudentCoursePackage) -> StudentCoursePackageResponse:
    return StudentCoursePackageResponse(
        id=scp.id,
        student_id=scp.student_id,
        course_package_id=scp.course_package_id,
        remaining_hours=scp.remaining_hours,
        start_date=scp.start_date,
        end_date=scp.end_date,
    )


async def list_student_course_packages(
    db: AsyncSession,
    page: int = 1,
    limit: int = 100,
    student_id: Optional[int] = None,
) -> List[StudentCoursePackageResponse]:
    stmt = select(StudentCoursePackage)
    if student_id is not None:
        stmt = stmt.where(StudentCoursePackage.student_id == student_id)
    stmt = stmt.order_by(StudentCoursePackage.id).offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)
    return [_to_response(scp) for scp in result.scalars().all()]


async def assign_course_package(
    db: AsyncSession,
    payload: StudentCoursePackageCreate,
) -> StudentCoursePackageResponse:
    if not payload.student_id or not payload.course_package_id:
        raise ValidationError("student_id and course_package_id are required")
    if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
        raise ValidationError("end_date cannot be before start_date")

    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFoundError("Student not found")
    cp = await db.get(CoursePackage, payload.course_package_id)
    if not cp:
        raise NotFoundError("Course package not found")

    scp = StudentCoursePackage(
        student_id=payload.student_id,
        course_package_id=payload.course_package_id,
        remaining_hours=to_hours(payload.remaining_hours) or to_hours(cp.total_hours),
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    db.add(scp)
    await db.commit()
    await db.refresh(scp)
    logger.info(
        "Assigned course package %s to student %s with %s hours",
        scp.course_package_id,
        scp.student_id,
        scp.remaining_hours,
    )
    return _to_response(scp)
