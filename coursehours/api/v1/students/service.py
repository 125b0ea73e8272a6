"""Student service: CRUD plus the ordered delete cascade (records -> assignments -> student)."""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import NotFoundError, StoreError, ValidationError
from coursehours.core.models import ConsumptionRecord, CoursePackage, Student, StudentCoursePackage

from .schemas import (
    StudentCoursePackageDetail,
    StudentCreate,
    StudentDeleteResponse,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)


def _to_response(s: Student) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        name=s.name,
        nickname=s.nickname or "",
        parent_contact=s.parent_contact or "",
        phone=s.phone or "",
        created_at=s.created_at,
    )


async def list_students(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    name: Optional[str] = None,
) -> List[StudentResponse]:
    stmt = select(Student)
    if name:
        stmt = stmt.where(Student.name.ilike(f"%{name}%"))
    stmt = stmt.order_by(Student.id).offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)
    return [_to_response(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, student_id: int) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    return _to_response(student) if student else None


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Student name is required")
    student = Student(
        name=name,
        nickname=(payload.nickname or "").strip(),
        parent_contact=(payload.parent_contact or "").strip(),
        phone=(payload.phone or "").strip(),
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return _to_response(student)


async def update_student(
    db: AsyncSession,
    student_id: int,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student:
        return None
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Student name cannot be empty")
        student.name = name
    if payload.nickname is not None:
        student.nickname = payload.nickname.strip()
    if payload.parent_contact is not None:
        student.parent_contact = payload.parent_contact.strip()
    if payload.phone is not None:
        student.phone = payload.phone.strip()
    await db.commit()
    await db.refresh(student)
    return _to_response(student)


async def delete_student(db: AsyncSession, student_id: int) -> StudentDeleteResponse:
    """
    Remove a student together with their consumption records and course package assignments.
    Steps run in that order; the first failing step aborts everything and is named in the error.
    """
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")

    steps = [
        ("consumption records", delete(ConsumptionRecord).where(ConsumptionRecord.student_id == student_id)),
        ("course package assignments", delete(StudentCoursePackage).where(StudentCoursePackage.student_id == student_id)),
        ("student", delete(Student).where(Student.id == student_id)),
    ]
    counts = {}
    for label, stmt in steps:
        try:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Deleting student %s failed at step '%s': %s", student_id, label, e)
            raise StoreError(f"Failed to delete {label}: {e}")
        counts[label] = result.rowcount

    if counts["student"] == 0:
        await db.rollback()
        raise NotFoundError("Student not found")
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StoreError(f"Failed to delete student: {e}")

    logger.info(
        "Deleted student %s with %s consumption records and %s assignments",
        student_id,
        counts["consumption records"],
        counts["course package assignments"],
    )
    return StudentDeleteResponse(
        message="Student deleted together with their consumption records and course packages",
        deleted_consumption_records=counts["consumption records"],
        deleted_course_packages=counts["course package assignments"],
    )


async def list_student_course_packages(
    db: AsyncSession,
    student_id: int,
) -> List[StudentCoursePackageDetail]:
    stmt = (
        select(
            StudentCoursePackage,
            CoursePackage.name.label("package_name"),
            CoursePackage.course_type,
            CoursePackage.total_hours,
        )
        .join(CoursePackage, StudentCoursePackage.course_package_id == CoursePackage.id)
        .where(StudentCoursePackage.student_id == student_id)
        .order_by(StudentCoursePackage.id)
    )
    result = await db.execute(stmt)
    return [
        StudentCoursePackageDetail(
            id=scp.id,
            student_id=scp.student_id,
            course_package_id=scp.course_package_id,
            remaining_hours=scp.remaining_hours,
            start_date=scp.start_date,
            end_date=scp.end_date,
            package_name=package_name,
            course_type=course_type,
            total_hours=total_hours,
        )
        for scp, package_name, course_type, total_hours in result.all()
    ]
