"""
Consumption engine: batch hour consumption and its reversal.

Every student in a batch is handled by its own task with its own session. The
conditional decrement in debit_assignment is the only guard against two
concurrent debits over-spending one balance.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursehours.api.v1.activity_rules.resolver import ResolvedActivity, resolve_activity
from coursehours.core.enums import ConsumeFailureReason
from coursehours.core.exceptions import NotFoundError, StoreError, ValidationError
from coursehours.core.hours import to_hours
from coursehours.core.models import (
    ActivityRule,
    ConsumptionRecord,
    CoursePackage,
    Student,
    StudentCoursePackage,
)

from .schemas import (
    ConsumeFailure,
    ConsumeRequest,
    ConsumeResult,
    ConsumptionRecordResponse,
    ReverseResult,
)

logger = logging.getLogger(__name__)

DEFAULT_HOURS_PER_CLASS = Decimal("1.0")


@dataclass(frozen=True)
class ConsumePlan:
    """Values resolved once per batch and shared by every student."""

    hours: Decimal
    course_type: Optional[str]
    activity_id: Optional[int]
    remark: Optional[str]
    consume_date: datetime


@dataclass(frozen=True)
class StudentOutcome:
    student_id: int
    reason: Optional[ConsumeFailureReason] = None

    @property
    def succeeded(self) -> bool:
        return self.reason is None


def resolve_hours(requested: Optional[Decimal], activity: Optional[ResolvedActivity]) -> Decimal:
    if requested is not None:
        hours = to_hours(requested)
        if hours > 0:
            return hours
    if activity is not None:
        return to_hours(activity.hours_per_class)
    return DEFAULT_HOURS_PER_CLASS


async def select_assignment(
    db: AsyncSession,
    student_id: int,
    course_type: Optional[str] = None,
) -> Optional[StudentCoursePackage]:
    """
    Pick the assignment to debit: the smallest positive balance among the student's
    assignments (restricted to course_type when given). Ties go to the lowest id.
    """
    stmt = (
        select(StudentCoursePackage)
        .join(CoursePackage, StudentCoursePackage.course_package_id == CoursePackage.id)
        .where(
            StudentCoursePackage.student_id == student_id,
            StudentCoursePackage.remaining_hours > 0,
        )
    )
    if course_type:
        stmt = stmt.where(CoursePackage.course_type == course_type)
    stmt = stmt.order_by(StudentCoursePackage.remaining_hours.asc(), StudentCoursePackage.id.asc()).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def debit_assignment(db: AsyncSession, assignment_id: int, hours: Decimal) -> bool:
    """Subtract hours only if the balance still covers them at write time. Commits."""
    result = await db.execute(
        update(StudentCoursePackage)
        .where(
            StudentCoursePackage.id == assignment_id,
            StudentCoursePackage.remaining_hours >= hours,
        )
        .values(remaining_hours=func.round(StudentCoursePackage.remaining_hours - hours, 1))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def _consume_for_student(
    session_factory: async_sessionmaker,
    student_id: int,
    plan: ConsumePlan,
) -> StudentOutcome:
    async with session_factory() as db:
        try:
            assignment = await select_assignment(db, student_id, plan.course_type)
            if assignment is None:
                return StudentOutcome(student_id, ConsumeFailureReason.NO_ELIGIBLE_PACKAGE)
            debited = await debit_assignment(db, assignment.id, plan.hours)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Consuming %s hours for student %s failed", plan.hours, student_id)
            return StudentOutcome(student_id, ConsumeFailureReason.STORE_ERROR)

        if not debited:
            return StudentOutcome(student_id, ConsumeFailureReason.INSUFFICIENT_HOURS)

        # The debit is already committed; a failed record write is logged, not rolled back.
        try:
            db.add(
                ConsumptionRecord(
                    student_id=student_id,
                    course_package_id=assignment.course_package_id,
                    student_course_package_id=assignment.id,
                    activity_id=plan.activity_id,
                    hours_consumed=plan.hours,
                    remark=plan.remark,
                    consume_date=plan.consume_date,
                )
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "Debited %s hours from assignment %s of student %s but the consumption record was not written",
                plan.hours,
                assignment.id,
                student_id,
            )
        return StudentOutcome(student_id)


async def consume_hours(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    payload: ConsumeRequest,
) -> ConsumeResult:
    """
    Debit hours from each listed student's best-matching course package.

    Hours and course type are resolved once for the whole batch. Students are processed
    concurrently and the result is built only after all of them have finished; one
    student's failure never fails the batch.
    """
    if not payload.student_ids:
        raise ValidationError("student_ids must not be empty")

    try:
        activity = await resolve_activity(db, payload.activity_id)
    except SQLAlchemyError as e:
        raise StoreError(str(e))

    plan = ConsumePlan(
        hours=resolve_hours(payload.hours_consumed, activity),
        course_type=activity.course_type if activity else None,
        activity_id=activity.activity_id if activity else None,
        remark=payload.remark,
        consume_date=payload.consume_date or datetime.utcnow(),
    )

    outcomes = await asyncio.gather(
        *(_consume_for_student(session_factory, sid, plan) for sid in payload.student_ids),
        return_exceptions=True,
    )
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome

    succeeded = [o.student_id for o in outcomes if o.succeeded]
    failures = [ConsumeFailure(student_id=o.student_id, reason=o.reason) for o in outcomes if not o.succeeded]
    logger.info(
        "Consumed %s hours (activity=%s): %d succeeded, %d failed",
        plan.hours,
        plan.activity_id,
        len(succeeded),
        len(failures),
    )
    return ConsumeResult(
        message="Consumption processed",
        hours_consumed=plan.hours,
        success_count=len(succeeded),
        failed_count=len(failures),
        success_students=succeeded,
        failed_students=[f.student_id for f in failures],
        failures=failures,
    )


async def reverse_consumption(db: AsyncSession, record_id: int) -> ReverseResult:
    """
    Undo one consumption record: refund its hours to the assignment it was taken from
    and delete the record, in a single transaction.
    """
    record = await db.get(ConsumptionRecord, record_id)
    if not record:
        raise NotFoundError("Consumption record not found")
    student_id = record.student_id
    hours = to_hours(record.hours_consumed)

    refund = update(StudentCoursePackage).values(
        remaining_hours=func.round(StudentCoursePackage.remaining_hours + hours, 1)
    )
    if record.student_course_package_id is not None:
        refund = refund.where(StudentCoursePackage.id == record.student_course_package_id)
    else:
        refund = refund.where(
            StudentCoursePackage.student_id == student_id,
            StudentCoursePackage.course_package_id == record.course_package_id,
        )

    try:
        # Deleting first means a second, racing reversal of the same record matches no row.
        removed = await db.execute(
            delete(ConsumptionRecord)
            .where(ConsumptionRecord.id == record_id)
            .execution_options(synchronize_session=False)
        )
        if removed.rowcount == 0:
            await db.rollback()
            raise NotFoundError("Consumption record not found")
        refunded = await db.execute(refund.execution_options(synchronize_session=False))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StoreError(str(e))

    if refunded.rowcount == 0:
        logger.warning(
            "Reversed consumption record %s but no assignment matched for the %s hour refund",
            record_id,
            hours,
        )
    logger.info("Reversed consumption record %s: %s hours back to student %s", record_id, hours, student_id)
    return ReverseResult(
        message="Consumption record reversed",
        record_id=record_id,
        student_id=student_id,
        hours_restored=hours,
    )


async def list_consumption_records(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    student_name: Optional[str] = None,
    course_package_id: Optional[int] = None,
) -> List[ConsumptionRecordResponse]:
    stmt = (
        select(
            ConsumptionRecord,
            Student.name.label("student_name"),
            CoursePackage.name.label("package_name"),
            ActivityRule.name.label("activity_name"),
        )
        .join(Student, ConsumptionRecord.student_id == Student.id)
        .join(CoursePackage, ConsumptionRecord.course_package_id == CoursePackage.id)
        .outerjoin(ActivityRule, ConsumptionRecord.activity_id == ActivityRule.id)
    )
    if student_name:
        stmt = stmt.where(Student.name.ilike(f"%{student_name}%"))
    if course_package_id is not None:
        stmt = stmt.where(CoursePackage.id == course_package_id)
    stmt = (
        stmt.order_by(ConsumptionRecord.consume_date.desc(), ConsumptionRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return [
        ConsumptionRecordResponse(
            id=cr.id,
            student_id=cr.student_id,
            course_package_id=cr.course_package_id,
            student_course_package_id=cr.student_course_package_id,
            activity_id=cr.activity_id,
            hours_consumed=cr.hours_consumed,
            consume_date=cr.consume_date,
            remark=cr.remark,
            student_name=student_name_,
            package_name=package_name,
            activity_name=activity_name,
        )
        for cr, student_name_, package_name, activity_name in result.all()
    ]
