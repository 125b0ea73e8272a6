"""Activity rule service. hours_per_class = total_hours / days, rounded half-up to one decimal."""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ValidationError
from coursehours.core.hours import HOURS_QUANTUM, to_hours
from coursehours.core.models import ActivityRule

from .schemas import ActivityRuleResponse, ActivityRuleWrite


def compute_hours_per_class(total_hours, days: int) -> Decimal:
    per_class = to_hours(total_hours) / Decimal(days)
    return per_class.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def _validate(payload: ActivityRuleWrite) -> tuple:
    name = (payload.name or "").strip()
    course_type = (payload.course_type or "").strip()
    if not name or not course_type or not payload.days or not payload.total_hours:
        raise ValidationError("Activity name, course type, days and total hours are required")
    if payload.days < 0 or payload.total_hours < 0:
        raise ValidationError("Days and total hours must be positive")
    return name, course_type


def _to_response(rule: ActivityRule) -> ActivityRuleResponse:
    return ActivityRuleResponse(
        id=rule.id,
        name=rule.name,
        course_type=rule.course_type,
        days=rule.days,
        total_hours=rule.total_hours,
        hours_per_class=rule.hours_per_class,
        created_at=rule.created_at,
    )


async def list_activity_rules(db: AsyncSession) -> List[ActivityRuleResponse]:
    result = await db.execute(select(ActivityRule).order_by(ActivityRule.id))
    return [_to_response(r) for r in result.scalars().all()]


async def create_activity_rule(db: AsyncSession, payload: ActivityRuleWrite) -> ActivityRuleResponse:
    name, course_type = _validate(payload)
    rule = ActivityRule(
        name=name,
        course_type=course_type,
        days=payload.days,
        total_hours=to_hours(payload.total_hours),
        hours_per_class=compute_hours_per_class(payload.total_hours, payload.days),
    )
    db.add(rule)
    await db.commit()
    await db.refresh(rule)
    return _to_response(rule)


async def update_activity_rule(
    db: AsyncSession,
    activity_rule_id: int,
    payload: ActivityRuleWrite,
) -> Optional[ActivityRuleResponse]:
    name, course_type = _validate(payload)
    rule = await db.get(ActivityRule, activity_rule_id)
    if not rule:
        return None
    rule.name = name
    rule.course_type = course_type
    rule.days = payload.days
    rule.total_hours = to_hours(payload.total_hours)
    rule.hours_per_class = compute_hours_per_class(payload.total_hours, payload.days)
    await db.commit()
    await db.refresh(rule)
    return _to_response(rule)


async def delete_activity_rule(db: AsyncSession, activity_rule_id: int) -> bool:
    rule = await db.get(ActivityRule, activity_rule_id)
    if not rule:
        return False
    await db.delete(rule)
    await db.commit()
    return True
