"""
Resolve the hour cost and course type of an activity for the consumption engine.
Unknown or missing activities resolve to None; callers fall back to their defaults.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.models import ActivityRule


@dataclass(frozen=True)
class ResolvedActivity:
    activity_id: int
    course_type: str
    hours_per_class: Decimal


async def resolve_activity(db: AsyncSession, activity_id: Optional[int]) -> Optional[ResolvedActivity]:
    if activity_id is None:
        return None
    row = (
        await db.execute(
            select(ActivityRule.course_type, ActivityRule.hours_per_class).where(ActivityRule.id == activity_id)
        )
    ).one_or_none()
    if row is None:
        return None
    course_type, hours_per_class = row
    return ResolvedActivity(activity_id=activity_id, course_type=course_type, hours_per_class=hours_per_class)
