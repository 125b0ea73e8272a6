from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.models import ConsumptionRecord, CoursePackage, Student

from .schemas import StatsResponse


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar() or 0


async def get_stats(db: AsyncSession) -> StatsResponse:
    return StatsResponse(
        total_students=await _count(db, Student),
        total_course_packages=await _count(db, CoursePackage),
        total_consumption_records=await _count(db, ConsumptionRecord),
    )
