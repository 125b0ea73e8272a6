from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.db.session import get_db

from .schemas import StatsResponse
from . import service

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)) -> StatsResponse:
    return await service.get_stats(db)
