from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursehours.core.exceptions import ServiceError
from coursehours.db.session import get_db

from .schemas import ActivityRuleResponse, ActivityRuleWrite
from . import service

router = APIRouter(prefix="/api/v1/activity-rules", tags=["activity-rules"])


@router.get("", response_model=List[ActivityRuleResponse])
async def list_activity_rules(db: AsyncSession = Depends(get_db)) -> List[ActivityRuleResponse]:
    return await service.list_activity_rules(db)


@router.post("", response_model=ActivityRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_activity_rule(
    payload: ActivityRuleWrite,
    db: AsyncSession = Depends(get_db),
) -> ActivityRuleResponse:
    try:
        return await service.create_activity_rule(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{activity_rule_id}", response_model=ActivityRuleResponse)
async def update_activity_rule(
    activity_rule_id: int,
    payload: ActivityRuleWrite,
    db: AsyncSession = Depends(get_db),
) -> ActivityRuleResponse:
    try:
        rule = await service.update_activity_rule(db, activity_rule_id, payload)
        if not rule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity rule not found")
        return rule
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{activity_rule_id}")
async def delete_activity_rule(
    activity_rule_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict:
    deleted = await service.delete_activity_rule(db, activity_rule_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity rule not found")
    return {"message": "Activity rule deleted"}
