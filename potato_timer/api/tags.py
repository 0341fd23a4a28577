from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.api import ok
from potato_timer.api.auth import get_current_user_id
from potato_timer.db import get_db
from potato_timer.services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("")
async def available_tags(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await tag_service.list_available_tags(db, user_id))


@router.get("/popular")
async def popular_tags(
    limit: Optional[int] = Query(20),
    db: AsyncSession = Depends(get_db),
):
    return ok(await tag_service.list_popular_tags(db, limit))
