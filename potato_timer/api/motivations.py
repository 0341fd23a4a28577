"""
Motivations API: posts, public feed, likes and favorites.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.api import ok
from potato_timer.api.auth import get_current_user_id, get_optional_user_id
from potato_timer.db import get_db
from potato_timer.schema.request import MotivationCreate, MotivationUpdate
from potato_timer.services import content_service, engagement_service

router = APIRouter(prefix="/motivations", tags=["motivations"])


@router.get("/public")
async def public_motivations(
    type: Optional[str] = None,
    tag: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(20),
    caller_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(
        await content_service.list_public_motivations(
            db, caller_id, type=type, tag=tag, page=page, limit=limit
        )
    )


@router.get("/my")
async def my_motivations(
    type: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(20),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await content_service.list_my_motivations(db, user_id, type=type, page=page, limit=limit))


@router.get("/favorites/list")
async def favorites(
    page: int = Query(1),
    limit: int = Query(20),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await engagement_service.list_favorites(db, user_id, page=page, limit=limit))


@router.post("")
async def create_motivation(
    body: MotivationCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await content_service.create_motivation(db, user_id, body), message="motivation created")


@router.get("/{motivation_id}")
async def motivation_detail(
    motivation_id: int,
    caller_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await content_service.get_motivation_detail(db, caller_id, motivation_id))


@router.put("/{motivation_id}")
async def update_motivation(
    motivation_id: int,
    body: MotivationUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(
        await content_service.update_motivation(db, user_id, motivation_id, body),
        message="motivation updated",
    )


@router.delete("/{motivation_id}")
async def delete_motivation(
    motivation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await content_service.delete_motivation(db, user_id, motivation_id)
    return ok(message="motivation deleted")


@router.post("/{motivation_id}/like")
async def like(
    motivation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    like_count = await engagement_service.like(db, user_id, motivation_id)
    return ok({"like_count": like_count}, message="liked")


@router.delete("/{motivation_id}/like")
async def unlike(
    motivation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    removed = await engagement_service.unlike(db, user_id, motivation_id)
    return ok({"removed": removed}, message="like removed")


@router.post("/{motivation_id}/favorite")
async def favorite(
    motivation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await engagement_service.favorite(db, user_id, motivation_id)
    return ok(message="favorited")


@router.delete("/{motivation_id}/favorite")
async def unfavorite(
    motivation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    removed = await engagement_service.unfavorite(db, user_id, motivation_id)
    return ok({"removed": removed}, message="favorite removed")
