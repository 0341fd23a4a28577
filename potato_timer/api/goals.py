"""
Goals API: lifecycle, public board, completions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.api import ok
from potato_timer.api.auth import get_current_user_id
from potato_timer.clock import Clock, get_clock
from potato_timer.db import get_db
from potato_timer.schema.request import CompletionRequest, GoalCreate, GoalUpdate
from potato_timer.services import goal_service, streak_service

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("/my")
async def my_goals(
    type: Optional[str] = None,
    status: Optional[str] = "active",
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await goal_service.list_goals(db, user_id, type=type, status=status or None))


@router.get("/public")
async def public_goals(
    type: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
):
    return ok(await goal_service.list_public_goals(db, type=type, page=page, limit=limit))


@router.post("")
async def create_goal(
    body: GoalCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    goal = await goal_service.create_goal(db, user_id, body)
    return ok(goal, message="goal created")


@router.get("/{goal_id}")
async def goal_detail(
    goal_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await goal_service.get_goal_detail(db, user_id, goal_id))


@router.put("/{goal_id}")
async def update_goal(
    goal_id: int,
    body: GoalUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await goal_service.update_goal(db, user_id, goal_id, body), message="goal updated")


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await goal_service.delete_goal(db, user_id, goal_id)
    return ok(message="goal deleted")


@router.post("/{goal_id}/complete")
async def complete_goal(
    goal_id: int,
    body: CompletionRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await streak_service.record_completion(
        db, user_id, goal_id, body.duration_minutes, body.notes, clock=clock
    )
    return ok(result, message="completion recorded")


@router.get("/{goal_id}/motivations")
async def goal_motivations(
    goal_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await goal_service.get_goal_motivations(db, user_id, goal_id))
