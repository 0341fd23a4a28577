"""
Goal lifecycle: creation rules per goal type, sparse edits, deletion, and the
ordered goal -> motivation links.

A user holds at most one active main task. The service checks this up front
for a friendly error; the partial unique index on ``goal`` backs it up when
two requests race.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.clock import utcnow
from potato_timer.config import settings
from potato_timer.db import atomic
from potato_timer.errors import ConflictError, ValidationError
from potato_timer.models import (
    ACTIVE_MAIN_TASK_INDEX,
    Goal,
    GoalCompletion,
    GoalMotivation,
    GoalStatus,
    GoalType,
    Motivation,
    MotivationMedia,
)
from potato_timer.schema.request import GoalCreate, GoalUpdate
from potato_timer.schema.response import (
    CompletionRead,
    GoalDetail,
    GoalMotivationsRead,
    GoalRead,
    GoalTimerSummary,
    MotivationPreview,
    MotivationSummary,
    PublicGoalRead,
)
from potato_timer.services.content_service import enrich_motivations, load_authors
from potato_timer.services.validators import (
    parse_choice,
    parse_optional_choice,
    require_non_negative,
    require_text,
)
from potato_timer.services.visibility import PageWindow, get_owned

logger = logging.getLogger("potato_timer")

MAIN_TASK_CONFLICT = "an active main task already exists; complete or archive it first"

# Fields a sparse update may touch besides status and motivation links
_EDITABLE_FIELDS = (
    "title",
    "description",
    "is_public",
    "enable_timer",
    "duration_minutes",
    "reminder_time",
    "total_hours",
    "morning_reminder_time",
    "afternoon_reminder_time",
    "session_duration_minutes",
)
_NOT_NULL_FIELDS = {
    "title",
    "is_public",
    "enable_timer",
    "duration_minutes",
    "total_hours",
    "morning_reminder_time",
    "afternoon_reminder_time",
    "session_duration_minutes",
}
_NON_NEGATIVE_FIELDS = ("duration_minutes", "total_hours", "session_duration_minutes")


async def _active_main_task_id(db: AsyncSession, owner_id: int, exclude_id: Optional[int] = None) -> Optional[int]:
    stmt = select(Goal.id).where(
        Goal.user_id == owner_id,
        Goal.type == GoalType.main_task,
        Goal.status == GoalStatus.active.value,
    )
    if exclude_id is not None:
        stmt = stmt.where(Goal.id != exclude_id)
    return await db.scalar(stmt.limit(1))


async def _check_motivation_ids(db: AsyncSession, owner_id: int, motivation_ids: Sequence[int]) -> List[int]:
    """
    Collapse duplicates (first position wins) and make sure every id is a
    motivation the owner may attach: one of their own, or a public one.
    """
    ordered = list(dict.fromkeys(motivation_ids))
    if not ordered:
        return ordered
    found = set(
        await db.scalars(
            select(Motivation.id).where(
                Motivation.id.in_(ordered),
                or_(Motivation.user_id == owner_id, Motivation.is_public.is_(True)),
            )
        )
    )
    missing = [mid for mid in ordered if mid not in found]
    if missing:
        raise ValidationError(f"unknown motivation ids: {missing}")
    return ordered


async def _replace_links(db: AsyncSession, goal_id: int, motivation_ids: Sequence[int]) -> None:
    await db.execute(delete(GoalMotivation).where(GoalMotivation.goal_id == goal_id))
    db.add_all(
        GoalMotivation(goal_id=goal_id, motivation_id=mid, sort_order=index)
        for index, mid in enumerate(motivation_ids)
    )


async def _motivation_summaries(db: AsyncSession, goal_ids: Sequence[int]) -> Dict[int, List[MotivationSummary]]:
    summaries: Dict[int, List[MotivationSummary]] = defaultdict(list)
    if not goal_ids:
        return summaries
    rows = await db.execute(
        select(GoalMotivation.goal_id, Motivation.id, Motivation.title, Motivation.type)
        .join(Motivation, Motivation.id == GoalMotivation.motivation_id)
        .where(GoalMotivation.goal_id.in_(goal_ids))
        .order_by(GoalMotivation.goal_id, GoalMotivation.sort_order)
    )
    for goal_id, mid, title, mtype in rows:
        summaries[goal_id].append(MotivationSummary(id=mid, title=title, type=mtype))
    return summaries


async def _linked_motivations(db: AsyncSession, goal_id: int) -> List[Motivation]:
    rows = await db.scalars(
        select(Motivation)
        .join(GoalMotivation, GoalMotivation.motivation_id == Motivation.id)
        .where(GoalMotivation.goal_id == goal_id)
        .order_by(GoalMotivation.sort_order)
    )
    return list(rows)


def _violates_main_task_index(exc: IntegrityError) -> bool:
    # Postgres names the index; SQLite names the indexed column
    message = str(exc.orig)
    return ACTIVE_MAIN_TASK_INDEX in message or "UNIQUE constraint failed: goal.user_id" in message


async def _flush_goal(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        if not _violates_main_task_index(exc):
            raise
        # Lost a race against another active main task for the same user
        raise ConflictError(MAIN_TASK_CONFLICT) from exc


def _minutes_or_default(value: Optional[int], label: str, default: int) -> int:
    if value is None:
        return default
    return require_non_negative(value, label)


def _to_read(goal: Goal, motivations: List[MotivationSummary]) -> GoalRead:
    data = GoalRead.model_validate(goal)
    data.motivations = motivations
    return data


async def create_goal(db: AsyncSession, owner_id: int, payload: GoalCreate) -> GoalRead:
    title = require_text(payload.title, "title")
    goal_type = parse_choice(GoalType, payload.type, "goal type")
    duration_minutes = _minutes_or_default(payload.duration_minutes, "duration_minutes", 10)
    total_hours = require_non_negative(payload.total_hours, "total_hours")
    session_minutes = _minutes_or_default(payload.session_duration_minutes, "session_duration_minutes", 240)

    if goal_type == GoalType.main_task and await _active_main_task_id(db, owner_id) is not None:
        raise ConflictError(MAIN_TASK_CONFLICT)
    motivation_ids = await _check_motivation_ids(db, owner_id, payload.motivation_ids or [])

    goal = Goal(
        user_id=owner_id,
        title=title,
        description=payload.description or None,
        type=goal_type,
        is_public=bool(payload.is_public),
        # Main tasks always run with the timer
        enable_timer=bool(payload.enable_timer) if goal_type == GoalType.habit else True,
        duration_minutes=duration_minutes,
        reminder_time=payload.reminder_time,
        total_hours=total_hours,
        session_duration_minutes=session_minutes,
    )
    if payload.morning_reminder_time is not None:
        goal.morning_reminder_time = payload.morning_reminder_time
    if payload.afternoon_reminder_time is not None:
        goal.afternoon_reminder_time = payload.afternoon_reminder_time

    async with atomic(db):
        db.add(goal)
        await _flush_goal(db)
        await _replace_links(db, goal.id, motivation_ids)

    logger.info("goal_created", extra={"user_id": owner_id, "goal_id": goal.id, "type": goal_type.value})
    summaries = await _motivation_summaries(db, [goal.id])
    return _to_read(goal, summaries.get(goal.id, []))


async def update_goal(db: AsyncSession, owner_id: int, goal_id: int, payload: GoalUpdate) -> GoalRead:
    """
    Sparse edit: only fields present in ``payload`` change. The goal type is
    fixed at creation. ``motivation_ids`` replaces the whole link list.
    """
    changes = payload.model_dump(exclude_unset=True)
    for field in _NOT_NULL_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")
    if "title" in changes:
        changes["title"] = require_text(changes["title"], "title")
    for field in _NON_NEGATIVE_FIELDS:
        if field in changes:
            changes[field] = require_non_negative(changes[field], field)
    if "status" in changes:
        changes["status"] = require_text(changes["status"], "status")

    goal = await get_owned(db, Goal, goal_id, owner_id, label="goal")

    becomes_active = changes.get("status", goal.status) == GoalStatus.active.value
    if goal.type == GoalType.main_task and becomes_active:
        if await _active_main_task_id(db, owner_id, exclude_id=goal.id) is not None:
            raise ConflictError(MAIN_TASK_CONFLICT)

    motivation_ids = None
    if "motivation_ids" in changes:
        motivation_ids = await _check_motivation_ids(db, owner_id, changes["motivation_ids"] or [])

    async with atomic(db):
        for field in _EDITABLE_FIELDS:
            if field in changes:
                setattr(goal, field, changes[field])
        if "status" in changes:
            goal.status = changes["status"]
        goal.updated_at = utcnow()
        db.add(goal)
        await _flush_goal(db)
        if motivation_ids is not None:
            await _replace_links(db, goal.id, motivation_ids)

    summaries = await _motivation_summaries(db, [goal.id])
    return _to_read(goal, summaries.get(goal.id, []))


async def delete_goal(db: AsyncSession, owner_id: int, goal_id: int) -> None:
    goal = await get_owned(db, Goal, goal_id, owner_id, label="goal")

    async with atomic(db):
        await db.execute(delete(GoalMotivation).where(GoalMotivation.goal_id == goal.id))
        await db.execute(delete(GoalCompletion).where(GoalCompletion.goal_id == goal.id))
        await db.delete(goal)

    logger.info("goal_deleted", extra={"user_id": owner_id, "goal_id": goal_id})


async def list_goals(
    db: AsyncSession,
    owner_id: int,
    type: Optional[str] = None,
    status: Optional[str] = GoalStatus.active.value,
) -> List[GoalRead]:
    """Main tasks first, newest first within each group."""
    goal_type = parse_optional_choice(GoalType, type, "goal type")

    stmt = select(Goal).where(Goal.user_id == owner_id)
    if goal_type is not None:
        stmt = stmt.where(Goal.type == goal_type)
    if status:
        stmt = stmt.where(Goal.status == status)
    main_first = case((Goal.type == GoalType.main_task, 0), else_=1)
    stmt = stmt.order_by(main_first, Goal.created_at.desc(), Goal.id.desc())

    goals = list(await db.scalars(stmt))
    summaries = await _motivation_summaries(db, [g.id for g in goals])
    return [_to_read(g, summaries.get(g.id, [])) for g in goals]


async def list_public_goals(
    db: AsyncSession,
    type: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[PublicGoalRead]:
    """Public active goals, longest streak first."""
    goal_type = parse_optional_choice(GoalType, type, "goal type")
    window = PageWindow.from_params(page, limit)

    stmt = select(Goal).where(Goal.is_public.is_(True), Goal.status == GoalStatus.active.value)
    if goal_type is not None:
        stmt = stmt.where(Goal.type == goal_type)
    stmt = stmt.order_by(Goal.streak_days.desc(), Goal.created_at.desc(), Goal.id.desc())

    goals = list(await db.scalars(window.apply(stmt)))
    authors = await load_authors(db, (g.user_id for g in goals))
    return [
        PublicGoalRead(
            id=g.id,
            title=g.title,
            description=g.description,
            type=g.type,
            streak_days=g.streak_days,
            total_completed_days=g.total_completed_days,
            completed_hours=float(g.completed_hours),
            total_hours=g.total_hours,
            author=authors[g.user_id],
            created_at=g.created_at,
        )
        for g in goals
    ]


async def get_goal_detail(db: AsyncSession, owner_id: int, goal_id: int) -> GoalDetail:
    goal = await get_owned(db, Goal, goal_id, owner_id, label="goal")

    first_media = (
        select(MotivationMedia.motivation_id, MotivationMedia.url, MotivationMedia.media_type)
        .where(MotivationMedia.sort_order == 0)
        .subquery()
    )
    rows = await db.execute(
        select(Motivation, first_media.c.url, first_media.c.media_type)
        .join(GoalMotivation, GoalMotivation.motivation_id == Motivation.id)
        .outerjoin(first_media, first_media.c.motivation_id == Motivation.id)
        .where(GoalMotivation.goal_id == goal.id)
        .order_by(GoalMotivation.sort_order)
    )
    previews = [
        MotivationPreview(
            id=m.id,
            title=m.title,
            content=m.content,
            type=m.type,
            first_media_url=url,
            first_media_type=media_type,
        )
        for m, url, media_type in rows
    ]

    completions = await db.scalars(
        select(GoalCompletion)
        .where(GoalCompletion.goal_id == goal.id)
        .order_by(GoalCompletion.completed_at.desc(), GoalCompletion.id.desc())
        .limit(settings.recent_completions_limit)
    )

    detail = GoalDetail.model_validate(goal)
    detail.motivations = previews
    detail.recent_completions = [CompletionRead.model_validate(c) for c in completions]
    return detail


async def get_goal_motivations(db: AsyncSession, owner_id: int, goal_id: int) -> GoalMotivationsRead:
    """The goal's timer settings plus its linked motivations with full media, for a session."""
    goal = await get_owned(db, Goal, goal_id, owner_id, label="goal")
    motivations = await enrich_motivations(db, await _linked_motivations(db, goal.id), owner_id)
    return GoalMotivationsRead(goal=GoalTimerSummary.model_validate(goal), motivations=motivations)


async def count_active_main_tasks(db: AsyncSession, owner_id: int) -> int:
    return await db.scalar(
        select(func.count(Goal.id)).where(
            Goal.user_id == owner_id,
            Goal.type == GoalType.main_task,
            Goal.status == GoalStatus.active.value,
        )
    )
