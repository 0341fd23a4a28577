"""
Streak & aggregate engine.

A goal's progress counters (streak_days, total_completed_days,
completed_hours, last_completed_date) are a cache over its completion log.
``record_completion`` maintains them incrementally; ``replay_completions``
rebuilds them from the log so the two can be compared at any time.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.clock import Clock, system_clock
from potato_timer.config import settings
from potato_timer.db import atomic
from potato_timer.errors import NotFoundError, StoreError
from potato_timer.models import Goal, GoalCompletion
from potato_timer.schema.response import CompletionResult
from potato_timer.services.validators import require_non_negative
from potato_timer.services.visibility import get_owned

logger = logging.getLogger("potato_timer")


@dataclass(frozen=True)
class ProgressSnapshot:
    streak_days: int = 0
    total_completed_days: int = 0
    completed_hours: float = 0.0
    last_completed_date: Optional[date] = None


@dataclass(frozen=True)
class StreakTransition:
    streak_days: int
    day_increment: int  # 0 or 1


def next_streak(streak_days: int, last_completed_date: Optional[date], today: date) -> StreakTransition:
    """
    Same day: nothing moves. Day after: streak grows by one. Anything else
    (first completion, a gap, or a last date ahead of today): back to 1.
    """
    if last_completed_date == today:
        return StreakTransition(streak_days=streak_days, day_increment=0)
    if last_completed_date == today - timedelta(days=1):
        return StreakTransition(streak_days=streak_days + 1, day_increment=1)
    return StreakTransition(streak_days=1, day_increment=1)


def apply_completion(snapshot: ProgressSnapshot, on: date, duration_minutes: int) -> ProgressSnapshot:
    step = next_streak(snapshot.streak_days, snapshot.last_completed_date, on)
    return replace(
        snapshot,
        streak_days=step.streak_days,
        total_completed_days=snapshot.total_completed_days + step.day_increment,
        completed_hours=snapshot.completed_hours + duration_minutes / 60,
        last_completed_date=on,
    )


def replay_completions(completions: Iterable[GoalCompletion]) -> ProgressSnapshot:
    """Rebuild the counters from completions in chronological order."""
    snapshot = ProgressSnapshot()
    for completion in completions:
        snapshot = apply_completion(snapshot, completion.completed_at.date(), completion.duration_minutes)
    return snapshot


def snapshot_of(goal: Goal) -> ProgressSnapshot:
    return ProgressSnapshot(
        streak_days=goal.streak_days,
        total_completed_days=goal.total_completed_days,
        completed_hours=float(goal.completed_hours or 0),
        last_completed_date=goal.last_completed_date,
    )


async def record_completion(
    db: AsyncSession,
    owner_id: int,
    goal_id: int,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
    clock: Clock = system_clock,
) -> CompletionResult:
    """
    Append one completion and advance the goal's counters in a single unit.

    The counter update is a compare-and-set on the streak state that was
    read, so two concurrent completions of one goal cannot both advance the
    streak from the same starting point. Hours are added in SQL and are
    never lost. Not idempotent: a retried call counts twice.
    """
    duration = require_non_negative(duration_minutes, "duration_minutes")
    hours = duration / 60
    now = clock.now()
    today = now.date()

    async with atomic(db):
        for attempt in range(1, settings.completion_max_attempts + 1):
            goal = await get_owned(db, Goal, goal_id, owner_id, for_update=True, label="goal")
            step = next_streak(goal.streak_days, goal.last_completed_date, today)

            if goal.last_completed_date is None:
                same_day_state = Goal.last_completed_date.is_(None)
            else:
                same_day_state = Goal.last_completed_date == goal.last_completed_date

            result = await db.execute(
                update(Goal)
                .where(Goal.id == goal.id, Goal.streak_days == goal.streak_days, same_day_state)
                .values(
                    streak_days=step.streak_days,
                    total_completed_days=Goal.total_completed_days + step.day_increment,
                    completed_hours=Goal.completed_hours + hours,
                    last_completed_date=today,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                break
            logger.info("completion_cas_retry", extra={"goal_id": goal_id, "attempt": attempt})
        else:
            raise StoreError("goal progress is being updated concurrently; retry", retryable=True)

        completion = GoalCompletion(goal_id=goal.id, completed_at=now, duration_minutes=duration, notes=notes or None)
        db.add(completion)
        await db.flush()

    await db.refresh(goal)
    logger.info(
        "completion_recorded",
        extra={"goal_id": goal.id, "streak_days": goal.streak_days, "duration_minutes": duration},
    )
    return CompletionResult(
        goal_id=goal.id,
        completion_id=completion.id,
        streak_days=goal.streak_days,
        completed_hours=float(goal.completed_hours),
        total_completed_days=goal.total_completed_days,
    )


async def load_completions(db: AsyncSession, goal_id: int) -> List[GoalCompletion]:
    rows = await db.scalars(
        select(GoalCompletion)
        .where(GoalCompletion.goal_id == goal_id)
        .order_by(GoalCompletion.completed_at, GoalCompletion.id)
    )
    return list(rows)


@dataclass(frozen=True)
class ProgressAudit:
    goal_id: int
    stored: ProgressSnapshot
    recomputed: ProgressSnapshot

    @property
    def consistent(self) -> bool:
        return (
            self.stored.streak_days == self.recomputed.streak_days
            and self.stored.total_completed_days == self.recomputed.total_completed_days
            and self.stored.last_completed_date == self.recomputed.last_completed_date
            and math.isclose(self.stored.completed_hours, self.recomputed.completed_hours, abs_tol=1e-6)
        )


async def audit_goal_progress(db: AsyncSession, goal_id: int, repair: bool = False) -> ProgressAudit:
    """
    Compare a goal's stored counters with a replay of its completion log.
    With ``repair`` the replayed values are written back.
    """
    goal = await db.get(Goal, goal_id, populate_existing=True)
    if goal is None:
        raise NotFoundError("goal not found")

    audit = ProgressAudit(
        goal_id=goal.id,
        stored=snapshot_of(goal),
        recomputed=replay_completions(await load_completions(db, goal.id)),
    )
    if not audit.consistent:
        logger.warning(
            "goal_progress_drift",
            extra={"goal_id": goal.id, "stored": audit.stored, "recomputed": audit.recomputed},
        )
        if repair:
            async with atomic(db):
                goal.streak_days = audit.recomputed.streak_days
                goal.total_completed_days = audit.recomputed.total_completed_days
                goal.completed_hours = audit.recomputed.completed_hours
                goal.last_completed_date = audit.recomputed.last_completed_date
                db.add(goal)
    return audit
