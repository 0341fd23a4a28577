"""
Engagement ledger: likes and favorites.

One row per (user, motivation) and per kind. A second like or favorite is
rejected with ConflictError so the caller can tell "already liked" from
success. ``Motivation.like_count`` is kept in step with the Like rows by
single-statement increments; ``audit_like_counts`` recounts from the rows.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.clock import utcnow
from potato_timer.db import atomic, insert_ignore
from potato_timer.errors import ConflictError, NotFoundError
from potato_timer.models import Favorite, Like, Motivation
from potato_timer.schema.response import MotivationRead
from potato_timer.services.content_service import enrich_motivations
from potato_timer.services.visibility import PageWindow, ensure_can_view

logger = logging.getLogger("potato_timer")


async def _visible_motivation(db: AsyncSession, user_id: int, motivation_id: int) -> Motivation:
    motivation = await db.get(Motivation, motivation_id)
    if motivation is None:
        raise NotFoundError("motivation not found")
    ensure_can_view(motivation, user_id)
    return motivation


async def like(db: AsyncSession, user_id: int, motivation_id: int) -> int:
    """Returns the motivation's like count after the like."""
    motivation = await _visible_motivation(db, user_id, motivation_id)

    async with atomic(db):
        inserted = await insert_ignore(
            db, Like, {"user_id": user_id, "motivation_id": motivation.id, "created_at": utcnow()}
        )
        if not inserted:
            logger.info("like_conflict", extra={"user_id": user_id, "motivation_id": motivation.id})
            raise ConflictError("already liked")
        await db.execute(
            update(Motivation)
            .where(Motivation.id == motivation.id)
            .values(like_count=Motivation.like_count + 1)
            .execution_options(synchronize_session=False)
        )

    await db.refresh(motivation)
    return motivation.like_count


async def unlike(db: AsyncSession, user_id: int, motivation_id: int) -> bool:
    """
    Remove the like if there is one. The counter only moves when a row was
    removed, and never below zero.
    """
    async with atomic(db):
        result = await db.execute(
            delete(Like).where(Like.user_id == user_id, Like.motivation_id == motivation_id)
        )
        removed = result.rowcount > 0
        if removed:
            await db.execute(
                update(Motivation)
                .where(Motivation.id == motivation_id, Motivation.like_count > 0)
                .values(like_count=Motivation.like_count - 1)
                .execution_options(synchronize_session=False)
            )
    return removed


async def favorite(db: AsyncSession, user_id: int, motivation_id: int) -> None:
    motivation = await _visible_motivation(db, user_id, motivation_id)

    async with atomic(db):
        inserted = await insert_ignore(
            db, Favorite, {"user_id": user_id, "motivation_id": motivation.id, "created_at": utcnow()}
        )
        if not inserted:
            raise ConflictError("already favorited")


async def unfavorite(db: AsyncSession, user_id: int, motivation_id: int) -> bool:
    async with atomic(db):
        result = await db.execute(
            delete(Favorite).where(Favorite.user_id == user_id, Favorite.motivation_id == motivation_id)
        )
    return result.rowcount > 0


async def list_favorites(
    db: AsyncSession,
    user_id: int,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[MotivationRead]:
    """Favorited motivations, most recently favorited first."""
    window = PageWindow.from_params(page, limit)
    stmt = (
        select(Motivation)
        .join(Favorite, Favorite.motivation_id == Motivation.id)
        .where(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc(), Motivation.id.desc())
    )
    motivations = list(await db.scalars(window.apply(stmt)))
    return await enrich_motivations(db, motivations, user_id, assume_engaged=True)


# ==========================================
# CONSISTENCY
# ==========================================

@dataclass(frozen=True)
class LikeCountDrift:
    motivation_id: int
    stored: int
    actual: int


async def recount_likes(db: AsyncSession, motivation_id: int) -> int:
    return await db.scalar(select(func.count()).select_from(Like).where(Like.motivation_id == motivation_id))


async def audit_like_counts(db: AsyncSession, repair: bool = False) -> List[LikeCountDrift]:
    """
    Recount every motivation's likes from the ledger and report the ones
    whose stored counter disagrees. With ``repair`` the counters are reset
    to the recount.
    """
    actual = func.count(Like.user_id)
    rows = await db.execute(
        select(Motivation.id, Motivation.like_count, actual)
        .outerjoin(Like, Like.motivation_id == Motivation.id)
        .group_by(Motivation.id, Motivation.like_count)
        .having(Motivation.like_count != actual)
        .order_by(Motivation.id)
    )
    drift = [LikeCountDrift(motivation_id=mid, stored=stored, actual=count) for mid, stored, count in rows]

    if drift:
        logger.warning("like_count_drift", extra={"motivations": [d.motivation_id for d in drift]})
    if drift and repair:
        async with atomic(db):
            for d in drift:
                await db.execute(
                    update(Motivation)
                    .where(Motivation.id == d.motivation_id)
                    .values(like_count=d.actual)
                    .execution_options(synchronize_session=False)
                )
    return drift
