"""
Content graph store: motivations with their ordered media and tag sets.

Media and tags are owned outright by their motivation. An edit that carries
either collection swaps the whole collection (delete, then insert in order)
inside the same unit as the field changes.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.clock import utcnow
from potato_timer.db import atomic
from potato_timer.errors import NotFoundError
from potato_timer.models import (
    Favorite,
    GoalMotivation,
    Like,
    MediaType,
    Motivation,
    MotivationMedia,
    MotivationTag,
    MotivationType,
    Tag,
    User,
)
from potato_timer.schema.request import MediaItem, MotivationCreate, MotivationUpdate
from potato_timer.schema.response import AuthorSummary, MediaRead, MotivationRead
from potato_timer.services.tag_service import normalize_tag_names, resolve_tags
from potato_timer.services.validators import (
    parse_choice,
    parse_optional_choice,
    validate_media,
)
from potato_timer.services.visibility import PageWindow, ensure_can_view, get_owned

logger = logging.getLogger("potato_timer")


# ==========================================
# ENRICHMENT
# ==========================================

async def load_media(db: AsyncSession, motivation_ids: Sequence[int]) -> Dict[int, List[MediaRead]]:
    media: Dict[int, List[MediaRead]] = defaultdict(list)
    if not motivation_ids:
        return media
    rows = await db.scalars(
        select(MotivationMedia)
        .where(MotivationMedia.motivation_id.in_(motivation_ids))
        .order_by(MotivationMedia.motivation_id, MotivationMedia.sort_order)
    )
    for item in rows:
        media[item.motivation_id].append(
            MediaRead(
                id=item.id,
                type=item.media_type,
                url=item.url,
                thumbnail_url=item.thumbnail_url,
                sort_order=item.sort_order,
            )
        )
    return media


async def load_tag_names(db: AsyncSession, motivation_ids: Sequence[int]) -> Dict[int, List[str]]:
    names: Dict[int, List[str]] = defaultdict(list)
    if not motivation_ids:
        return names
    rows = await db.execute(
        select(MotivationTag.motivation_id, Tag.name)
        .join(Tag, Tag.id == MotivationTag.tag_id)
        .where(MotivationTag.motivation_id.in_(motivation_ids))
        .order_by(MotivationTag.motivation_id, Tag.name)
    )
    for motivation_id, name in rows:
        names[motivation_id].append(name)
    return names


async def load_authors(db: AsyncSession, user_ids: Iterable[int]) -> Dict[int, AuthorSummary]:
    user_ids = set(user_ids)
    if not user_ids:
        return {}
    users = await db.scalars(select(User).where(User.id.in_(user_ids)))
    return {u.id: AuthorSummary.model_validate(u) for u in users}


async def load_engagement(
    db: AsyncSession, caller_id: Optional[int], motivation_ids: Sequence[int]
) -> Tuple[Set[int], Set[int]]:
    """Motivation ids the caller has liked and favorited."""
    if caller_id is None or not motivation_ids:
        return set(), set()
    liked = await db.scalars(
        select(Like.motivation_id).where(Like.user_id == caller_id, Like.motivation_id.in_(motivation_ids))
    )
    favorited = await db.scalars(
        select(Favorite.motivation_id).where(
            Favorite.user_id == caller_id, Favorite.motivation_id.in_(motivation_ids)
        )
    )
    return set(liked), set(favorited)


async def enrich_motivations(
    db: AsyncSession,
    motivations: Sequence[Motivation],
    caller_id: Optional[int] = None,
    *,
    assume_engaged: bool = False,
) -> List[MotivationRead]:
    """
    Attach author, ordered media, tag names and the caller's like/favorite
    state. One query per concern, whatever the list length.
    """
    ids = [m.id for m in motivations]
    media = await load_media(db, ids)
    tags = await load_tag_names(db, ids)
    authors = await load_authors(db, (m.user_id for m in motivations))
    if assume_engaged:
        liked = favorited = set(ids)
    else:
        liked, favorited = await load_engagement(db, caller_id, ids)

    return [
        MotivationRead(
            id=m.id,
            title=m.title,
            content=m.content,
            type=m.type,
            is_public=m.is_public,
            view_count=m.view_count,
            like_count=m.like_count,
            created_at=m.created_at,
            author=authors.get(m.user_id),
            media=media.get(m.id, []),
            tags=tags.get(m.id, []),
            is_liked=m.id in liked,
            is_favorited=m.id in favorited,
        )
        for m in motivations
    ]


# ==========================================
# COLLECTION REPLACEMENT
# ==========================================

async def _replace_media(db: AsyncSession, motivation_id: int, items: List[MediaItem]) -> None:
    await db.execute(delete(MotivationMedia).where(MotivationMedia.motivation_id == motivation_id))
    db.add_all(
        MotivationMedia(
            motivation_id=motivation_id,
            media_type=MediaType(item.type),
            url=item.url,
            thumbnail_url=item.thumbnail_url,
            sort_order=index,
        )
        for index, item in enumerate(items)
    )


async def _replace_tags(db: AsyncSession, owner_id: int, motivation_id: int, names: List[str]) -> None:
    await db.execute(delete(MotivationTag).where(MotivationTag.motivation_id == motivation_id))
    tags = await resolve_tags(db, owner_id, names)
    db.add_all(MotivationTag(motivation_id=motivation_id, tag_id=tag.id) for tag in tags)


# ==========================================
# OPERATIONS
# ==========================================

async def create_motivation(db: AsyncSession, owner_id: int, payload: MotivationCreate) -> MotivationRead:
    motivation_type = parse_choice(MotivationType, payload.type, "motivation type")
    media = validate_media(payload.media)
    tag_names = normalize_tag_names(payload.tags or [])

    async with atomic(db):
        motivation = Motivation(
            user_id=owner_id,
            title=payload.title or None,
            content=payload.content or None,
            type=motivation_type,
            is_public=bool(payload.is_public),
        )
        db.add(motivation)
        await db.flush()
        await _replace_media(db, motivation.id, media)
        await _replace_tags(db, owner_id, motivation.id, tag_names)

    logger.info("motivation_created", extra={"user_id": owner_id, "motivation_id": motivation.id})
    return (await enrich_motivations(db, [motivation], owner_id))[0]


async def update_motivation(
    db: AsyncSession, owner_id: int, motivation_id: int, payload: MotivationUpdate
) -> MotivationRead:
    fields = payload.model_fields_set
    motivation_type = None
    if "type" in fields:
        motivation_type = parse_choice(MotivationType, payload.type, "motivation type")
    media = validate_media(payload.media) if "media" in fields else None
    tag_names = normalize_tag_names(payload.tags or []) if "tags" in fields else None

    motivation = await get_owned(db, Motivation, motivation_id, owner_id, label="motivation")

    async with atomic(db):
        if "title" in fields:
            motivation.title = payload.title
        if "content" in fields:
            motivation.content = payload.content
        if motivation_type is not None:
            motivation.type = motivation_type
        if "is_public" in fields and payload.is_public is not None:
            motivation.is_public = payload.is_public
        motivation.updated_at = utcnow()
        db.add(motivation)
        await db.flush()

        if media is not None:
            await _replace_media(db, motivation.id, media)
        if tag_names is not None:
            await _replace_tags(db, owner_id, motivation.id, tag_names)

    return (await enrich_motivations(db, [motivation], owner_id))[0]


async def delete_motivation(db: AsyncSession, owner_id: int, motivation_id: int) -> None:
    motivation = await get_owned(db, Motivation, motivation_id, owner_id, label="motivation")

    async with atomic(db):
        for model in (MotivationMedia, MotivationTag, GoalMotivation, Like, Favorite):
            await db.execute(delete(model).where(model.motivation_id == motivation.id))
        await db.delete(motivation)

    logger.info("motivation_deleted", extra={"user_id": owner_id, "motivation_id": motivation_id})


async def get_motivation_detail(
    db: AsyncSession, caller_id: Optional[int], motivation_id: int
) -> MotivationRead:
    """
    Private posts are visible to their owner only. Every successful fetch
    counts as one view, the owner's own fetches included.
    """
    motivation = await db.get(Motivation, motivation_id)
    if motivation is None:
        raise NotFoundError("motivation not found")
    ensure_can_view(motivation, caller_id)

    async with atomic(db):
        await db.execute(
            update(Motivation)
            .where(Motivation.id == motivation.id)
            .values(view_count=Motivation.view_count + 1)
            .execution_options(synchronize_session=False)
        )
    await db.refresh(motivation)

    return (await enrich_motivations(db, [motivation], caller_id))[0]


async def list_public_motivations(
    db: AsyncSession,
    caller_id: Optional[int] = None,
    type: Optional[str] = None,
    tag: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[MotivationRead]:
    motivation_type = parse_optional_choice(MotivationType, type, "motivation type")
    window = PageWindow.from_params(page, limit)

    stmt = select(Motivation).where(Motivation.is_public.is_(True))
    if motivation_type is not None:
        stmt = stmt.where(Motivation.type == motivation_type)
    if tag:
        tagged = (
            select(MotivationTag.motivation_id)
            .join(Tag, Tag.id == MotivationTag.tag_id)
            .where(Tag.name == tag.strip())
        )
        stmt = stmt.where(Motivation.id.in_(tagged))
    stmt = stmt.order_by(Motivation.created_at.desc(), Motivation.id.desc())

    motivations = list(await db.scalars(window.apply(stmt)))
    return await enrich_motivations(db, motivations, caller_id)


async def list_my_motivations(
    db: AsyncSession,
    owner_id: int,
    type: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[MotivationRead]:
    """The owner's posts, public and private."""
    motivation_type = parse_optional_choice(MotivationType, type, "motivation type")
    window = PageWindow.from_params(page, limit)

    stmt = select(Motivation).where(Motivation.user_id == owner_id)
    if motivation_type is not None:
        stmt = stmt.where(Motivation.type == motivation_type)
    stmt = stmt.order_by(Motivation.created_at.desc(), Motivation.id.desc())

    motivations = list(await db.scalars(window.apply(stmt)))
    return await enrich_motivations(db, motivations, owner_id)
