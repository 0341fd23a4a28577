"""
Tag resolution for the content graph.

A tag name lives once in the system scope and at most once per user scope.
Resolution prefers the caller's own tag, then the system tag, and only then
creates a new tag in the caller's scope. Creation is idempotent: concurrent
posts using the same new name end up sharing one row.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.db import insert_ignore
from potato_timer.errors import ValidationError
from potato_timer.models import Motivation, MotivationTag, Tag, TagScope
from potato_timer.schema.response import PopularTagRead, TagRead
from potato_timer.services.visibility import PageWindow

logger = logging.getLogger("potato_timer")

MAX_TAG_LENGTH = 50


def normalize_tag_names(names: Iterable[str]) -> List[str]:
    """Strip, drop blanks, collapse duplicates; first occurrence wins."""
    seen = set()
    result = []
    for raw in names:
        if not isinstance(raw, str):
            raise ValidationError("tag names must be strings")
        name = raw.strip()
        if not name or name in seen:
            continue
        if len(name) > MAX_TAG_LENGTH:
            raise ValidationError(f"tag name longer than {MAX_TAG_LENGTH} characters")
        seen.add(name)
        result.append(name)
    return result


async def find_tag(db: AsyncSession, name: str, scope: TagScope) -> Optional[Tag]:
    return await db.scalar(select(Tag).where(Tag.name == name, Tag.scope == scope.key))


async def resolve_tag(db: AsyncSession, owner_id: int, name: str) -> Tag:
    owned = TagScope.owned(owner_id)
    tag = await find_tag(db, name, owned)
    if tag is not None:
        return tag

    tag = await find_tag(db, name, TagScope.system())
    if tag is not None:
        return tag

    created = await insert_ignore(db, Tag, owned.tag_row(name))
    if created:
        logger.info("tag_created", extra={"tag": name, "scope": owned.key})
    # Either ours or the one a concurrent request just inserted
    return await find_tag(db, name, owned)


async def resolve_tags(db: AsyncSession, owner_id: int, names: Iterable[str]) -> List[Tag]:
    return [await resolve_tag(db, owner_id, name) for name in normalize_tag_names(names)]


async def create_system_tag(db: AsyncSession, name: str) -> Tag:
    """Seed a shared tag. Existing names are returned as-is."""
    names = normalize_tag_names([name])
    if not names:
        raise ValidationError("tag name is required")
    scope = TagScope.system()
    await insert_ignore(db, Tag, scope.tag_row(names[0]))
    await db.commit()
    return await find_tag(db, names[0], scope)


async def list_available_tags(db: AsyncSession, owner_id: int) -> List[TagRead]:
    """System tags first, then the owner's custom tags, each group by name."""
    is_custom = case((Tag.user_id.is_(None), 0), else_=1)
    rows = await db.scalars(
        select(Tag)
        .where(or_(Tag.user_id.is_(None), Tag.user_id == owner_id))
        .order_by(is_custom, Tag.name)
    )
    return [
        TagRead(id=t.id, name=t.name, type="system" if t.user_id is None else "custom")
        for t in rows
    ]


async def list_popular_tags(db: AsyncSession, limit: Optional[int] = None) -> List[PopularTagRead]:
    """Tags ranked by how many public motivations carry them."""
    window = PageWindow.from_params(1, limit)
    usage = func.count(MotivationTag.motivation_id).label("usage_count")
    rows = await db.execute(
        select(Tag.id, Tag.name, usage)
        .join(MotivationTag, MotivationTag.tag_id == Tag.id)
        .join(Motivation, Motivation.id == MotivationTag.motivation_id)
        .where(Motivation.is_public.is_(True))
        .group_by(Tag.id, Tag.name)
        .order_by(usage.desc(), Tag.name)
        .limit(window.limit)
    )
    return [PopularTagRead(id=r.id, name=r.name, usage_count=r.usage_count) for r in rows]
