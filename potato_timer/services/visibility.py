"""
Visibility & pagination policy.

Every list operation is windowed through ``PageWindow``. Every mutation and
owner-level detail read goes through ``get_owned``, which answers "absent"
and "not yours" with the same ``NotFoundError``.
"""

from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from potato_timer.config import settings
from potato_timer.errors import ForbiddenError, NotFoundError
from potato_timer.models import Motivation

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, page: Optional[int] = None, limit: Optional[int] = None) -> "PageWindow":
        """Floor page at 1 and clamp limit to [1, max_page_limit]."""
        page = page or 1
        limit = limit or settings.default_page_limit
        return cls(
            page=max(1, page),
            limit=max(1, min(settings.max_page_limit, limit)),
        )

    def apply(self, stmt):
        return stmt.limit(self.limit).offset(self.offset)


async def get_owned(
    db: AsyncSession,
    model: Type[ModelT],
    entity_id: int,
    owner_id: Optional[int],
    *,
    for_update: bool = False,
    label: Optional[str] = None,
) -> ModelT:
    """Load ``entity_id`` only if ``owner_id`` owns it."""
    if owner_id is None:
        raise NotFoundError(f"{label or model.__name__.lower()} not found")

    stmt = select(model).where(model.id == entity_id, model.user_id == owner_id)
    if for_update:
        stmt = stmt.with_for_update()
    entity = await db.scalar(stmt.execution_options(populate_existing=True))
    if entity is None:
        raise NotFoundError(f"{label or model.__name__.lower()} not found")
    return entity


def can_view(motivation: Motivation, caller_id: Optional[int]) -> bool:
    return bool(motivation.is_public) or (caller_id is not None and motivation.user_id == caller_id)


def ensure_can_view(motivation: Motivation, caller_id: Optional[int]) -> None:
    if not can_view(motivation, caller_id):
        raise ForbiddenError("no access to this motivation")
