from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.schema.request import GoalCreate, MediaItem, MotivationCreate
from potato_timer.services import content_service, goal_service


async def make_goal(db: AsyncSession, user, title: str = "Read 30min", type: str = "habit", **fields):
    return await goal_service.create_goal(db, user.id, GoalCreate(title=title, type=type, **fields))


async def make_motivation(
    db: AsyncSession,
    user,
    title: str = "Keep going",
    type: str = "positive",
    is_public: bool = True,
    tags: Optional[List[str]] = None,
    media: Optional[List[MediaItem]] = None,
    **fields,
):
    payload = MotivationCreate(title=title, type=type, is_public=is_public, tags=tags, media=media, **fields)
    return await content_service.create_motivation(db, user.id, payload)


def image(url: str) -> MediaItem:
    return MediaItem(type="image", url=url)


def video(url: str, thumbnail_url: Optional[str] = None) -> MediaItem:
    return MediaItem(type="video", url=url, thumbnail_url=thumbnail_url)
