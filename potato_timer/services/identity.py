"""
Identity anchor. Phone verification happens elsewhere; by the time a number
reaches ``resolve_user`` it is trusted.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.clock import utcnow
from potato_timer.db import atomic, insert_ignore
from potato_timer.errors import NotFoundError
from potato_timer.models import User
from potato_timer.schema.request import ProfileUpdate
from potato_timer.schema.response import UserProfile
from potato_timer.services.validators import require_text

logger = logging.getLogger("potato_timer")


def default_nickname(phone_number: str) -> str:
    return f"User{phone_number[-4:]}"


async def resolve_user(db: AsyncSession, phone_number: str) -> User:
    """Get-or-create the user for a verified phone number."""
    phone_number = require_text(phone_number, "phone_number")
    async with atomic(db):
        created = await insert_ignore(
            db,
            User,
            {
                "phone_number": phone_number,
                "nickname": default_nickname(phone_number),
                "created_at": utcnow(),
            },
        )
    if created:
        logger.info("user_created", extra={"phone_suffix": phone_number[-4:]})
    return await db.scalar(select(User).where(User.phone_number == phone_number))


async def get_profile(db: AsyncSession, user_id: int) -> UserProfile:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return UserProfile.model_validate(user)


async def update_profile(db: AsyncSession, user_id: int, payload: ProfileUpdate) -> UserProfile:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")

    async with atomic(db):
        if "nickname" in payload.model_fields_set:
            user.nickname = payload.nickname
        if "avatar_url" in payload.model_fields_set:
            user.avatar_url = payload.avatar_url
        db.add(user)
    return UserProfile.model_validate(user)
