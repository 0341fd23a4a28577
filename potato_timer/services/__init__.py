"""
Potato Timer services package.
Each module is one component of the core; all operations take an
``AsyncSession`` plus plain arguments and return read models or raise a
``potato_timer.errors.CoreError``.
"""

from potato_timer.services import (
    content_service,
    engagement_service,
    goal_service,
    identity,
    streak_service,
    tag_service,
)
from potato_timer.services.visibility import PageWindow

__all__ = [
    "content_service",
    "engagement_service",
    "goal_service",
    "identity",
    "streak_service",
    "tag_service",
    "PageWindow",
]
