"""
Potato Timer schema package.
Request payloads (sparse, validated by the services) and read models returned
by every core operation.
"""

from potato_timer.schema.request import (
    CompletionRequest,
    GoalCreate,
    GoalUpdate,
    MediaItem,
    MotivationCreate,
    MotivationUpdate,
    ProfileUpdate,
)
from potato_timer.schema.response import (
    AuthorSummary,
    CompletionRead,
    CompletionResult,
    GoalDetail,
    GoalMotivationsRead,
    GoalRead,
    MediaRead,
    MotivationRead,
    PopularTagRead,
    PublicGoalRead,
    TagRead,
    UserProfile,
)

__all__ = [
    "CompletionRequest",
    "GoalCreate",
    "GoalUpdate",
    "MediaItem",
    "MotivationCreate",
    "MotivationUpdate",
    "ProfileUpdate",
    "AuthorSummary",
    "CompletionRead",
    "CompletionResult",
    "GoalDetail",
    "GoalMotivationsRead",
    "GoalRead",
    "MediaRead",
    "MotivationRead",
    "PopularTagRead",
    "PublicGoalRead",
    "TagRead",
    "UserProfile",
]
