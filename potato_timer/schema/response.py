"""
Read models returned by the core operations.
"""

from datetime import date, datetime, time
from typing import List, Literal, Optional

from pydantic import BaseModel

from potato_timer.models import GoalType, MediaType, MotivationType


# ==========================================
# USERS
# ==========================================

class UserProfile(BaseModel):
    id: int
    phone_number: str
    nickname: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AuthorSummary(BaseModel):
    id: int
    nickname: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


# ==========================================
# MOTIVATIONS
# ==========================================

class MediaRead(BaseModel):
    id: int
    type: MediaType
    url: str
    thumbnail_url: Optional[str] = None
    sort_order: int


class MotivationSummary(BaseModel):
    id: int
    title: Optional[str]
    type: MotivationType


class MotivationPreview(BaseModel):
    """A linked motivation with its first media item as a thumbnail."""
    id: int
    title: Optional[str]
    content: Optional[str]
    type: MotivationType
    first_media_url: Optional[str] = None
    first_media_type: Optional[MediaType] = None


class MotivationRead(BaseModel):
    id: int
    title: Optional[str]
    content: Optional[str]
    type: MotivationType
    is_public: bool
    view_count: int
    like_count: int
    created_at: datetime
    author: Optional[AuthorSummary] = None
    media: List[MediaRead] = []
    tags: List[str] = []
    is_liked: bool = False
    is_favorited: bool = False


# ==========================================
# GOALS
# ==========================================

class CompletionRead(BaseModel):
    id: int
    completed_at: datetime
    duration_minutes: int
    notes: Optional[str]

    class Config:
        from_attributes = True


class GoalBase(BaseModel):
    id: int
    title: str
    description: Optional[str]
    type: GoalType
    is_public: bool
    enable_timer: bool
    duration_minutes: int
    reminder_time: Optional[time]
    total_hours: int
    completed_hours: float
    morning_reminder_time: time
    afternoon_reminder_time: time
    session_duration_minutes: int
    streak_days: int
    total_completed_days: int
    last_completed_date: Optional[date]
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class GoalRead(GoalBase):
    motivations: List[MotivationSummary] = []


class GoalDetail(GoalBase):
    motivations: List[MotivationPreview] = []
    recent_completions: List[CompletionRead] = []


class PublicGoalRead(BaseModel):
    id: int
    title: str
    description: Optional[str]
    type: GoalType
    streak_days: int
    total_completed_days: int
    completed_hours: float
    total_hours: int
    author: AuthorSummary
    created_at: datetime


class GoalTimerSummary(BaseModel):
    id: int
    title: str
    type: GoalType
    enable_timer: bool
    duration_minutes: int
    session_duration_minutes: int

    class Config:
        from_attributes = True


class GoalMotivationsRead(BaseModel):
    goal: GoalTimerSummary
    motivations: List[MotivationRead]


class CompletionResult(BaseModel):
    goal_id: int
    completion_id: int
    streak_days: int
    completed_hours: float
    total_completed_days: int


# ==========================================
# TAGS
# ==========================================

class TagRead(BaseModel):
    id: int
    name: str
    type: Literal["system", "custom"]


class PopularTagRead(BaseModel):
    id: int
    name: str
    usage_count: int
