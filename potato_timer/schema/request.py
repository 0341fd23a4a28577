"""
Request schemas for the Potato Timer API.

Enumerated fields (goal type, motivation type, media type) are plain strings
here on purpose: the services validate them and raise ``ValidationError`` so
direct callers and HTTP callers see the same failure kind.

Update payloads are sparse. Services read them with
``model_dump(exclude_unset=True)`` so absent fields stay untouched.
"""

from datetime import time
from typing import List, Optional

from pydantic import BaseModel, Field


# ==========================================
# GOALS
# ==========================================

class GoalCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None  # habit | main_task
    is_public: bool = False
    enable_timer: Optional[bool] = None  # only honoured for habits
    duration_minutes: Optional[int] = None
    reminder_time: Optional[time] = None
    total_hours: Optional[int] = None
    morning_reminder_time: Optional[time] = None
    afternoon_reminder_time: Optional[time] = None
    session_duration_minutes: Optional[int] = None
    motivation_ids: Optional[List[int]] = None


class GoalUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    enable_timer: Optional[bool] = None
    duration_minutes: Optional[int] = None
    reminder_time: Optional[time] = None
    total_hours: Optional[int] = None
    morning_reminder_time: Optional[time] = None
    afternoon_reminder_time: Optional[time] = None
    session_duration_minutes: Optional[int] = None
    status: Optional[str] = None
    motivation_ids: Optional[List[int]] = None


class CompletionRequest(BaseModel):
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None


# ==========================================
# MOTIVATIONS
# ==========================================

class MediaItem(BaseModel):
    """An already-uploaded file, referenced by its public URL."""
    type: Optional[str] = None  # image | video
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class MotivationCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None  # positive | negative
    is_public: bool = False
    media: Optional[List[MediaItem]] = None
    tags: Optional[List[str]] = None


class MotivationUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    is_public: Optional[bool] = None
    media: Optional[List[MediaItem]] = None
    tags: Optional[List[str]] = None


# ==========================================
# PROFILE
# ==========================================

class ProfileUpdate(BaseModel):
    nickname: Optional[str] = Field(None, max_length=50)
    avatar_url: Optional[str] = None
