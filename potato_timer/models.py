from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from potato_timer.clock import utcnow


def timestamp_field(**kwargs):
    """Timezone-aware UTC timestamp column, defaulting to now."""
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True), **kwargs)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    phone_number: str = Field(unique=True, index=True)
    nickname: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime = timestamp_field()


# ==========================================
# GOALS
# ==========================================

class GoalType(str, Enum):
    habit = "habit"
    main_task = "main_task"


class GoalStatus(str, Enum):
    """Conventional statuses. The column itself is free-form."""
    active = "active"
    completed = "completed"
    archived = "archived"


ACTIVE_MAIN_TASK_INDEX = "uq_goal_active_main_task"
_ACTIVE_MAIN_TASK = text("type = 'main_task' AND status = 'active'")


class Goal(SQLModel, table=True):
    # One active main task per user, enforced by the store as well
    __table_args__ = (
        Index(
            ACTIVE_MAIN_TASK_INDEX,
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE_MAIN_TASK,
            postgresql_where=_ACTIVE_MAIN_TASK,
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    title: str
    description: Optional[str] = None
    type: GoalType = GoalType.habit
    is_public: bool = False

    # Timer configuration
    enable_timer: bool = False
    duration_minutes: int = 10
    reminder_time: Optional[time] = None
    morning_reminder_time: time = Field(default=time(9, 0))
    afternoon_reminder_time: time = Field(default=time(14, 0))
    session_duration_minutes: int = 240

    # Progress aggregates, derived from GoalCompletion rows
    total_hours: int = 0
    completed_hours: float = 0.0
    streak_days: int = 0
    total_completed_days: int = 0
    last_completed_date: Optional[date] = None

    status: str = Field(default=GoalStatus.active.value, index=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class GoalCompletion(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    goal_id: int = Field(foreign_key="goal.id", index=True)
    completed_at: datetime = timestamp_field(index=True)
    duration_minutes: int = 0
    notes: Optional[str] = None


# ==========================================
# MOTIVATION CONTENT GRAPH
# ==========================================

class MotivationType(str, Enum):
    positive = "positive"
    negative = "negative"


class MediaType(str, Enum):
    image = "image"
    video = "video"


class Motivation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    title: Optional[str] = None
    content: Optional[str] = None
    type: MotivationType
    is_public: bool = Field(default=False, index=True)
    view_count: int = 0
    like_count: int = 0
    created_at: datetime = timestamp_field(index=True)
    updated_at: datetime = timestamp_field()


class MotivationMedia(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("motivation_id", "sort_order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    motivation_id: int = Field(foreign_key="motivation.id", index=True)
    media_type: MediaType
    url: str
    thumbnail_url: Optional[str] = None
    sort_order: int = 0


@dataclass(frozen=True)
class TagScope:
    """System-wide (no owner) or private to one user."""
    owner_id: Optional[int] = None

    @classmethod
    def system(cls) -> "TagScope":
        return cls()

    @classmethod
    def owned(cls, user_id: int) -> "TagScope":
        return cls(owner_id=user_id)

    @property
    def is_system(self) -> bool:
        return self.owner_id is None

    @property
    def key(self) -> str:
        return "system" if self.owner_id is None else f"user:{self.owner_id}"

    def tag_row(self, name: str) -> dict:
        """Column values for a new tag in this scope; owner and key always agree."""
        return {"name": name, "user_id": self.owner_id, "scope": self.key, "created_at": utcnow()}


class Tag(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("name", "scope"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    # "system" or "user:<id>"; always written through TagScope.key
    scope: str
    created_at: datetime = timestamp_field()

    @property
    def tag_scope(self) -> TagScope:
        return TagScope(owner_id=self.user_id)


class MotivationTag(SQLModel, table=True):
    motivation_id: int = Field(foreign_key="motivation.id", primary_key=True)
    tag_id: int = Field(foreign_key="tag.id", primary_key=True, index=True)


class GoalMotivation(SQLModel, table=True):
    goal_id: int = Field(foreign_key="goal.id", primary_key=True)
    motivation_id: int = Field(foreign_key="motivation.id", primary_key=True, index=True)
    sort_order: int = 0


# ==========================================
# ENGAGEMENT LEDGER
# ==========================================

class Like(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    motivation_id: int = Field(foreign_key="motivation.id", primary_key=True, index=True)
    created_at: datetime = timestamp_field()


class Favorite(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    motivation_id: int = Field(foreign_key="motivation.id", primary_key=True, index=True)
    created_at: datetime = timestamp_field(index=True)
