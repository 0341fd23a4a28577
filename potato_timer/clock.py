"""
Date source for streak comparisons.

Streaks are evaluated at UTC date granularity and every timestamp is
timezone-aware UTC. Operations take a ``Clock`` so tests can pin "today".
"""

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Aware UTC timestamp, the form every DateTime column takes."""
    return datetime.now(timezone.utc)


class Clock:
    def now(self) -> datetime:
        return utcnow()

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """A clock that only moves when told to. Naive datetimes are read as UTC."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self.at = at

    def now(self) -> datetime:
        return self.at

    def advance(self, days: int = 0, **kwargs) -> datetime:
        self.at = self.at + timedelta(days=days, **kwargs)
        return self.at


system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests."""
    return system_clock
