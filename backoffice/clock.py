"""
Clock abstraction.

Rule evaluators, the overdue sweep and fee payment dating take "today" and
"now" from a Clock instead of reading the system time, so date boundaries
are reproducible in tests and replays.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC (SQLite returns naive, PostgreSQL aware)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Clock:
    """System clock (UTC)."""

    def now(self) -> datetime:
        """Current instant as naive UTC."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """
    Clock frozen at a given instant.

    Example:
        >>> clock = FixedClock(datetime(2024, 6, 30, 12, 0))
        >>> clock.today()
        datetime.date(2024, 6, 30)
    """

    def __init__(self, instant: datetime):
        self._instant = to_naive_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        """Move the frozen instant forward (timedelta keyword arguments)."""
        self._instant = self._instant + timedelta(**delta)


_default_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    global _default_clock
    if _default_clock is None:
        _default_clock = Clock()
    return _default_clock
