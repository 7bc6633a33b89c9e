"""
Clock -- injectable time source.

Services never call ``datetime.now()`` or ``date.today()`` themselves.
Audit timestamps (``created_at`` / ``updated_at``) and the date given to a
reversing journal both come from a ``Clock`` so tests can pin them.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone

_NOON = time(12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """``now()`` is timezone-aware UTC; ``today()`` is its UTC calendar date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Defaults to 2024-01-01 12:00 UTC.  Naive datetimes are taken as UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = self._aware(fixed_time or datetime.combine(date(2024, 1, 1), _NOON))

    @staticmethod
    def _aware(value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, value: datetime) -> None:
        self._current = self._aware(value)

    def set_date(self, day: date) -> None:
        """Move to noon UTC on ``day``; used to date reversals in tests."""
        self._current = datetime.combine(day, _NOON)

    def advance(self, seconds: int = 0, *, days: int = 0) -> datetime:
        self._current += timedelta(days=days, seconds=seconds)
        return self._current
