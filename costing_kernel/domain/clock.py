"""
Clock -- injectable source of "today" for reporting windows.

Responsibility:
    The window resolver asks a Clock for today's date when the caller
    omits ``to_date``.  Nothing else in the costing path reads the time.

Architecture position:
    Kernel > Domain.  SystemClock is the only implementation that touches
    the real clock; engines never receive one.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Contract:
        ``now()`` is timezone-aware.  ``today()`` is the calendar date of
        ``now()`` in the clock's business timezone.
    """

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall clock; ``today()`` is taken in ``business_tz`` (UTC by default)."""

    def __init__(self, business_tz: tzinfo = timezone.utc):
        self.business_tz = business_tz

    def now(self) -> datetime:
        return datetime.now(self.business_tz)


class DeterministicClock(Clock):
    """
    Test clock frozen at one instant until moved explicitly.

    Guarantees:
        ``now()`` is stable across calls until ``advance_days()`` or
        ``set_time()``.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2025, 1, 31, 12, tzinfo=timezone.utc)

    @classmethod
    def on(cls, day: date) -> "DeterministicClock":
        """Clock fixed at noon UTC on ``day``."""
        return cls(datetime.combine(day, time(12), tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, moment: datetime) -> None:
        self._fixed_time = moment

    def advance_days(self, days: int = 1) -> None:
        self._fixed_time += timedelta(days=days)
