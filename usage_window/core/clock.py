"""
Clock abstraction.

Supplies the current UTC calendar date to date sensitive computations.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Optional


class ClockUnavailable(RuntimeError):
    """Raised when a clock cannot produce the current date."""


class Clock(ABC):
    """Source of the current UTC date."""

    @abstractmethod
    def utc_today(self) -> date:
        """Return today's date in UTC."""


class SystemClock(Clock):
    """Clock backed by the system time."""

    def utc_today(self) -> date:
        return datetime.now(timezone.utc).date()


class FixedClock(Clock):
    """Clock pinned to a given date until moved explicitly."""

    def __init__(self, today: Optional[date] = None):
        self._today = today

    def utc_today(self) -> date:
        if self._today is None:
            raise ClockUnavailable("Fixed clock has no date set")
        return self._today

    def set_today(self, today: date) -> None:
        self._today = today

    def add_days(self, days: int) -> None:
        self._today = self.utc_today() + timedelta(days=days)
