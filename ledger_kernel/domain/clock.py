"""
Time sources for the kernel.

Reconciliation stamps ``matched_at``, postings default their entry date to
today, and overdue checks compare against today.  All of it reads a Clock
handed to the service, never the system time directly.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware UTC timestamp."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Frozen at one instant until moved with set_time() or advance()."""

    def __init__(self, at: datetime = DEFAULT_TEST_TIME):
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set_time(self, at: datetime) -> None:
        self._at = at

    def advance(self, **delta) -> datetime:
        """Move forward by a timedelta, e.g. ``advance(days=30)``."""
        self._at += timedelta(**delta)
        return self._at
