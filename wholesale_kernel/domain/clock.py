"""
Injectable time source.

Services read "now" through a ``Clock`` handed to their constructor, so
audit timestamps, order ``created_at`` values and export windows can be
pinned in tests.  ``SystemClock`` is the only place that reads the wall
clock.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware UTC datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock:
    """
    Clock that only moves when told to.

    Naive start times are taken as UTC.  Repeated ``now()`` calls return
    the same instant until ``advance()`` or ``advance_days()``.
    """

    def __init__(self, start: datetime | None = None):
        start = start or DEFAULT_TEST_TIME
        self._current = start if start.tzinfo else start.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current

    def advance_days(self, days: int) -> datetime:
        return self.advance(days * 86_400)
