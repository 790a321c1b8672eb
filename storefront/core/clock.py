"""
Clock abstraction.

Services take a clock instead of calling datetime.now() directly so tests can
move time forward without sleeping.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock:
    """Source of the current time (timezone-aware UTC)."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall-clock time"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and by any caller that needs deterministic time.
    """

    def __init__(self, start: Optional[datetime] = None):
        if start is None:
            start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, delta: timedelta) -> datetime:
        with self._lock:
            self._now = self._now + delta
            return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        with self._lock:
            self._now = moment
