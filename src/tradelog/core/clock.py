"""Time sources for services, caches and the heatmap defaults.

``WallClock`` reads the system clock; ``SimClock`` is set by hand so tests
can age the strategy cache and pin "this month".
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class IClock(Protocol):
    """What services and caches ask for the time."""

    def now(self) -> datetime:
        """Aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Elapsed seconds for TTL checks; never decreases."""
        ...


class WallClock:

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


class SimClock:
    """Hand-driven clock for tests; starts at 2024-01-01 UTC by default."""

    def __init__(self, start: datetime | None = None) -> None:
        self._time = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._origin = self._time

    def now(self) -> datetime:
        return self._time

    def monotonic(self) -> float:
        return (self._time - self._origin).total_seconds()

    def set_time(self, t: datetime) -> None:
        if t < self._time:
            raise ValueError(f"clock moved back from {self._time} to {t}")
        self._time = t

    def advance(self, seconds: float) -> None:
        self.set_time(self._time + timedelta(seconds=seconds))
