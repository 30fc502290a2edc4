"""
Injectable time source.

Audit timestamps (failsafe events, blocked charges, overrides, kill-switch
transitions) are always taken from a ``Clock`` handed to the component, so
tests can pin time and replayed trails order deterministically.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` is stable across calls; ``advance(seconds)`` moves it forward.
    """

    def __init__(self, start: datetime = EPOCH):
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
