"""
=============================================================================
TIME SOURCE
=============================================================================

Handlers never call datetime.now() themselves. They receive a Clock and
ask it for the time. In production that is SystemClock; in tests it is a
FixedClock frozen at a known instant, so "Current time: ..." becomes an
exact string you can assert on.

    home = HomeHandler(clock=SystemClock())              # real server
    home = HomeHandler(clock=FixedClock(datetime(...)))  # unit test

=============================================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
import threading


class Clock(ABC):
    """Anything that can tell the current wall-clock time."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Local wall-clock time of the machine running the server."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """
    A clock that only moves when told to.

    Safe to share between worker threads: advance() and now() take the
    same lock.
    """

    def __init__(self, moment: datetime):
        self._moment = moment
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._moment

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._moment = moment

    def advance(self, **delta: float) -> datetime:
        """Move forward by timedelta keyword arguments, e.g. advance(seconds=5)."""
        with self._lock:
            self._moment += timedelta(**delta)
            return self._moment
