"""
Clock -- Injectable source of the current time.

Responsibility:
    Ledger, vesting and registry code never read the wall clock directly.
    Every campaign deadline, cliff and vesting end is an integer count of
    epoch seconds, so ``timestamp()`` is the primitive and ``now()`` is
    derived from it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    - DeterministicClock.advance raises ValueError for negative steps;
      time never moves backwards through ``advance``.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

# 2024-01-01T12:00:00Z
DEFAULT_START = 1_704_110_400


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``timestamp()`` returns whole epoch seconds.
        - ``now()`` is the same instant as a UTC ``datetime``.
    """

    @abstractmethod
    def timestamp(self) -> int:
        """Current time as integer epoch seconds."""
        ...

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp(), tz=timezone.utc)


class SystemClock(Clock):
    """Wall-clock time, truncated to whole seconds."""

    def timestamp(self) -> int:
        return int(time.time())


class DeterministicClock(Clock):
    """
    Test clock that only moves when told to.

    Guarantees:
        - ``timestamp()`` is stable until ``advance()``, ``advance_to()`` or
          ``set_timestamp()`` is called.
    """

    def __init__(self, start: int = DEFAULT_START):
        self._seconds = start

    def timestamp(self) -> int:
        return self._seconds

    def set_timestamp(self, seconds: int) -> None:
        self._seconds = seconds

    def advance(self, seconds: int = 1) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by negative seconds: {seconds}")
        self._seconds += seconds

    def advance_to(self, seconds: int) -> None:
        """Move forward to ``seconds``; no-op if already past it."""
        self._seconds = max(self._seconds, seconds)
