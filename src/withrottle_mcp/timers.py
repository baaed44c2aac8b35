"""Restartable elapsed-time reference for the periodic protocol timers."""

from __future__ import annotations

import time
from typing import Callable


class IntervalTimer:
    """Measure real time since the last restart.

    The timers fire from the poll loop: callers test :meth:`has_passed`
    and call :meth:`restart` when they act, so the reference point moves
    to the moment of firing.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start = clock()

    def restart(self) -> None:
        self._start = self._clock()

    def elapsed(self) -> float:
        return self._clock() - self._start

    def has_passed(self, seconds: float) -> bool:
        return self.elapsed() >= seconds
