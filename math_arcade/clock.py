from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source.

    The timer queue and every session mechanic read time through this
    interface; tests swap in a fake clock they advance by hand.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


@dataclass(frozen=True, slots=True)
class Deadline:
    """Fixed time budget measured against a clock."""

    clock: Clock
    started_at_s: float
    duration_s: float

    @classmethod
    def starting_now(cls, clock: Clock, duration_s: float) -> "Deadline":
        if duration_s <= 0:
            raise ValueError("duration_s must be > 0")
        return cls(clock=clock, started_at_s=clock.now(), duration_s=float(duration_s))

    def remaining_s(self) -> float:
        return max(0.0, self.duration_s - (self.clock.now() - self.started_at_s))
