"""Time sources for task timestamps, elapsed time and ETA."""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that reports the current time in seconds."""

    def now(self) -> float: ...


class MonotonicClock:
    """Default clock, immune to wall-clock adjustments."""

    def now(self) -> float:
        return time.monotonic()
