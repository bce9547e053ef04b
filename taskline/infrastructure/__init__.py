"""Infrastructure layer for taskline.

Wraps the process's terminal and time source behind small protocols so
the render loop can be driven by fakes in tests.

Exports:
    Terminal:
        - Terminal: Protocol the render loop writes through
        - StderrTerminal: Default terminal on stderr/stdin
        - HIDE_CURSOR, SHOW_CURSOR, CLEAR_LINE, MOVE_UP: Escape sequences

    Clock:
        - Clock: Protocol for the time source
        - MonotonicClock: Default clock
"""

from taskline.infrastructure.clock import Clock, MonotonicClock
from taskline.infrastructure.terminal import (
    CLEAR_LINE,
    HIDE_CURSOR,
    MOVE_UP,
    SHOW_CURSOR,
    StderrTerminal,
    Terminal,
)

__all__ = [
    # Terminal
    "Terminal",
    "StderrTerminal",
    "HIDE_CURSOR",
    "SHOW_CURSOR",
    "CLEAR_LINE",
    "MOVE_UP",
    # Clock
    "Clock",
    "MonotonicClock",
]
