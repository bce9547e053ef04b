"""Shared fakes for taskline tests."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import pytest

from taskline.application import TaskStore
from taskline.infrastructure import SHOW_CURSOR


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingTerminal:
    """Terminal that records writes and raw-capture transitions."""

    def __init__(
        self,
        interactive: bool = False,
        rows: Optional[int] = None,
        columns: Optional[int] = None,
    ):
        self.interactive = interactive
        self._rows = rows
        self._columns = columns
        self.writes: list[str] = []
        self.raw_mode = False
        self.raw_entered = 0
        self.raw_restored = 0

    def is_interactive(self) -> bool:
        return self.interactive

    def rows(self) -> Optional[int]:
        return self._rows

    def columns(self) -> Optional[int]:
        return self._columns

    def write(self, text: str) -> None:
        self.writes.append(text)

    @contextmanager
    def raw_input_capture(self) -> Iterator[None]:
        previous = self.raw_mode
        self.raw_mode = True
        self.raw_entered += 1
        try:
            yield
        finally:
            self.raw_mode = previous
            self.raw_restored += 1

    @property
    def output(self) -> str:
        return "".join(self.writes)

    @property
    def lines(self) -> list[str]:
        return self.output.splitlines()

    @property
    def show_cursor_count(self) -> int:
        return self.output.count(SHOW_CURSOR)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def terminal() -> RecordingTerminal:
    """Non-interactive terminal without a known size."""
    return RecordingTerminal()


@pytest.fixture
def tty_terminal() -> RecordingTerminal:
    """Interactive 80x24 terminal."""
    return RecordingTerminal(interactive=True, rows=24, columns=80)


@pytest.fixture
def store(clock: ManualClock) -> TaskStore:
    return TaskStore(clock=clock)
