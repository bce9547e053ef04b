"""Log lines drawn above the task rows.

Messages logged during a run are buffered here instead of being written
straight to the terminal, where they would be erased by the next redraw.
"""

import logging
import threading
from collections import deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from rich.pretty import pretty_repr

if TYPE_CHECKING:
    from taskline.application.progress import ProgressService

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def format_log_lines(*args: Any) -> list[str]:
    """Render log arguments as display lines.

    Strings are kept verbatim and anything else is pretty-printed. The
    arguments are joined by spaces and split on newlines.
    """
    text = " ".join(arg if isinstance(arg, str) else pretty_repr(arg) for arg in args)
    return text.splitlines() or [""]


class LogBuffer:
    """Pending log lines plus an optional bounded history.

    Args:
        max_lines: Number of lines to retain for redrawing. 0 keeps no
            history; lines are then only drained once.
    """

    def __init__(self, max_lines: int = 0):
        self._lock = threading.Lock()
        self._pending: list[str] = []
        self._history: Optional[deque[str]] = deque(maxlen=max_lines) if max_lines > 0 else None

    @property
    def retains_history(self) -> bool:
        return self._history is not None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def append(self, lines: Iterable[str]) -> None:
        with self._lock:
            for line in lines:
                self._pending.append(line)
                if self._history is not None:
                    self._history.append(line)

    def drain(self) -> list[str]:
        """Return and clear the lines appended since the last drain."""
        with self._lock:
            drained, self._pending = self._pending, []
            return drained

    def history(self) -> list[str]:
        """Retained lines, oldest first. Empty when history is off."""
        with self._lock:
            return list(self._history) if self._history is not None else []


class ProgressLogHandler(logging.Handler):
    """Logging handler that routes records into a progress session's log."""

    def __init__(self, progress: "ProgressService", level: int = logging.NOTSET):
        super().__init__(level)
        self.progress = progress

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.progress.log(self.format(record))
        except Exception:
            self.handleError(record)


@contextmanager
def capture_logging(
    progress: "ProgressService",
    level: int = logging.INFO,
    fmt: str = LOG_FORMAT,
    replace_handlers: bool = True,
) -> Iterator[ProgressLogHandler]:
    """Route root-logger records into ``progress`` for the block.

    Args:
        progress: Session whose log buffer receives the records.
        level: Minimum level the handler accepts.
        fmt: Format string for the handler.
        replace_handlers: Detach the root logger's existing handlers
            while capturing, so they do not write into the redrawn region.
    """
    root = logging.getLogger()
    handler = ProgressLogHandler(progress, level)
    handler.setFormatter(logging.Formatter(fmt))

    previous_level = root.level
    if root.getEffectiveLevel() > level:
        root.setLevel(level)

    detached = list(root.handlers) if replace_handlers else []
    for existing in detached:
        root.removeHandler(existing)
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
        for existing in detached:
            root.addHandler(existing)
        root.setLevel(previous_level)
