"""Terminal I/O for the render loop.

Wraps the output stream (size, interactivity, writes) and the optional raw
input capture that keeps keystrokes from echoing into the redrawn region.
"""

import asyncio
import logging
import os
import signal
import sys
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Optional, Protocol, TextIO

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

if not IS_WINDOWS:
    import termios

# Escape sequences the render loop emits
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_LINE = "\x1b[2K"
MOVE_UP = "\x1b[1A"

CTRL_C = b"\x03"


class Terminal(Protocol):
    """What the render loop needs from a terminal."""

    def is_interactive(self) -> bool: ...

    def rows(self) -> Optional[int]: ...

    def columns(self) -> Optional[int]: ...

    def write(self, text: str) -> None: ...

    def raw_input_capture(self) -> AbstractContextManager[None]: ...


class StderrTerminal:
    """Terminal backed by ``sys.stderr`` (output) and ``sys.stdin`` (input).

    Args:
        stream: Output stream, defaults to ``sys.stderr``.
        stdin: Input stream for raw capture, defaults to ``sys.stdin``.
        force_interactive: Override TTY detection, e.g. to force
            append-only output.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        stdin: Optional[TextIO] = None,
        force_interactive: Optional[bool] = None,
    ):
        self._stream = stream if stream is not None else sys.stderr
        self._stdin = stdin if stdin is not None else sys.stdin
        self._force_interactive = force_interactive

    def is_interactive(self) -> bool:
        if self._force_interactive is not None:
            return self._force_interactive
        try:
            return self._stream.isatty()
        except (AttributeError, ValueError):
            return False

    def _size(self) -> Optional[os.terminal_size]:
        if not self.is_interactive():
            return None
        try:
            return os.get_terminal_size(self._stream.fileno())
        except (AttributeError, OSError, ValueError):
            return None

    def rows(self) -> Optional[int]:
        size = self._size()
        return size.lines if size is not None and size.lines > 0 else None

    def columns(self) -> Optional[int]:
        size = self._size()
        return size.columns if size is not None and size.columns > 0 else None

    def write(self, text: str) -> None:
        if not text:
            return
        self._stream.write(text)
        self._stream.flush()

    @contextmanager
    def raw_input_capture(self) -> Iterator[None]:
        """Put stdin into raw mode for the duration of the block.

        Canonical mode, echo and signal generation are switched off so that
        typed keys cannot scroll the redrawn region; output processing is
        left alone. A lone Ctrl-C byte is turned back into SIGINT for this
        process. The previous terminal attributes are restored on every
        exit path.
        """
        fd = self._stdin_fd()
        if fd is None:
            yield
            return

        try:
            previous = termios.tcgetattr(fd)
        except termios.error:
            yield
            return

        raw = termios.tcgetattr(fd)
        raw[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN)
        raw[6][termios.VMIN] = 1
        raw[6][termios.VTIME] = 0

        loop = None
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, raw)
            logger.debug(f"Raw input capture enabled on fd {fd}")
            try:
                loop = asyncio.get_running_loop()
                loop.add_reader(fd, self._on_input, fd)
            except (RuntimeError, NotImplementedError):
                loop = None
            yield
        finally:
            if loop is not None:
                loop.remove_reader(fd)
            termios.tcsetattr(fd, termios.TCSADRAIN, previous)
            logger.debug(f"Raw input capture restored on fd {fd}")

    def _stdin_fd(self) -> Optional[int]:
        if IS_WINDOWS:
            return None
        try:
            if not self._stdin.isatty():
                return None
            return self._stdin.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    @staticmethod
    def _on_input(fd: int) -> None:
        try:
            data = os.read(fd, 1024)
        except OSError:
            return
        if CTRL_C in data:
            os.kill(os.getpid(), signal.SIGINT)
