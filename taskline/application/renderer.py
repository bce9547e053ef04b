"""Render loop: drives the pipeline and owns the terminal session.

Each tick the loop consumes the store's dirty flag and decides whether a
frame is needed. A frame runs build -> fit -> color over a consistent
store view and is written with one of two strategies:

- Interactive: erase the previously drawn lines and repaint everything.
- Append-only: write log lines once, and a task's lines only when its
  signature changes.

Each stage is a plain function, and a renderer can be given its own in
place of the default.

Whatever ends the loop (cancellation, an error, a KeyboardInterrupt), one
final frame is rendered and the session is torn down exactly once.
"""

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from typing import Optional

from taskline.application.logs import LogBuffer
from taskline.application.store import StoreView, TaskStore
from taskline.domain.task import DeterminateUnits, TaskId, TaskSnapshot
from taskline.infrastructure.clock import Clock, MonotonicClock
from taskline.infrastructure.terminal import (
    CLEAR_LINE,
    HIDE_CURSOR,
    MOVE_UP,
    SHOW_CURSOR,
    Terminal,
)
from taskline.models import RendererConfig
from taskline.rendering.ansi import fit_rendered_text, visible_width
from taskline.rendering.build import DeterminateLayout, FrameModel, OrderedTask, build_frame
from taskline.rendering.color import color_blocks
from taskline.rendering.fit import FittedFrame, fit_frame
from taskline.rendering.layout import resolve_total_width
from taskline.rendering.theme import DEFAULT_THEME, Theme

logger = logging.getLogger(__name__)

Signature = tuple

# Pipeline stages, swappable per renderer
BuildStage = Callable[[Sequence[OrderedTask], float, int, DeterminateLayout, int], FrameModel]
FitStage = Callable[[FrameModel, Optional[int]], FittedFrame]
ColorStage = Callable[[FittedFrame, bool], list[list[str]]]


def task_signature(snapshot: TaskSnapshot, step: int) -> Signature:
    """What must change for a task to be re-emitted in append-only mode.

    Bars only count progress in whole ``step`` increments; spinners never
    change signature by animating.
    """
    units = snapshot.units
    if isinstance(units, DeterminateUnits):
        return (
            snapshot.status,
            snapshot.description,
            math.floor(units.completed / step),
            units.total,
        )
    return (snapshot.status, snapshot.description)


def clip_lines(lines: Sequence[str], rows: Optional[int]) -> list[str]:
    """Keep the newest lines that fit above the cursor row.

    One row stays free for the cursor. When lines are dropped, the first
    kept row becomes a marker saying how many are hidden.
    """
    if rows is None:
        return list(lines)

    limit = max(1, rows - 1)
    if len(lines) <= limit:
        return list(lines)
    if limit == 1:
        return [f"... {len(lines)} lines hidden"]

    hidden = len(lines) - limit + 1
    return [f"... {hidden} lines hidden (showing latest lines)", *lines[-(limit - 1) :]]


class FrameRenderer:
    """Background renderer for one progress session.

    Args:
        store: Task state to draw.
        logs: Log lines to draw above the tasks.
        terminal: Output target.
        config: Resolved renderer settings.
        clock: Time source for elapsed and ETA.
        fallback_theme: Theme for tasks created without one.
        build: Build stage, snapshots to logical rows.
        fit: Fit stage, logical rows to fixed widths.
        color: Color stage, fitted rows to lines per task.
    """

    def __init__(
        self,
        store: TaskStore,
        logs: LogBuffer,
        terminal: Terminal,
        config: Optional[RendererConfig] = None,
        clock: Optional[Clock] = None,
        fallback_theme: Theme = DEFAULT_THEME,
        build: BuildStage = build_frame,
        fit: FitStage = fit_frame,
        color: ColorStage = color_blocks,
    ):
        self.store = store
        self.logs = logs
        self.terminal = terminal
        self.config = config if config is not None else RendererConfig()
        self.clock = clock if clock is not None else MonotonicClock()
        self.fallback_theme = fallback_theme
        self.build = build
        self.fit = fit
        self.color = color
        self.interactive = terminal.is_interactive()
        self.tick = 0
        self._previous_line_count = 0
        self._signatures: dict[TaskId, Signature] = {}
        self._started = False
        self._closed = False

    async def run(self) -> None:
        """Render until cancelled, then settle the frame and tear down."""
        logger.debug(f"Render loop starting (interactive={self.interactive})")
        self._started = True
        try:
            if self.interactive:
                self.terminal.write(HIDE_CURSOR)
            if self.interactive and self.config.disable_user_input:
                with self.terminal.raw_input_capture():
                    await self._loop()
            else:
                await self._loop()
        finally:
            self.close()

    def close(self) -> None:
        """Render the final frame and restore the terminal. Idempotent."""
        if self._closed or not self._started:
            return
        self._closed = True
        try:
            self.store.consume_dirty()
            self.render(self.tick + 1)
        finally:
            if self.interactive:
                self.terminal.write("\n" + SHOW_CURSOR)
            logger.debug("Render loop stopped")

    async def _loop(self) -> None:
        while True:
            self.step()
            self.tick += 1
            await asyncio.sleep(self.config.render_interval)

    def step(self) -> bool:
        """Run one tick's decision. Returns True if a frame was rendered."""
        dirty = self.store.consume_dirty()
        view = self.store.view()
        needed = dirty or view.has_spinners
        if self.interactive:
            needed = needed or self.logs.has_pending
        if needed:
            self.render(self.tick, view)
        return needed

    # -------------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------------

    def render(self, tick: int, view: Optional[StoreView] = None) -> None:
        if view is None:
            view = self.store.view()
        if self.interactive:
            self._render_interactive(view, tick)
        else:
            self._render_append(view)

    def _task_blocks(
        self, view: StoreView, tick: int, styled: bool
    ) -> list[tuple[TaskSnapshot, list[str]]]:
        ordered = view.ordered_tasks(self.fallback_theme)
        frame = self.build(
            ordered,
            self.clock.now(),
            tick,
            self.config.determinate_layout,
            self.config.column_gap,
        )
        columns = self.terminal.columns() if self.interactive else None
        total_width = resolve_total_width(columns, self.config.max_width)
        lines = self.color(self.fit(frame, total_width), styled)
        return [(entry.snapshot, block_lines) for entry, block_lines in zip(ordered, lines)]

    def _render_interactive(self, view: StoreView, tick: int) -> None:
        task_lines = [
            line for _, block in self._task_blocks(view, tick, styled=True) for line in block
        ]
        rows = self.terminal.rows()
        columns = self.terminal.columns()

        drained = self.logs.drain()
        appended: list[str] = []
        if self.logs.retains_history:
            log_lines = [self._fit_log_line(line, columns) for line in self.logs.history()]
            redrawn = clip_lines(log_lines + task_lines, rows)
        else:
            appended = drained
            redrawn = clip_lines(task_lines, rows)

        output = [self._erase_previous()]
        output.extend(line + "\n" for line in appended)
        output.append("\n".join(redrawn))
        self._previous_line_count = len(redrawn)
        self.terminal.write("".join(output))

    def _render_append(self, view: StoreView) -> None:
        step = self.config.non_tty_update_step
        output = list(self.logs.drain())

        signatures: dict[TaskId, Signature] = {}
        for snapshot, lines in self._task_blocks(view, tick=0, styled=False):
            signature = task_signature(snapshot, step)
            signatures[snapshot.id] = signature
            if self._signatures.get(snapshot.id) != signature:
                output.extend(lines)
        self._signatures = signatures

        if output:
            self.terminal.write("\n".join(output) + "\n")

    def _erase_previous(self) -> str:
        if self._previous_line_count <= 0:
            return ""
        return "\r" + CLEAR_LINE + (MOVE_UP + CLEAR_LINE) * (self._previous_line_count - 1)

    @staticmethod
    def _fit_log_line(line: str, columns: Optional[int]) -> str:
        if columns is None or visible_width(line) <= columns:
            return line
        return fit_rendered_text(line, columns)
