"""Task store: the concurrency-safe registry of task snapshots.

Holds every live task snapshot, the parent/child structure that defines
render order, and the theme each task was created with. All state sits
behind one lock, so producers on any thread or asyncio task see atomic
read-modify-write operations and the render loop reads consistent views.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel

from taskline.domain.task import (
    DeterminateUnits,
    IndeterminateUnits,
    RenderRow,
    TaskId,
    TaskSnapshot,
    TaskStatus,
    TaskUnits,
)
from taskline.infrastructure.clock import Clock, MonotonicClock
from taskline.models import ProgressBarConfig, resolve_config
from taskline.rendering.build import OrderedTask
from taskline.rendering.theme import Theme

logger = logging.getLogger(__name__)

ConfigOverride = Union[Mapping[str, Any], ProgressBarConfig, BaseModel, None]


def initial_units(total: Optional[float]) -> TaskUnits:
    """Determinate units for a positive total, a spinner otherwise."""
    if total is None or total <= 0:
        return IndeterminateUnits()
    return DeterminateUnits.clamped(0, total)


@dataclass(frozen=True)
class StoreView:
    """Consistent, read-only copy of the store taken under its lock."""

    tasks: Mapping[TaskId, TaskSnapshot]
    order: tuple[RenderRow, ...]
    themes: Mapping[TaskId, Theme]

    def ordered_tasks(self, fallback_theme: Theme) -> list[OrderedTask]:
        """Visible tasks in render order, each with its bound theme."""
        ordered = []
        for row in self.order:
            snapshot = self.tasks[row.id]
            if snapshot.is_hidden:
                continue
            theme = self.themes.get(row.id, fallback_theme)
            ordered.append(OrderedTask(snapshot=snapshot, depth=row.depth, theme=theme))
        return ordered

    @property
    def has_spinners(self) -> bool:
        """True while any running task animates a spinner."""
        return any(snapshot.is_spinning for snapshot in self.tasks.values())


class TaskStore:
    """Hierarchical task registry with incremental depth-first ordering.

    Children are kept in insertion-ordered sets per parent, so adding a task
    places it after its parent's existing descendants in O(1) and removing a
    task drops its whole subtree in O(subtree). The flattened render order
    is rebuilt lazily after structural changes.

    Operations on unknown task ids are no-ops.

    Args:
        clock: Time source for start and completion timestamps.
        progressbar: Resolved config inherited by root tasks.
        theme: Theme bound to root tasks that do not bring their own.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        progressbar: Optional[ProgressBarConfig] = None,
        theme: Optional[Theme] = None,
    ):
        self._clock = clock if clock is not None else MonotonicClock()
        self._progressbar = progressbar if progressbar is not None else ProgressBarConfig()
        self._theme = theme
        self._lock = threading.Lock()
        self._next_id = 1
        self._tasks: dict[TaskId, TaskSnapshot] = {}
        self._themes: dict[TaskId, Theme] = {}
        # None keys the root set; dict values are unused, keys keep order
        self._children: dict[Optional[TaskId], dict[TaskId, None]] = {None: {}}
        self._order: Optional[tuple[RenderRow, ...]] = None
        self._dirty = False

    # -------------------------------------------------------------------------
    # Dirty flag
    # -------------------------------------------------------------------------

    def mark_dirty(self) -> None:
        with self._lock:
            self._dirty = True

    def consume_dirty(self) -> bool:
        """Return whether anything changed since the last call, and reset."""
        with self._lock:
            dirty, self._dirty = self._dirty, False
            return dirty

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_task(
        self,
        description: str,
        total: Optional[float] = None,
        transient: bool = False,
        parent_id: Optional[TaskId] = None,
        progressbar: ConfigOverride = None,
        theme: Optional[Theme] = None,
    ) -> TaskId:
        """Register a new running task and return its id.

        The bar config is the parent's resolved config (or the store
        default for roots) with ``progressbar`` merged over it. A task under
        a transient ancestor is transient itself.

        Args:
            description: Row text.
            total: Positive total for a bar; None or <= 0 for a spinner.
            transient: Remove the task when it finishes.
            parent_id: Parent task. Unknown ids make the task a root.
            progressbar: Partial bar/spinner config override.
            theme: Theme for this task and, by default, its children.

        Raises:
            pydantic.ValidationError: If the merged config is invalid.
        """
        with self._lock:
            parent = self._tasks.get(parent_id) if parent_id is not None else None
            if parent_id is not None and parent is None:
                logger.debug(f"Parent task {parent_id} not found, adding as root")

            base_config = parent.config if parent is not None else self._progressbar
            config = resolve_config(ProgressBarConfig, base_config, progressbar)

            task_id = TaskId(self._next_id)
            self._next_id += 1
            parent_key = parent.id if parent is not None else None

            self._tasks[task_id] = TaskSnapshot(
                id=task_id,
                parent_id=parent_key,
                description=description,
                status=TaskStatus.RUNNING,
                transient=transient or (parent is not None and parent.transient),
                units=initial_units(total),
                config=config,
                started_at=self._clock.now(),
            )

            bound_theme = theme
            if bound_theme is None and parent is not None:
                bound_theme = self._themes.get(parent.id)
            if bound_theme is None:
                bound_theme = self._theme
            if bound_theme is not None:
                self._themes[task_id] = bound_theme

            self._children[parent_key][task_id] = None
            self._children[task_id] = {}
            self._order = None
            self._dirty = True
            return task_id

    def update_task(
        self,
        task_id: TaskId,
        description: Optional[str] = None,
        completed: Optional[float] = None,
        total: Optional[float] = None,
        transient: Optional[bool] = None,
    ) -> None:
        """Change a task's description, progress, total or transience.

        A total <= 0 turns the task into a spinner; a positive total on a
        spinner turns it into a bar starting at ``completed`` (or 0). Making
        a finished task transient removes it and its subtree.
        """
        with self._lock:
            snapshot = self._tasks.get(task_id)
            if snapshot is None:
                logger.debug(f"update_task: task {task_id} not found")
                return

            changes: dict[str, Any] = {}
            if description is not None:
                changes["description"] = description

            units = snapshot.units
            if total is not None:
                if total <= 0:
                    changes["units"] = IndeterminateUnits()
                else:
                    if completed is not None:
                        start = completed
                    elif isinstance(units, DeterminateUnits):
                        start = units.completed
                    else:
                        start = 0
                    changes["units"] = DeterminateUnits.clamped(start, total)
            elif completed is not None and isinstance(units, DeterminateUnits):
                changes["units"] = DeterminateUnits.clamped(completed, units.total)

            if transient is not None:
                changes["transient"] = transient or self._ancestor_transient(snapshot)
                # A finished task turning transient leaves like it would on finishing
                if changes["transient"] and not snapshot.is_running:
                    self._remove_subtree(task_id)
                    self._dirty = True
                    return

            if changes:
                self._tasks[task_id] = snapshot.evolve(**changes)
                self._dirty = True

    def advance_task(self, task_id: TaskId, amount: float = 1) -> None:
        """Add ``amount`` to a bar, or step a spinner by ``amount`` frames."""
        with self._lock:
            snapshot = self._tasks.get(task_id)
            if snapshot is None:
                logger.debug(f"advance_task: task {task_id} not found")
                return

            units = snapshot.units
            if isinstance(units, DeterminateUnits):
                advanced: TaskUnits = DeterminateUnits.clamped(
                    units.completed + amount, units.total
                )
            else:
                advanced = units.advanced(int(amount), len(snapshot.config.spinner_frames))

            self._tasks[task_id] = snapshot.evolve(units=advanced)
            self._dirty = True

    def complete_task(self, task_id: TaskId) -> None:
        """Mark a task done, filling its bar. Transient tasks are removed."""
        self._finish(task_id, TaskStatus.DONE)

    def fail_task(self, task_id: TaskId) -> None:
        """Mark a task failed, keeping its progress. Transient tasks are removed."""
        self._finish(task_id, TaskStatus.FAILED)

    def _finish(self, task_id: TaskId, status: TaskStatus) -> None:
        with self._lock:
            snapshot = self._tasks.get(task_id)
            if snapshot is None:
                logger.debug(f"{status.value}: task {task_id} not found")
                return

            if snapshot.transient or self._ancestor_transient(snapshot):
                self._remove_subtree(task_id)
                self._dirty = True
                return

            units = snapshot.units
            if status == TaskStatus.DONE and isinstance(units, DeterminateUnits):
                units = DeterminateUnits(completed=units.total, total=units.total)

            self._tasks[task_id] = snapshot.evolve(
                status=status,
                units=units,
                completed_at=self._clock.now(),
            )
            self._dirty = True

    def _ancestor_transient(self, snapshot: TaskSnapshot) -> bool:
        parent_id = snapshot.parent_id
        while parent_id is not None:
            parent = self._tasks.get(parent_id)
            if parent is None:
                return False
            if parent.transient:
                return True
            parent_id = parent.parent_id
        return False

    def _remove_subtree(self, task_id: TaskId) -> None:
        snapshot = self._tasks[task_id]
        self._children[snapshot.parent_id].pop(task_id, None)

        stack = [task_id]
        while stack:
            current = stack.pop()
            self._tasks.pop(current, None)
            self._themes.pop(current, None)
            stack.extend(self._children.pop(current, {}))
        self._order = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_task(self, task_id: TaskId) -> Optional[TaskSnapshot]:
        with self._lock:
            return self._tasks.get(task_id)

    def list_tasks(self) -> list[TaskSnapshot]:
        """All registered tasks in render order."""
        with self._lock:
            return [self._tasks[row.id] for row in self._render_order()]

    def render_order(self) -> tuple[RenderRow, ...]:
        with self._lock:
            return self._render_order()

    def view(self) -> StoreView:
        with self._lock:
            return StoreView(
                tasks=dict(self._tasks),
                order=self._render_order(),
                themes=dict(self._themes),
            )

    def _render_order(self) -> tuple[RenderRow, ...]:
        if self._order is None:
            rows: list[RenderRow] = []
            stack = [(task_id, 0) for task_id in reversed(self._children[None])]
            while stack:
                task_id, depth = stack.pop()
                rows.append(RenderRow(id=task_id, depth=depth))
                children = self._children.get(task_id, {})
                stack.extend((child, depth + 1) for child in reversed(children))
            self._order = tuple(rows)
        return self._order
