"""Task domain models.

Immutable values describing one task at one point in time. Mutations in
the store replace a snapshot with a new one; nothing here is ever
modified in place.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import NewType, Optional, Union

from taskline.models import ProgressBarConfig

TaskId = NewType("TaskId", int)


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DeterminateUnits:
    """Countable progress with a known total.

    Construct through :meth:`clamped` to keep ``0 <= completed <= total``.
    """

    completed: float
    total: float

    @classmethod
    def clamped(cls, completed: float, total: float) -> "DeterminateUnits":
        total = max(0, total)
        return cls(completed=min(max(0, completed), total), total=total)

    @property
    def remaining(self) -> float:
        return self.total - self.completed

    @property
    def ratio(self) -> float:
        """Completed fraction in [0, 1]."""
        if self.total <= 0:
            return 0.0
        return min(1.0, max(0.0, self.completed / self.total))


@dataclass(frozen=True, slots=True)
class IndeterminateUnits:
    """Unknown-duration progress, animated by a spinner frame counter."""

    spinner_frame: int = 0

    def advanced(self, amount: int, frame_count: int) -> "IndeterminateUnits":
        return IndeterminateUnits(
            spinner_frame=(self.spinner_frame + amount) % max(1, frame_count)
        )


TaskUnits = Union[DeterminateUnits, IndeterminateUnits]


@dataclass(frozen=True, slots=True)
class TaskSnapshot:
    """One task at a point in time.

    Attributes:
        id: Store-unique, monotonically increasing identity.
        parent_id: Parent task, or None for a root task.
        description: Text shown on the task row.
        status: Running, done or failed.
        transient: Effective transience; a transient task leaves the store
            when it completes or fails.
        units: Determinate or indeterminate progress.
        config: Resolved bar/spinner config, fixed at creation.
        started_at: Clock reading when the task was added.
        completed_at: Clock reading when it finished, None while running.
    """

    id: TaskId
    parent_id: Optional[TaskId]
    description: str
    status: TaskStatus
    transient: bool
    units: TaskUnits
    config: ProgressBarConfig
    started_at: float
    completed_at: Optional[float] = None

    @property
    def is_determinate(self) -> bool:
        return isinstance(self.units, DeterminateUnits)

    @property
    def is_running(self) -> bool:
        return self.status == TaskStatus.RUNNING

    @property
    def is_spinning(self) -> bool:
        """True for a running indeterminate task, which animates every tick."""
        return self.is_running and isinstance(self.units, IndeterminateUnits)

    @property
    def is_hidden(self) -> bool:
        """Finished transient tasks are never drawn."""
        return self.transient and not self.is_running

    def evolve(self, **changes) -> "TaskSnapshot":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class RenderRow:
    """A task's position in the depth-first render order."""

    id: TaskId
    depth: int
