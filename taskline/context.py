"""Ambient, per-branch progress state.

Both values live in context variables. asyncio copies the current context
into every task it creates, so a branch that changes its current task
never affects its siblings, and each change is undone when its scope ends.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

from taskline.domain.task import TaskId

if TYPE_CHECKING:
    from taskline.application.progress import ProgressService

_current_task: ContextVar[Optional[TaskId]] = ContextVar("taskline_current_task", default=None)
_active_service: ContextVar[Optional["ProgressService"]] = ContextVar(
    "taskline_active_service", default=None
)


def current_task_id() -> Optional[TaskId]:
    """The task whose scope the caller is running in, if any."""
    return _current_task.get()


def active_service() -> Optional["ProgressService"]:
    """The progress session the caller is running under, if any."""
    return _active_service.get()


@contextmanager
def task_scope(task_id: Optional[TaskId]) -> Iterator[None]:
    """Make ``task_id`` the ambient parent for the block."""
    token = _current_task.set(task_id)
    try:
        yield
    finally:
        _current_task.reset(token)


@contextmanager
def service_scope(service: "ProgressService") -> Iterator[None]:
    token = _active_service.set(service)
    try:
        yield
    finally:
        _active_service.reset(token)
