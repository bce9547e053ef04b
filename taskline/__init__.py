"""taskline - live, hierarchical progress rendering for concurrent tasks.

Typical use:

    async with run_progress() as progress:
        async with progress.task("Downloading", total=3) as task_id:
            ...
            progress.advance_task(task_id)
"""

__version__ = "0.1.0"

from taskline.application import (
    FrameRenderer,
    ProgressLogHandler,
    ProgressService,
    TaskStore,
    capture_logging,
    run_progress,
)
from taskline.context import current_task_id
from taskline.domain.task import TaskId, TaskSnapshot, TaskStatus
from taskline.infrastructure import MonotonicClock, StderrTerminal
from taskline.models import ProgressBarConfig, RendererConfig
from taskline.rendering import DEFAULT_THEME, PLAIN_THEME, Theme

__all__ = [
    "__version__",
    # Sessions
    "run_progress",
    "ProgressService",
    "current_task_id",
    "capture_logging",
    "ProgressLogHandler",
    # Core
    "TaskStore",
    "FrameRenderer",
    "TaskId",
    "TaskSnapshot",
    "TaskStatus",
    # Configuration
    "RendererConfig",
    "ProgressBarConfig",
    "Theme",
    "DEFAULT_THEME",
    "PLAIN_THEME",
    # Collaborators
    "StderrTerminal",
    "MonotonicClock",
]
