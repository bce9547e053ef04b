"""Application layer for taskline.

Orchestrates the task store, the log buffer and the render loop into
progress sessions.

Exports:
    Store:
        - TaskStore: Concurrency-safe task registry
        - StoreView: Consistent read-only copy of the store

    Logs:
        - LogBuffer: Pending and retained log lines
        - ProgressLogHandler: logging.Handler feeding a session
        - capture_logging: Route root-logger records into a session

    Rendering:
        - FrameRenderer: Render loop and terminal session owner

    Sessions:
        - ProgressService: Task lifecycle API for one session
        - run_progress: Start a session around an async block
"""

from taskline.application.logs import (
    LogBuffer,
    ProgressLogHandler,
    capture_logging,
    format_log_lines,
)
from taskline.application.progress import ProgressService, run_progress
from taskline.application.renderer import FrameRenderer, clip_lines, task_signature
from taskline.application.store import StoreView, TaskStore

__all__ = [
    # Store
    "TaskStore",
    "StoreView",
    # Logs
    "LogBuffer",
    "ProgressLogHandler",
    "capture_logging",
    "format_log_lines",
    # Rendering
    "FrameRenderer",
    "clip_lines",
    "task_signature",
    # Sessions
    "ProgressService",
    "run_progress",
]
