"""Progress service: the task-tracking API on top of the store.

ProgressService wraps a TaskStore and a LogBuffer with the ambient
current-task context, so nested work picks its parent automatically.
run_progress() resolves configuration, starts the render loop and makes
the service ambient for the duration of a run.
"""

import asyncio
import logging
from collections.abc import (
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    Mapping,
    Sized,
)
from contextlib import asynccontextmanager
from typing import Any, Optional, TypeVar, Union

from taskline.application.logs import LogBuffer, format_log_lines
from taskline.application.renderer import BuildStage, ColorStage, FitStage, FrameRenderer
from taskline.application.store import ConfigOverride, TaskStore
from taskline.context import active_service, current_task_id, service_scope, task_scope
from taskline.domain.task import TaskId, TaskSnapshot
from taskline.infrastructure.clock import Clock, MonotonicClock
from taskline.infrastructure.terminal import StderrTerminal, Terminal
from taskline.models import ProgressBarConfig, RendererConfig, resolve_config
from taskline.rendering.build import build_frame
from taskline.rendering.color import color_blocks
from taskline.rendering.fit import fit_frame
from taskline.rendering.theme import DEFAULT_THEME, Theme

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

RendererOverride = Union[Mapping[str, Any], RendererConfig, None]


class ProgressService:
    """Task lifecycle operations plus logging for one progress session.

    Args:
        renderer: Resolved renderer config.
        progressbar: Resolved bar config inherited by root tasks.
        clock: Time source shared with the renderer.
        theme: Theme bound to root tasks without their own.
    """

    def __init__(
        self,
        renderer: Optional[RendererConfig] = None,
        progressbar: Optional[ProgressBarConfig] = None,
        clock: Optional[Clock] = None,
        theme: Optional[Theme] = None,
    ):
        self.renderer_config = renderer if renderer is not None else RendererConfig()
        self.progressbar_config = progressbar if progressbar is not None else ProgressBarConfig()
        self.clock = clock if clock is not None else MonotonicClock()
        self.store = TaskStore(clock=self.clock, progressbar=self.progressbar_config, theme=theme)
        self.logs = LogBuffer(self.renderer_config.max_log_lines)

    # -------------------------------------------------------------------------
    # Store operations
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
        """Add a task under ``parent_id``, or under the ambient task."""
        if parent_id is None:
            parent_id = current_task_id()
        return self.store.add_task(
            description,
            total=total,
            transient=transient,
            parent_id=parent_id,
            progressbar=progressbar,
            theme=theme,
        )

    def update_task(
        self,
        task_id: TaskId,
        description: Optional[str] = None,
        completed: Optional[float] = None,
        total: Optional[float] = None,
        transient: Optional[bool] = None,
    ) -> None:
        self.store.update_task(
            task_id,
            description=description,
            completed=completed,
            total=total,
            transient=transient,
        )

    def advance_task(self, task_id: TaskId, amount: float = 1) -> None:
        self.store.advance_task(task_id, amount)

    def complete_task(self, task_id: TaskId) -> None:
        self.store.complete_task(task_id)

    def fail_task(self, task_id: TaskId) -> None:
        self.store.fail_task(task_id)

    def get_task(self, task_id: TaskId) -> Optional[TaskSnapshot]:
        return self.store.get_task(task_id)

    def list_tasks(self) -> list[TaskSnapshot]:
        return self.store.list_tasks()

    def current_task_id(self) -> Optional[TaskId]:
        return current_task_id()

    def log(self, *args: Any) -> None:
        """Queue a message to be drawn above the task rows."""
        self.logs.append(format_log_lines(*args))
        self.store.mark_dirty()

    # -------------------------------------------------------------------------
    # Scoped helpers
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def task(
        self,
        description: str,
        total: Optional[float] = None,
        transient: Optional[bool] = None,
        parent_id: Optional[TaskId] = None,
        progressbar: ConfigOverride = None,
        theme: Optional[Theme] = None,
    ) -> AsyncIterator[TaskId]:
        """Track the body of an ``async with`` block as a task.

        The task becomes the ambient parent inside the block. It completes
        when the block exits normally and fails when the block raises or is
        cancelled; the exception is re-raised unchanged.

        Args:
            description: Row text.
            total: Positive total for a bar; None for a spinner.
            transient: Remove the task when it finishes. Defaults to True
                for nested tasks and False for root tasks.
            parent_id: Explicit parent instead of the ambient task.
            progressbar: Partial bar/spinner config override.
            theme: Theme for this task and its children.
        """
        if parent_id is None:
            parent_id = current_task_id()
        if transient is None:
            transient = parent_id is not None

        task_id = self.add_task(
            description,
            total=total,
            transient=transient,
            parent_id=parent_id,
            progressbar=progressbar,
            theme=theme,
        )
        with task_scope(task_id):
            try:
                yield task_id
            except BaseException:
                self.fail_task(task_id)
                raise
        self.complete_task(task_id)

    async def track(
        self,
        items: Union[Iterable[T], AsyncIterable[T]],
        description: str,
        total: Optional[float] = None,
        transient: Optional[bool] = None,
        parent_id: Optional[TaskId] = None,
        progressbar: ConfigOverride = None,
        theme: Optional[Theme] = None,
    ) -> AsyncIterator[T]:
        """Yield from ``items``, advancing a task once per item.

        The total is taken from ``len(items)`` when not given. Breaking out
        of the loop early completes the task. The loop body runs in the
        caller's context, so tasks it adds do not nest under this one; use
        ``for_each`` for that.
        """
        if total is None and isinstance(items, Sized):
            total = len(items)
        if parent_id is None:
            parent_id = current_task_id()
        if transient is None:
            transient = parent_id is not None

        task_id = self.add_task(
            description,
            total=total,
            transient=transient,
            parent_id=parent_id,
            progressbar=progressbar,
            theme=theme,
        )
        try:
            if isinstance(items, AsyncIterable):
                async for item in items:
                    yield item
                    self.advance_task(task_id)
            else:
                for item in items:
                    yield item
                    self.advance_task(task_id)
        except GeneratorExit:
            self.complete_task(task_id)
            raise
        except BaseException:
            self.fail_task(task_id)
            raise
        self.complete_task(task_id)

    async def gather(
        self,
        *awaitables: Awaitable[T],
        description: str,
        concurrency: Optional[int] = None,
        transient: Optional[bool] = None,
        parent_id: Optional[TaskId] = None,
        progressbar: ConfigOverride = None,
        theme: Optional[Theme] = None,
    ) -> list[T]:
        """Run awaitables concurrently under one bar, returning results in order.

        If one fails, the rest are cancelled, the task fails and the error
        is re-raised.

        Args:
            awaitables: Work to run, one bar step each.
            description: Row text.
            concurrency: Maximum number running at once; unbounded if None.
        """
        limit = asyncio.Semaphore(concurrency) if concurrency else None

        async with self.task(
            description,
            total=len(awaitables),
            transient=transient,
            parent_id=parent_id,
            progressbar=progressbar,
            theme=theme,
        ) as task_id:

            async def run_one(awaitable: Awaitable[T]) -> T:
                if limit is None:
                    result = await awaitable
                else:
                    async with limit:
                        result = await awaitable
                self.advance_task(task_id)
                return result

            return await _gather_all(run_one(awaitable) for awaitable in awaitables)

    async def for_each(
        self,
        items: Union[Iterable[T], AsyncIterable[T]],
        work: Callable[[T], Awaitable[R]],
        description: str,
        total: Optional[float] = None,
        concurrency: Optional[int] = None,
        transient: Optional[bool] = None,
        parent_id: Optional[TaskId] = None,
        progressbar: ConfigOverride = None,
        theme: Optional[Theme] = None,
    ) -> list[R]:
        """Await ``work(item)`` for every item under one bar.

        Unlike ``track``, the work runs with the bar as the ambient task, so
        tasks it adds nest under the bar. Items run one at a time unless
        ``concurrency`` allows more; async iterables always run one at a
        time. Results come back in item order, and a failure fails the bar
        and is re-raised.

        Args:
            items: Inputs, one bar step each.
            work: Coroutine function applied to each item.
            description: Row text.
            total: Bar total, taken from ``len(items)`` when not given.
            concurrency: Maximum number of items in flight.
        """
        if total is None and isinstance(items, Sized):
            total = len(items)

        async with self.task(
            description,
            total=total,
            transient=transient,
            parent_id=parent_id,
            progressbar=progressbar,
            theme=theme,
        ) as task_id:

            async def run_one(item: T) -> R:
                result = await work(item)
                self.advance_task(task_id)
                return result

            if isinstance(items, AsyncIterable):
                return [await run_one(item) async for item in items]
            if concurrency is None or concurrency <= 1:
                return [await run_one(item) for item in items]

            limit = asyncio.Semaphore(concurrency)

            async def bounded(item: T) -> R:
                async with limit:
                    return await run_one(item)

            return await _gather_all(bounded(item) for item in items)


async def _gather_all(coroutines: Iterable[Awaitable[T]]) -> list[T]:
    """Gather in order; on the first failure cancel the rest and re-raise."""
    futures = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
    try:
        return list(await asyncio.gather(*futures))
    except BaseException:
        for future in futures:
            future.cancel()
        raise


@asynccontextmanager
async def run_progress(
    renderer: RendererOverride = None,
    progressbar: ConfigOverride = None,
    terminal: Optional[Terminal] = None,
    clock: Optional[Clock] = None,
    theme: Optional[Theme] = None,
    build: BuildStage = build_frame,
    fit: FitStage = fit_frame,
    color: ColorStage = color_blocks,
) -> AsyncIterator[ProgressService]:
    """Run a progress session around the block.

    Configuration is validated up front. The render loop runs as a
    background task until the block exits, then draws a final frame and
    restores the terminal. Inside an active session the existing service
    is reused and no second loop is started.

    Args:
        renderer: Renderer settings (partial mapping or model).
        progressbar: Default bar/spinner settings for root tasks.
        terminal: Output terminal, defaults to stderr.
        clock: Time source, defaults to a monotonic clock.
        theme: Theme for tasks created without one.
        build: Replacement build stage for the renderer.
        fit: Replacement fit stage for the renderer.
        color: Replacement color stage for the renderer.

    Raises:
        pydantic.ValidationError: If the configuration is invalid.
    """
    existing = active_service()
    if existing is not None:
        logger.debug("Progress session already active, reusing it")
        yield existing
        return

    renderer_config = resolve_config(RendererConfig, None, renderer)
    progressbar_config = resolve_config(ProgressBarConfig, None, progressbar)
    clock = clock if clock is not None else MonotonicClock()
    terminal = terminal if terminal is not None else StderrTerminal()

    service = ProgressService(
        renderer=renderer_config,
        progressbar=progressbar_config,
        clock=clock,
        theme=theme,
    )
    frame_renderer = FrameRenderer(
        service.store,
        service.logs,
        terminal,
        config=renderer_config,
        clock=clock,
        fallback_theme=theme if theme is not None else DEFAULT_THEME,
        build=build,
        fit=fit,
        color=color,
    )

    loop_task = asyncio.create_task(frame_renderer.run())
    # Let the loop take over the terminal before the body starts
    await asyncio.sleep(0)
    try:
        with service_scope(service):
            yield service
    except BaseException:
        await _stop_render_loop(loop_task, body_failed=True)
        raise
    await _stop_render_loop(loop_task, body_failed=False)


async def _stop_render_loop(loop_task: "asyncio.Task[None]", body_failed: bool) -> None:
    """Cancel the loop and wait for its teardown.

    A loop error is raised only when the body itself succeeded; otherwise
    the body's exception wins and the loop error is logged.
    """
    loop_task.cancel()
    await asyncio.wait([loop_task])
    if loop_task.cancelled():
        return

    error = loop_task.exception()
    if error is None:
        return
    if body_failed:
        logger.debug(f"Render loop failed while the session was failing: {error!r}")
        return
    raise error
