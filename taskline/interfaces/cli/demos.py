"""Demo programs run by the CLI.

Each demo is an async function taking the simulated work delay plus the
renderer settings and terminal to run its progress session with.
"""

import asyncio
import logging
from typing import Any, Optional

from taskline.application import capture_logging, run_progress
from taskline.infrastructure import Terminal

logger = logging.getLogger(__name__)

LONG_DESCRIPTION = (
    "Deploying a very long task description to demonstrate two-line layout "
    "and max width clamping"
)


class DemoFailure(Exception):
    """Raised by the fail demo's broken task."""


async def basic(delay: float, renderer: dict[str, Any], terminal: Optional[Terminal] = None) -> None:
    async with run_progress(renderer=renderer, terminal=terminal) as progress:

        async def work(index: int) -> None:
            await asyncio.sleep(delay)
            progress.log(f"Completed task {index + 1}")

        await progress.gather(
            *(work(i) for i in range(5)),
            description="Running tasks in parallel",
            concurrency=2,
        )


async def nesting(
    delay: float, renderer: dict[str, Any], terminal: Optional[Terminal] = None
) -> None:
    async with run_progress(renderer=renderer, terminal=terminal) as progress:
        with capture_logging(progress):

            async def subtasks(index: int) -> None:
                async with progress.task(f"Preparing batch {index + 1}"):
                    await asyncio.sleep(delay)

                async def subtask(_: int) -> None:
                    await asyncio.sleep(delay)

                await progress.for_each(
                    range(15), subtask, description=f"Running subtasks for task {index + 1}"
                )
                logger.info(f"Batch {index + 1} finished")

            await progress.gather(
                *(subtasks(i) for i in range(5)),
                description="Running tasks in parallel",
                concurrency=2,
            )


async def fail(delay: float, renderer: dict[str, Any], terminal: Optional[Terminal] = None) -> None:
    async with run_progress(renderer=renderer, terminal=terminal) as progress:

        async def work(index: int) -> None:
            async with progress.task(f"Task {index + 1}", transient=False):
                await asyncio.sleep(delay)
                if index == 2:
                    raise DemoFailure(f"Task {index + 1} failed")

        await progress.gather(
            *(work(i) for i in range(5)),
            description="Running tasks in parallel",
            concurrency=2,
        )


async def two_lines(
    delay: float, renderer: dict[str, Any], terminal: Optional[Terminal] = None
) -> None:
    async with run_progress(renderer=renderer, terminal=terminal) as progress:
        async with progress.task("Two-line + width cap demo", transient=False):

            async def batch(number: int) -> None:
                async for _ in progress.track(
                    range(18), description=f"{LONG_DESCRIPTION} (batch {number})"
                ):
                    await asyncio.sleep(delay)

            await progress.gather(
                *(batch(n) for n in range(1, 4)),
                description="Coordinating multi-batch rollout with two-line determinate bars",
                concurrency=2,
            )
