"""CLI interface for taskline using Typer.

Demo programs that show the renderer in its different modes.

Usage:
    taskline basic              # Flat determinate tasks
    taskline nesting            # Nested bars, spinners and logs
    taskline fail               # A run where one task fails
    taskline two-lines          # Two-line layout with a width cap

The CLI is structured as:
- app: Main Typer application
- demos.py: The demo programs, as plain async functions
- main.py: Entry point that runs the app
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Optional

import typer

from taskline import __version__
from taskline.infrastructure import StderrTerminal
from taskline.interfaces.cli import demos

# Create the main Typer application
app = typer.Typer(
    name="taskline",
    help="Live hierarchical progress rendering for concurrent tasks",
    add_completion=False,
    no_args_is_help=True,
)

# Reusable options shared by every demo
IntervalOption = Annotated[
    int, typer.Option("--interval", "-i", min=1, help="Render interval in milliseconds")
]
WidthOption = Annotated[
    Optional[int], typer.Option("--width", "-w", min=1, help="Maximum row width")
]
NoTtyOption = Annotated[
    bool, typer.Option("--no-tty", help="Force append-only output, as when piped")
]
DelayOption = Annotated[
    float, typer.Option("--delay", "-d", min=0.0, help="Seconds per simulated work item")
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"taskline version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """taskline - progress bars and spinners for concurrent async work."""
    pass


def _run_demo(
    demo: Callable[..., Awaitable[Any]],
    interval: int,
    width: Optional[int],
    no_tty: bool,
    delay: float,
    **renderer: Any,
) -> None:
    """Run a demo under a progress session built from CLI options."""
    settings: dict[str, Any] = {"render_interval_ms": interval, **renderer}
    if width is not None:
        settings["width"] = width
    terminal = StderrTerminal(force_interactive=False if no_tty else None)

    try:
        asyncio.run(demo(delay=delay, renderer=settings, terminal=terminal))
    except demos.DemoFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


# =============================================================================
# Demo Commands
# =============================================================================


@app.command("basic")
def basic(
    interval: IntervalOption = 100,
    width: WidthOption = None,
    no_tty: NoTtyOption = False,
    delay: DelayOption = 1.0,
) -> None:
    """Run five tasks, two at a time, under one bar."""
    _run_demo(demos.basic, interval, width, no_tty, delay)


@app.command("nesting")
def nesting(
    interval: IntervalOption = 100,
    width: WidthOption = None,
    no_tty: NoTtyOption = False,
    delay: DelayOption = 0.1,
) -> None:
    """Run nested bars with a spinner and log lines above them."""
    _run_demo(demos.nesting, interval, width, no_tty, delay, max_log_lines=5)


@app.command("fail")
def fail(
    interval: IntervalOption = 100,
    width: WidthOption = None,
    no_tty: NoTtyOption = False,
    delay: DelayOption = 1.0,
) -> None:
    """Run tasks where the third one fails."""
    _run_demo(demos.fail, interval, width, no_tty, delay)


@app.command("two-lines")
def two_lines(
    interval: IntervalOption = 60,
    width: WidthOption = 100,
    no_tty: NoTtyOption = False,
    delay: DelayOption = 0.08,
) -> None:
    """Run long-described batches with two-line bars and a width cap."""
    _run_demo(demos.two_lines, interval, width, no_tty, delay, determinate_layout="two-lines")
