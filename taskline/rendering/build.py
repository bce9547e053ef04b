"""Build stage: task snapshots to logical, unstyled rows.

The build stage decides what each task row says, never how wide it is or
what color it has. Every task maps to exactly one RowShape.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from taskline.domain.task import (
    DeterminateUnits,
    IndeterminateUnits,
    LineVariant,
    TaskSnapshot,
    TaskStatus,
    TreeInfo,
    compute_tree_info,
    render_tree_prefix,
)
from taskline.rendering.layout import CellModel, LogicalRow, Segment
from taskline.rendering.theme import Theme, ThemeRole

DeterminateLayout = Literal["single-line", "two-lines"]

ETA_PLACEHOLDER = "ETA: --"
STATUS_MARKERS: dict[TaskStatus, tuple[str, ThemeRole]] = {
    TaskStatus.DONE: ("done", "status_done"),
    TaskStatus.FAILED: ("failed", "status_failed"),
}


class RowShape(str, Enum):
    """The closed set of row layouts a task can take."""

    PROGRESS = "progress"  # determinate, one line
    PROGRESS_TWO_LINE = "progress-two-line"  # determinate, description above bar
    SPINNER = "spinner"  # running indeterminate
    SETTLED = "settled"  # finished indeterminate


def row_shape(snapshot: TaskSnapshot, layout: DeterminateLayout) -> RowShape:
    if isinstance(snapshot.units, DeterminateUnits):
        if layout == "two-lines":
            return RowShape.PROGRESS_TWO_LINE
        return RowShape.PROGRESS
    if snapshot.is_running:
        return RowShape.SPINNER
    return RowShape.SETTLED


@dataclass(frozen=True)
class OrderedTask:
    """A snapshot plus what the renderer captured about it for this frame."""

    snapshot: TaskSnapshot
    depth: int
    theme: Theme


@dataclass(frozen=True)
class TaskBlock:
    """All logical rows for one task."""

    task_id: int
    depth: int
    theme: Theme
    shape: RowShape
    rows: tuple[LogicalRow, ...]


@dataclass(frozen=True)
class FrameModel:
    blocks: tuple[TaskBlock, ...]


def format_duration(seconds: float, precise: bool = False) -> str:
    """Format a duration as ``1h 2m 3s`` (plus ``450ms`` when precise)."""
    if precise:
        millis_total = max(0, round(seconds * 1000))
        whole, millis = divmod(millis_total, 1000)
    else:
        whole, millis = max(0, math.floor(seconds)), 0

    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    parts = [
        f"{value}{unit}"
        for value, unit in ((hours, "h"), (minutes, "m"), (secs, "s"), (millis, "ms"))
        if value
    ]
    if not parts:
        return "0ms" if precise else "0s"
    return " ".join(parts)


def format_elapsed(snapshot: TaskSnapshot, now: float) -> str:
    end = snapshot.completed_at if snapshot.completed_at is not None else now
    elapsed = max(0.0, end - snapshot.started_at)
    return format_duration(elapsed, precise=not snapshot.is_running)


def format_eta(snapshot: TaskSnapshot, now: float) -> str:
    """``elapsed * remaining / completed`` for running determinate tasks."""
    units = snapshot.units
    if not snapshot.is_running or not isinstance(units, DeterminateUnits):
        return ETA_PLACEHOLDER
    if units.completed <= 0 or units.remaining <= 0:
        return ETA_PLACEHOLDER

    elapsed = max(0.001, now - snapshot.started_at)
    eta = elapsed * units.remaining / units.completed
    return f"ETA: {format_duration(eta)}"


def format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


# =============================================================================
# Cells
# =============================================================================


def tree_cell(tree: TreeInfo, variant: LineVariant) -> CellModel:
    return CellModel(
        id="tree",
        segments=(Segment(render_tree_prefix(tree, variant), "tree_connector"),),
        collapse_priority=100,
    )


def text_cell(description: str) -> CellModel:
    return CellModel(
        id="text",
        segments=(Segment(description, "text"),),
        wrap_mode="ellipsis",
        min_width=4,
        collapse_priority=50,
    )


def spinner_cell(snapshot: TaskSnapshot, tick: int) -> CellModel:
    frames = snapshot.config.spinner_frames
    frame = 0
    if isinstance(snapshot.units, IndeterminateUnits):
        frame = (snapshot.units.spinner_frame + tick) % len(frames)
    return CellModel(
        id="spinner",
        segments=(Segment(frames[frame], "spinner"),),
        min_width=1,
        collapse_priority=70,
    )


def bar_cell(snapshot: TaskSnapshot) -> CellModel:
    """A bar that re-renders itself for whatever width it is given."""
    units = snapshot.units
    config = snapshot.config
    brackets = len(config.left_bracket) + len(config.right_bracket)

    if snapshot.status == TaskStatus.FAILED:
        fill_role, empty_role = "status_failed", "status_failed"
    elif snapshot.status == TaskStatus.DONE:
        fill_role, empty_role = "status_done", "bar_empty"
    else:
        fill_role, empty_role = "bar_fill", "bar_empty"

    ratio = units.ratio if isinstance(units, DeterminateUnits) else 0.0
    if snapshot.status == TaskStatus.DONE:
        ratio = 1.0

    def render(width: int) -> tuple[Segment, ...]:
        inner = max(1, width - brackets)
        filled = round(ratio * inner)
        return (
            Segment(config.left_bracket, "bar_bracket"),
            Segment(config.fill_char * filled, fill_role),
            Segment(config.empty_char * (inner - filled), empty_role),
            Segment(config.right_bracket, "bar_bracket"),
        )

    return CellModel(
        id="bar",
        min_width=brackets + 1,
        intrinsic_width=brackets + config.bar_width,
        collapse_priority=10,
        render_at_width=render,
    )


def units_cell(snapshot: TaskSnapshot) -> CellModel:
    units = snapshot.units
    text = ""
    if isinstance(units, DeterminateUnits):
        text = f"{format_amount(units.completed)}/{format_amount(units.total)}"
    return CellModel(id="units", segments=(Segment(text, "units"),), collapse_priority=40)


def eta_cell(snapshot: TaskSnapshot, now: float) -> CellModel:
    return CellModel(
        id="eta", segments=(Segment(format_eta(snapshot, now), "eta"),), collapse_priority=20
    )


def elapsed_cell(snapshot: TaskSnapshot, now: float) -> CellModel:
    return CellModel(
        id="elapsed",
        segments=(Segment(format_elapsed(snapshot, now), "elapsed"),),
        collapse_priority=30,
    )


def status_cell(snapshot: TaskSnapshot) -> CellModel:
    text, role = STATUS_MARKERS.get(snapshot.status, ("", "plain"))
    return CellModel(id="status", segments=(Segment(text, role),), collapse_priority=60)


# =============================================================================
# Rows
# =============================================================================


def _progress_tail(snapshot: TaskSnapshot, now: float) -> list[CellModel]:
    """Bar, units, then timing; failures also carry their marker."""
    cells = [bar_cell(snapshot), units_cell(snapshot)]
    if snapshot.status == TaskStatus.RUNNING:
        cells.append(eta_cell(snapshot, now))
    else:
        if snapshot.status == TaskStatus.FAILED:
            cells.append(status_cell(snapshot))
        cells.append(elapsed_cell(snapshot, now))
    return cells


def build_rows(
    snapshot: TaskSnapshot,
    tree: TreeInfo,
    shape: RowShape,
    now: float,
    tick: int,
    gap: int = 1,
) -> tuple[LogicalRow, ...]:
    """Logical rows for one task in the given shape."""
    if shape == RowShape.PROGRESS:
        cells = [tree_cell(tree, "lead"), text_cell(snapshot.description)]
        cells.extend(_progress_tail(snapshot, now))
        return (LogicalRow(tuple(cells), gap),)

    if shape == RowShape.PROGRESS_TWO_LINE:
        lead = (tree_cell(tree, "lead"), text_cell(snapshot.description))
        continuation = [tree_cell(tree, "continuation")]
        continuation.extend(_progress_tail(snapshot, now))
        return (LogicalRow(lead, gap), LogicalRow(tuple(continuation), gap))

    if shape == RowShape.SPINNER:
        cells = (
            tree_cell(tree, "lead"),
            spinner_cell(snapshot, tick),
            text_cell(snapshot.description),
            elapsed_cell(snapshot, now),
        )
        return (LogicalRow(cells, gap),)

    cells = (
        tree_cell(tree, "lead"),
        text_cell(snapshot.description),
        status_cell(snapshot),
        elapsed_cell(snapshot, now),
    )
    return (LogicalRow(cells, gap),)


def build_frame(
    ordered: Sequence[OrderedTask],
    now: float,
    tick: int,
    layout: DeterminateLayout = "single-line",
    gap: int = 1,
) -> FrameModel:
    """Convert a depth-first task listing into a logical frame.

    No styling and no width trimming happens here.

    Args:
        ordered: Visible tasks in render order.
        now: Current clock reading, for elapsed and ETA.
        tick: Render tick, advancing spinner frames.
        layout: Single-line or two-line determinate rows.
        gap: Spaces between cells.
    """
    trees = compute_tree_info([entry.depth for entry in ordered])
    blocks = []
    for entry, tree in zip(ordered, trees):
        shape = row_shape(entry.snapshot, layout)
        blocks.append(
            TaskBlock(
                task_id=entry.snapshot.id,
                depth=entry.depth,
                theme=entry.theme,
                shape=shape,
                rows=build_rows(entry.snapshot, tree, shape, now, tick, gap),
            )
        )
    return FrameModel(blocks=tuple(blocks))
