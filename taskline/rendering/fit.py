"""Shrink/fit stage: logical rows to concrete cell widths."""

from dataclasses import dataclass
from typing import Optional

from taskline.rendering.build import FrameModel
from taskline.rendering.layout import Segment, fit_segments, resolve_row_widths
from taskline.rendering.theme import Theme


@dataclass(frozen=True)
class FittedCell:
    id: str
    width: int
    segments: tuple[Segment, ...]


@dataclass(frozen=True)
class FittedRow:
    """A row whose cells each occupy exactly their resolved width."""

    depth: int
    theme: Theme
    gap: int
    cells: tuple[FittedCell, ...]


@dataclass(frozen=True)
class FittedBlock:
    task_id: int
    rows: tuple[FittedRow, ...]


@dataclass(frozen=True)
class FittedFrame:
    blocks: tuple[FittedBlock, ...]

    @property
    def rows(self) -> list[FittedRow]:
        return [row for block in self.blocks for row in block.rows]


def fit_frame(frame: FrameModel, total_width: Optional[int]) -> FittedFrame:
    """Resolve widths for every row and fit each cell's content to them.

    Args:
        frame: Output of the build stage.
        total_width: Target row width, or None to size cells to content.
    """
    blocks = []
    for block in frame.blocks:
        rows = []
        for row in block.rows:
            widths = resolve_row_widths(row, total_width)
            cells = tuple(
                FittedCell(
                    id=cell.id,
                    width=width,
                    segments=fit_segments(cell.content_at(width), width, cell.wrap_mode),
                )
                for cell, width in zip(row.cells, widths)
            )
            rows.append(
                FittedRow(depth=block.depth, theme=block.theme, gap=max(0, row.gap), cells=cells)
            )
        blocks.append(FittedBlock(task_id=block.task_id, rows=tuple(rows)))
    return FittedFrame(blocks=tuple(blocks))
