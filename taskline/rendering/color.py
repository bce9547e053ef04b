"""Color stage: fitted rows to final terminal lines."""

from taskline.rendering.fit import FittedFrame, FittedRow
from taskline.rendering.layout import Segment


def _style_segment(segment: Segment, row: FittedRow, styled: bool) -> str:
    if not styled or not segment.text:
        return segment.text
    return row.theme.style(segment.text, segment.role, row.depth)


def color_row(row: FittedRow, styled: bool = True) -> str:
    """Join a row's cells with its gap.

    Cells that collapsed to zero width take their gap with them, so a root
    row does not start with a stray space. Trailing padding is stripped.
    """
    parts = [
        "".join(_style_segment(segment, row, styled) for segment in cell.segments)
        for cell in row.cells
        if cell.width > 0
    ]
    return (" " * row.gap).join(parts).rstrip()


def color_frame(frame: FittedFrame, styled: bool = True) -> list[str]:
    """One string per rendered line, in render order."""
    return [color_row(row, styled) for row in frame.rows]


def color_blocks(frame: FittedFrame, styled: bool = True) -> list[list[str]]:
    """Lines grouped per task block, for callers that emit tasks selectively."""
    return [[color_row(row, styled) for row in block.rows] for block in frame.blocks]
