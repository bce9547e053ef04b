"""Render pipeline for taskline.

Turns task snapshots into terminal lines in three stages, each pure:

- build: snapshots to logical rows of role-tagged cells
- fit: column widths resolved and every cell fitted to its width
- color: theme transforms applied and cells joined into lines

Supporting modules:
    ansi - Escape-aware width measurement and fitting
    layout - Track sizing and overflow collapse
    theme - Role-to-style transforms
"""

from taskline.rendering.ansi import fit_rendered_text, strip_ansi, visible_width
from taskline.rendering.build import FrameModel, OrderedTask, RowShape, build_frame
from taskline.rendering.color import color_blocks, color_frame
from taskline.rendering.fit import FittedFrame, fit_frame
from taskline.rendering.layout import (
    CellModel,
    LogicalRow,
    Segment,
    fit_segments,
    fixed,
    fraction,
    ratio_distribute,
    resolve_row_widths,
)
from taskline.rendering.theme import DEFAULT_THEME, PLAIN_THEME, Theme, ThemeRole

__all__ = [
    # Text metrics
    "fit_rendered_text",
    "strip_ansi",
    "visible_width",
    # Build
    "OrderedTask",
    "FrameModel",
    "RowShape",
    "build_frame",
    # Layout
    "CellModel",
    "LogicalRow",
    "Segment",
    "fixed",
    "fraction",
    "fit_segments",
    "ratio_distribute",
    "resolve_row_widths",
    # Fit and color
    "FittedFrame",
    "fit_frame",
    "color_frame",
    "color_blocks",
    # Theme
    "Theme",
    "ThemeRole",
    "DEFAULT_THEME",
    "PLAIN_THEME",
]
