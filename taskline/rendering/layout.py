"""Column layout engine.

Resolves concrete cell widths for one logical row and fits each cell's
segments to its width. Works on unstyled, role-tagged segments so the
Color stage can style the result afterwards.

Width resolution for a row:
    1. Base widths from each cell's track and intrinsic size, clamped.
    2. Leftover space goes to Fraction cells by weight.
    3. On overflow, truncatable cells give up width in collapse-priority
       order, then every cell shrinks proportionally.
    4. Cells that collapsed to zero width drop their gap; the freed space
       goes back to the cells still drawn.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional, Union

from taskline.rendering.ansi import ELLIPSIS, WrapMode
from taskline.rendering.theme import ThemeRole


# Cells without an explicit priority collapse last
LAST_PRIORITY = 2**31 - 1


@dataclass(frozen=True, slots=True)
class Segment:
    """Unstyled text tagged with the theme role that will style it."""

    text: str
    role: ThemeRole = "plain"


@dataclass(frozen=True, slots=True)
class Auto:
    """Size to the cell's intrinsic content."""


@dataclass(frozen=True, slots=True)
class Fixed:
    width: int


@dataclass(frozen=True, slots=True)
class Fraction:
    """Claim a weighted share of the row's leftover space."""

    weight: float = 1.0


Track = Union[Auto, Fixed, Fraction]


def fixed(width: int) -> Fixed:
    return Fixed(max(0, math.floor(width)))


def fraction(weight: float = 1.0) -> Fraction:
    return Fraction(max(0.001, weight))


@dataclass(frozen=True)
class CellModel:
    """Logical, uncolored cell produced by the build stage.

    Attributes:
        id: Column identifier, e.g. ``"bar"``.
        segments: Content at intrinsic size.
        track: How the cell claims width.
        min_width: Width the cell never shrinks below.
        max_width: Width the cell never grows beyond.
        wrap_mode: How content longer than the width is cut.
        collapse_priority: Lower values give up width first.
        intrinsic_width: Preferred width when ``segments`` does not say.
        render_at_width: Re-renders content for a resolved width, for
            content that adapts (a bar).
    """

    id: str
    segments: tuple[Segment, ...] = ()
    track: Track = Auto()
    min_width: int = 0
    max_width: Optional[int] = None
    wrap_mode: WrapMode = "truncate"
    collapse_priority: int = LAST_PRIORITY
    intrinsic_width: Optional[int] = None
    render_at_width: Optional[Callable[[int], Sequence[Segment]]] = None

    @property
    def intrinsic(self) -> int:
        if self.intrinsic_width is not None:
            return max(0, math.floor(self.intrinsic_width))
        return segments_width(self.segments)

    @property
    def bounds(self) -> tuple[int, Optional[int]]:
        low = max(0, math.floor(self.min_width))
        high = None if self.max_width is None else max(low, math.floor(self.max_width))
        return low, high

    def content_at(self, width: int) -> Sequence[Segment]:
        if self.render_at_width is not None:
            return self.render_at_width(width)
        return self.segments


@dataclass(frozen=True)
class LogicalRow:
    """One display line of cells, before width fitting."""

    cells: tuple[CellModel, ...]
    gap: int = 1


def segments_width(segments: Sequence[Segment]) -> int:
    return sum(len(segment.text) for segment in segments)


def ratio_distribute(
    total: int,
    ratios: Sequence[float],
    minimums: Optional[Sequence[int]] = None,
) -> list[int]:
    """Split ``total`` into integer shares proportional to ``ratios``.

    Each share is rounded up and taken out of a running pool, so the
    shares always add up to exactly ``total`` with no rounding drift.

    Args:
        total: Amount to distribute, minimums included.
        ratios: Relative weight of each share.
        minimums: Amount each share starts with.

    Returns:
        One amount per ratio.
    """
    amounts = list(minimums) if minimums is not None else [0] * len(ratios)
    remaining = max(0, total - sum(amounts))
    total_ratio = sum(ratios)

    for index, ratio in enumerate(ratios):
        if remaining <= 0:
            break
        share = math.ceil(ratio * remaining / total_ratio) if total_ratio > 0 else 0
        amounts[index] += share
        remaining -= share
        total_ratio -= ratio

    return amounts


def resolve_total_width(
    terminal_columns: Optional[int], max_width: Optional[int]
) -> Optional[int]:
    """Target row width from the terminal size and the configured cap."""
    cap = None if max_width is None else max(1, math.floor(max_width))
    if terminal_columns is None:
        return cap
    columns = max(1, math.floor(terminal_columns))
    return columns if cap is None else min(columns, cap)


def _shrink_by_priority(
    widths: list[int],
    minimums: Sequence[int],
    cells: Sequence[CellModel],
    overflow: int,
) -> int:
    """First collapse pass: truncatable cells only, lowest priority first."""
    order = sorted(
        (index for index, cell in enumerate(cells) if cell.wrap_mode == "truncate"),
        key=lambda index: cells[index].collapse_priority,
    )
    for index in order:
        if overflow <= 0:
            break
        available = max(0, widths[index] - minimums[index])
        if available <= 0:
            continue
        reduce_by = min(available, overflow)
        widths[index] -= reduce_by
        overflow -= reduce_by
    return overflow


def _shrink_proportionally(
    widths: list[int],
    minimums: Sequence[int],
    overflow: int,
) -> int:
    """Last-resort pass: every reducible cell shrinks by its share."""
    while overflow > 0:
        reducible = [
            index for index, width in enumerate(widths) if width - minimums[index] > 0
        ]
        if not reducible:
            break

        shares = ratio_distribute(overflow, [max(1, widths[index]) for index in reducible])
        reduced = 0
        for index, share in zip(reducible, shares):
            reduce_by = min(widths[index] - minimums[index], share)
            if reduce_by <= 0:
                continue
            widths[index] -= reduce_by
            overflow -= reduce_by
            reduced += reduce_by

        if reduced <= 0:
            break
    return overflow


def _gap_total(widths: Sequence[int], gap: int) -> int:
    """Gaps only separate cells that are actually drawn."""
    drawn = sum(1 for width in widths if width > 0)
    return gap * max(0, drawn - 1)


def _return_freed_space(
    widths: list[int],
    before: Sequence[int],
    cells: Sequence[CellModel],
    total_width: int,
    gap: int,
) -> None:
    """Hand width freed by collapsed cells and their gaps back to the row.

    Surviving cells regain what they lost, highest priority first. Any
    surplus after that goes to the survivor that collapses first, so the
    row still spans ``total_width`` exactly.
    """
    surplus = total_width - sum(widths) - _gap_total(widths, gap)
    survivors = sorted(
        (index for index, width in enumerate(widths) if width > 0),
        key=lambda index: cells[index].collapse_priority,
        reverse=True,
    )
    for index in survivors:
        if surplus <= 0:
            return
        grow = min(before[index] - widths[index], surplus)
        if grow > 0:
            widths[index] += grow
            surplus -= grow

    if surplus > 0 and survivors:
        widths[survivors[-1]] += surplus


def resolve_row_widths(row: LogicalRow, total_width: Optional[int]) -> list[int]:
    """Resolve a concrete width for every cell of ``row``.

    Args:
        row: Cells to lay out.
        total_width: Target width including gaps, or None to size every
            cell to its content with no collapsing.

    Returns:
        One width per cell. When the row overflows and the target is at
        least the sum of minimums plus gaps, the widths plus the gaps
        between non-zero cells add up to exactly ``total_width``.
    """
    cells = row.cells
    if not cells:
        return []

    gap = max(0, row.gap)
    bounds = [cell.bounds for cell in cells]
    minimums = [low for low, _ in bounds]
    widths: list[int] = []

    for cell, (low, high) in zip(cells, bounds):
        track = cell.track
        if isinstance(track, Fixed):
            base = max(low, track.width)
        elif isinstance(track, Fraction):
            base = low
        else:
            base = max(low, cell.intrinsic)
        widths.append(base if high is None else min(max(base, low), high))

    if total_width is None:
        return widths

    fractions = [
        (index, cell.track.weight)
        for index, cell in enumerate(cells)
        if isinstance(cell.track, Fraction)
    ]
    # Fraction cells are drawn once they get a share, so they count for gaps
    occupied = [
        width > 0 or isinstance(cell.track, Fraction) for width, cell in zip(widths, cells)
    ]
    gaps = gap * max(0, sum(occupied) - 1)
    remaining = total_width - gaps - sum(widths)

    if remaining > 0 and fractions:
        shares = ratio_distribute(remaining, [weight for _, weight in fractions])
        for (index, _), share in zip(fractions, shares):
            widths[index] += share
        remaining = total_width - gaps - sum(widths)

    if remaining < 0:
        before = list(widths)
        overflow = _shrink_by_priority(widths, minimums, cells, -remaining)
        if overflow > 0:
            _shrink_proportionally(widths, minimums, overflow)
        _return_freed_space(widths, before, cells, total_width, gap)

    resolved = []
    for width, (low, high) in zip(widths, bounds):
        width = max(low, width)
        resolved.append(width if high is None else min(width, high))
    return resolved


def fit_segments(
    segments: Sequence[Segment],
    width: int,
    wrap_mode: WrapMode = "truncate",
) -> tuple[Segment, ...]:
    """Cut or pad role-tagged segments to exactly ``width`` characters.

    Truncation works per character so each kept character keeps its role;
    an ellipsis takes the role of the character before it, and padding is
    plain spaces.
    """
    target = max(0, math.floor(width))
    if target == 0:
        return ()

    chars = [(char, segment.role) for segment in segments for char in segment.text]

    if len(chars) > target:
        if wrap_mode == "ellipsis":
            if target == 1:
                chars = [(ELLIPSIS, chars[0][1])]
            else:
                chars = chars[: target - 1]
                chars.append((ELLIPSIS, chars[-1][1]))
        else:
            chars = chars[:target]

    fitted: list[Segment] = []
    for char, role in chars:
        if fitted and fitted[-1].role == role:
            fitted[-1] = Segment(fitted[-1].text + char, role)
        else:
            fitted.append(Segment(char, role))

    if len(chars) < target:
        fitted.append(Segment(" " * (target - len(chars)), "plain"))
    return tuple(fitted)
