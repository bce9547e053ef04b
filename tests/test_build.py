"""Tests for the build -> fit -> color pipeline."""

from typing import Optional

import pytest

from conftest import ManualClock
from taskline.application import TaskStore
from taskline.models import ProgressBarConfig
from taskline.rendering.ansi import strip_ansi
from taskline.rendering.build import (
    ETA_PLACEHOLDER,
    RowShape,
    build_frame,
    format_duration,
    format_eta,
    row_shape,
)
from taskline.rendering.color import color_frame
from taskline.rendering.fit import fit_frame
from taskline.rendering.theme import DEFAULT_THEME, PLAIN_THEME


def render_lines(
    store: TaskStore,
    clock: ManualClock,
    width: Optional[int] = None,
    tick: int = 0,
    layout: str = "single-line",
    styled: bool = False,
) -> list[str]:
    ordered = store.view().ordered_tasks(DEFAULT_THEME if styled else PLAIN_THEME)
    frame = build_frame(ordered, now=clock.now(), tick=tick, layout=layout)
    return color_frame(fit_frame(frame, width), styled=styled)


@pytest.fixture
def small_bars(clock: ManualClock) -> TaskStore:
    """Store whose bars are ten columns wide."""
    return TaskStore(clock=clock, progressbar=ProgressBarConfig(bar_width=10))


class TestFormatting:
    """Tests for duration and ETA formatting."""

    @pytest.mark.parametrize(
        ("seconds", "precise", "expected"),
        [
            (0, False, "0s"),
            (0, True, "0ms"),
            (5.9, False, "5s"),
            (65, False, "1m 5s"),
            (3725, False, "1h 2m 5s"),
            (2.34, True, "2s 340ms"),
            (60, True, "1m"),
        ],
    )
    def test_format_duration(self, seconds: float, precise: bool, expected: str) -> None:
        """Test duration strings with and without milliseconds."""
        assert format_duration(seconds, precise) == expected

    def test_eta_for_running_bar(self, store: TaskStore, clock: ManualClock) -> None:
        """Test ETA as elapsed times remaining over completed."""
        task_id = store.add_task("bar", total=10)
        store.advance_task(task_id, 2)
        clock.advance(4)

        assert format_eta(store.get_task(task_id), clock.now()) == "ETA: 16s"

    def test_eta_placeholder_without_progress(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that no progress means no estimate."""
        task_id = store.add_task("bar", total=10)
        clock.advance(4)

        assert format_eta(store.get_task(task_id), clock.now()) == ETA_PLACEHOLDER

    def test_eta_placeholder_when_finished(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that finished tasks show no estimate."""
        task_id = store.add_task("bar", total=10)
        store.complete_task(task_id)

        assert format_eta(store.get_task(task_id), clock.now()) == ETA_PLACEHOLDER


class TestRowShape:
    """Tests for row shape selection."""

    def test_shapes(self, store: TaskStore) -> None:
        """Test that each kind of task maps to its shape."""
        bar = store.add_task("bar", total=3)
        spinner = store.add_task("spin")
        settled = store.add_task("settled")
        store.complete_task(settled)

        assert row_shape(store.get_task(bar), "single-line") == RowShape.PROGRESS
        assert row_shape(store.get_task(bar), "two-lines") == RowShape.PROGRESS_TWO_LINE
        assert row_shape(store.get_task(spinner), "single-line") == RowShape.SPINNER
        assert row_shape(store.get_task(settled), "single-line") == RowShape.SETTLED


class TestRenderedRows:
    """Tests for the text of rendered rows."""

    def test_running_bar(self, small_bars: TaskStore, clock: ManualClock) -> None:
        """Test a half-done root bar with its units and ETA."""
        task_id = small_bars.add_task("download", total=10)
        small_bars.advance_task(task_id, 5)
        clock.advance(5)

        assert render_lines(small_bars, clock) == ["download ━━━━━───── 5/10 ETA: 5s"]

    def test_finished_bar_shows_elapsed(self, small_bars: TaskStore, clock: ManualClock) -> None:
        """Test that a done bar is full and shows precise elapsed time."""
        task_id = small_bars.add_task("download", total=4)
        clock.advance(1.5)
        small_bars.complete_task(task_id)

        assert render_lines(small_bars, clock) == ["download ━━━━━━━━━━ 4/4 1s 500ms"]

    def test_failed_bar_keeps_marker(self, small_bars: TaskStore, clock: ManualClock) -> None:
        """Test that a failed bar keeps units and adds the failed marker."""
        task_id = small_bars.add_task("upload", total=4)
        small_bars.advance_task(task_id, 1)
        clock.advance(2)
        small_bars.fail_task(task_id)

        assert render_lines(small_bars, clock) == ["upload ━━──────── 1/4 failed 2s"]

    def test_spinner_frame_follows_tick(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that the spinner glyph is indexed by phase plus tick."""
        store.add_task("spin", progressbar={"spinner_frames": ["a", "b", "c"]})

        assert render_lines(store, clock, tick=4) == ["b spin 0s"]

    def test_settled_spinner(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that a finished spinner shows its status and elapsed time."""
        task_id = store.add_task("spin")
        clock.advance(1.25)
        store.complete_task(task_id)

        assert render_lines(store, clock) == ["spin done 1s 250ms"]

    def test_tree_connectors(self, store: TaskStore, clock: ManualClock) -> None:
        """Test connectors for a root with two children."""
        root = store.add_task("root")
        store.add_task("a", parent_id=root)
        store.add_task("b", parent_id=root)

        lines = render_lines(store, clock)

        assert lines[1].startswith("├─ ")
        assert lines[2].startswith("└─ ")
        assert not lines[0].startswith(" ")

    def test_hidden_transient_not_drawn(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that removed transient tasks do not render."""
        root = store.add_task("root")
        child = store.add_task("child", parent_id=root, transient=True)
        store.complete_task(child)

        assert len(render_lines(store, clock)) == 1

    def test_two_line_layout(self, clock: ManualClock) -> None:
        """Test that two-line rows put the bar under the description."""
        store = TaskStore(clock=clock, progressbar=ProgressBarConfig(bar_width=4))
        root = store.add_task("root", total=2)
        store.add_task("child", total=2, parent_id=root)

        assert render_lines(store, clock, layout="two-lines") == [
            "root",
            "──── 0/2 ETA: --",
            "└─  child",
            "    ──── 0/2 ETA: --",
        ]

    def test_styled_matches_plain(self, small_bars: TaskStore, clock: ManualClock) -> None:
        """Test that styling adds escapes without changing visible text."""
        task_id = small_bars.add_task("download", total=10)
        small_bars.advance_task(task_id, 3)

        styled = render_lines(small_bars, clock, styled=True)
        plain = render_lines(small_bars, clock)

        assert "\x1b[" in styled[0]
        assert [strip_ansi(line) for line in styled] == plain


class TestCollapse:
    """Tests for width-constrained rows."""

    def narrow_store(self, clock: ManualClock) -> TaskStore:
        store = TaskStore(clock=clock)
        root = store.add_task("root")
        store.add_task("download", total=10, parent_id=root)
        return store

    def test_eta_and_connector_drop_first(self, clock: ManualClock) -> None:
        """Test that ETA and connector collapse while the description survives."""
        lines = render_lines(self.narrow_store(clock), clock, width=13)

        assert "download" in lines[1]
        assert "ETA" not in lines[1]
        assert "└" not in lines[1]

    def test_description_truncated_last(self, clock: ManualClock) -> None:
        """Test that at width 8 the description is cut with an ellipsis."""
        lines = render_lines(self.narrow_store(clock), clock, width=8)

        assert "ETA" not in lines[1]
        assert "└" not in lines[1]
        assert lines[1] == "downl… ─"
        assert "download" not in lines[1]

    def test_wide_row_keeps_everything(self, clock: ManualClock) -> None:
        """Test that a wide enough row drops nothing."""
        lines = render_lines(self.narrow_store(clock), clock, width=120)

        assert lines[1].startswith("└─  download")
        assert lines[1].endswith("0/10 ETA: --")

    @pytest.mark.parametrize("width", [8, 9, 12, 13, 20, 40])
    def test_collapsed_row_spans_target(self, clock: ManualClock, width: int) -> None:
        """Test that a collapsed row still fills the target width exactly."""
        lines = render_lines(self.narrow_store(clock), clock, width=width)

        assert len(lines[1]) == width

    def test_freed_gaps_go_to_description(self, clock: ManualClock) -> None:
        """Test that space freed by dropped columns keeps the description whole."""
        lines = render_lines(self.narrow_store(clock), clock, width=12)

        assert lines[1] == "download ───"
