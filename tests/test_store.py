"""Tests for application/store.py - the task registry."""

import threading

import pytest
from pydantic import ValidationError

from conftest import ManualClock
from taskline.application import TaskStore
from taskline.domain.task import (
    DeterminateUnits,
    IndeterminateUnits,
    TaskId,
    TaskStatus,
)
from taskline.models import ProgressBarConfig, merge_config
from taskline.rendering.theme import PLAIN_THEME, Theme


class TestAddTask:
    """Tests for TaskStore.add_task."""

    def test_ids_increase(self, store: TaskStore) -> None:
        """Test that ids are unique and increasing."""
        first = store.add_task("a")
        second = store.add_task("b")

        assert second > first

    def test_positive_total_is_determinate(self, store: TaskStore) -> None:
        """Test that a positive total starts a bar at zero."""
        task_id = store.add_task("bar", total=10)

        assert store.get_task(task_id).units == DeterminateUnits(0, 10)

    @pytest.mark.parametrize("total", [None, 0, -3])
    def test_missing_total_is_indeterminate(self, store: TaskStore, total) -> None:
        """Test that no total, zero or negative starts a spinner."""
        task_id = store.add_task("spin", total=total)

        assert store.get_task(task_id).units == IndeterminateUnits(0)

    def test_records_start_time(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that started_at comes from the clock."""
        task_id = store.add_task("a")

        snapshot = store.get_task(task_id)
        assert snapshot.started_at == clock.now()
        assert snapshot.completed_at is None
        assert snapshot.status == TaskStatus.RUNNING

    def test_unknown_parent_becomes_root(self, store: TaskStore) -> None:
        """Test that an unknown parent id yields a root task."""
        task_id = store.add_task("orphan", parent_id=TaskId(999))

        assert store.get_task(task_id).parent_id is None
        assert store.render_order()[0].depth == 0

    def test_marks_dirty(self, store: TaskStore) -> None:
        """Test that adding a task sets the dirty flag once."""
        store.add_task("a")

        assert store.consume_dirty() is True
        assert store.consume_dirty() is False

    def test_invalid_override_rejected(self, store: TaskStore) -> None:
        """Test that an invalid bar override raises before anything is added."""
        with pytest.raises(ValidationError):
            store.add_task("bad", progressbar={"spinner_frames": []})

        assert store.list_tasks() == []


class TestConfigInheritance:
    """Tests for per-task config resolution."""

    def test_child_merges_over_parent(self, store: TaskStore) -> None:
        """Test that a child's config is the parent's config plus its override."""
        parent = store.add_task("parent", progressbar={"bar_width": 10, "fill_char": "#"})
        child = store.add_task("child", parent_id=parent, progressbar={"empty_char": "."})

        parent_config = store.get_task(parent).config
        expected = ProgressBarConfig.model_validate(
            merge_config(parent_config.model_dump(), {"empty_char": "."})
        )
        assert store.get_task(child).config == expected
        assert store.get_task(child).config.bar_width == 10

    def test_sibling_isolation(self, store: TaskStore) -> None:
        """Test that siblings with different overrides do not affect each other."""
        parent = store.add_task("parent", progressbar={"bar_width": 12})
        first = store.add_task("a", parent_id=parent, progressbar={"spinner_frames": ["x"]})
        second = store.add_task("b", parent_id=parent, progressbar={"bar_width": 3})

        assert store.get_task(first).config.spinner_frames == ["x"]
        assert store.get_task(first).config.bar_width == 12
        assert store.get_task(second).config.bar_width == 3
        assert store.get_task(second).config.spinner_frames == ProgressBarConfig().spinner_frames
        assert store.get_task(parent).config.bar_width == 12

    def test_lists_replace(self) -> None:
        """Test that merge_config replaces lists instead of concatenating."""
        merged = merge_config({"spinner_frames": ["a", "b"]}, {"spinner_frames": ["c"]})

        assert merged["spinner_frames"] == ["c"]

    def test_theme_inherited(self, store: TaskStore) -> None:
        """Test that children are bound to their parent's theme."""
        theme = Theme.from_styles({"text": "bold"})
        parent = store.add_task("parent", theme=theme)
        child = store.add_task("child", parent_id=parent)

        assert store.view().themes[child] is theme


class TestUpdateAndAdvance:
    """Tests for update_task and advance_task."""

    def test_advance_clamps(self, store: TaskStore) -> None:
        """Test that completed never exceeds total or drops below zero."""
        task_id = store.add_task("bar", total=3)
        for amount in [1, 5, -10, 2, 2, 2]:
            store.advance_task(task_id, amount)
            units = store.get_task(task_id).units
            assert 0 <= units.completed <= units.total

        assert store.get_task(task_id).units.completed == 3

    def test_advance_spinner_wraps(self, store: TaskStore) -> None:
        """Test that spinner phase wraps modulo the frame count."""
        task_id = store.add_task("spin", progressbar={"spinner_frames": ["a", "b", "c"]})
        store.advance_task(task_id, 4)

        assert store.get_task(task_id).units == IndeterminateUnits(1)

    def test_update_completed_clamped(self, store: TaskStore) -> None:
        """Test that a completed value past the total is clamped."""
        task_id = store.add_task("bar", total=5)
        store.update_task(task_id, completed=9)

        assert store.get_task(task_id).units == DeterminateUnits(5, 5)

    def test_zero_total_becomes_spinner(self, store: TaskStore) -> None:
        """Test that a total <= 0 converts a bar back to a spinner."""
        task_id = store.add_task("bar", total=5)
        store.advance_task(task_id, 2)
        store.update_task(task_id, total=0)

        assert store.get_task(task_id).units == IndeterminateUnits(0)

    def test_positive_total_becomes_bar(self, store: TaskStore) -> None:
        """Test that a positive total converts a spinner into a bar."""
        task_id = store.add_task("spin")
        store.update_task(task_id, total=4, completed=1)

        assert store.get_task(task_id).units == DeterminateUnits(1, 4)

    def test_new_total_keeps_progress(self, store: TaskStore) -> None:
        """Test that shrinking the total clamps existing progress."""
        task_id = store.add_task("bar", total=10)
        store.advance_task(task_id, 8)
        store.update_task(task_id, total=6)

        assert store.get_task(task_id).units == DeterminateUnits(6, 6)

    def test_description(self, store: TaskStore) -> None:
        """Test that the description can change."""
        task_id = store.add_task("old")
        store.update_task(task_id, description="new")

        assert store.get_task(task_id).description == "new"

    def test_unknown_ids_are_noops(self, store: TaskStore) -> None:
        """Test that operations on unknown ids change nothing."""
        store.add_task("a")
        store.consume_dirty()
        missing = TaskId(42)

        store.update_task(missing, description="x")
        store.advance_task(missing)
        store.complete_task(missing)
        store.fail_task(missing)

        assert store.get_task(missing) is None
        assert store.consume_dirty() is False


class TestFinish:
    """Tests for complete_task and fail_task."""

    def test_complete_snaps_to_total(self, store: TaskStore, clock: ManualClock) -> None:
        """Test that completing a bar fills it and records completion time."""
        task_id = store.add_task("bar", total=10)
        store.advance_task(task_id, 3)
        clock.advance(2.5)
        store.complete_task(task_id)

        snapshot = store.get_task(task_id)
        assert snapshot.status == TaskStatus.DONE
        assert snapshot.units == DeterminateUnits(10, 10)
        assert snapshot.completed_at == snapshot.started_at + 2.5

    def test_fail_keeps_progress(self, store: TaskStore) -> None:
        """Test that failing a bar keeps its progress."""
        task_id = store.add_task("bar", total=10)
        store.advance_task(task_id, 3)
        store.fail_task(task_id)

        snapshot = store.get_task(task_id)
        assert snapshot.status == TaskStatus.FAILED
        assert snapshot.units == DeterminateUnits(3, 10)

    @pytest.mark.parametrize("finish", ["complete_task", "fail_task"])
    def test_transient_removed(self, store: TaskStore, finish: str) -> None:
        """Test that finished transient tasks leave the store."""
        task_id = store.add_task("temp", transient=True)
        getattr(store, finish)(task_id)

        assert store.get_task(task_id) is None
        assert store.list_tasks() == []
        assert store.render_order() == ()

    def test_transient_removes_subtree(self, store: TaskStore) -> None:
        """Test that removing a transient task removes its descendants."""
        root = store.add_task("root")
        temp = store.add_task("temp", parent_id=root, transient=True)
        store.add_task("child", parent_id=temp)
        store.complete_task(temp)

        assert [snapshot.id for snapshot in store.list_tasks()] == [root]

    def test_transient_inherited(self, store: TaskStore) -> None:
        """Test that a child of a transient task is transient too."""
        parent = store.add_task("parent", transient=True)
        child = store.add_task("child", parent_id=parent, transient=False)

        assert store.get_task(child).transient is True
        store.complete_task(child)
        assert store.get_task(child) is None
        assert store.get_task(parent) is not None

    def test_transient_update_respects_ancestor(self, store: TaskStore) -> None:
        """Test that a child cannot opt out of an ancestor's transience."""
        parent = store.add_task("parent", transient=True)
        child = store.add_task("child", parent_id=parent)
        store.update_task(child, transient=False)

        assert store.get_task(child).transient is True

    def test_finished_task_made_transient_removed(self, store: TaskStore) -> None:
        """Test that marking a finished task transient drops it and its subtree."""
        root = store.add_task("root")
        done = store.add_task("done", parent_id=root)
        store.add_task("child", parent_id=done)
        store.complete_task(done)
        store.consume_dirty()

        store.update_task(done, transient=True)

        assert store.get_task(done) is None
        assert [snapshot.id for snapshot in store.list_tasks()] == [root]
        assert store.consume_dirty() is True

    def test_running_task_made_transient_kept(self, store: TaskStore) -> None:
        """Test that a running task made transient stays until it finishes."""
        task_id = store.add_task("work")
        store.update_task(task_id, transient=True)

        assert store.get_task(task_id).transient is True
        store.complete_task(task_id)
        assert store.get_task(task_id) is None


class TestRenderOrder:
    """Tests for depth-first ordering."""

    def test_child_inserted_after_parent_descendants(self, store: TaskStore) -> None:
        """Test that a new child lands after its parent's existing subtree."""
        a = store.add_task("a")
        b = store.add_task("b")
        a1 = store.add_task("a1", parent_id=a)
        a1x = store.add_task("a1x", parent_id=a1)
        a2 = store.add_task("a2", parent_id=a)

        order = [(row.id, row.depth) for row in store.render_order()]
        assert order == [(a, 0), (a1, 1), (a1x, 2), (a2, 1), (b, 0)]

    def test_ids_match_map(self, store: TaskStore) -> None:
        """Test that render order and the task map hold the same ids."""
        root = store.add_task("root")
        for i in range(5):
            store.add_task(f"c{i}", parent_id=root, transient=i % 2 == 0)
        for snapshot in store.list_tasks():
            if snapshot.transient:
                store.complete_task(snapshot.id)

        view = store.view()
        assert {row.id for row in view.order} == set(view.tasks)

    def test_view_hides_nothing_while_running(self, store: TaskStore) -> None:
        """Test that ordered_tasks includes every running task with a theme."""
        store.add_task("a")
        store.add_task("b")

        ordered = store.view().ordered_tasks(PLAIN_THEME)
        assert [entry.snapshot.description for entry in ordered] == ["a", "b"]
        assert all(entry.theme is PLAIN_THEME for entry in ordered)


class TestConcurrency:
    """Tests for concurrent producers."""

    def test_concurrent_advances(self, store: TaskStore) -> None:
        """Test that concurrent advances are never lost."""
        task_id = store.add_task("bar", total=4000)

        def worker() -> None:
            for _ in range(1000):
                store.advance_task(task_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.get_task(task_id).units.completed == 4000
