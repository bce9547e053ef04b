"""Tests for domain/task/traversal.py - tree topology and prefixes."""

from taskline.domain.task import TreeInfo, compute_tree_info, render_tree_prefix


class TestComputeTreeInfo:
    """Tests for compute_tree_info."""

    def test_mixed_listing(self) -> None:
        """Test sibling, child and ancestor state for a small tree."""
        info = compute_tree_info([0, 1, 1, 2, 0])

        assert info[0].has_next_sibling is True
        assert info[0].has_children is True
        assert info[1].has_next_sibling is True
        assert info[1].has_children is False
        assert info[2].has_next_sibling is False
        assert info[2].has_children is True
        assert info[3].ancestor_has_next_sibling == (True, False)
        assert info[4].has_next_sibling is False
        assert info[4].ancestor_has_next_sibling == ()

    def test_shallower_entry_ends_sibling_run(self) -> None:
        """Test that a shallower entry in between breaks the sibling link."""
        info = compute_tree_info([0, 1, 0, 1])

        assert info[1].has_next_sibling is False
        assert info[0].has_next_sibling is True

    def test_empty(self) -> None:
        """Test that an empty listing gives no entries."""
        assert compute_tree_info([]) == []

    def test_single_root(self) -> None:
        """Test a lone root."""
        assert compute_tree_info([0]) == [TreeInfo(0, False, False, ())]


class TestRenderTreePrefix:
    """Tests for render_tree_prefix."""

    def test_root_has_no_prefix(self) -> None:
        """Test that depth-0 rows get no connector."""
        assert render_tree_prefix(TreeInfo(0, True, True, ())) == ""

    def test_branch_and_last_branch(self) -> None:
        """Test lead connectors for middle and last children."""
        info = compute_tree_info([0, 1, 1])

        assert render_tree_prefix(info[1]) == "├─ "
        assert render_tree_prefix(info[2]) == "└─ "

    def test_grandchild_draws_ancestor_trunk(self) -> None:
        """Test that an ancestor with later siblings draws a vertical bar."""
        info = compute_tree_info([0, 1, 2, 1])

        assert render_tree_prefix(info[2]) == "│  └─ "

    def test_grandchild_of_last_child(self) -> None:
        """Test that a finished ancestor branch draws blank space."""
        info = compute_tree_info([0, 1, 1, 2])

        assert render_tree_prefix(info[3]) == "   └─ "

    def test_continuation_variant(self) -> None:
        """Test continuation prefixes for the second line of a row."""
        info = compute_tree_info([0, 1, 2, 1])

        assert render_tree_prefix(info[1], "continuation") == "│  │  "
        assert render_tree_prefix(info[3], "continuation") == "   "
