"""Tree topology for depth-first task listings.

All functions in this module are pure - no I/O, no side effects.
They take a depth-first ordered listing and return connector metadata.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

LineVariant = Literal["lead", "continuation"]

BRANCH = "├─ "
LAST_BRANCH = "└─ "
TRUNK = "│  "
BLANK = "   "


@dataclass(frozen=True, slots=True)
class TreeInfo:
    """Connector state for one entry of a depth-first listing.

    Attributes:
        depth: Nesting depth, 0 for roots.
        has_next_sibling: A later entry shares this depth before any
            shallower entry appears.
        has_children: The next entry is deeper than this one.
        ancestor_has_next_sibling: ``has_next_sibling`` of each ancestor,
            indexed by ancestor depth.
    """

    depth: int
    has_next_sibling: bool
    has_children: bool
    ancestor_has_next_sibling: tuple[bool, ...]


def compute_tree_info(depths: Sequence[int]) -> list[TreeInfo]:
    """Compute connector state for a depth-first listing.

    Runs in linear time: a backward pass over a depth-indexed stack finds
    next siblings, and a forward pass over a second stack records what each
    ancestor looked like when it was visited.

    Args:
        depths: Depth of each entry, in render order.

    Returns:
        One TreeInfo per entry, in the same order.
    """
    count = len(depths)
    has_next_sibling = [False] * count

    # seen[d] is True when an entry at depth d appears later without a
    # shallower entry in between
    seen: list[bool] = []
    for index in range(count - 1, -1, -1):
        depth = depths[index]
        has_next_sibling[index] = depth < len(seen) and seen[depth]
        del seen[depth + 1 :]
        while len(seen) <= depth:
            seen.append(False)
        seen[depth] = True

    result: list[TreeInfo] = []
    ancestors: list[bool] = []
    for index, depth in enumerate(depths):
        del ancestors[depth:]
        while len(ancestors) < depth:
            ancestors.append(False)
        result.append(
            TreeInfo(
                depth=depth,
                has_next_sibling=has_next_sibling[index],
                has_children=index + 1 < count and depths[index + 1] > depth,
                ancestor_has_next_sibling=tuple(ancestors),
            )
        )
        ancestors.append(has_next_sibling[index])
    return result


def render_tree_prefix(tree: TreeInfo, variant: LineVariant = "lead") -> str:
    """Render the box-drawing prefix for a row.

    Roots get no prefix. The ancestor at depth 0 is a root and draws no
    column of its own, so vertical bars start with the depth-1 ancestor.

    Example:
        depth 2, next sibling, ancestors [True, False] -> "   ├─ "
    """
    if tree.depth <= 0:
        return ""

    ancestor = "".join(
        TRUNK if has_next else BLANK for has_next in tree.ancestor_has_next_sibling[1:]
    )
    if variant == "lead":
        return ancestor + (BRANCH if tree.has_next_sibling else LAST_BRANCH)

    trunk = ancestor + (TRUNK if tree.has_next_sibling else BLANK)
    if tree.has_children:
        return trunk + TRUNK
    return trunk
