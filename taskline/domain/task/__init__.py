"""Task domain - snapshots, units and tree topology.

This module provides the domain layer for taskline's task tracking.
All exports are pure (no I/O, no side effects).

Key Types:
    TaskId - Store-unique task identity
    TaskStatus - Task state enumeration
    DeterminateUnits - Known-total progress
    IndeterminateUnits - Spinner progress
    TaskSnapshot - Immutable task state
    RenderRow - Position in the depth-first render order
    TreeInfo - Connector state for one rendered row

Traversal Functions:
    compute_tree_info - Sibling/ancestor state for a depth-first listing
    render_tree_prefix - Box-drawing prefix for a row
"""

from .models import (
    DeterminateUnits,
    IndeterminateUnits,
    RenderRow,
    TaskId,
    TaskSnapshot,
    TaskStatus,
    TaskUnits,
)
from .traversal import LineVariant, TreeInfo, compute_tree_info, render_tree_prefix

__all__ = [
    # Models
    "TaskId",
    "TaskStatus",
    "DeterminateUnits",
    "IndeterminateUnits",
    "TaskUnits",
    "TaskSnapshot",
    "RenderRow",
    # Traversal
    "LineVariant",
    "TreeInfo",
    "compute_tree_info",
    "render_tree_prefix",
]
