"""Hierarchical diff trees between snapshots.

- ``nodes``    -- ``DiffKind``, ``TypedElement``, ``DiffNode``, ``FolderNode``.
- ``builder``  -- ``DiffTreeBuilder``: two-way comparison.
- ``merge``    -- ``MergeTreeBuilder``: conflict-aware comparison.
- ``collapse`` -- single-child folder chain collapsing.
- ``merger``   -- three-way content merge and unified diff helpers.
- ``reporter`` -- text and JSON rendering.
"""

from .builder import DiffTreeBuilder
from .collapse import collapse
from .merge import MergeState, MergeTreeBuilder
from .merger import attempt_merge, generate_diff, node_patch, preview_merge
from .nodes import DiffKind, DiffNode, FolderNode, TypedElement, sorted_children
from .reporter import diff_tree_to_json, format_diff_tree

__all__ = [
    "DiffKind",
    "DiffNode",
    "DiffTreeBuilder",
    "FolderNode",
    "MergeState",
    "MergeTreeBuilder",
    "TypedElement",
    "attempt_merge",
    "collapse",
    "diff_tree_to_json",
    "format_diff_tree",
    "generate_diff",
    "node_patch",
    "preview_merge",
    "sorted_children",
]
