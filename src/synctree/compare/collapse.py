"""Folder collapsing pass.

Rewrites a diff tree so that chains of folders with a single folder child
become one folder named by the joined segments (``a`` > ``b`` > ``c``
becomes ``a/b/c``).  The root is never merged and leaves are never moved
relative to their nearest surviving folder.
"""

from __future__ import annotations

from .nodes import FolderNode


def collapse(root: FolderNode) -> FolderNode:
    """Collapse every single-child folder chain under *root*, in place."""
    for child in root.folders():
        _collapse_folder(child)
    return root


def _collapse_folder(node: FolderNode) -> None:
    while len(node.children) == 1 and node.children[0].is_folder:
        child = node.children[0]
        node.children = child.children
        node.name = f"{node.name}/{child.name}"
    for child in node.folders():
        _collapse_folder(child)
