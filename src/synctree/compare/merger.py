"""Content-level helpers for diff nodes.

Uses the ``merge3`` library for three-way merging (the same algorithm used
by Bazaar/Breezy) and ``difflib`` for unified diff generation.

* ``attempt_merge`` -- line-based three-way merge with Git-style markers
  labelled ``OURS`` and ``THEIRS``.
* ``generate_diff`` -- thin wrapper around ``difflib.unified_diff``.
* ``preview_merge`` / ``node_patch`` -- resolve a node's typed elements
  through the snapshot store and merge or diff their content.
"""

from __future__ import annotations

import difflib

from merge3 import Merge3

from ..core.store import SnapshotStore
from .nodes import DiffNode, TypedElement

# merge3 appends the side name to its default markers
START_MARKER = "<<<<<<< OURS"


def attempt_merge(
    base_content: str,
    ours_content: str,
    theirs_content: str,
) -> tuple[str, bool]:
    """Perform a three-way merge of two changed versions against a base.

    Args:
        base_content: The common ancestor content.
        ours_content: Our side (left of a diff node).
        theirs_content: Their side (right of a diff node).

    Returns:
        A tuple of ``(merged_text, has_conflicts)`` where *merged_text* is
        the result of the merge (possibly containing conflict markers) and
        *has_conflicts* is ``True`` if conflict markers are present.
    """
    m3 = Merge3(
        base_content.splitlines(True),
        ours_content.splitlines(True),
        theirs_content.splitlines(True),
    )

    merged_text = "".join(m3.merge_lines(name_a="OURS", name_b="THEIRS"))
    return merged_text, START_MARKER in merged_text


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Generate a unified diff between two strings.

    Returns:
        A unified diff string.  Empty string if the contents are identical.
    """
    diff_lines = difflib.unified_diff(
        old_content.splitlines(True),
        new_content.splitlines(True),
        fromfile=label_old,
        tofile=label_new,
    )
    return "".join(diff_lines)


def read_element(store: SnapshotStore, element: TypedElement | None) -> str:
    """Return the text of *element* (empty when absent).

    Raises:
        ObjectUnreadable: If the blob cannot be read.
    """
    if element is None:
        return ""
    with store.open_blob(element.content_id) as stream:
        return stream.read().decode("utf-8", errors="replace")


def preview_merge(store: SnapshotStore, node: DiffNode) -> tuple[str, bool]:
    """Merge the left and right content of *node* over its ancestor.

    A node without an ancestor is merged over an empty base.
    """
    return attempt_merge(
        read_element(store, node.ancestor),
        read_element(store, node.left),
        read_element(store, node.right),
    )


def node_patch(store: SnapshotStore, node: DiffNode) -> str:
    """Unified diff from the right side of *node* to its left side."""
    path = node.path or node.name
    old_label = f"a/{path}" if node.right is not None else "/dev/null"
    new_label = f"b/{path}" if node.left is not None else "/dev/null"
    return generate_diff(
        read_element(store, node.right),
        read_element(store, node.left),
        old_label,
        new_label,
    )
