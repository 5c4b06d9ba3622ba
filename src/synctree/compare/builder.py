"""Two-way diff tree builder.

``DiffTreeBuilder.build(left, right, paths)`` walks two snapshots in
lock-step and produces a hierarchical diff tree:

* left absent, right present -> ``DELETION`` (content only on the right)
* right absent, left present -> ``ADDITION`` (content only on the left)
* both present, same content id -> no node
* both present, different ids -> ``CHANGE``

Leaves hang under a folder chain rebuilt from their path.  The folder
whose path equals a configured container is tagged ``is_container``.
Ignored working-tree files are skipped.  The finished tree is collapsed
unless disabled.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..core.scope import topmost_paths
from ..core.store import SnapshotStore, TreeEntry
from ..core.walk import (
    CancelToken,
    PathFilter,
    matches_ignore,
    normalize_path,
    walk_trees,
)
from .collapse import collapse
from .nodes import DiffKind, DiffNode, FolderNode, TypedElement

logger = logging.getLogger(__name__)


def element_for(entry: TreeEntry | None, revision: str) -> TypedElement | None:
    """Wrap a tree entry as a typed element of *revision*."""
    if entry is None:
        return None
    return TypedElement(
        path=entry.path,
        revision=revision,
        content_id=entry.content_id,
        stage=entry.stage,
    )


def attach_leaf(
    root: FolderNode,
    path: str,
    node: DiffNode,
    containers: Iterable[str] = (),
) -> DiffNode:
    """Attach *node* under the folder chain for *path*, creating folders."""
    containers = set(containers)
    segments = path.split("/")
    parent = root
    prefix = ""
    for segment in segments[:-1]:
        prefix = f"{prefix}/{segment}" if prefix else segment
        parent = parent.ensure_folder(segment, prefix in containers)
    return parent.add(node)


class DiffTreeBuilder:
    """Builds two-way diff trees between snapshots.

    Not safe for concurrent use; independent instances are independent.

    Args:
        store: Snapshot backend.
        containers: Folder paths tagged as top-level containers.
        collapse: Run the collapsing pass on the finished tree.
        ignore: Glob patterns of paths left out of the tree.
    """

    def __init__(
        self,
        store: SnapshotStore,
        containers: Sequence[str] = (),
        collapse: bool = True,
        ignore: Sequence[str] = (),
    ):
        self.store = store
        self.containers = tuple(normalize_path(c) for c in containers)
        self.collapse = collapse
        self.ignore = tuple(ignore)

    def build(
        self,
        left_ref: str,
        right_ref: str,
        paths: Iterable[str] = (),
        cancel: CancelToken | None = None,
    ) -> FolderNode:
        """Compare *left_ref* with *right_ref* under *paths*.

        Args:
            left_ref: Revision (or ``WORKTREE``/``INDEX``) on the left.
            right_ref: Revision on the right.
            paths: Scope paths; only the topmost ones are used.  Empty
                compares the whole snapshot.
            cancel: Optional cancellation token.

        Returns:
            The root folder node.

        Raises:
            SnapshotUnresolvable: If either ref cannot be resolved.
            ObjectUnreadable: If a tree cannot be read.
            Cancelled: If *cancel* is signalled; the partial tree is dropped.
        """
        left = self.store.resolve(left_ref)
        right = self.store.resolve(right_ref)
        path_filter = PathFilter(topmost_paths(paths))

        left_tree = self.store.open_tree(left, path_filter)
        right_tree = self.store.open_tree(right, path_filter)

        root = FolderNode()
        counts = {kind: 0 for kind in DiffKind}
        for path, (l, r) in walk_trees([left_tree, right_tree], path_filter, cancel):
            if (l is not None and l.ignored) or (r is not None and r.ignored):
                continue
            if self.ignore and matches_ignore(path, self.ignore):
                continue
            kind = _two_way_kind(l, r)
            if kind == DiffKind.NO_CHANGE:
                continue
            node = DiffNode(
                name=path.rpartition("/")[2],
                kind=kind,
                left=element_for(l, left),
                right=element_for(r, right),
            )
            attach_leaf(root, path, node, self.containers)
            counts[kind] += 1

        logger.info(
            "Diff %s..%s: %d added, %d deleted, %d changed",
            left[:12],
            right[:12],
            counts[DiffKind.ADDITION],
            counts[DiffKind.DELETION],
            counts[DiffKind.CHANGE],
        )
        if self.collapse:
            collapse(root)
        return root


def _two_way_kind(left: TreeEntry | None, right: TreeEntry | None) -> DiffKind:
    if left is None:
        return DiffKind.DELETION
    if right is None:
        return DiffKind.ADDITION
    if left.content_id == right.content_id:
        return DiffKind.NO_CHANGE
    return DiffKind.CHANGE
