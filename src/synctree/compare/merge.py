"""Conflict-aware diff tree builder.

Compares the working tree, the index and HEAD while a merge-like operation
is in progress, surfacing each path in one of three states:

- ``UNMODIFIED`` -- resolved in the index and identical to HEAD; no node.
- ``CONFLICTING`` -- the index holds unresolved stages; a ``CONFLICT`` node
  with "ours" (stage 2, or the working tree) on the left and "theirs"
  (stage 3) on the right.
- ``AUTO_MERGED`` -- resolved in the index, present in HEAD and different
  from it; a ``CHANGE`` node with the working tree on the left and HEAD on the right.

When the merge base of HEAD and the other side can be found, each node's
ancestor element is taken from it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from ..core.scope import topmost_paths
from ..core.store import INDEX, WORKTREE, SnapshotStore, TreeEntry, TreeHandle
from ..core.walk import (
    CancelToken,
    PathFilter,
    matches_ignore,
    normalize_path,
    walk_trees,
)
from ..errors import SyncTreeError
from .builder import attach_leaf, element_for
from .collapse import collapse
from .nodes import DiffKind, DiffNode, FolderNode

logger = logging.getLogger(__name__)


class MergeState(str, Enum):
    """Per-path state during an in-progress merge."""

    UNMODIFIED = "unmodified"
    CONFLICTING = "conflicting"
    AUTO_MERGED = "auto_merged"


def merge_state(
    index: TreeEntry | None,
    worktree: TreeEntry | None,
    head: TreeEntry | None,
    conflicting: bool,
) -> MergeState:
    """Classify one path from its index, working-tree and HEAD entries."""
    if conflicting:
        return MergeState.CONFLICTING
    if index is None or worktree is None:
        return MergeState.UNMODIFIED
    if head is not None and worktree.content_id != head.content_id:
        return MergeState.AUTO_MERGED
    return MergeState.UNMODIFIED


class MergeTreeBuilder:
    """Builds the diff tree of an in-progress merge.

    Args:
        store: Snapshot backend.
        containers: Folder paths tagged as top-level containers.
        collapse: Run the collapsing pass on the finished tree.
        ignore: Glob patterns of paths left out of the tree.
        use_worktree: Show the working tree instead of stage 2 on the left
            of conflicting paths.
    """

    def __init__(
        self,
        store: SnapshotStore,
        containers: Sequence[str] = (),
        collapse: bool = True,
        use_worktree: bool = False,
        ignore: Sequence[str] = (),
    ):
        self.store = store
        self.containers = tuple(normalize_path(c) for c in containers)
        self.collapse = collapse
        self.ignore = tuple(ignore)
        self.use_worktree = use_worktree

    def build(
        self,
        paths: Iterable[str] = (),
        theirs: str | None = None,
        cancel: CancelToken | None = None,
    ) -> FolderNode:
        """Build the conflict-aware tree under *paths*.

        Args:
            paths: Scope paths; empty for the whole repository.
            theirs: Explicit "other side" revision; defaults to the store's
                merge target.
            cancel: Optional cancellation token.

        Raises:
            SnapshotUnresolvable: If HEAD or the other side cannot be found.
            Cancelled: If *cancel* is signalled.
        """
        head = self.store.resolve("HEAD")
        other = self.store.resolve(theirs) if theirs else self.store.merge_target()
        path_filter = PathFilter(topmost_paths(paths))

        index_tree = self.store.open_tree(INDEX, path_filter)
        work_tree = self.store.open_tree(WORKTREE, path_filter)
        head_tree = self.store.open_tree(head, path_filter)
        ancestor_tree = self._ancestor_tree(head, other, path_filter)
        ancestor_rev = ancestor_tree.snapshot if ancestor_tree is not None else None

        root = FolderNode()
        conflicts = auto_merged = 0
        rows = walk_trees([index_tree, work_tree, head_tree], path_filter, cancel)
        for path, (index, work, head_entry) in rows:
            if work is None or work.ignored:
                continue
            if self.ignore and matches_ignore(path, self.ignore):
                continue
            conflicting = index_tree.is_conflicted(path)
            state = merge_state(index, work, head_entry, conflicting)
            if state == MergeState.UNMODIFIED:
                continue

            if conflicting:
                right = element_for(index_tree.conflict_stage(path, 3), INDEX)
            else:
                right = element_for(head_entry, head)
            if conflicting and not self.use_worktree:
                left = element_for(index_tree.conflict_stage(path, 2), INDEX)
            else:
                left = element_for(work, WORKTREE)

            ancestor = None
            if ancestor_tree is not None:
                ancestor = element_for(ancestor_tree.get(path), ancestor_rev)

            node = DiffNode(
                name=path.rpartition("/")[2],
                kind=DiffKind.CONFLICT if conflicting else DiffKind.CHANGE,
                ancestor=ancestor,
                left=left,
                right=right,
            )
            attach_leaf(root, path, node, self.containers)
            if conflicting:
                conflicts += 1
            else:
                auto_merged += 1

        logger.info(
            "Merge view: %d conflicting, %d auto-merged", conflicts, auto_merged
        )
        if self.collapse:
            collapse(root)
        return root

    def _ancestor_tree(
        self, head: str, other: str, path_filter: PathFilter
    ) -> TreeHandle | None:
        try:
            base = self.store.merge_base_of(head, other)
        except SyncTreeError as exc:
            logger.warning("Cannot compute merge base: %s", exc)
            return None
        if base is None:
            logger.debug("No merge base between %s and %s", head[:12], other[:12])
            return None
        try:
            return self.store.open_tree(base, path_filter)
        except SyncTreeError as exc:
            logger.warning("Cannot open merge base %s: %s", base[:12], exc)
            return None
