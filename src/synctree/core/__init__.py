"""Snapshot access and tree-walk primitives shared by the sync and
compare pipelines."""

from .git_store import GitSnapshotStore
from .scope import resolve_scope, split_paths_by_repository, topmost_paths
from .store import (
    INDEX,
    WORKTREE,
    SnapshotStore,
    TreeEntry,
    TreeHandle,
)
from .walk import CancelToken, PathFilter, walk_trees

__all__ = [
    "INDEX",
    "WORKTREE",
    "CancelToken",
    "GitSnapshotStore",
    "PathFilter",
    "SnapshotStore",
    "TreeEntry",
    "TreeHandle",
    "resolve_scope",
    "split_paths_by_repository",
    "topmost_paths",
    "walk_trees",
]
