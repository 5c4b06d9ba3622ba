"""Snapshot store interface and the in-memory tree handle it returns.

A ``SnapshotStore`` resolves revision references, opens sorted trees,
streams blob content and answers history questions.  ``GitSnapshotStore``
(``synctree.core.git_store``) is the on-disk implementation; tests use an
in-memory fake satisfying the same protocol.

Two pseudo-snapshots are understood by every store besides commit ids:

- ``WORKTREE`` -- the files currently on disk.
- ``INDEX`` -- the staging area, including unresolved conflict stages.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import BinaryIO, Protocol

from .walk import PathFilter, parent_of

WORKTREE = "WORKTREE"
INDEX = "INDEX"

PSEUDO_SNAPSHOTS = frozenset({WORKTREE, INDEX})

# git file modes
MODE_FILE = 0o100644
MODE_EXECUTABLE = 0o100755
MODE_SYMLINK = 0o120000


def is_commit_snapshot(snapshot: str) -> bool:
    """True if *snapshot* names a commit rather than a pseudo-snapshot."""
    return snapshot not in PSEUDO_SNAPSHOTS


@dataclass(frozen=True)
class TreeEntry:
    """One blob in a snapshot.

    Attributes:
        path: Repository-relative POSIX path.
        content_id: Content-addressed id of the blob (hex).
        mode: git file mode.
        stage: Index stage (0 when resolved, 1-3 for conflict sides).
        ignored: True for untracked working-tree files matched by ignore
            rules.
    """

    path: str
    content_id: str
    mode: int = MODE_FILE
    stage: int = 0
    ignored: bool = False

    @property
    def name(self) -> str:
        return self.path.rpartition("/")[2]


class TreeHandle:
    """Sorted, read-only view of the blobs in one snapshot.

    Folders are implicit: a path is a folder when at least one blob lies
    beneath it.
    """

    def __init__(
        self,
        snapshot: str,
        entries: Iterable[TreeEntry],
        conflicts: dict[str, dict[int, TreeEntry]] | None = None,
    ):
        self.snapshot = snapshot
        self._entries = {e.path: e for e in entries}
        self._paths = sorted(self._entries)
        self.conflicts: dict[str, dict[int, TreeEntry]] = dict(conflicts or {})

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[TreeEntry]:
        for path in self._paths:
            yield self._entries[path]

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def paths(self) -> list[str]:
        return list(self._paths)

    def get(self, path: str) -> TreeEntry | None:
        return self._entries.get(path)

    def is_folder(self, path: str) -> bool:
        """True if at least one blob lies strictly beneath *path*."""
        if not path:
            return bool(self._paths)
        prefix = path + "/"
        i = bisect.bisect_left(self._paths, prefix)
        return i < len(self._paths) and self._paths[i].startswith(prefix)

    def under(self, folder: str) -> Iterator[TreeEntry]:
        """Yield every blob beneath *folder* in sorted order."""
        if not folder:
            yield from self
            return
        prefix = folder + "/"
        i = bisect.bisect_left(self._paths, prefix)
        while i < len(self._paths) and self._paths[i].startswith(prefix):
            yield self._entries[self._paths[i]]
            i += 1

    def folders(self) -> set[str]:
        """All implicit folder paths (excluding the root)."""
        result: set[str] = set()
        for path in self._paths:
            parent = parent_of(path)
            while parent and parent not in result:
                result.add(parent)
                parent = parent_of(parent)
        return result

    def conflict_stage(self, path: str, stage: int) -> TreeEntry | None:
        """Return the entry of an unresolved *path* at *stage* (1-3)."""
        return self.conflicts.get(path, {}).get(stage)

    def is_conflicted(self, path: str) -> bool:
        return path in self.conflicts

    def filtered(self, path_filter: PathFilter) -> TreeHandle:
        """Return a copy restricted to *path_filter*."""
        if path_filter.matches_all:
            return self
        return TreeHandle(
            self.snapshot,
            (e for e in self if path_filter.matches(e.path)),
            {
                p: stages
                for p, stages in self.conflicts.items()
                if path_filter.matches(p)
            },
        )

    def __repr__(self) -> str:
        return f"TreeHandle({self.snapshot!r}, {len(self)} entries)"


class SnapshotStore(Protocol):
    """Protocol every snapshot backend must satisfy."""

    def resolve(self, ref: str) -> str:
        """Resolve *ref* to a snapshot id.

        Raises:
            SnapshotUnresolvable: If *ref* names no snapshot.
        """
        ...  # pragma: no cover

    def open_tree(
        self, snapshot: str, path_filter: PathFilter | None = None
    ) -> TreeHandle:
        """Open the sorted blob listing of *snapshot*.

        Raises:
            ObjectUnreadable: If a tree object cannot be read.
        """
        ...  # pragma: no cover

    def open_blob(self, content_id: str) -> BinaryIO:
        """Return a byte stream over the blob *content_id*.

        Raises:
            ObjectUnreadable: If the blob is missing.
        """
        ...  # pragma: no cover

    def ancestry_of(self, path: str, tip: str) -> list[str]:
        """Commits reachable from *tip* that modified *path*, newest first."""
        ...  # pragma: no cover

    def merge_base_of(self, commit_a: str, commit_b: str) -> str | None:
        """Nearest common ancestor of two commits, or ``None``."""
        ...  # pragma: no cover

    def merge_target(self) -> str:
        """Commit id of the other side of an in-progress merge operation.

        Raises:
            SnapshotUnresolvable: If no merge-like operation is in progress.
        """
        ...  # pragma: no cover
