"""Id-only three-way scan and the incremental sync cache.

``scan_three_way`` classifies every path of a local, base and remote tree
by content id alone, without consulting history.  It is the fast path used
to refresh a ``SyncCache`` after a change notification; the ancestry-aware
``classify`` is used for full synchronize runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.store import TreeEntry, TreeHandle
from ..core.walk import CancelToken, PathFilter, is_under, normalize_path, walk_trees
from .models import IN_SYNC, ChangeKind, Direction, SyncResult, SyncStatus

logger = logging.getLogger(__name__)


def _status(direction: Direction, change: ChangeKind) -> SyncStatus:
    return SyncStatus.of(direction, change)


def classify_ids(
    local: TreeEntry | None,
    base: TreeEntry | None,
    remote: TreeEntry | None,
) -> SyncStatus:
    """Classify one path from the presence and ids of its three entries."""
    present = (local is not None, base is not None, remote is not None)

    if present == (True, False, False):
        return _status(Direction.OUTGOING, ChangeKind.ADDITION)
    if present == (False, False, True):
        return _status(Direction.INCOMING, ChangeKind.ADDITION)
    if present == (True, True, False):
        return _status(Direction.INCOMING, ChangeKind.DELETION)
    if present == (False, True, True):
        return _status(Direction.OUTGOING, ChangeKind.DELETION)
    if present != (True, True, True):
        return _status(Direction.CONFLICTING, ChangeKind.CHANGE)

    local_id, base_id, remote_id = local.content_id, base.content_id, remote.content_id
    if local_id == base_id == remote_id:
        return IN_SYNC
    if local_id == base_id:
        return _status(Direction.INCOMING, ChangeKind.CHANGE)
    if base_id == remote_id:
        return _status(Direction.OUTGOING, ChangeKind.CHANGE)
    return _status(Direction.CONFLICTING, ChangeKind.CHANGE)


def scan_three_way(
    local: TreeHandle,
    base: TreeHandle,
    remote: TreeHandle,
    path_filter: PathFilter | None = None,
    include_in_sync: Iterable[str] | None = None,
    cancel: CancelToken | None = None,
) -> list[SyncResult]:
    """Walk three trees and classify every differing path.

    Args:
        local: The local tree (usually the working tree).
        base: The base tree.
        remote: The remote tree.
        path_filter: Optional restriction on visited paths.
        include_in_sync: Paths reported even when in sync; every other
            in-sync path is omitted.
        cancel: Optional cancellation token.

    Returns:
        Results in path order.

    Raises:
        Cancelled: If *cancel* is signalled.
    """
    wanted = {normalize_path(p) for p in include_in_sync or ()}
    results: list[SyncResult] = []
    for path, (l, b, r) in walk_trees([local, base, remote], path_filter, cancel):
        if l is not None and l.ignored:
            continue
        status = classify_ids(l, b, r)
        if status.in_sync and path not in wanted:
            continue
        results.append(
            SyncResult(
                path=path,
                status=status,
                local_id=l.content_id if l else None,
                base_id=b.content_id if b else None,
                remote_id=r.content_id if r else None,
            )
        )
    logger.debug("Three-way scan produced %d results", len(results))
    return results


class SyncCache:
    """Hierarchical store of sync results, refreshed incrementally."""

    def __init__(self, results: Iterable[SyncResult] = ()):
        self._entries: dict[str, SyncResult] = {}
        for result in results:
            self.add(result)

    def add(self, result: SyncResult) -> None:
        self._entries[result.path] = result

    def get(self, path: str) -> SyncResult | None:
        return self._entries.get(normalize_path(path))

    def members(self, folder: str = "") -> list[SyncResult]:
        """Every cached result beneath *folder*, in path order."""
        folder = normalize_path(folder)
        return [
            self._entries[p]
            for p in sorted(self._entries)
            if p != folder and is_under(p, folder)
        ]

    def merge(self, newer: SyncCache, refreshed: Iterable[str]) -> None:
        """Fold a newer scan of *refreshed* paths into this cache.

        Cached results under a refreshed path that *newer* no longer
        reports are downgraded to in-sync; results from *newer* replace
        older ones.
        """
        roots = PathFilter(refreshed)
        for path, old in list(self._entries.items()):
            if roots.matches(path) and path not in newer._entries:
                self._entries[path] = old.model_copy(update={"status": IN_SYNC})
        for path, result in newer._entries.items():
            self._entries[path] = result

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._entries
