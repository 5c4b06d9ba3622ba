"""Error taxonomy for synctree.

All errors raised by the snapshot, variant and diff layers derive from
``SyncTreeError`` so callers can catch the whole family at one seam:

- ``SnapshotUnresolvable`` -- a revision reference does not name a snapshot.
- ``ObjectUnreadable`` -- a blob or tree could not be read from the store.
- ``Cancelled`` -- a cooperative cancellation request was honoured.
- ``AmbiguousScope`` -- selected paths span more than one repository.
- ``RepositoryNotFound`` -- a path does not lie inside any repository.
"""

from __future__ import annotations

from collections.abc import Iterable


class SyncTreeError(Exception):
    """Base class for all synctree errors."""


class SnapshotUnresolvable(SyncTreeError):
    """A revision reference could not be resolved to a snapshot."""

    def __init__(self, ref: str, reason: str | None = None):
        self.ref = ref
        message = f"Cannot resolve snapshot '{ref}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ObjectUnreadable(SyncTreeError):
    """A blob or tree object is missing or could not be read."""

    def __init__(self, object_id: str, reason: str | None = None):
        self.object_id = object_id
        message = f"Cannot read object {object_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class Cancelled(SyncTreeError):
    """The operation was cancelled; any partial result has been discarded."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class AmbiguousScope(SyncTreeError):
    """The selected paths do not resolve to exactly one repository."""

    def __init__(self, paths: Iterable[str], reason: str | None = None):
        self.paths = [str(p) for p in paths]
        message = reason or "Selected paths span more than one repository"
        super().__init__(f"{message}: {', '.join(self.paths)}")


class RepositoryNotFound(SyncTreeError):
    """A path does not lie inside a git working tree."""

    def __init__(self, path: str):
        self.path = str(path)
        super().__init__(f"Not inside a git repository: {self.path}")
