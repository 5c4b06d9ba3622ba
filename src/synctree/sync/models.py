"""Pydantic models for the synchronize pipeline.

Defines the data contracts shared by the variant trees, the classifier,
the three-way scan and the engine:

- ``VariantKind``: Blob or Folder.
- ``Variant``: one entry under a snapshot's scope.
- ``LocalResource``: the local side of a comparison (may not exist).
- ``Direction`` / ``ChangeKind`` / ``SyncStatus``: classification result.
- ``SyncResult``: classification of one path with the ids it was based on.
- ``SyncReport``: aggregate results for a full synchronize run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class VariantKind(str, Enum):
    """Kind of entry a variant describes."""

    BLOB = "blob"
    FOLDER = "folder"


class Variant(BaseModel):
    """A (path, kind, content id) record under one snapshot.

    Folders carry no content id; they compare by path.

    Attributes:
        path: Repository-relative POSIX path.
        kind: Blob or Folder.
        content_id: Blob id, ``None`` for folders.
    """

    path: str
    kind: VariantKind
    content_id: str | None = None

    model_config = {"frozen": True}

    @property
    def is_folder(self) -> bool:
        return self.kind == VariantKind.FOLDER

    def same_as(self, other: Variant | None) -> bool:
        """True if *other* describes identical content."""
        if other is None or other.kind != self.kind:
            return False
        if self.is_folder:
            return self.path == other.path
        return self.content_id == other.content_id


class LocalResource(BaseModel):
    """The local side of a synchronize comparison.

    Attributes:
        path: Repository-relative POSIX path.
        kind: Blob or Folder; ``None`` when the resource does not exist.
        exists: Whether the resource exists locally.
        content_id: Blob id of the local content, ``None`` for folders
            and missing resources.
        ignored: True if ignore policy excludes the resource.
    """

    path: str
    kind: VariantKind | None = None
    exists: bool = False
    content_id: str | None = None
    ignored: bool = False

    model_config = {"frozen": True}

    @classmethod
    def missing(cls, path: str) -> LocalResource:
        return cls(path=path)

    @classmethod
    def from_variant(cls, variant: Variant, ignored: bool = False) -> LocalResource:
        return cls(
            path=variant.path,
            kind=variant.kind,
            exists=True,
            content_id=variant.content_id,
            ignored=ignored,
        )

    def as_variant(self) -> Variant | None:
        """Return the equivalent variant, or ``None`` if not existing."""
        if not self.exists or self.kind is None:
            return None
        return Variant(path=self.path, kind=self.kind, content_id=self.content_id)


class Direction(str, Enum):
    """Which side a difference originates from."""

    IN_SYNC = "in_sync"
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    CONFLICTING = "conflicting"


class ChangeKind(str, Enum):
    """What kind of difference was found."""

    ADDITION = "addition"
    CHANGE = "change"
    DELETION = "deletion"


class SyncStatus(BaseModel):
    """A ``(Direction, ChangeKind)`` pair; ``InSync`` carries no change."""

    direction: Direction
    change: ChangeKind | None = None

    model_config = {"frozen": True}

    @classmethod
    def of(cls, direction: Direction, change: ChangeKind) -> SyncStatus:
        return cls(direction=direction, change=change)

    @property
    def in_sync(self) -> bool:
        return self.direction == Direction.IN_SYNC

    def __str__(self) -> str:
        if self.change is None:
            return "InSync"
        return f"{_TITLES[self.direction]}|{self.change.value.title()}"


_TITLES = {
    Direction.IN_SYNC: "InSync",
    Direction.OUTGOING: "Outgoing",
    Direction.INCOMING: "Incoming",
    Direction.CONFLICTING: "Conflicting",
}

IN_SYNC = SyncStatus(direction=Direction.IN_SYNC)


class SyncResult(BaseModel):
    """Classification of one path.

    Attributes:
        path: Repository-relative POSIX path.
        status: The computed sync status.
        local_id: Local content id, if any.
        base_id: Base content id, if any.
        remote_id: Remote content id, if any.
    """

    path: str
    status: SyncStatus
    local_id: str | None = None
    base_id: str | None = None
    remote_id: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full synchronize run.

    Attributes:
        profile_name: Name of the sync profile used.
        base: Base snapshot id.
        remote: Remote snapshot id.
        local: Local snapshot id (``WORKTREE`` unless local edits are
            excluded).
        results: Per-path results in path order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    profile_name: str
    base: str
    remote: str
    local: str
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_direction(self, direction: Direction) -> list[SyncResult]:
        return [r for r in self.results if r.status.direction == direction]

    @property
    def in_sync(self) -> list[SyncResult]:
        """Results with no difference."""
        return self._with_direction(Direction.IN_SYNC)

    @property
    def outgoing(self) -> list[SyncResult]:
        """Results where the local side is ahead."""
        return self._with_direction(Direction.OUTGOING)

    @property
    def incoming(self) -> list[SyncResult]:
        """Results where the remote side is ahead."""
        return self._with_direction(Direction.INCOMING)

    @property
    def conflicting(self) -> list[SyncResult]:
        """Results where both sides diverged."""
        return self._with_direction(Direction.CONFLICTING)

    @property
    def changed(self) -> list[SyncResult]:
        """Every result that is not in sync."""
        return [r for r in self.results if not r.status.in_sync]

    def get(self, path: str) -> SyncResult | None:
        for result in self.results:
            if result.path == path:
                return result
        return None

    def summary(self) -> str:
        """Format a human-readable summary of the run.

        Returns:
            Multi-line summary string with counts by direction.
        """
        lines = [
            f"Sync status for profile '{self.profile_name}'",
            f"  Outgoing:    {len(self.outgoing)}",
            f"  Incoming:    {len(self.incoming)}",
            f"  Conflicting: {len(self.conflicting)}",
            f"  In sync:     {len(self.in_sync)}",
            f"  Total:       {len(self.results)}",
        ]
        return "\n".join(lines)
