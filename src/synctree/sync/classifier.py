"""Divergence classifier for the synchronize view.

``classify`` combines the local resource, the base and remote variants and
the two ancestry chains into a ``SyncStatus``.  It is a policy, not a
merge-base computation: for a clean local blob whose base and remote
differ it only checks whether the newest commit of one chain appears in
the other.

A path with no local resource is decided by presence alone: remote-only
is an incoming addition, and base equal to remote is an outgoing deletion.

The function is pure and never raises.  Any unexpected failure is logged
and reported as ``Conflicting|Change``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models import (
    IN_SYNC,
    ChangeKind,
    Direction,
    LocalResource,
    SyncStatus,
    Variant,
    VariantKind,
)

logger = logging.getLogger(__name__)

OUTGOING_CHANGE = SyncStatus.of(Direction.OUTGOING, ChangeKind.CHANGE)
OUTGOING_ADDITION = SyncStatus.of(Direction.OUTGOING, ChangeKind.ADDITION)
INCOMING_CHANGE = SyncStatus.of(Direction.INCOMING, ChangeKind.CHANGE)
INCOMING_ADDITION = SyncStatus.of(Direction.INCOMING, ChangeKind.ADDITION)
OUTGOING_DELETION = SyncStatus.of(Direction.OUTGOING, ChangeKind.DELETION)
CONFLICTING_CHANGE = SyncStatus.of(Direction.CONFLICTING, ChangeKind.CHANGE)


def classify(
    local: LocalResource,
    base: Variant | None,
    remote: Variant | None,
    base_chain: Sequence[str] = (),
    remote_chain: Sequence[str] = (),
) -> SyncStatus:
    """Classify how *local*, *base* and *remote* differ for one path.

    Args:
        local: The local resource (may not exist).
        base: The base variant, or ``None`` if the base has no entry.
        remote: The remote variant, or ``None`` if the remote has no entry.
        base_chain: Newest-first commits that touched the path in base.
        remote_chain: Newest-first commits that touched the path in remote.

    Returns:
        Exactly one ``SyncStatus``.
    """
    try:
        return _classify(local, base, remote, base_chain, remote_chain)
    except Exception:
        logger.warning(
            "Classification failed for %s; reporting as conflicting",
            local.path,
            exc_info=True,
        )
        return CONFLICTING_CHANGE


def _classify(
    local: LocalResource,
    base: Variant | None,
    remote: Variant | None,
    base_chain: Sequence[str],
    remote_chain: Sequence[str],
) -> SyncStatus:
    if local.ignored:
        return IN_SYNC

    if local.exists and remote is not None and local.kind != remote.kind:
        return CONFLICTING_CHANGE

    if local.exists and local.kind == VariantKind.BLOB:
        clean = _is_clean(local, base)
        if remote is not None:
            if not clean:
                return OUTGOING_CHANGE
            if base.content_id == remote.content_id:
                return IN_SYNC
            return compare_chains(base_chain, remote_chain)
        if base is None or clean:
            return OUTGOING_ADDITION
        return OUTGOING_CHANGE

    if local.exists and local.kind == VariantKind.FOLDER:
        if remote is None:
            return OUTGOING_ADDITION
        if base is None or not base.is_folder:
            return INCOMING_ADDITION

    if not local.exists:
        return _missing_locally(base, remote)

    return three_way(local.as_variant(), base, remote)


def _missing_locally(base: Variant | None, remote: Variant | None) -> SyncStatus:
    """Presence rules for a path with no local resource."""
    if base is None:
        return INCOMING_ADDITION if remote is not None else IN_SYNC
    if remote is not None and base.same_as(remote):
        return OUTGOING_DELETION
    return CONFLICTING_CHANGE


def _is_clean(local: LocalResource, base: Variant | None) -> bool:
    """True if the local blob carries exactly the base blob's content."""
    return (
        base is not None
        and base.kind == VariantKind.BLOB
        and local.content_id == base.content_id
    )


def compare_chains(
    base_chain: Sequence[str], remote_chain: Sequence[str]
) -> SyncStatus:
    """Decide the direction of a base/remote divergence from ancestry.

    * The remote's newest commit is already in base's history: base is
      ahead, ``Outgoing|Change``.
    * Base's newest commit is in the remote's history: the remote is
      ahead, ``Incoming|Change``.
    * Neither (including empty chains): ``Conflicting|Change``.
    """
    if remote_chain and remote_chain[0] in base_chain:
        return OUTGOING_CHANGE
    if base_chain and base_chain[0] in remote_chain:
        return INCOMING_CHANGE
    return CONFLICTING_CHANGE


def three_way(
    local: Variant | None, base: Variant | None, remote: Variant | None
) -> SyncStatus:
    """Generic comparator: ``InSync`` only when all sides are identical."""
    if _identical(local, base) and _identical(base, remote):
        return IN_SYNC
    return CONFLICTING_CHANGE


def _identical(a: Variant | None, b: Variant | None) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.same_as(b)
