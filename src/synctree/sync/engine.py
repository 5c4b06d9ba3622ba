"""Synchronize engine: classify every path of a scope.

``SyncEngine.run()`` builds the local, base and remote variant trees for a
sync profile, enumerates the union of their blob paths and classifies each
path with ``classify``.  The resulting ``SyncReport`` lists every path in
path order.

Variant trees are taken from a ``VariantCache``, so several runs sharing a
cache reuse trees already built for the same (scope, snapshot).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..config_schema import SyncProfileConfig
from ..core.store import WORKTREE, SnapshotStore
from ..core.walk import CancelToken, check_cancelled
from .classifier import classify
from .models import SyncReport, SyncResult
from .variants import VariantCache, VariantTree

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Runs the synchronize pipeline for one profile.

    Args:
        store: Snapshot backend.
        profile: The sync profile (scope, base and remote revisions).
        profile_name: Name reported in the ``SyncReport``.
        cache: Optional variant cache shared across runs.
    """

    def __init__(
        self,
        store: SnapshotStore,
        profile: SyncProfileConfig,
        profile_name: str = "default",
        cache: VariantCache | None = None,
    ):
        self.store = store
        self.profile = profile
        self.profile_name = profile_name
        self.cache = cache if cache is not None else VariantCache()

    def run(self, cancel: CancelToken | None = None) -> SyncReport:
        """Classify every path under the profile's roots.

        Returns:
            A ``SyncReport`` with one result per path.

        Raises:
            SnapshotUnresolvable: If the base or remote revision is unknown.
            ObjectUnreadable: If a tree or blob cannot be read.
            Cancelled: If *cancel* is signalled; no partial report exists.
        """
        started_at = _now()
        profile = self.profile

        base_id = self.store.resolve(profile.base)
        remote_id = self.store.resolve(profile.remote)
        local_id = WORKTREE if profile.include_local else base_id
        logger.info(
            "Synchronizing %s: base=%s remote=%s local=%s",
            self.profile_name,
            base_id[:12],
            remote_id[:12],
            local_id[:12],
        )

        local = self.cache.get_or_build(
            self.store,
            local_id,
            profile.roots,
            cancel,
            with_ancestry=False,
            ignore=profile.ignore,
        )
        base = self.cache.get_or_build(self.store, base_id, profile.roots, cancel)
        remote = self.cache.get_or_build(
            self.store, remote_id, profile.roots, cancel
        )

        results = self._classify_all(local, base, remote, cancel)

        report = SyncReport(
            profile_name=self.profile_name,
            base=base_id,
            remote=remote_id,
            local=local_id,
            results=results,
            started_at=started_at,
            completed_at=_now(),
        )
        logger.info(
            "Synchronize %s complete: %d outgoing, %d incoming, %d conflicting",
            self.profile_name,
            len(report.outgoing),
            len(report.incoming),
            len(report.conflicting),
        )
        return report

    def _classify_all(
        self,
        local: VariantTree,
        base: VariantTree,
        remote: VariantTree,
        cancel: CancelToken | None,
    ) -> list[SyncResult]:
        paths = sorted(
            set(local.blob_paths())
            | set(base.blob_paths())
            | set(remote.blob_paths())
        )
        results: list[SyncResult] = []
        for path in paths:
            check_cancelled(cancel)
            resource = local.local_resource(path)
            base_variant = base.variant_of(path)
            remote_variant = remote.variant_of(path)
            status = classify(
                resource,
                base_variant,
                remote_variant,
                base.chain_of(path),
                remote.chain_of(path),
            )
            results.append(
                SyncResult(
                    path=path,
                    status=status,
                    local_id=resource.content_id,
                    base_id=base_variant.content_id if base_variant else None,
                    remote_id=remote_variant.content_id if remote_variant else None,
                )
            )
        return results
