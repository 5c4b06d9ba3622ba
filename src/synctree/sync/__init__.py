"""Synchronize-view status engine.

Classifies, per path, how a local working copy, a base snapshot and a
remote snapshot relate, using per-path commit-history chains instead of a
full merge-base computation.

Modules:

- ``models``     -- ``Variant``, ``LocalResource``, ``SyncStatus``,
  ``SyncResult``, ``SyncReport``: core data contracts.
- ``variants``   -- ``VariantTree``, ``AncestryIndex``, ``VariantCache``.
- ``classifier`` -- ``classify``: the divergence heuristic.
- ``scan``       -- ``scan_three_way`` and ``SyncCache``: id-only refresh.
- ``engine``     -- ``SyncEngine``: orchestrates a full synchronize run.
- ``reporter``   -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from synctree.config_schema import SyncProfileConfig
    from synctree.core import GitSnapshotStore
    from synctree.sync import SyncEngine, format_sync_report

    store = GitSnapshotStore(".")
    profile = SyncProfileConfig(roots=["src"], remote="origin/main")
    report = SyncEngine(store, profile, profile_name="upstream").run()
    print(format_sync_report(report))
"""

from .classifier import classify
from .engine import SyncEngine
from .models import (
    IN_SYNC,
    ChangeKind,
    Direction,
    LocalResource,
    SyncReport,
    SyncResult,
    SyncStatus,
    Variant,
    VariantKind,
)
from .reporter import format_sync_report, report_to_json
from .scan import SyncCache, scan_three_way
from .variants import AncestryIndex, VariantCache, VariantTree

__all__ = [
    "IN_SYNC",
    "AncestryIndex",
    "ChangeKind",
    "Direction",
    "LocalResource",
    "SyncCache",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "SyncStatus",
    "Variant",
    "VariantCache",
    "VariantKind",
    "VariantTree",
    "classify",
    "format_sync_report",
    "report_to_json",
    "scan_three_way",
]
