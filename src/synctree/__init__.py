"""synctree: tree comparison and synchronization status for git snapshots.

Two independent pipelines share the snapshot and tree-walk primitives in
``synctree.core``:

- ``synctree.sync`` classifies, per path, how a local working copy, a base
  snapshot and a remote snapshot relate.
- ``synctree.compare`` builds hierarchical diff trees between snapshots,
  including the conflict-aware view of an in-progress merge.
"""

__version__ = "0.4.0"
