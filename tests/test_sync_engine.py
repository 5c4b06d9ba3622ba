"""Tests for sync/engine.py: full synchronize runs over a fake store.

Covers:
- SyncEngine.run() status per path across local, base and remote
- Local deletions and remote-only additions
- Report metadata, result ids and the summary text
- Scope roots, include_local, the shared variant cache and cancellation
"""

import pytest

from synctree.config_schema import SyncProfileConfig
from synctree.core.store import WORKTREE
from synctree.core.walk import CancelToken
from synctree.errors import Cancelled, SnapshotUnresolvable
from synctree.sync.engine import SyncEngine
from synctree.sync.variants import VariantCache


@pytest.fixture
def store(fake_store):
    """Base ``B``, remote ``R`` (reachable as origin/main) and a working tree.

    - a.txt: remote committed on top of base
    - c.txt: new on the remote only
    - d.txt: in base, removed from the remote
    - e.txt: new in the working tree
    - gone.txt: in base and remote, deleted from the working tree
    """
    fake_store.add_snapshot(
        "B",
        {
            "a.txt": "hello",
            "b.txt": "same",
            "d.txt": "old",
            "gone.txt": "bye",
            "lib/x.py": "x",
        },
    )
    fake_store.add_snapshot(
        "R",
        {
            "a.txt": "world",
            "b.txt": "same",
            "c.txt": "new",
            "gone.txt": "bye",
            "lib/x.py": "x",
        },
    )
    fake_store.add_snapshot(
        WORKTREE,
        {
            "a.txt": "hello",
            "b.txt": "same",
            "d.txt": "old",
            "e.txt": "local",
            "debug.log": "noise",
            "scratch.tmp": "tmp",
            "lib/x.py": "x",
        },
        ignored={"debug.log"},
    )
    fake_store.set_history("a.txt", "B", ["C1"])
    fake_store.set_history("a.txt", "R", ["C2", "C1"])
    fake_store.refs["origin/main"] = "R"
    return fake_store


def _profile(**kwargs):
    """Build a SyncProfileConfig against origin/main with base ``B``."""
    kwargs.setdefault("remote", "origin/main")
    kwargs.setdefault("base", "B")
    return SyncProfileConfig(**kwargs)


def _statuses(report):
    return {r.path: str(r.status) for r in report.results}


# ---------------------------------------------------------------------------
# SyncEngine.run()
# ---------------------------------------------------------------------------


class TestSyncEngine:
    """Tests for SyncEngine.run()."""

    def test_classifies_every_path(self, store):
        """Every path in the union of the three trees gets one status."""
        report = SyncEngine(store, _profile(ignore=["*.tmp"]), "upstream").run()

        assert _statuses(report) == {
            "a.txt": "Incoming|Change",
            "b.txt": "InSync",
            "c.txt": "Incoming|Addition",
            "d.txt": "Outgoing|Addition",
            "debug.log": "InSync",
            "e.txt": "Outgoing|Addition",
            "gone.txt": "Outgoing|Deletion",
            "lib/x.py": "InSync",
            "scratch.tmp": "InSync",
        }

    def test_remote_only_file_is_incoming_addition(self, fake_store):
        """A file added on the remote and absent locally is incoming."""
        fake_store.add_snapshot("B", {"kept.txt": "k", "gone.txt": "g"})
        fake_store.add_snapshot(
            "R", {"kept.txt": "k", "gone.txt": "g", "new.txt": "n"}
        )
        fake_store.add_snapshot(WORKTREE, {"kept.txt": "k"})

        report = SyncEngine(fake_store, SyncProfileConfig(base="B", remote="R")).run()

        assert _statuses(report) == {
            "gone.txt": "Outgoing|Deletion",
            "kept.txt": "InSync",
            "new.txt": "Incoming|Addition",
        }

    def test_local_deletion_against_remote_edit_conflicts(self, fake_store):
        """Deleted locally while the remote changed it: a real conflict."""
        fake_store.add_snapshot("B", {"f.txt": "v1"})
        fake_store.add_snapshot("R", {"f.txt": "v2"})
        fake_store.add_snapshot(WORKTREE, {})

        report = SyncEngine(fake_store, SyncProfileConfig(base="B", remote="R")).run()

        assert _statuses(report) == {"f.txt": "Conflicting|Change"}

    def test_results_in_path_order(self, store):
        """Results are sorted by path."""
        report = SyncEngine(store, _profile()).run()
        paths = [r.path for r in report.results]
        assert paths == sorted(paths)

    def test_report_metadata(self, store):
        """The report records the profile name and the resolved snapshots."""
        report = SyncEngine(store, _profile(), "upstream").run()

        assert report.profile_name == "upstream"
        assert report.base == "B"
        assert report.remote == "R"
        assert report.local == WORKTREE
        assert report.started_at <= report.completed_at

    def test_result_ids(self, store):
        """Each result carries the content id of every side."""
        report = SyncEngine(store, _profile()).run()

        a = report.get("a.txt")
        assert a.local_id == store.id_of("hello")
        assert a.base_id == store.id_of("hello")
        assert a.remote_id == store.id_of("world")

    def test_deleted_file_has_no_local_id(self, store):
        """A locally deleted file keeps its base and remote ids only."""
        report = SyncEngine(store, _profile()).run()

        gone = report.get("gone.txt")
        assert gone.local_id is None
        assert gone.base_id == store.id_of("bye")

    def test_without_local_edits(self, store):
        """include_local=False compares base against the remote only."""
        report = SyncEngine(store, _profile(include_local=False)).run()

        statuses = _statuses(report)
        assert report.local == "B"
        assert "e.txt" not in statuses
        assert statuses["a.txt"] == "Incoming|Change"
        assert statuses["gone.txt"] == "InSync"

    def test_roots_limit_scope(self, store):
        """Only paths under the profile roots are classified."""
        report = SyncEngine(store, _profile(roots=["lib"])).run()

        assert [r.path for r in report.results] == ["lib/x.py"]
        assert report.changed == []

    def test_history_walked_only_for_commits(self, store):
        """Ancestry is requested for base and remote, never the working tree."""
        SyncEngine(store, _profile(roots=["a.txt"])).run()

        assert sorted(store.ancestry_calls) == [("a.txt", "B"), ("a.txt", "R")]

    def test_shared_cache_reuses_trees(self, store):
        """A shared VariantCache opens each snapshot once across runs."""
        cache = VariantCache()

        SyncEngine(store, _profile(), cache=cache).run()
        SyncEngine(store, _profile(), cache=cache).run()

        assert store.open_tree_calls.count("R") == 1
        assert len(cache) == 3

    def test_unknown_remote(self, store):
        """An unresolvable remote aborts the run."""
        engine = SyncEngine(store, _profile(remote="nowhere"))
        with pytest.raises(SnapshotUnresolvable):
            engine.run()

    def test_cancelled_run(self, store):
        """A cancelled token raises Cancelled instead of a partial report."""
        token = CancelToken()
        token.cancel()
        with pytest.raises(Cancelled):
            SyncEngine(store, _profile()).run(token)

    def test_summary_counts(self, store):
        """summary() lists the count per direction."""
        report = SyncEngine(store, _profile(), "upstream").run()
        summary = report.summary()

        assert "Sync status for profile 'upstream'" in summary
        assert "Incoming:    2" in summary
        assert "Outgoing:    3" in summary
