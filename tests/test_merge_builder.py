"""Tests for compare/merge.py: conflict-aware diff trees.

Covers:
- merge_state() per-path classification
- MergeTreeBuilder.build() conflict and auto-merged nodes
- ancestors from the merge base and degradation without one
- ignore patterns, scoping and explicit merge targets
"""

import pytest

from synctree.compare.merge import MergeState, MergeTreeBuilder, merge_state
from synctree.compare.nodes import DiffKind
from synctree.core.store import INDEX, WORKTREE, TreeEntry
from synctree.errors import SnapshotUnresolvable


@pytest.fixture
def store(fake_store):
    fake_store.add_snapshot(
        "head", {"conf.txt": "ours", "auto.txt": "old", "same.txt": "s"}
    )
    fake_store.add_snapshot(
        "other", {"conf.txt": "theirs", "auto.txt": "old", "same.txt": "s"}
    )
    fake_store.add_snapshot("base", {"conf.txt": "base", "auto.txt": "old"})
    fake_store.refs["HEAD"] = "head"
    fake_store.target = "other"
    fake_store.merge_bases[frozenset(("head", "other"))] = "base"

    fake_store.add_snapshot(INDEX, {"auto.txt": "merged", "same.txt": "s"})
    fake_store.add_conflict("conf.txt", {1: "base", 2: "ours", 3: "theirs"})
    fake_store.add_snapshot(
        WORKTREE,
        {
            "conf.txt": "<<<<<<< ours\n",
            "auto.txt": "merged",
            "same.txt": "s",
            "untracked.txt": "u",
        },
    )
    return fake_store


# ---------------------------------------------------------------------------
# merge_state
# ---------------------------------------------------------------------------


class TestMergeState:
    """Tests for merge_state()."""

    def entry(self, cid):
        """Build a TreeEntry with the given content id."""
        return TreeEntry("f", cid)

    def test_conflicting_wins(self):
        """Unresolved stages make a path conflicting regardless of content."""
        assert merge_state(None, None, None, True) == MergeState.CONFLICTING

    def test_untracked_is_unmodified(self):
        """A path missing from the index is unmodified."""
        assert merge_state(None, self.entry("w"), None, False) == MergeState.UNMODIFIED

    def test_differs_from_head(self):
        """Working tree content differing from HEAD is auto-merged."""
        state = merge_state(self.entry("w"), self.entry("w"), self.entry("h"), False)
        assert state == MergeState.AUTO_MERGED

    def test_absent_from_head(self):
        """A path HEAD does not hold is not auto-merged."""
        state = merge_state(self.entry("w"), self.entry("w"), None, False)
        assert state == MergeState.UNMODIFIED

    def test_same_as_head(self):
        """Content identical to HEAD is unmodified."""
        state = merge_state(self.entry("h"), self.entry("h"), self.entry("h"), False)
        assert state == MergeState.UNMODIFIED


# ---------------------------------------------------------------------------
# MergeTreeBuilder
# ---------------------------------------------------------------------------


class TestMergeTreeBuilder:
    """Tests for MergeTreeBuilder.build()."""

    def test_nodes_for_conflicts_and_auto_merges(self, store):
        """Only conflicting and auto-merged paths get nodes."""
        root = MergeTreeBuilder(store).build()

        assert sorted(n.name for n in root.leaves()) == ["auto.txt", "conf.txt"]
        assert root.find("same.txt") is None
        assert root.find("untracked.txt") is None

    def test_conflict_sides_from_index_stages(self, store):
        """Conflict nodes show stage 2 against stage 3."""
        conf = MergeTreeBuilder(store).build().find("conf.txt")

        assert conf.kind == DiffKind.CONFLICT
        assert conf.left.revision == INDEX
        assert conf.left.stage == 2
        assert conf.left.content_id == store.id_of("ours")
        assert conf.right.stage == 3
        assert conf.right.content_id == store.id_of("theirs")

    def test_ancestor_from_merge_base(self, store):
        """The ancestor element comes from the merge base."""
        root = MergeTreeBuilder(store).build()

        conf = root.find("conf.txt")
        assert conf.ancestor.revision == "base"
        assert conf.ancestor.content_id == store.id_of("base")

    def test_auto_merged_compares_worktree_with_head(self, store):
        """Auto-merged nodes show the working tree against HEAD."""
        auto = MergeTreeBuilder(store).build().find("auto.txt")

        assert auto.kind == DiffKind.CHANGE
        assert auto.left.revision == WORKTREE
        assert auto.left.content_id == store.id_of("merged")
        assert auto.right.revision == "head"
        assert auto.right.content_id == store.id_of("old")

    def test_use_worktree_for_conflicts(self, store):
        """use_worktree=True puts the working tree on the left of conflicts."""
        conf = MergeTreeBuilder(store, use_worktree=True).build().find("conf.txt")

        assert conf.left.revision == WORKTREE
        assert conf.left.content_id == store.id_of("<<<<<<< ours\n")
        assert conf.right.stage == 3

    def test_auto_merged_without_ancestor(self, store):
        """Without a merge base the node keeps both sides but no ancestor."""
        store.merge_bases.clear()

        auto = MergeTreeBuilder(store).build().find("auto.txt")

        assert auto.kind == DiffKind.CHANGE
        assert auto.left.revision == WORKTREE
        assert auto.right.revision == "head"
        assert auto.ancestor is None

    def test_path_absent_from_head_has_no_node(self, store):
        """A file the merge added to the index but HEAD lacks gets no node."""
        store.trees[INDEX]["new.txt"] = store.id_of("fresh")
        store.trees[WORKTREE]["new.txt"] = store.id_of("fresh")

        root = MergeTreeBuilder(store).build()

        assert root.find("new.txt") is None

    def test_merge_base_failure_drops_ancestors(self, store):
        """A failing merge base lookup leaves every ancestor empty."""
        store.merge_bases[frozenset(("head", "other"))] = SnapshotUnresolvable("x")

        root = MergeTreeBuilder(store).build()

        assert all(leaf.ancestor is None for leaf in root.leaves())
        assert len(list(root.leaves())) == 2

    def test_explicit_theirs(self, store):
        """An explicit other side replaces merge target detection."""
        store.target = None

        root = MergeTreeBuilder(store).build(theirs="other")

        assert root.find("conf.txt").ancestor is not None

    def test_no_merge_in_progress(self, store):
        """Without a merge target the build fails."""
        store.target = None
        with pytest.raises(SnapshotUnresolvable):
            MergeTreeBuilder(store).build()

    def test_ignore_patterns(self, store):
        """Ignore globs drop matching paths."""
        root = MergeTreeBuilder(store, ignore=["auto.*"]).build()
        assert [n.name for n in root.leaves()] == ["conf.txt"]

    def test_scope(self, store):
        """Scope paths limit the tree and collapse its folders."""
        store.trees[INDEX]["sub/deep/n.txt"] = store.id_of("n")
        store.trees[WORKTREE]["sub/deep/n.txt"] = store.id_of("n")
        store.trees["head"]["sub/deep/n.txt"] = store.id_of("h")

        root = MergeTreeBuilder(store).build(["sub"])

        assert [c.name for c in root.children] == ["sub/deep"]
