"""Tests for compare/merger.py: three-way merge, diffs and node previews.

Covers:
- attempt_merge() with clean merges, conflicts, and edge cases
- generate_diff() with additions, removals, and no-change scenarios
- preview_merge() / node_patch() resolving node elements through a store
"""

import pytest

from synctree.compare.merger import (
    attempt_merge,
    generate_diff,
    node_patch,
    preview_merge,
    read_element,
)
from synctree.compare.nodes import DiffKind, DiffNode, TypedElement
from synctree.errors import ObjectUnreadable


def element(store, path, content, revision="c1"):
    return TypedElement(path=path, revision=revision, content_id=store.id_of(content))


# ---------------------------------------------------------------------------
# attempt_merge tests
# ---------------------------------------------------------------------------


class TestAttemptMerge:
    """Tests for attempt_merge()."""

    def test_clean_merge_both_sides(self):
        """Both sides add non-conflicting content: should merge cleanly."""
        base = "line1\nline2\n"
        ours = "line1\nOURS\nline2\n"
        theirs = "line1\nline2\nTHEIRS\n"

        merged, has_conflicts = attempt_merge(base, ours, theirs)

        assert not has_conflicts
        assert "OURS" in merged
        assert "THEIRS" in merged

    def test_conflict_same_line(self):
        """Both sides modify the same content: conflict markers appear."""
        merged, has_conflicts = attempt_merge("line1\n", "ours\n", "theirs\n")

        assert has_conflicts
        assert "<<<<<<< OURS" in merged
        assert "=======" in merged
        assert ">>>>>>> THEIRS" in merged

    def test_identical_content(self):
        """Identical inputs merge to the same text."""
        content = "same\n"

        merged, has_conflicts = attempt_merge(content, content, content)

        assert not has_conflicts
        assert merged == content

    def test_one_side_changed(self):
        """A change on one side only is taken as is."""
        merged, has_conflicts = attempt_merge("old\n", "old\n", "new\n")

        assert not has_conflicts
        assert merged == "new\n"

    def test_multiline_non_overlapping_additions(self):
        """Additions in separate regions both survive."""
        base = "header\n\nmiddle\n\nfooter\n"
        ours = "header\n\nour section\n\nmiddle\n\nfooter\n"
        theirs = "header\n\nmiddle\n\ntheir section\n\nfooter\n"

        merged, has_conflicts = attempt_merge(base, ours, theirs)

        assert not has_conflicts
        assert "our section" in merged
        assert "their section" in merged

    def test_empty_all(self):
        """Empty inputs merge to empty text."""
        merged, has_conflicts = attempt_merge("", "", "")

        assert not has_conflicts
        assert merged == ""


# ---------------------------------------------------------------------------
# generate_diff tests
# ---------------------------------------------------------------------------


class TestGenerateDiff:
    """Tests for generate_diff()."""

    def test_basic_diff(self):
        """Removed and added lines are marked."""
        diff = generate_diff("line1\nline2\n", "line1\nchanged\n")

        assert "-line2" in diff
        assert "+changed" in diff

    def test_no_changes(self):
        """Equal texts give an empty diff."""
        assert generate_diff("same\n", "same\n") == ""

    def test_custom_labels(self):
        """Labels appear in the file header lines."""
        diff = generate_diff("old\n", "new\n", label_old="a/x.md", label_new="b/x.md")

        assert "--- a/x.md" in diff
        assert "+++ b/x.md" in diff


# ---------------------------------------------------------------------------
# Store-backed helpers
# ---------------------------------------------------------------------------


class TestNodeContent:
    """Tests for read_element(), preview_merge() and node_patch()."""

    def test_read_element(self, fake_store):
        """Elements are read as text; a missing element reads as empty."""
        assert read_element(fake_store, element(fake_store, "a", "text\n")) == "text\n"
        assert read_element(fake_store, None) == ""

    def test_read_missing_blob(self, fake_store):
        """An unknown content id raises ObjectUnreadable."""
        missing = TypedElement(path="a", revision="c1", content_id="0" * 40)
        with pytest.raises(ObjectUnreadable):
            read_element(fake_store, missing)

    def test_preview_conflict(self, fake_store):
        """Overlapping edits produce conflict markers."""
        node = DiffNode(
            name="f",
            kind=DiffKind.CONFLICT,
            ancestor=element(fake_store, "f", "base\n"),
            left=element(fake_store, "f", "ours\n"),
            right=element(fake_store, "f", "theirs\n"),
        )

        merged, has_conflicts = preview_merge(fake_store, node)

        assert has_conflicts
        assert "ours\n" in merged and "theirs\n" in merged

    def test_preview_clean(self, fake_store):
        """Non-overlapping edits merge cleanly."""
        node = DiffNode(
            name="f",
            kind=DiffKind.CONFLICT,
            ancestor=element(fake_store, "f", "a\nb\nc\n"),
            left=element(fake_store, "f", "A\nb\nc\n"),
            right=element(fake_store, "f", "a\nb\nC\n"),
        )

        merged, has_conflicts = preview_merge(fake_store, node)

        assert not has_conflicts
        assert merged == "A\nb\nC\n"

    def test_patch_of_change(self, fake_store):
        """A changed node diffs right against left with a/ and b/ labels."""
        node = DiffNode(
            name="f.txt",
            kind=DiffKind.CHANGE,
            left=element(fake_store, "src/f.txt", "new\n"),
            right=element(fake_store, "src/f.txt", "old\n"),
        )

        patch = node_patch(fake_store, node)

        assert "--- a/src/f.txt" in patch
        assert "+++ b/src/f.txt" in patch
        assert "-old" in patch
        assert "+new" in patch

    def test_patch_of_addition(self, fake_store):
        """An addition diffs against /dev/null."""
        node = DiffNode(
            name="f.txt",
            kind=DiffKind.ADDITION,
            left=element(fake_store, "f.txt", "hello\n"),
        )

        patch = node_patch(fake_store, node)

        assert "--- /dev/null" in patch
        assert "+hello" in patch
