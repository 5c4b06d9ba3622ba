"""Scoped variant trees and per-path ancestry chains.

- ``AncestryIndex`` -- newest-first commit chains for each visited blob.
- ``VariantTree`` -- the files and folders of one snapshot under a set of
  scope roots, with their content ids and (for commits) ancestry.
- ``VariantCache`` -- per-run cache keyed by (scope, snapshot).

Construction is all-or-nothing: an unreadable object, an unresolvable tip
or a cancellation aborts the build and nothing is cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..core.store import SnapshotStore, TreeHandle, is_commit_snapshot
from ..core.walk import CancelToken, PathFilter, check_cancelled, matches_ignore
from .models import LocalResource, Variant, VariantKind

logger = logging.getLogger(__name__)


class AncestryIndex:
    """Ancestry chains of a set of paths, bounded by one tip commit."""

    def __init__(self, tip: str, chains: dict[str, list[str]]):
        self.tip = tip
        self._chains = chains

    @classmethod
    def build(
        cls,
        store: SnapshotStore,
        tip: str,
        paths: Iterable[str],
        cancel: CancelToken | None = None,
    ) -> AncestryIndex:
        """Walk history once per path, newest commit first.

        Raises:
            SnapshotUnresolvable: If *tip* cannot be walked.
            Cancelled: If *cancel* is signalled.
        """
        chains: dict[str, list[str]] = {}
        for path in paths:
            check_cancelled(cancel)
            chains[path] = list(store.ancestry_of(path, tip))
        logger.debug("Built ancestry for %d paths at %s", len(chains), tip[:12])
        return cls(tip, chains)

    def chain_of(self, path: str) -> list[str]:
        """Return the chain for *path*; empty for unknown paths."""
        return list(self._chains.get(path, ()))

    def __contains__(self, path: str) -> bool:
        return path in self._chains

    def __len__(self) -> int:
        return len(self._chains)


class VariantTree:
    """Variants of one snapshot restricted to scope roots.

    Args:
        snapshot: The snapshot id the tree was built from.
        roots: Scope roots (empty for the whole snapshot).
        tree: Tree handle already restricted to *roots*.
        ancestry: Ancestry chains, for commit snapshots.
        ignore: Extra glob patterns treated as ignored.
    """

    def __init__(
        self,
        snapshot: str,
        roots: Sequence[str],
        tree: TreeHandle,
        ancestry: AncestryIndex | None = None,
        ignore: Sequence[str] = (),
    ):
        self.snapshot = snapshot
        self.roots = tuple(roots)
        self._tree = tree
        self._folders = tree.folders()
        self.ancestry = ancestry
        self._ignore = tuple(ignore)

    @classmethod
    def build(
        cls,
        store: SnapshotStore,
        snapshot: str,
        roots: Sequence[str] = (),
        cancel: CancelToken | None = None,
        with_ancestry: bool = True,
        ignore: Sequence[str] = (),
    ) -> VariantTree:
        """Materialize the variants of *snapshot* under *roots*.

        Ancestry chains are collected eagerly for every blob when
        *snapshot* is a commit and *with_ancestry* is set.

        Raises:
            SnapshotUnresolvable: If *snapshot* cannot be opened.
            ObjectUnreadable: If a tree or blob cannot be read.
            Cancelled: If *cancel* is signalled.
        """
        path_filter = PathFilter(roots)
        check_cancelled(cancel)
        tree = store.open_tree(snapshot, path_filter).filtered(path_filter)
        check_cancelled(cancel)

        ancestry = None
        if with_ancestry and is_commit_snapshot(snapshot):
            ancestry = AncestryIndex.build(store, snapshot, tree.paths(), cancel)

        logger.info(
            "Built variant tree for %s: %d blobs",
            snapshot[:12],
            len(tree),
        )
        return cls(snapshot, path_filter.paths, tree, ancestry, ignore)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def blob_paths(self) -> list[str]:
        return self._tree.paths()

    def folder_paths(self) -> set[str]:
        return set(self._folders)

    def variant_of(self, path: str) -> Variant | None:
        """Return the variant at *path*, or ``None`` if absent."""
        entry = self._tree.get(path)
        if entry is not None:
            return Variant(path=path, kind=VariantKind.BLOB, content_id=entry.content_id)
        if path in self._folders:
            return Variant(path=path, kind=VariantKind.FOLDER)
        return None

    def members_of(self, folder: Variant) -> list[Variant]:
        """Immediate children of *folder*, folders and blobs in path order."""
        if not folder.is_folder:
            return []
        names: set[str] = set()
        for entry in self._tree.under(folder.path):
            rest = entry.path[len(folder.path) + 1 :] if folder.path else entry.path
            names.add(rest.split("/", 1)[0])
        prefix = folder.path + "/" if folder.path else ""
        members = (self.variant_of(prefix + name) for name in sorted(names))
        return [m for m in members if m is not None]

    def is_ignored(self, path: str) -> bool:
        entry = self._tree.get(path)
        if entry is not None and entry.ignored:
            return True
        return bool(self._ignore) and matches_ignore(path, self._ignore)

    def local_resource(self, path: str) -> LocalResource:
        """Describe *path* as the local side of a comparison."""
        variant = self.variant_of(path)
        if variant is None:
            return LocalResource(path=path, ignored=self.is_ignored(path))
        return LocalResource.from_variant(variant, ignored=self.is_ignored(path))

    def chain_of(self, path: str) -> list[str]:
        """Ancestry chain for *path*; empty without ancestry."""
        if self.ancestry is None:
            return []
        return self.ancestry.chain_of(path)

    def __len__(self) -> int:
        return len(self._tree)

    def __repr__(self) -> str:
        return f"VariantTree({self.snapshot!r}, roots={list(self.roots)!r})"


class VariantCache:
    """Variant trees of one comparison run, keyed by (scope, snapshot).

    Only successfully built trees are stored; a failed build leaves the
    cache untouched.
    """

    def __init__(self) -> None:
        self._trees: dict[tuple, VariantTree] = {}

    def get_or_build(
        self,
        store: SnapshotStore,
        snapshot: str,
        roots: Sequence[str] = (),
        cancel: CancelToken | None = None,
        with_ancestry: bool = True,
        ignore: Sequence[str] = (),
    ) -> VariantTree:
        key = (PathFilter(roots).paths, snapshot, with_ancestry, tuple(ignore))
        tree = self._trees.get(key)
        if tree is None:
            tree = VariantTree.build(
                store, snapshot, roots, cancel, with_ancestry, ignore
            )
            self._trees[key] = tree
        else:
            logger.debug("Variant cache hit for %s", snapshot[:12])
        return tree

    def clear(self) -> None:
        self._trees.clear()

    def __len__(self) -> int:
        return len(self._trees)
