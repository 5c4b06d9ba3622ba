"""Snapshot store backed by an on-disk git repository.

Uses dulwich (pure Python git) for every object and history operation,
so no ``git`` binary is required.

Snapshot ids are 40-character hex commit ids, plus the pseudo-snapshots
``WORKTREE`` and ``INDEX``.  Content ids are git blob ids; working-tree
files are hashed with the same algorithm so they compare directly with
committed blobs.
"""

from __future__ import annotations

import io
import logging
import os
import stat
from pathlib import Path
from typing import BinaryIO

from dulwich.errors import MissingCommitError, NotCommitError, NotGitRepository
from dulwich.graph import find_merge_base
from dulwich.ignore import IgnoreFilterManager
from dulwich.index import ConflictedIndexEntry
from dulwich.object_store import iter_tree_contents
from dulwich.objects import S_ISGITLINK, Blob, Commit
from dulwich.objectspec import parse_commit
from dulwich.repo import Repo
from dulwich.walk import ORDER_DATE, Walker

from ..errors import ObjectUnreadable, RepositoryNotFound, SnapshotUnresolvable
from .store import (
    INDEX,
    MODE_EXECUTABLE,
    MODE_FILE,
    MODE_SYMLINK,
    WORKTREE,
    TreeEntry,
    TreeHandle,
)
from .walk import PathFilter, normalize_path, parent_of

logger = logging.getLogger(__name__)

# Files in the control directory naming the "other side" of an operation,
# in the order they are consulted.
_MERGE_STATE_FILES = ("MERGE_HEAD", "CHERRY_PICK_HEAD")


class GitSnapshotStore:
    """``SnapshotStore`` over a git working tree.

    Args:
        path: Root of the working tree (the directory holding ``.git``).
        first_parent: Restrict ancestry walks to first parents so history
            merged in from side branches is not chased.

    Raises:
        RepositoryNotFound: If *path* is not a git working tree.
    """

    def __init__(self, path: str | os.PathLike, first_parent: bool = False):
        try:
            self._repo = Repo(str(path))
        except NotGitRepository as exc:
            raise RepositoryNotFound(str(path)) from exc
        self.first_parent = first_parent
        # blob id -> absolute path of working-tree files hashed so far
        self._worktree_blobs: dict[str, str] = {}

    @property
    def root(self) -> Path:
        return Path(self._repo.path)

    @property
    def repo(self) -> Repo:
        return self._repo

    def close(self) -> None:
        self._repo.close()

    def __enter__(self) -> GitSnapshotStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, ref: str) -> str:
        if ref in (WORKTREE, INDEX):
            return ref
        try:
            commit = parse_commit(self._repo, ref.encode("utf-8"))
        except (KeyError, ValueError, NotCommitError) as exc:
            raise SnapshotUnresolvable(ref) from exc
        return commit.id.decode("ascii")

    def merge_target(self) -> str:
        control = Path(self._repo.controldir())
        for name in _MERGE_STATE_FILES:
            sha = _read_state_file(control / name)
            if sha:
                logger.debug("Merge target from %s: %s", name, sha)
                return self.resolve(sha)

        if (control / "rebase-merge").is_dir():
            sha = _read_state_file(control / "rebase-merge" / "stopped-sha")
            if sha:
                logger.debug("Merge target from interactive rebase: %s", sha)
                return self.resolve(sha)

        sha = _read_state_file(control / "ORIG_HEAD")
        if sha:
            logger.debug("Merge target from ORIG_HEAD: %s", sha)
            return self.resolve(sha)

        raise SnapshotUnresolvable(
            "MERGE_HEAD", "no merge, cherry-pick or rebase in progress"
        )

    # ------------------------------------------------------------------
    # Trees
    # ------------------------------------------------------------------

    def open_tree(
        self, snapshot: str, path_filter: PathFilter | None = None
    ) -> TreeHandle:
        path_filter = path_filter or PathFilter()
        if snapshot == WORKTREE:
            return TreeHandle(WORKTREE, self._scan_worktree(path_filter))
        if snapshot == INDEX:
            return self._read_index(path_filter)
        return TreeHandle(snapshot, self._commit_entries(snapshot, path_filter))

    def _commit_entries(
        self, commit_id: str, path_filter: PathFilter
    ) -> list[TreeEntry]:
        try:
            commit = self._repo[commit_id.encode("ascii")]
        except (KeyError, ValueError) as exc:
            raise SnapshotUnresolvable(commit_id) from exc
        if not isinstance(commit, Commit):
            raise SnapshotUnresolvable(commit_id, "not a commit")

        entries: list[TreeEntry] = []
        try:
            for item in iter_tree_contents(self._repo.object_store, commit.tree):
                if S_ISGITLINK(item.mode):
                    continue
                path = item.path.decode("utf-8")
                if path_filter.matches(path):
                    entries.append(
                        TreeEntry(path, item.sha.decode("ascii"), item.mode)
                    )
        except KeyError as exc:
            raise ObjectUnreadable(
                commit.tree.decode("ascii"), "tree object missing"
            ) from exc
        return entries

    def _read_index(self, path_filter: PathFilter) -> TreeHandle:
        try:
            index = self._repo.open_index()
        except OSError as exc:
            raise ObjectUnreadable("index", str(exc)) from exc

        entries: list[TreeEntry] = []
        conflicts: dict[str, dict[int, TreeEntry]] = {}
        for raw_path, value in index.items():
            path = raw_path.decode("utf-8")
            if not path_filter.matches(path):
                continue
            if isinstance(value, ConflictedIndexEntry):
                stages = {
                    stage: TreeEntry(path, side.sha.decode("ascii"), side.mode, stage)
                    for stage, side in (
                        (1, value.ancestor),
                        (2, value.this),
                        (3, value.other),
                    )
                    if side is not None
                }
                conflicts[path] = stages
                entries.append(stages[min(stages)])
            else:
                entries.append(
                    TreeEntry(path, value.sha.decode("ascii"), value.mode)
                )
        return TreeHandle(INDEX, entries, conflicts)

    def _scan_worktree(self, path_filter: PathFilter) -> list[TreeEntry]:
        root = self._repo.path
        tracked = {p.decode("utf-8") for p in self._repo.open_index()}
        tracked_dirs: set[str] = set()
        for path in tracked:
            parent = parent_of(path)
            while parent and parent not in tracked_dirs:
                tracked_dirs.add(parent)
                parent = parent_of(parent)
        ignore = IgnoreFilterManager.from_repo(self._repo)

        entries: list[TreeEntry] = []
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = normalize_path(os.path.relpath(dirpath, root))
            descend: list[str] = []
            for name in sorted(dirnames):
                rel = f"{rel_dir}/{name}" if rel_dir else name
                full = os.path.join(dirpath, name)
                if name == ".git":
                    continue
                if os.path.islink(full):
                    # symlinked directories are blobs in git
                    filenames.append(name)
                    continue
                if os.path.exists(os.path.join(full, ".git")):
                    continue
                if not path_filter.may_contain(rel):
                    continue
                if rel not in tracked_dirs and ignore.is_ignored(rel + "/"):
                    logger.debug("Skipping ignored directory %s", rel)
                    continue
                descend.append(name)
            dirnames[:] = descend

            for name in sorted(filenames):
                rel = f"{rel_dir}/{name}" if rel_dir else name
                if not path_filter.matches(rel):
                    continue
                ignored = rel not in tracked and bool(ignore.is_ignored(rel))
                entries.append(
                    self._hash_file(os.path.join(dirpath, name), rel, ignored)
                )

        logger.debug("Scanned %d working-tree files", len(entries))
        return entries

    def _hash_file(self, full_path: str, rel_path: str, ignored: bool) -> TreeEntry:
        try:
            st = os.lstat(full_path)
            if stat.S_ISLNK(st.st_mode):
                data = os.fsencode(os.readlink(full_path))
                mode = MODE_SYMLINK
            else:
                with open(full_path, "rb") as fh:
                    data = fh.read()
                mode = MODE_EXECUTABLE if st.st_mode & 0o111 else MODE_FILE
        except OSError as exc:
            raise ObjectUnreadable(rel_path, str(exc)) from exc

        blob_id = Blob.from_string(data).id.decode("ascii")
        self._worktree_blobs[blob_id] = full_path
        return TreeEntry(rel_path, blob_id, mode, ignored=ignored)

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    def open_blob(self, content_id: str) -> BinaryIO:
        try:
            obj = self._repo.object_store[content_id.encode("ascii")]
        except (KeyError, ValueError):
            obj = None
        if obj is not None:
            if not isinstance(obj, Blob):
                raise ObjectUnreadable(content_id, "not a blob")
            return io.BytesIO(obj.as_raw_string())

        full_path = self._worktree_blobs.get(content_id)
        if full_path is None:
            raise ObjectUnreadable(content_id, "no such blob")
        try:
            if os.path.islink(full_path):
                return io.BytesIO(os.fsencode(os.readlink(full_path)))
            with open(full_path, "rb") as fh:
                return io.BytesIO(fh.read())
        except OSError as exc:
            raise ObjectUnreadable(content_id, str(exc)) from exc

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def ancestry_of(self, path: str, tip: str) -> list[str]:
        kwargs = {}
        if self.first_parent:
            kwargs["get_parents"] = lambda commit: commit.parents[:1]
        paths = [path.encode("utf-8")] if path else None
        try:
            walker = Walker(
                self._repo.object_store,
                include=[tip.encode("ascii")],
                paths=paths,
                order=ORDER_DATE,
                **kwargs,
            )
            return [entry.commit.id.decode("ascii") for entry in walker]
        except (KeyError, MissingCommitError) as exc:
            raise SnapshotUnresolvable(tip) from exc

    def merge_base_of(self, commit_a: str, commit_b: str) -> str | None:
        try:
            bases = find_merge_base(
                self._repo, [commit_a.encode("ascii"), commit_b.encode("ascii")]
            )
        except KeyError as exc:
            raise SnapshotUnresolvable(f"{commit_a}...{commit_b}") from exc
        if not bases:
            return None
        return bases[0].decode("ascii")


def _read_state_file(path: Path) -> str | None:
    """Return the first line of a control-directory state file, if any."""
    try:
        content = path.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError):
        return None
    if not content:
        return None
    return content.splitlines()[0].strip()
