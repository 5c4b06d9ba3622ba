"""Shared pytest fixtures for synctree tests."""

from __future__ import annotations

import hashlib
import io
from pathlib import Path

import pytest
from dotenv import load_dotenv
from dulwich.index import build_index_from_tree, commit_tree
from dulwich.objects import Blob, Commit
from dulwich.repo import Repo

from synctree.core.store import INDEX, TreeEntry, TreeHandle
from synctree.core.walk import PathFilter
from synctree.errors import ObjectUnreadable, SnapshotUnresolvable

load_dotenv()


class FakeSnapshotStore:
    """In-memory ``SnapshotStore`` for testing.

    Snapshots are dicts of path -> content; content ids are SHA-1 hex
    digests of the content.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.ignored: dict[str, set[str]] = {}
        self.conflicts: dict[str, dict[int, str]] = {}
        self.refs: dict[str, str] = {}
        self.history: dict[tuple[str, str], list[str]] = {}
        self.merge_bases: dict[frozenset, str] = {}
        self.target: str | None = None
        self.ancestry_calls: list[tuple[str, str]] = []
        self.open_tree_calls: list[str] = []

    def id_of(self, content: str | bytes) -> str:
        data = content.encode() if isinstance(content, str) else content
        cid = hashlib.sha1(data).hexdigest()
        self.blobs[cid] = data
        return cid

    def add_snapshot(
        self,
        snapshot: str,
        files: dict[str, str],
        ignored: set[str] | None = None,
    ) -> str:
        self.trees[snapshot] = {p: self.id_of(c) for p, c in files.items()}
        self.ignored[snapshot] = set(ignored or ())
        return snapshot

    def add_conflict(self, path: str, stages: dict[int, str]) -> None:
        """Record an unresolved index entry; stage 1 is the ancestor."""
        ids = {stage: self.id_of(c) for stage, c in stages.items()}
        self.conflicts[path] = ids
        self.trees.setdefault(INDEX, {})[path] = ids[min(ids)]

    def set_history(self, path: str, tip: str, chain: list[str]) -> None:
        self.history[(path, tip)] = chain

    # SnapshotStore protocol

    def resolve(self, ref: str) -> str:
        if ref in self.refs:
            return self.refs[ref]
        if ref in self.trees:
            return ref
        raise SnapshotUnresolvable(ref)

    def open_tree(self, snapshot: str, path_filter: PathFilter | None = None) -> TreeHandle:
        if snapshot not in self.trees:
            raise SnapshotUnresolvable(snapshot)
        self.open_tree_calls.append(snapshot)
        path_filter = path_filter or PathFilter()
        ignored = self.ignored.get(snapshot, set())
        entries = [
            TreeEntry(path, cid, ignored=path in ignored)
            for path, cid in self.trees[snapshot].items()
            if path_filter.matches(path)
        ]
        conflicts = {}
        if snapshot == INDEX:
            conflicts = {
                path: {
                    stage: TreeEntry(path, cid, stage=stage)
                    for stage, cid in stages.items()
                }
                for path, stages in self.conflicts.items()
                if path_filter.matches(path)
            }
        return TreeHandle(snapshot, entries, conflicts)

    def open_blob(self, content_id: str):
        if content_id not in self.blobs:
            raise ObjectUnreadable(content_id)
        return io.BytesIO(self.blobs[content_id])

    def ancestry_of(self, path: str, tip: str) -> list[str]:
        self.ancestry_calls.append((path, tip))
        chain = self.history.get((path, tip), [])
        if isinstance(chain, Exception):
            raise chain
        return list(chain)

    def merge_base_of(self, commit_a: str, commit_b: str) -> str | None:
        base = self.merge_bases.get(frozenset((commit_a, commit_b)))
        if isinstance(base, Exception):
            raise base
        return base

    def merge_target(self) -> str:
        if self.target is None:
            raise SnapshotUnresolvable("MERGE_HEAD")
        return self.target


class GitRepoBuilder:
    """Builds real git repositories with dulwich objects.

    Commits get strictly increasing timestamps so date-ordered history is
    deterministic.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True, exist_ok=True)
        self.repo = Repo.init(str(path))
        self.repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/master")
        self._time = 1_700_000_000

    def commit(
        self,
        files: dict[str, str],
        parents: list[str] | None = None,
        ref: str = "refs/heads/master",
        message: str = "commit",
    ) -> str:
        """Commit exactly *files* as the full tree and advance *ref*."""
        ref_name = ref.encode()
        if parents is None:
            parents = (
                [self.repo.refs[ref_name].decode()] if ref_name in self.repo.refs else []
            )
        blobs = []
        for path, content in files.items():
            blob = Blob.from_string(content.encode())
            self.repo.object_store.add_object(blob)
            blobs.append((path.encode(), blob.id, 0o100644))

        commit = Commit()
        commit.tree = commit_tree(self.repo.object_store, blobs)
        commit.parents = [p.encode() for p in parents]
        commit.author = commit.committer = b"Test User <test@example.com>"
        self._time += 60
        commit.author_time = commit.commit_time = self._time
        commit.author_timezone = commit.commit_timezone = 0
        commit.encoding = b"UTF-8"
        commit.message = message.encode()
        self.repo.object_store.add_object(commit)
        self.repo.refs[ref_name] = commit.id
        return commit.id.decode()

    def checkout(self, commit_id: str) -> None:
        """Write the files and index of *commit_id* into the working tree."""
        tree_id = self.repo[commit_id.encode()].tree
        build_index_from_tree(
            self.repo.path,
            self.repo.index_path(),
            self.repo.object_store,
            tree_id,
        )

    def write(self, path: str, content: str) -> Path:
        target = self.path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        return target

    def blob_id(self, content: str) -> str:
        return Blob.from_string(content.encode()).id.decode()


@pytest.fixture
def fake_store():
    """An empty in-memory snapshot store."""
    return FakeSnapshotStore()


@pytest.fixture
def git_repo(tmp_path):
    """A fresh git repository builder rooted in a temporary directory."""
    builder = GitRepoBuilder(tmp_path / "repo")
    yield builder
    builder.repo.close()
