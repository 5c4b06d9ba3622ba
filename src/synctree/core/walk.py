"""Lock-step tree walking primitives.

- ``PathFilter`` -- restricts a walk to a set of repository-relative paths.
- ``CancelToken`` -- cooperative cancellation checked between path visits.
- ``walk_trees`` -- merge-join over N sorted trees, one row per path.
"""

from __future__ import annotations

import heapq
import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from fnmatch import fnmatch
from typing import TYPE_CHECKING

from ..errors import Cancelled

if TYPE_CHECKING:
    from .store import TreeEntry, TreeHandle

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Return *path* as a repository-relative POSIX path without slashes
    at either end.  ``"."`` and ``""`` both denote the repository root."""
    path = path.replace("\\", "/").strip("/")
    if path in ("", "."):
        return ""
    while path.startswith("./"):
        path = path[2:]
    return path


def parent_of(path: str) -> str:
    """Return the parent folder of *path* (``""`` for top-level entries)."""
    head, _, _ = path.rpartition("/")
    return head


def is_under(path: str, folder: str) -> bool:
    """True if *path* equals *folder* or lies beneath it."""
    if not folder:
        return True
    return path == folder or path.startswith(folder + "/")


def matches_ignore(path: str, patterns: Iterable[str]) -> bool:
    """True if *path* or its final segment matches any glob in *patterns*."""
    name = path.rpartition("/")[2]
    return any(fnmatch(path, p) or fnmatch(name, p) for p in patterns)


class PathFilter:
    """A set of path prefixes a walk is restricted to.

    An empty filter (or one containing the repository root) matches every
    path.  Prefixes match whole segments only: ``src`` matches ``src/a.py``
    but not ``srcfoo.py``.
    """

    def __init__(self, paths: Iterable[str] = ()):
        normalized = sorted({normalize_path(p) for p in paths})
        if "" in normalized:
            normalized = []
        self.paths: tuple[str, ...] = tuple(normalized)

    @property
    def matches_all(self) -> bool:
        return not self.paths

    def matches(self, path: str) -> bool:
        """True if *path* lies under one of the filter prefixes."""
        if not self.paths:
            return True
        return any(is_under(path, p) for p in self.paths)

    def may_contain(self, folder: str) -> bool:
        """True if a walk must descend into *folder* to reach matches."""
        if not self.paths or not folder:
            return True
        return any(is_under(p, folder) or is_under(folder, p) for p in self.paths)

    def __repr__(self) -> str:
        return f"PathFilter({list(self.paths)!r})"


class CancelToken:
    """Cooperative cancellation flag shared between a caller and a walk.

    The caller calls ``cancel()`` from any thread; long-running walks call
    ``raise_if_cancelled()`` at every path boundary.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()


def check_cancelled(cancel: CancelToken | None) -> None:
    """Raise ``Cancelled`` if *cancel* has been signalled."""
    if cancel is not None:
        cancel.raise_if_cancelled()


def walk_trees(
    trees: Sequence[TreeHandle],
    path_filter: PathFilter | None = None,
    cancel: CancelToken | None = None,
) -> Iterator[tuple[str, tuple[TreeEntry | None, ...]]]:
    """Walk *trees* in lock-step over their sorted blob paths.

    Each yielded row is ``(path, entries)`` where ``entries[i]`` is the
    entry of ``trees[i]`` at *path*, or ``None`` when that tree has no blob
    there.  At least one entry in every row is present.

    Args:
        trees: Tree handles to join (typically two or four).
        path_filter: Optional restriction on visited paths.
        cancel: Optional token checked before each row is produced.

    Raises:
        Cancelled: If *cancel* is signalled mid-walk.
    """
    path_filter = path_filter or PathFilter()
    streams = [tree.paths() for tree in trees]

    visited = 0
    previous: str | None = None
    for path in heapq.merge(*streams):
        if path == previous:
            continue
        previous = path
        check_cancelled(cancel)
        if not path_filter.matches(path):
            continue
        visited += 1
        yield path, tuple(tree.get(path) for tree in trees)

    logger.debug("Walked %d paths across %d trees", visited, len(trees))
