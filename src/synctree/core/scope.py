"""Resolve user-selected filesystem locations into one repository scope.

- ``find_repository_root`` -- nearest enclosing git working tree.
- ``split_paths_by_repository`` -- group locations by repository.
- ``topmost_paths`` -- drop selections nested under another selection.
- ``resolve_scope`` -- the single (repository, paths) pair for a request.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from ..errors import AmbiguousScope, RepositoryNotFound
from .walk import is_under, normalize_path

logger = logging.getLogger(__name__)


def find_repository_root(location: str | os.PathLike) -> Path | None:
    """Return the nearest directory at or above *location* holding ``.git``."""
    current = Path(location).resolve()
    if not current.is_dir():
        current = current.parent
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def topmost_paths(paths: Iterable[str]) -> list[str]:
    """Keep only the paths that are not nested under another given path.

    The repository root (``""``) subsumes everything.
    """
    result: list[str] = []
    for path in sorted({normalize_path(p) for p in paths}):
        if any(is_under(path, kept) for kept in result):
            continue
        result.append(path)
    return result


def split_paths_by_repository(
    locations: Iterable[str | os.PathLike],
) -> dict[Path, list[str]]:
    """Group absolute *locations* by their enclosing repository.

    Returns:
        Mapping of repository root to repository-relative POSIX paths, in
        first-seen order.

    Raises:
        RepositoryNotFound: If a location lies outside every repository.
    """
    groups: dict[Path, list[str]] = {}
    for location in locations:
        absolute = Path(location).resolve()
        root = find_repository_root(absolute)
        if root is None:
            raise RepositoryNotFound(str(absolute))
        relative = normalize_path(absolute.relative_to(root).as_posix())
        groups.setdefault(root, []).append(relative)
    return groups


def resolve_scope(
    locations: Iterable[str | os.PathLike],
    repository: str | os.PathLike | None = None,
) -> tuple[Path, list[str]]:
    """Resolve *locations* to one repository and its topmost scope paths.

    With no locations the scope is the whole of *repository* (or of the
    repository enclosing the current directory).

    Args:
        locations: Filesystem locations selected by the caller.
        repository: Optional repository every location must belong to.

    Returns:
        ``(repository_root, paths)``; ``paths`` is empty for the whole
        repository.

    Raises:
        AmbiguousScope: If the locations span several repositories or lie
            outside *repository*.
        RepositoryNotFound: If a location is not inside any repository.
    """
    locations = list(locations)
    expected = Path(repository).resolve() if repository is not None else None

    if not locations:
        root = expected or find_repository_root(Path.cwd())
        if root is None:
            raise RepositoryNotFound(str(Path.cwd()))
        return root, []

    groups = split_paths_by_repository(locations)
    if len(groups) != 1:
        raise AmbiguousScope(locations)

    root, paths = next(iter(groups.items()))
    if expected is not None and root != expected:
        raise AmbiguousScope(
            locations, f"Selected paths are not inside {expected}"
        )

    scope = topmost_paths(paths)
    if scope == [""]:
        scope = []
    logger.debug("Resolved scope %s in %s", scope or "<all>", root)
    return root, scope
