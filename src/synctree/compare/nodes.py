"""Diff tree node types.

A diff tree is made of two node varieties that never inherit from each
other:

- ``DiffNode`` -- a leaf describing one differing path, with optional
  ancestor/left/right ``TypedElement`` handles.
- ``FolderNode`` -- a grouping node owning an ordered list of children.

The root is a ``FolderNode`` with an empty name; it stands for the scope,
not a path.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Union

from pydantic import BaseModel


class DiffKind(str, Enum):
    """Classification of a leaf node."""

    NO_CHANGE = "no_change"
    ADDITION = "addition"
    DELETION = "deletion"
    CHANGE = "change"
    CONFLICT = "conflict"


class TypedElement(BaseModel):
    """Opaque handle to one side's content of a path.

    The diff core never reads content; callers resolve ``content_id``
    through the snapshot store.

    Attributes:
        path: Repository-relative POSIX path.
        revision: Snapshot id the content belongs to (commit id,
            ``WORKTREE`` or ``INDEX``).
        content_id: Blob id.
        stage: Index stage for conflict sides, 0 otherwise.
    """

    path: str
    revision: str
    content_id: str
    stage: int = 0

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        return self.path.rpartition("/")[2]


@dataclass
class DiffNode:
    """Leaf node for one differing path."""

    name: str
    kind: DiffKind
    ancestor: TypedElement | None = None
    left: TypedElement | None = None
    right: TypedElement | None = None

    is_folder = False

    @property
    def children(self) -> list[Node]:
        return []

    @property
    def path(self) -> str | None:
        for element in (self.left, self.right, self.ancestor):
            if element is not None:
                return element.path
        return None


class FolderNode:
    """Grouping node; its name is rewritten when folder chains collapse.

    Args:
        name: Folder name (one or more path segments).
        is_container: Tag marking a configured top-level container.
    """

    is_folder = True
    kind = DiffKind.NO_CHANGE
    ancestor = None
    left = None
    right = None

    def __init__(self, name: str = "", is_container: bool = False):
        self.name = name
        self.is_container = is_container
        self.children: list[Node] = []

    def folder(self, name: str) -> FolderNode | None:
        """Return the child folder called *name*, if any."""
        for child in self.children:
            if child.is_folder and child.name == name:
                return child
        return None

    def ensure_folder(self, name: str, is_container: bool = False) -> FolderNode:
        """Find or create the child folder called *name*."""
        existing = self.folder(name)
        if existing is not None:
            if is_container:
                existing.is_container = True
            return existing
        created = FolderNode(name, is_container)
        self.children.append(created)
        return created

    def add(self, node: DiffNode) -> DiffNode:
        """Append leaf *node*.

        Raises:
            ValueError: If *node* is a ``NO_CHANGE`` leaf or a leaf with the
                same name already exists here.
        """
        if node.kind == DiffKind.NO_CHANGE:
            raise ValueError(f"Refusing to insert unchanged node '{node.name}'")
        for child in self.children:
            if not child.is_folder and child.name == node.name:
                raise ValueError(f"Duplicate diff node '{node.name}'")
        self.children.append(node)
        return node

    def folders(self) -> list[FolderNode]:
        return [c for c in self.children if c.is_folder]

    def leaves(self) -> Iterator[DiffNode]:
        """Yield every leaf beneath this folder, depth-first."""
        for child in self.children:
            if child.is_folder:
                yield from child.leaves()
            else:
                yield child

    def walk(self, prefix: str = "") -> Iterator[tuple[str, Node]]:
        """Yield ``(display_path, node)`` for every descendant, depth-first."""
        for child in self.children:
            path = f"{prefix}/{child.name}" if prefix else child.name
            yield path, child
            if child.is_folder:
                yield from child.walk(path)

    def find(self, path: str) -> Node | None:
        """Look a node up by its display path (collapsed names included)."""
        for display, node in self.walk():
            if display == path:
                return node
        return None

    def __len__(self) -> int:
        return len(self.children)

    def __repr__(self) -> str:
        return f"FolderNode({self.name!r}, {len(self.children)} children)"


Node = Union[DiffNode, FolderNode]


def sorted_children(folder: FolderNode) -> list[Node]:
    """Children of *folder* with folders first, each group in insertion order."""
    return folder.folders() + [c for c in folder.children if not c.is_folder]
