"""Diff tree formatting functions.

- ``format_diff_tree`` -- indented text tree, folders first.
- ``diff_tree_to_json`` -- nested dict for JSON output.
"""

from __future__ import annotations

from .nodes import DiffKind, DiffNode, FolderNode, Node, TypedElement, sorted_children

_MARKERS = {
    DiffKind.ADDITION: "A",
    DiffKind.DELETION: "D",
    DiffKind.CHANGE: "M",
    DiffKind.CONFLICT: "C",
}


def format_diff_tree(root: FolderNode, indent: str = "  ") -> str:
    """Render *root* as an indented tree.

    Folders end with ``/`` (containers are marked ``[container]``); leaves
    are prefixed with a one-letter kind marker.
    """
    lines: list[str] = []

    def _render(folder: FolderNode, depth: int) -> None:
        for child in sorted_children(folder):
            pad = indent * depth
            if child.is_folder:
                tag = " [container]" if child.is_container else ""
                lines.append(f"{pad}{child.name}/{tag}")
                _render(child, depth + 1)
            else:
                lines.append(f"{pad}{_MARKERS[child.kind]} {child.name}")

    _render(root, 0)
    if not lines:
        return "No differences."
    return "\n".join(lines)


def _element_to_json(element: TypedElement | None) -> dict | None:
    if element is None:
        return None
    return element.model_dump()


def _node_to_json(node: Node) -> dict:
    if isinstance(node, DiffNode):
        return {
            "name": node.name,
            "folder": False,
            "kind": node.kind.value,
            "ancestor": _element_to_json(node.ancestor),
            "left": _element_to_json(node.left),
            "right": _element_to_json(node.right),
        }
    return {
        "name": node.name,
        "folder": True,
        "container": node.is_container,
        "children": [_node_to_json(c) for c in node.children],
    }


def diff_tree_to_json(root: FolderNode) -> dict:
    """Convert a diff tree to a nested dict in insertion order."""
    leaves = list(root.leaves())
    counts = {kind.value: 0 for kind in _MARKERS}
    for leaf in leaves:
        counts[leaf.kind.value] += 1
    return {
        "counts": {"total": len(leaves), **counts},
        "children": [_node_to_json(c) for c in root.children],
    }
