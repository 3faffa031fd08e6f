"""Minimal mdast-style document tree used by the highlighting pipeline."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


CODE = "code"
HTML = "html"
ROOT = "root"


@dataclass(slots=True, eq=False)
class Node:
    """A typed document node.

    Parent nodes hold an ordered ``children`` list; leaf nodes carry their
    payload in ``value``. Code-fence nodes additionally expose ``lang`` and
    ``meta`` taken from the fence info line.
    """

    type: str
    value: str | None = None
    children: list[Node] | None = None
    lang: str | None = None
    meta: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


def root(*children: Node) -> Node:
    """Build a root node owning ``children``."""
    return Node(ROOT, children=list(children))


def code(value: str, lang: str | None = None, meta: str | None = None) -> Node:
    """Build a code-fence node."""
    return Node(CODE, value=value, lang=lang, meta=meta)


def html(value: str) -> Node:
    """Build an opaque HTML content node."""
    return Node(HTML, value=value)


def iter_nodes(
    tree: Node, node_type: str | None = None
) -> Iterator[tuple[Node, int | None, Node | None]]:
    """Yield ``(node, index, parent)`` in document order.

    The root is reported with ``index`` and ``parent`` set to ``None``. The
    traversal only reads the tree; callers must not mutate while iterating.
    """
    stack: list[tuple[Node, int | None, Node | None]] = [(tree, None, None)]
    while stack:
        node, index, parent = stack.pop()
        if node_type is None or node.type == node_type:
            yield node, index, parent
        if node.children:
            for child_index in range(len(node.children) - 1, -1, -1):
                stack.append((node.children[child_index], child_index, node))


__all__ = ["CODE", "HTML", "ROOT", "Node", "code", "html", "iter_nodes", "root"]
