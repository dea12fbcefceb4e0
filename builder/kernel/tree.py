"""
Page Builder Kernel — Tree Operations

Pure functions over a Node tree: (root, args) → TreeResult
No IO. Input trees are never modified: every mutation rebuilds the nodes on
the path from the root to the change and shares every untouched subtree.

Queries return plain values (Node, list, None). Mutations never throw:
a bad id or an impossible move returns TreeResult(applied=False) carrying
the input root and a reason code.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from dataclasses import replace
from typing import Any

from builder.kernel.nodes import generate_id
from builder.kernel.types import (
    CYCLIC_MOVE,
    DUPLICATE_ID,
    INVALID_BUCKET,
    INVALID_INDEX,
    INVALID_PARENT,
    NODE_NOT_FOUND,
    ROOT_PROTECTED,
    Node,
    TreeResult,
)

_FIELD_BUCKETS = ("props", "style", "advanced")

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def find_node(root: Node, node_id: str) -> Node | None:
    """Depth-first search. Returns the first node whose id matches, or None."""
    for node in walk(root):
        if node.id == node_id:
            return node
    return None


def find_path(root: Node, node_id: str) -> list[Node] | None:
    """
    Ancestor chain from root to the target, both inclusive.
    The parent of the target is `path[-2]`. Returns None when not found.
    """
    path: list[Node] = []

    def visit(node: Node) -> bool:
        path.append(node)
        if node.id == node_id:
            return True
        for child in node.children:
            if visit(child):
                return True
        path.pop()
        return False

    return path if visit(root) else None


def get_breadcrumb(root: Node, node_id: str | None) -> list[Node]:
    """Breadcrumb for the editor: the path, or [] for no/unknown selection."""
    if node_id is None:
        return []
    return find_path(root, node_id) or []


def find_parent(root: Node, node_id: str) -> Node | None:
    path = find_path(root, node_id)
    if path is None or len(path) < 2:
        return None
    return path[-2]


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten(root: Node) -> list[Node]:
    return list(walk(root))


def count_nodes(root: Node) -> int:
    return sum(1 for _ in walk(root))


def collect_ids(root: Node) -> set[str]:
    return {node.id for node in walk(root)}


def subtree_ids(node: Node) -> list[str]:
    """Ids of `node` and all of its descendants, pre-order."""
    return [n.id for n in walk(node)]


def find_all(root: Node, kind: str) -> list[Node]:
    return [node for node in walk(root) if node.kind == kind]


def get_children(root: Node, node_id: str) -> list[Node]:
    node = find_node(root, node_id)
    return list(node.children) if node else []


def get_siblings(root: Node, node_id: str) -> list[Node]:
    parent = find_parent(root, node_id)
    if parent is None:
        return []
    return [child for child in parent.children if child.id != node_id]


def get_depth(root: Node, node_id: str) -> int:
    """Root has depth 0. Unknown ids return -1."""
    path = find_path(root, node_id)
    return len(path) - 1 if path else -1


def is_ancestor(root: Node, ancestor_id: str, node_id: str) -> bool:
    """True if `ancestor_id` is on the path to `node_id` (a node is its own ancestor)."""
    path = find_path(root, node_id)
    return path is not None and any(node.id == ancestor_id for node in path)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _reject(root: Node, code: str, detail: str) -> TreeResult:
    return TreeResult(root=root, applied=False, reason=f"{code}: {detail}")


def _ok(root: Node, node_id: str | None = None) -> TreeResult:
    return TreeResult(root=root, applied=True, node_id=node_id)


def _rebuild(path: list[Node], new_target: Node) -> Node:
    """
    Replace `path[-1]` with `new_target` and copy every ancestor on the way
    up. Siblings off the path are shared, not copied.
    """
    replacement = new_target
    for depth in range(len(path) - 1, 0, -1):
        parent = path[depth - 1]
        old = path[depth]
        children = [replacement if child is old else child for child in parent.children]
        replacement = replace(parent, children=children)
    return replacement


def _clamp_index(index: int | None, length: int) -> int:
    if index is None or index > length:
        return length
    if index < 0:
        return 0
    return index


def _clone_with_new_ids(node: Node, taken: set[str]) -> Node:
    """Deep copy of a subtree where every node gets a fresh id."""
    new_id = generate_id(node.kind, taken)
    taken.add(new_id)
    return Node(
        id=new_id,
        kind=node.kind,
        widget_type=node.widget_type,
        props=copy.deepcopy(node.props),
        style=copy.deepcopy(node.style),
        advanced=copy.deepcopy(node.advanced),
        responsive=copy.deepcopy(node.responsive),
        children=[_clone_with_new_ids(child, taken) for child in node.children],
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def update_node(root: Node, node_id: str, fn: Callable[[Node], Node]) -> TreeResult:
    """
    Copy-on-write update: replace the node with `fn(node)` at its position.
    `fn` must return a new Node and leave its argument untouched.
    """
    path = find_path(root, node_id)
    if path is None:
        return _reject(root, NODE_NOT_FOUND, f"'{node_id}' does not exist")
    return _ok(_rebuild(path, fn(path[-1])), node_id)


def update_fields(root: Node, node_id: str, bucket: str, updates: dict[str, Any]) -> TreeResult:
    """Shallow-merge `updates` into the node's `props`, `style` or `advanced`."""
    if bucket not in _FIELD_BUCKETS:
        return _reject(root, INVALID_BUCKET, f"unknown field bucket '{bucket}'")

    def merge(node: Node) -> Node:
        merged = {**getattr(node, bucket), **updates}
        return replace(node, **{bucket: merged})

    return update_node(root, node_id, merge)


def insert_node(root: Node, parent_id: str, new_node: Node, index: int | None = None) -> TreeResult:
    """
    Insert `new_node` as a child of `parent_id` at `index` (default: append).
    Out-of-range indexes clamp: beyond the end appends, negative prepends.

    Kind compatibility (e.g. widget directly under root) is NOT checked
    here; callers validate it before inserting.
    """
    path = find_path(root, parent_id)
    if path is None:
        return _reject(root, INVALID_PARENT, f"parent '{parent_id}' does not exist")

    clashes = collect_ids(root) & set(subtree_ids(new_node))
    if clashes:
        return _reject(root, DUPLICATE_ID, f"ids already in tree: {sorted(clashes)}")

    parent = path[-1]
    idx = _clamp_index(index, len(parent.children))
    children = [*parent.children[:idx], new_node, *parent.children[idx:]]
    return _ok(_rebuild(path, replace(parent, children=children)), new_node.id)


def delete_node(root: Node, node_id: str) -> TreeResult:
    """Remove the node and its whole subtree. The root is protected."""
    if node_id == root.id:
        return _reject(root, ROOT_PROTECTED, "the root node cannot be deleted")

    path = find_path(root, node_id)
    if path is None:
        return _reject(root, NODE_NOT_FOUND, f"'{node_id}' does not exist")

    target = path[-1]
    parent = path[-2]
    children = [child for child in parent.children if child is not target]
    return _ok(_rebuild(path[:-1], replace(parent, children=children)), node_id)


def duplicate_node(root: Node, node_id: str) -> TreeResult:
    """
    Deep-clone the subtree at `node_id` with fresh ids for every node and
    insert the clone right after the original. The new id is in
    `result.node_id`.
    """
    if node_id == root.id:
        return _reject(root, ROOT_PROTECTED, "the root node cannot be duplicated")

    path = find_path(root, node_id)
    if path is None:
        return _reject(root, NODE_NOT_FOUND, f"'{node_id}' does not exist")

    original = path[-1]
    parent = path[-2]
    clone = _clone_with_new_ids(original, collect_ids(root))

    idx = next(i for i, child in enumerate(parent.children) if child is original)
    children = [*parent.children[: idx + 1], clone, *parent.children[idx + 1 :]]
    return _ok(_rebuild(path[:-1], replace(parent, children=children)), clone.id)


def move_node(
    root: Node,
    node_id: str,
    target_parent_id: str,
    target_index: int | None = None,
) -> TreeResult:
    """
    Detach the node and re-insert it under `target_parent_id`.

    `target_index` is read against the target's children after the node has
    been detached, with the same clamping as insert_node. Moving a node into
    itself or one of its descendants is rejected.
    """
    if node_id == root.id:
        return _reject(root, ROOT_PROTECTED, "the root node cannot be moved")

    path = find_path(root, node_id)
    if path is None:
        return _reject(root, NODE_NOT_FOUND, f"'{node_id}' does not exist")

    moving = path[-1]
    if find_node(moving, target_parent_id) is not None:
        return _reject(root, CYCLIC_MOVE, f"'{target_parent_id}' is inside the subtree of '{node_id}'")
    if find_node(root, target_parent_id) is None:
        return _reject(root, INVALID_PARENT, f"parent '{target_parent_id}' does not exist")

    detached = delete_node(root, node_id)
    target_path = find_path(detached.root, target_parent_id)
    if target_path is None:
        return _reject(root, INVALID_PARENT, f"parent '{target_parent_id}' does not exist")

    target = target_path[-1]
    idx = _clamp_index(target_index, len(target.children))
    children = [*target.children[:idx], moving, *target.children[idx:]]
    return _ok(_rebuild(target_path, replace(target, children=children)), node_id)


def reorder_children(root: Node, parent_id: str, from_index: int, to_index: int) -> TreeResult:
    """Move one child within its parent. Out-of-range indexes are rejected."""
    path = find_path(root, parent_id)
    if path is None:
        return _reject(root, NODE_NOT_FOUND, f"'{parent_id}' does not exist")

    parent = path[-1]
    count = len(parent.children)
    if not (0 <= from_index < count and 0 <= to_index < count):
        return _reject(root, INVALID_INDEX, f"indexes {from_index}→{to_index} outside 0..{count - 1}")

    children = list(parent.children)
    moved = children.pop(from_index)
    children.insert(to_index, moved)
    return _ok(_rebuild(path, replace(parent, children=children)), moved.id)
