"""
Page Builder Kernel — Node Construction

Factory functions for creating well-formed nodes.
Used by the store and the editor panels to build new tree content,
and by tests to build trees concisely.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Container
from typing import Any

from builder.kernel.types import (
    KIND_COLUMN,
    KIND_ROOT,
    KIND_SECTION,
    KIND_WIDGET,
    ROOT_ID,
    Node,
)


def generate_id(prefix: str = "node", taken: Container[str] | None = None) -> str:
    """
    Build a fresh node id: `{prefix}-{millis hex}-{random}`.

    The timestamp keeps ids roughly ordered, the random suffix keeps ids
    unique when many are minted within the same millisecond (duplicating a
    large subtree). When `taken` is given (a set of ids already in use) the
    id is also checked against it. It is only read, never copied.
    """
    while True:
        node_id = f"{prefix}-{int(time.time() * 1000):x}-{uuid.uuid4().hex[:10]}"
        if taken is None or node_id not in taken:
            return node_id


def make_root(children: list[Node] | None = None) -> Node:
    """The empty page. Exactly one per tree, always id `root`."""
    return Node(id=ROOT_ID, kind=KIND_ROOT, children=list(children or []))


def make_section(
    *,
    props: dict[str, Any] | None = None,
    style: dict[str, Any] | None = None,
    advanced: dict[str, Any] | None = None,
    children: list[Node] | None = None,
    node_id: str | None = None,
) -> Node:
    return Node(
        id=node_id or generate_id(KIND_SECTION),
        kind=KIND_SECTION,
        props=dict(props or {}),
        style=dict(style or {}),
        advanced=dict(advanced or {}),
        children=list(children or []),
    )


def make_column(
    *,
    props: dict[str, Any] | None = None,
    style: dict[str, Any] | None = None,
    advanced: dict[str, Any] | None = None,
    children: list[Node] | None = None,
    node_id: str | None = None,
) -> Node:
    return Node(
        id=node_id or generate_id(KIND_COLUMN),
        kind=KIND_COLUMN,
        props=dict(props or {}),
        style=dict(style or {}),
        advanced=dict(advanced or {}),
        children=list(children or []),
    )


def make_widget(
    widget_type: str,
    initial_props: dict[str, Any] | None = None,
    *,
    style: dict[str, Any] | None = None,
    advanced: dict[str, Any] | None = None,
    node_id: str | None = None,
) -> Node:
    """
    Build a widget leaf. Widgets never have children.

    `initial_props` is used as-is; callers wanting the registry defaults
    pass `widget_defaults(widget_type)` (see controls).
    """
    return Node(
        id=node_id or generate_id(KIND_WIDGET),
        kind=KIND_WIDGET,
        widget_type=widget_type,
        props=dict(initial_props or {}),
        style=dict(style or {}),
        advanced=dict(advanced or {}),
    )


def make_section_with_columns(num_columns: int = 2, **kwargs: Any) -> Node:
    """
    A section pre-filled with `num_columns` empty columns (layout picker).
    Laid out as a grid, one track per column.
    """
    count = max(1, num_columns)
    props = {"numColumns": count, **(kwargs.pop("props", None) or {})}
    advanced = {"display": "grid", **(kwargs.pop("advanced", None) or {})}
    columns = [make_column() for _ in range(count)]
    return make_section(props=props, advanced=advanced, children=columns, **kwargs)
