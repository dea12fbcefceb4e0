"""
Page Builder Kernel — Shared Types

Data classes and vocabularies used across nodes, tree, cascade, renderer,
storage and store. These are the contracts that bind the kernel together.

A page is a tree of Node objects:
  root → section → column → widget

Each node carries a desktop baseline in `style` / `advanced` and optional
per-breakpoint overrides in `responsive[breakpoint][bucket]`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

KIND_ROOT = "root"
KIND_SECTION = "section"
KIND_COLUMN = "column"
KIND_WIDGET = "widget"

KINDS: tuple[str, ...] = (KIND_ROOT, KIND_SECTION, KIND_COLUMN, KIND_WIDGET)

DESKTOP = "desktop"
TABLET = "tablet"
MOBILE = "mobile"

BREAKPOINTS: tuple[str, ...] = (DESKTOP, TABLET, MOBILE)

# Breakpoints that can carry overrides. Desktop is the baseline itself.
OVERRIDE_BREAKPOINTS: tuple[str, ...] = (TABLET, MOBILE)

BUCKET_STYLE = "style"
BUCKET_ADVANCED = "advanced"

BUCKETS: tuple[str, ...] = (BUCKET_STYLE, BUCKET_ADVANCED)

ROOT_ID = "root"

# Rejection codes carried by TreeResult.reason
NODE_NOT_FOUND = "NODE_NOT_FOUND"
INVALID_PARENT = "INVALID_PARENT"
CYCLIC_MOVE = "CYCLIC_MOVE"
ROOT_PROTECTED = "ROOT_PROTECTED"
INVALID_INDEX = "INVALID_INDEX"
INVALID_BUCKET = "INVALID_BUCKET"
DUPLICATE_ID = "DUPLICATE_ID"
INVALID_BREAKPOINT = "INVALID_BREAKPOINT"
NON_RESPONSIVE_FIELD = "NON_RESPONSIVE_FIELD"


class SaveStatus(str, Enum):
    """Persistence state of the builder store, surfaced to the UI."""

    IDLE = "idle"
    UNSAVED = "unsaved"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Node
# ---------------------------------------------------------------------------


@dataclass
class Node:
    """
    One element of the page tree.

    Ownership of children is exclusive: a child list is never shared
    between two parents. Tree operations treat nodes as immutable and
    return new nodes along the modified path.
    """

    id: str
    kind: str
    widget_type: str | None = None
    props: dict[str, Any] = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)
    advanced: dict[str, Any] = field(default_factory=dict)
    responsive: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)

    def bucket(self, name: str) -> dict[str, Any]:
        """Return the desktop baseline mapping for `style` or `advanced`."""
        if name == BUCKET_STYLE:
            return self.style
        if name == BUCKET_ADVANCED:
            return self.advanced
        return {}

    def overrides(self, breakpoint: str, bucket: str) -> dict[str, Any]:
        """Raw override mapping for a breakpoint/bucket, `{}` when absent."""
        entry = self.responsive.get(breakpoint)
        if not isinstance(entry, dict):
            return {}
        values = entry.get(bucket)
        return values if isinstance(values, dict) else {}

    def has_responsive_overrides(self) -> bool:
        return any(
            self.overrides(bp, bucket) for bp in OVERRIDE_BREAKPOINTS for bucket in BUCKETS
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
        }
        if self.widget_type is not None:
            d["widgetType"] = self.widget_type
        d["props"] = copy.deepcopy(self.props)
        d["style"] = copy.deepcopy(self.style)
        d["advanced"] = copy.deepcopy(self.advanced)
        d["responsive"] = copy.deepcopy(self.responsive)
        d["children"] = [child.to_dict() for child in self.children]
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Node:
        children = d.get("children")
        if not isinstance(children, list):
            children = []
        return cls(
            id=str(d["id"]),
            kind=d.get("kind", KIND_SECTION),
            widget_type=d.get("widgetType"),
            props=_mapping(d.get("props")),
            style=_mapping(d.get("style")),
            advanced=_mapping(d.get("advanced")),
            responsive=_responsive(d.get("responsive")),
            children=[cls.from_dict(c) for c in children if isinstance(c, dict) and "id" in c],
        )


def _mapping(value: Any) -> dict[str, Any]:
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _responsive(value: Any) -> dict[str, dict[str, dict[str, Any]]]:
    """Copy the responsive mapping, dropping entries that are not mappings."""
    if not isinstance(value, dict):
        return {}
    result: dict[str, dict[str, dict[str, Any]]] = {}
    for breakpoint, entry in value.items():
        if not isinstance(entry, dict):
            continue
        result[breakpoint] = {
            bucket: copy.deepcopy(values) for bucket, values in entry.items() if isinstance(values, dict)
        }
    return result


# ---------------------------------------------------------------------------
# Results and options
# ---------------------------------------------------------------------------


@dataclass
class TreeResult:
    """
    Result of applying one tree operation.
    Tree operations never throw. They always return one of these.
    When `applied` is False, `root` is the input root, untouched.
    """

    root: Node
    applied: bool
    reason: str | None = None
    node_id: str | None = None  # id of the inserted/cloned/moved node, when relevant


@dataclass
class RenderOptions:
    """Options controlling how the renderer walks and emits the tree."""

    device: str = DESKTOP
    editing: bool = False
    selected_id: str | None = None
    tablet_max_width: int = 768
    mobile_max_width: int = 480
    default_unit: str = "px"
    asset_base_url: str = ""
    title: str = "Home"


@dataclass
class RenderResult:
    """HTML body for the tree plus the stylesheet fragments it needs."""

    html: str
    fragments: dict[str, str] = field(default_factory=dict)  # fragment element id → CSS text
    node_ids: list[str] = field(default_factory=list)  # every rendered node, pre-order
