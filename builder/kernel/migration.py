"""
Page Builder Kernel — Stored Payload Migration

load_tree(payload) → root Node, whatever shape the page was stored in:

  {"tree": Node}                       current wire format
  Node with kind "root"                bare tree
  {"sections": [Node, ...]}            sections saved without their root
  {"sections": [{id, type, order,      flat sections from the first
     visible, content, style}]}        storefront version, sorted by order
  None / anything else                 empty root

Corrupted `children` (a string or other non-list) are repaired to [].
Never raises on bad input.
"""

from __future__ import annotations

import logging
from typing import Any

from builder.kernel.nodes import generate_id, make_root
from builder.kernel.types import KIND_ROOT, KIND_SECTION, KINDS, Node

logger = logging.getLogger(__name__)


def load_tree(payload: Any) -> Node:
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Unreadable page payload of type %s, starting empty", type(payload).__name__)
        return make_root()

    if isinstance(payload.get("tree"), dict):
        return load_tree(payload["tree"])

    if _kind_of(payload) == KIND_ROOT:
        return Node.from_dict(_repair(payload))

    sections = payload.get("sections")
    if isinstance(sections, list):
        entries = [s for s in sections if isinstance(s, dict)]
        if any(_is_legacy_section(s) for s in entries):
            return make_root(_convert_legacy_sections(entries))
        return make_root([Node.from_dict(_repair(s)) for s in entries if "id" in s])

    if "id" in payload and _kind_of(payload) in KINDS:
        return make_root([Node.from_dict(_repair(payload))])

    logger.warning("Unrecognized page payload keys %s, starting empty", sorted(payload))
    return make_root()


def _kind_of(d: dict[str, Any]) -> str | None:
    kind = d.get("kind")
    if kind is None and d.get("type") in KINDS:
        kind = d["type"]
    return kind


def _repair(d: dict[str, Any]) -> dict[str, Any]:
    """Copy of a node dict with `kind` filled from `type` and children fixed."""
    fixed = dict(d)
    kind = _kind_of(d)
    if kind is not None:
        fixed["kind"] = kind
    if "id" not in fixed:
        fixed["id"] = generate_id(kind or "node")

    children = d.get("children", [])
    if not isinstance(children, list):
        logger.warning("Repairing corrupted children of node %s", fixed["id"])
        children = []
    fixed["children"] = [_repair(c) for c in children if isinstance(c, dict)]
    return fixed


def _is_legacy_section(d: dict[str, Any]) -> bool:
    return "kind" not in d and ("order" in d or "content" in d or "type" in d)


def _convert_legacy_sections(entries: list[dict[str, Any]]) -> list[Node]:
    def order(entry: dict[str, Any]) -> float:
        try:
            return float(entry.get("order") or 0)
        except (TypeError, ValueError):
            return 0.0

    nodes: list[Node] = []
    for entry in sorted(entries, key=order):
        content = entry.get("content") if isinstance(entry.get("content"), dict) else {}
        legacy_type = entry.get("type")
        props = dict(content)
        if legacy_type and legacy_type not in KINDS:
            props["legacyType"] = legacy_type
        advanced = {"hidden": True} if entry.get("visible") is False else {}
        nodes.append(
            Node.from_dict(
                _repair(
                    {
                        "id": str(entry.get("id") or generate_id(KIND_SECTION)),
                        "kind": KIND_SECTION,
                        "props": props,
                        "style": entry.get("style") if isinstance(entry.get("style"), dict) else {},
                        "advanced": advanced,
                        "children": entry.get("children", []),
                    }
                )
            )
        )
    return nodes
