"""
Page Builder Kernel — Style Resolution

The three-tier cascade: desktop baseline → tablet override, desktop
baseline → mobile override. Each override tier reads straight against
desktop; mobile never falls back through tablet.

  resolve_value(node, field, breakpoint, bucket) → value
  set_override(node, field, breakpoint, bucket, value) → Node
  clear_override(node, field, breakpoint, bucket) → Node

Pure functions. Nodes are never modified; updates return a new Node.
Cascade is keyed by field name only. Values (units, colors) are opaque
here; css.py deals with them at render time.

Overrides stored on a field the registry declares `responsive: false`
are data anomalies: they are ignored, never applied. Resolution runs on
every render, so it only logs them at debug level; validation.py is what
reports them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from builder.kernel.controls import field_default, is_responsive_field
from builder.kernel.types import (
    BREAKPOINTS,
    BUCKET_ADVANCED,
    BUCKET_STYLE,
    DESKTOP,
    MOBILE,
    TABLET,
    Node,
)

logger = logging.getLogger(__name__)

# `props` may carry overrides too (section numColumns per device).
_CASCADE_BUCKETS = (BUCKET_STYLE, BUCKET_ADVANCED, "props")

_HIDE_FLAGS = {DESKTOP: "hideDesktop", TABLET: "hideTablet", MOBILE: "hideMobile"}


def _base(node: Node, bucket: str) -> dict[str, Any]:
    return getattr(node, bucket) if bucket in _CASCADE_BUCKETS else {}


def _raw_overrides(node: Node, breakpoint: str, bucket: str) -> dict[str, Any]:
    entry = node.responsive.get(breakpoint)
    if not isinstance(entry, dict):
        return {}
    values = entry.get(bucket)
    return values if isinstance(values, dict) else {}


def _honored(node: Node, field: str, bucket: str) -> bool:
    if is_responsive_field(node, bucket, field):
        return True
    logger.debug(
        "Ignoring override of non-responsive field %s.%s on node %s",
        bucket,
        field,
        node.id,
    )
    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_value(node: Node, field: str, breakpoint: str, bucket: str) -> Any:
    """
    Effective value of one field at one breakpoint.

    Order: override at `breakpoint` (tablet/mobile only, responsive fields
    only) → desktop baseline → registry default → None.
    """
    if breakpoint != DESKTOP:
        overrides = _raw_overrides(node, breakpoint, bucket)
        if field in overrides and _honored(node, field, bucket):
            return overrides[field]

    base = _base(node, bucket)
    if field in base:
        return base[field]

    return field_default(node, bucket, field)


def is_overridden(node: Node, field: str, breakpoint: str, bucket: str) -> bool:
    """True iff an override exists for exactly this breakpoint/bucket/field."""
    if breakpoint == DESKTOP:
        return False
    return field in _raw_overrides(node, breakpoint, bucket)


def set_override(node: Node, field: str, breakpoint: str, bucket: str, value: Any) -> Node:
    """
    Return a new node with the override set.

    On desktop the baseline itself is written, since desktop has no
    override tier. Unknown breakpoints or buckets return `node` unchanged.
    """
    if breakpoint not in BREAKPOINTS or bucket not in _CASCADE_BUCKETS:
        logger.debug("set_override ignored: breakpoint=%s bucket=%s", breakpoint, bucket)
        return node

    if breakpoint == DESKTOP:
        return replace(node, **{bucket: {**_base(node, bucket), field: value}})

    responsive = {bp: dict(entry) for bp, entry in node.responsive.items()}
    entry = responsive.setdefault(breakpoint, {})
    entry[bucket] = {**_raw_overrides(node, breakpoint, bucket), field: value}
    return replace(node, responsive=responsive)


def clear_override(node: Node, field: str, breakpoint: str, bucket: str) -> Node:
    """
    Return a new node without that single override.

    An emptied bucket is pruned, and so is an emptied breakpoint entry,
    so a cleared node serializes exactly like one that never had the
    override. Clearing an absent override returns `node` itself.
    """
    if not is_overridden(node, field, breakpoint, bucket):
        return node

    responsive = {bp: dict(entry) for bp, entry in node.responsive.items()}
    remaining = {k: v for k, v in responsive[breakpoint][bucket].items() if k != field}
    if remaining:
        responsive[breakpoint][bucket] = remaining
    else:
        del responsive[breakpoint][bucket]
        if not responsive[breakpoint]:
            del responsive[breakpoint]
    return replace(node, responsive=responsive)


def effective_overrides(node: Node, breakpoint: str, bucket: str) -> dict[str, Any]:
    """Overrides at `breakpoint` that the cascade honors (responsive fields only)."""
    if breakpoint == DESKTOP:
        return {}
    return {
        field: value
        for field, value in _raw_overrides(node, breakpoint, bucket).items()
        if _honored(node, field, bucket)
    }


def merged_bucket(node: Node, breakpoint: str, bucket: str) -> dict[str, Any]:
    """Desktop baseline with the honored overrides for `breakpoint` on top."""
    return {**_base(node, bucket), **effective_overrides(node, breakpoint, bucket)}


def merged_style(node: Node, breakpoint: str) -> dict[str, Any]:
    return merged_bucket(node, breakpoint, BUCKET_STYLE)


def merged_advanced(node: Node, breakpoint: str) -> dict[str, Any]:
    return merged_bucket(node, breakpoint, BUCKET_ADVANCED)


def flatten_buckets(node: Node, breakpoint: str) -> dict[str, Any]:
    """
    Style and advanced as one mapping, style first then advanced.

    The two buckets stay separate on the node; this is the single place
    where they meet, right before CSS emission.
    """
    return {**merged_style(node, breakpoint), **merged_advanced(node, breakpoint)}


def is_hidden_on(node: Node, device: str) -> bool:
    """Visibility flags from the desktop `advanced` bucket."""
    advanced = node.advanced
    if advanced.get("hidden"):
        return True
    flag = _HIDE_FLAGS.get(device)
    if flag and advanced.get(flag):
        return True
    hide_on = advanced.get("hideOn")
    return isinstance(hide_on, list) and device in hide_on


def is_hidden_everywhere(node: Node) -> bool:
    """Hidden on every device, either by `hidden` or by all per-device flags."""
    return all(is_hidden_on(node, device) for device in BREAKPOINTS)
