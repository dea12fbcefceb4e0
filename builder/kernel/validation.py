"""
Page Builder Kernel — Tree Validation

validate_tree(root) → list of human-readable problems, [] when valid.
Used by the page API before persisting, and by tests as an invariant check
after every operation.
"""

from __future__ import annotations

from builder.kernel.controls import get_field
from builder.kernel.types import (
    BREAKPOINTS,
    DESKTOP,
    KIND_COLUMN,
    KIND_ROOT,
    KIND_SECTION,
    KIND_WIDGET,
    KINDS,
    Node,
)

# parent kind → allowed child kind
_CONTAINMENT = {
    KIND_ROOT: KIND_SECTION,
    KIND_SECTION: KIND_COLUMN,
    KIND_COLUMN: KIND_WIDGET,
}

_OVERRIDE_BUCKETS = ("style", "advanced", "props")


def can_contain(parent_kind: str, child_kind: str) -> bool:
    return _CONTAINMENT.get(parent_kind) == child_kind


def validate_tree(root: Node, check_overrides: bool = True) -> list[str]:
    """
    Structural checks (kinds, containment, unique ids) and, unless
    `check_overrides` is False, responsive data-quality checks.
    """
    errors: list[str] = []
    if root.kind != KIND_ROOT:
        errors.append(f"top node '{root.id}' has kind '{root.kind}', expected 'root'")

    seen: set[str] = set()

    def visit(node: Node, parent: Node | None) -> None:
        if node.id in seen:
            errors.append(f"duplicate id '{node.id}'")
        seen.add(node.id)

        if node.kind not in KINDS:
            errors.append(f"node '{node.id}' has unknown kind '{node.kind}'")
        if node.kind == KIND_ROOT and parent is not None:
            errors.append(f"root node '{node.id}' nested under '{parent.id}'")
        if node.kind == KIND_WIDGET and not node.widget_type:
            errors.append(f"widget '{node.id}' has no widgetType")
        if node.kind != KIND_WIDGET and node.widget_type is not None:
            errors.append(f"{node.kind} '{node.id}' must not carry widgetType")
        if node.kind == KIND_WIDGET and node.children:
            errors.append(f"widget '{node.id}' has children")
        if parent is not None and parent.kind in _CONTAINMENT and not can_contain(parent.kind, node.kind):
            errors.append(f"{parent.kind} '{parent.id}' cannot contain {node.kind} '{node.id}'")

        if check_overrides:
            errors.extend(_override_errors(node))

        for child in node.children:
            visit(child, node)

    visit(root, None)
    return errors


def _override_errors(node: Node) -> list[str]:
    errors: list[str] = []
    for breakpoint, entry in node.responsive.items():
        if breakpoint not in BREAKPOINTS or breakpoint == DESKTOP:
            errors.append(f"node '{node.id}' has overrides for unknown breakpoint '{breakpoint}'")
            continue
        for bucket, values in entry.items():
            if bucket not in _OVERRIDE_BUCKETS:
                errors.append(f"node '{node.id}' has unknown override bucket '{breakpoint}.{bucket}'")
                continue
            for field_name in values:
                declared = get_field(node, bucket, field_name)
                if declared is not None and not declared.responsive:
                    errors.append(
                        f"node '{node.id}' overrides non-responsive field '{bucket}.{field_name}' on {breakpoint}"
                    )
                elif declared is None and field_name not in getattr(node, bucket):
                    errors.append(
                        f"node '{node.id}' has orphan override '{breakpoint}.{bucket}.{field_name}'"
                    )
    return errors
