"""
Page Builder Kernel — Stylesheet Fragment Registry

Owns the generated `<style>` fragments of the editing canvas. Each
fragment has a deterministic element id and belongs to one node:

  responsive-styles-{nodeId}   tablet/mobile overrides
  section-responsive-{nodeId}  section grid collapse

Fragments follow the node lifecycle:
  mount/update  → upsert(node_id, fragment_id, css)  replaces, never appends
  unmount       → remove_node(node_id)               releases every fragment

sync(render_result) applies a whole render pass at once, so deleting a
node (or clearing its last override) also drops its stale rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from builder.kernel.renderer import (
    escape,
    render_tree,
    responsive_fragment_id,
    section_fragment_id,
)
from builder.kernel.types import Node, RenderOptions, RenderResult

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


class StylesheetRegistry:
    """Fragment id → (owner node id, css text). One entry per element id."""

    def __init__(self):
        self._fragments: dict[str, tuple[str, str]] = {}

    def __len__(self) -> int:
        return len(self._fragments)

    def __contains__(self, fragment_id: object) -> bool:
        return fragment_id in self._fragments

    def get(self, fragment_id: str) -> str | None:
        entry = self._fragments.get(fragment_id)
        return entry[1] if entry else None

    def fragment_ids(self) -> list[str]:
        return list(self._fragments)

    def owner(self, fragment_id: str) -> str | None:
        entry = self._fragments.get(fragment_id)
        return entry[0] if entry else None

    def upsert(self, node_id: str, fragment_id: str, css: str) -> bool:
        """Insert or replace a fragment. Returns True if anything changed."""
        if self._fragments.get(fragment_id) == (node_id, css):
            return False
        self._fragments[fragment_id] = (node_id, css)
        return True

    def remove(self, fragment_id: str) -> bool:
        return self._fragments.pop(fragment_id, None) is not None

    def remove_node(self, node_id: str) -> list[str]:
        """Release every fragment owned by `node_id`."""
        removed = [fid for fid, (owner, _) in self._fragments.items() if owner == node_id]
        for fragment_id in removed:
            del self._fragments[fragment_id]
        return removed

    def clear(self) -> None:
        self._fragments.clear()

    def sync(self, result: RenderResult) -> SyncReport:
        """
        Make the registry match one render pass: upsert every fragment of
        every rendered node, drop fragments a rendered node no longer
        produces, and release fragments of nodes that are gone.
        """
        report = SyncReport()
        mounted = set(result.node_ids)

        for node_id in result.node_ids:
            for fragment_id in (responsive_fragment_id(node_id), section_fragment_id(node_id)):
                css = result.fragments.get(fragment_id)
                if css is None:
                    if self.remove(fragment_id):
                        report.removed.append(fragment_id)
                    continue
                existed = fragment_id in self._fragments
                if self.upsert(node_id, fragment_id, css):
                    (report.updated if existed else report.added).append(fragment_id)

        for fragment_id, (owner, _) in list(self._fragments.items()):
            if owner not in mounted:
                del self._fragments[fragment_id]
                report.removed.append(fragment_id)

        if report.removed:
            logger.debug("Released %d stylesheet fragment(s)", len(report.removed))
        return report

    def render_style_tags(self) -> str:
        return "\n".join(
            f'<style id="{escape(fragment_id)}">\n{css}\n</style>'
            for fragment_id, (_, css) in self._fragments.items()
        )


class CanvasRenderer:
    """
    The editing canvas: renders the tree and keeps its fragment registry
    in lock-step with what is mounted.
    """

    def __init__(self, options: RenderOptions | None = None):
        self.options = options or RenderOptions(editing=True)
        self.registry = StylesheetRegistry()
        self.last_report = SyncReport()

    def render(self, root: Node, device: str | None = None, selected_id: str | None = None) -> str:
        if device is not None:
            self.options.device = device
        self.options.selected_id = selected_id
        result = render_tree(root, self.options)
        self.last_report = self.registry.sync(result)
        return result.html

    def unmount(self) -> None:
        """Leaving the editor: release every fragment."""
        self.registry.clear()
