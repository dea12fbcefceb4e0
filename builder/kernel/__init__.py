"""
Page Builder Kernel — the pure core of the visual page builder.

Components:
  tree        — copy-on-write queries and edits of the Root → Section →
                Column → Widget tree
  cascade     — responsive value resolution (mobile / tablet → desktop)
  renderer    — (tree, options) → HTML + per-node responsive CSS fragments
  stylesheet  — keeps mounted CSS fragments in step with the rendered tree
  store       — editor state: commands, selection, undo, debounced saving

Storage adapters (IO):
  MemoryStorage, HttpPageStorage, PostgresPageStorage
"""

from builder.kernel.cascade import is_overridden, resolve_value
from builder.kernel.migration import load_tree
from builder.kernel.renderer import compute_class_name, render_page, render_tree
from builder.kernel.storage import HttpPageStorage, MemoryStorage, PageStorage, PersistenceError
from builder.kernel.store import BuilderStore
from builder.kernel.stylesheet import CanvasRenderer, StylesheetRegistry
from builder.kernel.tree import find_node, find_parent, find_path
from builder.kernel.types import Node, RenderOptions, RenderResult, SaveStatus
from builder.kernel.validation import validate_tree

__all__ = [
    "Node",
    "RenderOptions",
    "RenderResult",
    "SaveStatus",
    "find_node",
    "find_parent",
    "find_path",
    "resolve_value",
    "is_overridden",
    "render_tree",
    "render_page",
    "compute_class_name",
    "validate_tree",
    "load_tree",
    "StylesheetRegistry",
    "CanvasRenderer",
    "BuilderStore",
    "PageStorage",
    "MemoryStorage",
    "HttpPageStorage",
    "PersistenceError",
]
