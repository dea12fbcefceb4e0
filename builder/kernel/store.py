"""
Page Builder Kernel — Builder State Store

The single owner of the page being edited: the current root Node plus the
editor session state (selection, device, save status, undo history).

Commands wrap tree.py and cascade.py. A command that applies:
  1. replaces the held root (copy-on-write, never mutated in place)
  2. records it in the undo history
  3. marks save_status = unsaved
  4. schedules a debounced save and notifies subscribers

A command that cannot apply (unknown id, cyclic move, kind mismatch) is a
no-op: root, history and save_status stay as they were, and the reason is
kept in `last_rejection`. Unexpected errors inside a command are logged
and the command is ignored.

Saving is the only IO. Saves never overlap: a save requested while one is
in flight is coalesced into one follow-up save of the latest tree.
A failed save sets save_status = error and keeps every edit in memory.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any

from builder.kernel import tree
from builder.kernel.cascade import clear_override, merged_advanced, merged_style, set_override
from builder.kernel.controls import is_responsive_field, widget_defaults
from builder.kernel.migration import load_tree
from builder.kernel.nodes import make_root, make_section_with_columns, make_widget
from builder.kernel.storage import PageStorage, PersistenceError
from builder.kernel.types import (
    BREAKPOINTS,
    BUCKET_ADVANCED,
    BUCKET_STYLE,
    DESKTOP,
    INVALID_BREAKPOINT,
    INVALID_PARENT,
    NON_RESPONSIVE_FIELD,
    NODE_NOT_FOUND,
    Node,
    SaveStatus,
    TreeResult,
)
from builder.kernel.validation import can_contain

logger = logging.getLogger(__name__)

Listener = Callable[["BuilderStore"], None]


def _command(method):
    """Run a store command; an unexpected error leaves the store untouched."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception:
            logger.exception("Store command %s failed and was ignored", method.__name__)
            return None

    return wrapper


class BuilderStore:
    def __init__(
        self,
        storage: PageStorage,
        page_id: str = "home",
        *,
        root: Node | None = None,
        debounce_seconds: float = 2.0,
        history_limit: int = 100,
        autosave: bool = True,
    ) -> None:
        self.storage = storage
        self.page_id = page_id
        self.debounce_seconds = debounce_seconds
        self.history_limit = max(1, history_limit)
        self.autosave = autosave

        self.root: Node = root or make_root()
        self.selected_node_id: str | None = None
        self.current_device: str = DESKTOP
        self.save_status: SaveStatus = SaveStatus.IDLE
        self.last_error: PersistenceError | None = None
        self.last_rejection: str | None = None

        # bumped on every applied change; a save records the version it wrote
        self.version = 0
        self.saved_version = 0
        self._failed_version: int | None = None

        self._history: list[Node] = [self.root]
        self._history_index = 0
        self._listeners: list[Listener] = []

        self._save_task: asyncio.Future | None = None
        self._save_again = False
        self._autosave_handle: asyncio.TimerHandle | None = None
        self._background: set[asyncio.Future] = set()

    # -----------------------------------------------------------------------
    # Read access
    # -----------------------------------------------------------------------

    @property
    def selected_node(self) -> Node | None:
        if self.selected_node_id is None:
            return None
        return tree.find_node(self.root, self.selected_node_id)

    @property
    def breadcrumb(self) -> list[Node]:
        return tree.get_breadcrumb(self.root, self.selected_node_id)

    @property
    def can_undo(self) -> bool:
        return self._history_index > 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    @property
    def is_dirty(self) -> bool:
        return self.version != self.saved_version

    def find(self, node_id: str) -> Node | None:
        return tree.find_node(self.root, node_id)

    def resolved(self, node_id: str, breakpoint: str | None = None) -> dict[str, dict[str, Any]] | None:
        """Effective style/advanced of a node for a device (default: current)."""
        node = self.find(node_id)
        if node is None:
            return None
        device = breakpoint or self.current_device
        return {
            "style": merged_style(node, device),
            "advanced": merged_advanced(node, device),
        }

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -----------------------------------------------------------------------
    # Tree commands
    # -----------------------------------------------------------------------

    @_command
    def insert(self, parent_id: str, node: Node, index: int | None = None) -> str | None:
        """Insert `node` under `parent_id` and select it. Returns the new id."""
        parent = self.find(parent_id)
        if parent is None:
            return self._reject(INVALID_PARENT, f"parent '{parent_id}' does not exist")
        if not can_contain(parent.kind, node.kind):
            return self._reject(INVALID_PARENT, f"{parent.kind} cannot contain {node.kind}")
        result = tree.insert_node(self.root, parent_id, node, index)
        if not self._apply(result, select=result.node_id):
            return None
        return result.node_id

    def add_section(self, num_columns: int = 1, index: int | None = None) -> str | None:
        return self.insert(self.root.id, make_section_with_columns(num_columns), index)

    def add_widget(
        self,
        column_id: str,
        widget_type: str,
        props: dict[str, Any] | None = None,
        index: int | None = None,
    ) -> str | None:
        """New widget with the registry defaults overlaid by `props`."""
        initial = {**widget_defaults(widget_type), **(props or {})}
        return self.insert(column_id, make_widget(widget_type, initial), index)

    @_command
    def delete(self, node_id: str) -> bool:
        result = tree.delete_node(self.root, node_id)
        return self._apply(result)

    @_command
    def duplicate(self, node_id: str) -> str | None:
        """Clone the subtree after the original and select the clone."""
        result = tree.duplicate_node(self.root, node_id)
        if not self._apply(result, select=result.node_id):
            return None
        return result.node_id

    @_command
    def move(self, node_id: str, target_parent_id: str, target_index: int | None = None) -> bool:
        node = self.find(node_id)
        target = self.find(target_parent_id)
        if node is not None and target is not None and not can_contain(target.kind, node.kind):
            self._reject(INVALID_PARENT, f"{target.kind} cannot contain {node.kind}")
            return False
        return self._apply(tree.move_node(self.root, node_id, target_parent_id, target_index))

    @_command
    def reorder_children(self, parent_id: str, from_index: int, to_index: int) -> bool:
        if from_index == to_index:
            return False
        return self._apply(tree.reorder_children(self.root, parent_id, from_index, to_index))

    # -----------------------------------------------------------------------
    # Field commands
    # -----------------------------------------------------------------------

    @_command
    def update_props(self, node_id: str, updates: dict[str, Any]) -> bool:
        return self._apply(tree.update_fields(self.root, node_id, "props", updates))

    @_command
    def update_style(self, node_id: str, updates: dict[str, Any]) -> bool:
        return self._apply(tree.update_fields(self.root, node_id, BUCKET_STYLE, updates))

    @_command
    def update_advanced(self, node_id: str, updates: dict[str, Any]) -> bool:
        return self._apply(tree.update_fields(self.root, node_id, BUCKET_ADVANCED, updates))

    @_command
    def update_responsive_style(self, node_id: str, breakpoint: str, updates: dict[str, Any]) -> bool:
        return self._set_overrides(node_id, breakpoint, BUCKET_STYLE, updates)

    @_command
    def update_responsive_advanced(self, node_id: str, breakpoint: str, updates: dict[str, Any]) -> bool:
        return self._set_overrides(node_id, breakpoint, BUCKET_ADVANCED, updates)

    @_command
    def update_responsive_props(self, node_id: str, breakpoint: str, updates: dict[str, Any]) -> bool:
        return self._set_overrides(node_id, breakpoint, "props", updates)

    @_command
    def clear_responsive_style(self, node_id: str, breakpoint: str, field: str) -> bool:
        return self._change_node(node_id, lambda n: clear_override(n, field, breakpoint, BUCKET_STYLE))

    @_command
    def clear_responsive_advanced(self, node_id: str, breakpoint: str, field: str) -> bool:
        return self._change_node(node_id, lambda n: clear_override(n, field, breakpoint, BUCKET_ADVANCED))

    # -----------------------------------------------------------------------
    # Session commands
    # -----------------------------------------------------------------------

    @_command
    def select_node(self, node_id: str | None) -> bool:
        if node_id is not None and self.find(node_id) is None:
            self._reject(NODE_NOT_FOUND, f"'{node_id}' does not exist")
            return False
        if node_id == self.selected_node_id:
            return False
        self.selected_node_id = node_id
        self._notify()
        return True

    @_command
    def set_device(self, breakpoint: str) -> bool:
        if breakpoint not in BREAKPOINTS:
            self._reject(INVALID_BREAKPOINT, f"unknown device '{breakpoint}'")
            return False
        if breakpoint == self.current_device:
            return False
        self.current_device = breakpoint
        self._notify()
        return True

    @_command
    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._history_index -= 1
        self._restore(self._history[self._history_index])
        return True

    @_command
    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._history_index += 1
        self._restore(self._history[self._history_index])
        return True

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    async def load(self) -> Node:
        """
        Replace the tree with the stored page. A page that was never saved
        loads as an empty root. On failure the current tree is kept.
        """
        self._cancel_autosave()
        try:
            payload = await self.storage.get(self.page_id)
        except PersistenceError as e:
            logger.warning("Loading page %s failed: %s", self.page_id, e)
            self.last_error = e
            self.save_status = SaveStatus.ERROR
            self._notify()
            return self.root

        self.root = load_tree(payload) if payload is not None else make_root()
        self._history = [self.root]
        self._history_index = 0
        self.selected_node_id = None
        self.version = 0
        self.saved_version = 0
        self._failed_version = None
        self.last_error = None
        self.last_rejection = None
        self.save_status = SaveStatus.IDLE
        self._notify()
        return self.root

    async def save(self, force: bool = False) -> bool:
        """
        Persist the current tree.

        Without `force` this only saves when there are unsaved changes,
        including edits made after the snapshot of a failed save.
        If a save is already running, this waits for it and for one
        follow-up save of the newest tree. Returns True when the tree
        held at the end has been stored.
        """
        self._cancel_autosave()
        if not force and not self._has_unsaved_edits():
            return False

        if self._save_task is not None and not self._save_task.done():
            self._save_again = True
            return await asyncio.shield(self._save_task)

        self._save_task = asyncio.ensure_future(self._save_loop())
        return await asyncio.shield(self._save_task)

    async def flush(self) -> bool:
        """Run a pending debounced save now, or wait for the running one."""
        if self._autosave_handle is not None:
            return await self.save()
        if self._save_task is not None and not self._save_task.done():
            return await asyncio.shield(self._save_task)
        return not self.is_dirty

    async def close(self) -> None:
        """Cancel the pending autosave and wait for in-flight saves."""
        self._cancel_autosave()
        pending = [t for t in (self._save_task, *self._background) if t is not None and not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _save_loop(self) -> bool:
        while True:
            self._save_again = False
            version = self.version
            snapshot = self.root.to_dict()
            self.save_status = SaveStatus.SAVING
            self._notify()

            try:
                await self.storage.put(self.page_id, snapshot)
            except PersistenceError as e:
                logger.warning("Saving page %s failed: %s", self.page_id, e)
                self.last_error = e
                self._failed_version = version
                self.save_status = SaveStatus.ERROR
                self._notify()
                if self._save_again and self.version != version:
                    # a newer tree was requested mid-save; try that one
                    continue
                return False

            self.saved_version = max(self.saved_version, version)
            self._failed_version = None
            self.last_error = None
            self.save_status = SaveStatus.SAVED if self.version == version else SaveStatus.UNSAVED
            self._notify()

            if not self._save_again or self.version == self.saved_version:
                return self.version == self.saved_version

    def _has_unsaved_edits(self) -> bool:
        if self.save_status is SaveStatus.UNSAVED:
            return True
        return (
            self.save_status is SaveStatus.ERROR
            and self._failed_version is not None
            and self.version > self._failed_version
        )

    def _schedule_autosave(self) -> None:
        if not self.autosave:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no event loop: saving is left to explicit save() calls
            return
        self._cancel_autosave()
        self._autosave_handle = loop.call_later(self.debounce_seconds, self._fire_autosave)

    def _cancel_autosave(self) -> None:
        if self._autosave_handle is not None:
            self._autosave_handle.cancel()
            self._autosave_handle = None

    def _fire_autosave(self) -> None:
        self._autosave_handle = None
        task = asyncio.ensure_future(self.save())
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Future) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Autosave of page %s crashed", self.page_id, exc_info=task.exception())

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _reject(self, code: str, detail: str) -> None:
        self.last_rejection = f"{code}: {detail}"
        logger.debug("Rejected command on page %s: %s", self.page_id, self.last_rejection)
        return None

    def _apply(self, result: TreeResult, select: str | None = None) -> bool:
        if not result.applied:
            self.last_rejection = result.reason
            logger.debug("Rejected command on page %s: %s", self.page_id, result.reason)
            return False
        self._commit(result.root)
        if select is not None:
            self.selected_node_id = select
        elif self.selected_node_id is not None and self.find(self.selected_node_id) is None:
            self.selected_node_id = None
        self._notify()
        return True

    def _change_node(self, node_id: str, fn: Callable[[Node], Node]) -> bool:
        """Apply a node-level change. A change that returns the same node is a no-op."""
        node = self.find(node_id)
        if node is None:
            self._reject(NODE_NOT_FOUND, f"'{node_id}' does not exist")
            return False
        changed = fn(node)
        if changed is node:
            return False
        return self._apply(tree.update_node(self.root, node_id, lambda _: changed))

    def _set_overrides(self, node_id: str, breakpoint: str, bucket: str, updates: dict[str, Any]) -> bool:
        if breakpoint not in BREAKPOINTS:
            self._reject(INVALID_BREAKPOINT, f"unknown breakpoint '{breakpoint}'")
            return False

        node = self.find(node_id)
        if node is not None and breakpoint != DESKTOP:
            fixed = [f for f in updates if not is_responsive_field(node, bucket, f)]
            if fixed:
                self._reject(NON_RESPONSIVE_FIELD, f"{bucket}.{', '.join(sorted(fixed))} cannot vary by device")
                return False

        def apply_all(node: Node) -> Node:
            for field, value in updates.items():
                node = set_override(node, field, breakpoint, bucket, value)
            return node

        return self._change_node(node_id, apply_all)

    def _commit(self, new_root: Node) -> None:
        self.root = new_root
        del self._history[self._history_index + 1 :]
        self._history.append(new_root)
        if len(self._history) > self.history_limit:
            del self._history[0 : len(self._history) - self.history_limit]
        self._history_index = len(self._history) - 1
        self._mark_unsaved()

    def _restore(self, root: Node) -> None:
        self.root = root
        self.selected_node_id = None
        self._mark_unsaved()
        self._notify()

    def _mark_unsaved(self) -> None:
        self.version += 1
        self.last_rejection = None
        self.save_status = SaveStatus.UNSAVED
        self._schedule_autosave()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener %r failed", listener)
