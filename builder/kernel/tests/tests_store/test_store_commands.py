"""
Page Builder Store — Command Tests

Applied commands replace the root, mark the page unsaved and notify
subscribers. Commands that cannot apply change nothing at all.
"""

import pytest

from builder.kernel import tree
from builder.kernel.nodes import make_widget
from builder.kernel.storage import MemoryStorage
from builder.kernel.store import BuilderStore
from builder.kernel.types import SaveStatus
from builder.kernel.validation import validate_tree


@pytest.fixture
def store(page):
    return BuilderStore(MemoryStorage(), "home", root=page, autosave=False)


def assert_untouched(store, root):
    assert store.root is root
    assert store.save_status is SaveStatus.IDLE
    assert store.version == 0


# ============================================================================
# Tree commands
# ============================================================================

class TestInsert:
    def test_add_widget_selects_it(self, store):
        new_id = store.add_widget("col-3", "heading", {"content": "New"})
        assert new_id is not None
        assert store.selected_node_id == new_id
        node = store.find(new_id)
        assert node.props["content"] == "New"
        assert node.props["level"] == "h2"
        assert store.save_status is SaveStatus.UNSAVED
        assert validate_tree(store.root) == []

    def test_add_section_with_columns(self, store):
        section_id = store.add_section(3, index=0)
        assert store.root.children[0].id == section_id
        assert len(store.find(section_id).children) == 3

    def test_widget_into_section_rejected(self, store):
        root = store.root
        assert store.insert("sec-1", make_widget("text")) is None
        assert_untouched(store, root)
        assert store.last_rejection.startswith("INVALID_PARENT")

    def test_insert_into_missing_parent_rejected(self, store):
        root = store.root
        assert store.add_widget("ghost", "text") is None
        assert_untouched(store, root)


class TestDelete:
    def test_delete(self, store):
        assert store.delete("w-btn")
        assert store.find("w-btn") is None
        assert store.save_status is SaveStatus.UNSAVED

    def test_deleting_selected_clears_selection(self, store):
        store.select_node("w-head")
        store.delete("w-head")
        assert store.selected_node_id is None

    def test_deleting_ancestor_clears_selection(self, store):
        store.select_node("w-head")
        store.delete("sec-1")
        assert store.selected_node_id is None
        assert store.selected_node is None

    def test_deleting_other_node_keeps_selection(self, store):
        store.select_node("w-head")
        store.delete("sec-2")
        assert store.selected_node_id == "w-head"

    def test_stale_id_is_noop(self, store):
        root = store.root
        assert not store.delete("ghost")
        assert_untouched(store, root)

    def test_root_protected(self, store):
        root = store.root
        assert not store.delete("root")
        assert_untouched(store, root)
        assert store.last_rejection.startswith("ROOT_PROTECTED")


class TestDuplicateAndMove:
    def test_duplicate_selects_clone(self, store):
        clone_id = store.duplicate("w-head")
        assert clone_id not in (None, "w-head")
        assert store.selected_node_id == clone_id

    def test_move(self, store):
        assert store.move("w-btn", "col-3", 0)
        assert [c.id for c in store.find("col-3").children] == ["w-btn"]

    def test_move_kind_mismatch_rejected(self, store):
        root = store.root
        assert not store.move("w-btn", "sec-2")
        assert_untouched(store, root)

    def test_cyclic_move_rejected(self, store):
        root = store.root
        assert not store.move("sec-1", "col-1")
        assert_untouched(store, root)

    def test_reorder(self, store):
        assert store.reorder_children("root", 1, 0)
        assert [s.id for s in store.root.children] == ["sec-2", "sec-1"]

    def test_reorder_same_index_is_noop(self, store):
        assert not store.reorder_children("root", 0, 0)
        assert store.save_status is SaveStatus.IDLE


# ============================================================================
# Field commands
# ============================================================================

class TestFieldCommands:
    def test_update_props(self, store):
        assert store.update_props("w-head", {"content": "Changed"})
        assert store.find("w-head").props["content"] == "Changed"

    def test_update_style_and_advanced(self, store):
        store.update_style("w-text", {"fontSize": 18})
        store.update_advanced("w-text", {"customClass": "lead"})
        node = store.find("w-text")
        assert node.style == {"fontSize": 18}
        assert node.advanced == {"customClass": "lead"}
        assert store.version == 2

    def test_update_missing_node_is_noop(self, store):
        root = store.root
        assert not store.update_style("ghost", {"color": "red"})
        assert_untouched(store, root)

    def test_responsive_style(self, store):
        assert store.update_responsive_style("w-text", "tablet", {"fontSize": 15, "lineHeight": 1.2})
        assert store.find("w-text").responsive == {"tablet": {"style": {"fontSize": 15, "lineHeight": 1.2}}}
        assert store.resolved("w-text", "tablet")["style"] == {"fontSize": 15, "lineHeight": 1.2}
        assert store.resolved("w-text", "mobile")["style"] == {}

    def test_responsive_style_desktop_writes_baseline(self, store):
        store.update_responsive_style("w-text", "desktop", {"fontSize": 15})
        node = store.find("w-text")
        assert node.style == {"fontSize": 15}
        assert node.responsive == {}

    def test_responsive_advanced(self, store):
        store.update_responsive_advanced("w-text", "mobile", {"zIndex": 2})
        assert store.find("w-text").responsive["mobile"]["advanced"] == {"zIndex": 2}

    def test_responsive_unknown_breakpoint_rejected(self, store):
        root = store.root
        assert not store.update_responsive_style("w-text", "watch", {"fontSize": 1})
        assert_untouched(store, root)
        assert store.last_rejection.startswith("INVALID_BREAKPOINT")

    def test_responsive_non_responsive_field_rejected(self, store):
        root = store.root
        assert not store.update_responsive_style("w-head", "mobile", {"fontSize": 18, "color": "#f00"})
        assert_untouched(store, root)
        assert store.last_rejection.startswith("NON_RESPONSIVE_FIELD")
        assert "color" in store.last_rejection
        assert store.find("w-head").responsive == {"mobile": {"style": {"fontSize": 20}}}

    def test_non_responsive_field_still_editable_on_desktop(self, store):
        assert store.update_responsive_style("w-head", "desktop", {"color": "#f00"})
        assert store.find("w-head").style["color"] == "#f00"

    def test_clear_responsive_style(self, store):
        assert store.clear_responsive_style("w-head", "mobile", "fontSize")
        assert store.find("w-head").responsive == {}

    def test_clear_absent_override_is_noop(self, store):
        root = store.root
        assert not store.clear_responsive_advanced("w-head", "mobile", "zIndex")
        assert_untouched(store, root)

    def test_responsive_section_columns(self, store):
        store.update_responsive_props("sec-1", "mobile", {"numColumns": 2})
        assert store.find("sec-1").responsive == {"mobile": {"props": {"numColumns": 2}}}

    def test_resolved_uses_current_device(self, store):
        store.set_device("mobile")
        assert store.resolved("w-head")["style"]["fontSize"] == 20
        assert store.resolved("ghost") is None


# ============================================================================
# Session commands
# ============================================================================

class TestSession:
    def test_select_and_breadcrumb(self, store):
        assert store.select_node("w-btn")
        assert [n.id for n in store.breadcrumb] == ["root", "sec-1", "col-2", "w-btn"]
        assert store.selected_node.widget_type == "button"

    def test_select_unknown_keeps_selection(self, store):
        store.select_node("w-btn")
        assert not store.select_node("ghost")
        assert store.selected_node_id == "w-btn"

    def test_deselect(self, store):
        store.select_node("w-btn")
        assert store.select_node(None)
        assert store.breadcrumb == []

    def test_selection_does_not_dirty(self, store):
        store.select_node("w-btn")
        assert store.save_status is SaveStatus.IDLE

    def test_set_device(self, store):
        assert store.set_device("tablet")
        assert store.current_device == "tablet"
        assert not store.set_device("tablet")
        assert not store.set_device("tv")
        assert store.current_device == "tablet"


# ============================================================================
# Undo / redo
# ============================================================================

class TestHistory:
    def test_undo_redo(self, store):
        original = store.root
        store.update_props("w-head", {"content": "one"})
        after_one = store.root
        store.update_props("w-head", {"content": "two"})

        assert store.undo()
        assert store.root is after_one
        assert store.undo()
        assert store.root is original
        assert not store.undo()

        assert store.redo()
        assert store.root is after_one

    def test_undo_marks_unsaved_and_clears_selection(self, store):
        store.update_props("w-head", {"content": "one"})
        store.select_node("w-head")
        store.undo()
        assert store.selected_node_id is None
        assert store.save_status is SaveStatus.UNSAVED

    def test_new_edit_drops_redo_branch(self, store):
        store.update_props("w-head", {"content": "one"})
        store.undo()
        store.update_props("w-head", {"content": "other"})
        assert not store.can_redo

    def test_history_is_bounded(self, page):
        store = BuilderStore(MemoryStorage(), root=page, autosave=False, history_limit=3)
        for i in range(10):
            store.update_props("w-head", {"content": str(i)})
        assert store.undo() and store.undo()
        assert not store.undo()
        assert store.find("w-head").props["content"] == "7"


# ============================================================================
# Subscribers and failures
# ============================================================================

class TestSubscribe:
    def test_notified_on_change(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(s.version))
        store.update_props("w-head", {"content": "x"})
        store.select_node("w-head")
        assert seen == [1, 1]

        unsubscribe()
        store.update_props("w-head", {"content": "y"})
        assert seen == [1, 1]

    def test_not_notified_on_noop(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(True))
        store.delete("ghost")
        assert seen == []

    def test_failing_listener_does_not_break_commands(self, store):
        def boom(_):
            raise RuntimeError("listener bug")

        store.subscribe(boom)
        assert store.update_props("w-head", {"content": "x"})
        assert store.find("w-head").props["content"] == "x"


class TestUnexpectedErrors:
    def test_command_error_is_ignored(self, store, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("bug")

        monkeypatch.setattr(tree, "update_fields", boom)
        root = store.root
        assert not store.update_props("w-head", {"content": "x"})
        assert_untouched(store, root)
