"""
Tests for tree validation and the containment rule.
"""

from builder.kernel.nodes import make_column, make_root, make_section, make_widget
from builder.kernel.types import Node
from builder.kernel.validation import can_contain, validate_tree


class TestCanContain:
    def test_hierarchy(self):
        assert can_contain("root", "section")
        assert can_contain("section", "column")
        assert can_contain("column", "widget")

    def test_violations(self):
        assert not can_contain("root", "widget")
        assert not can_contain("section", "widget")
        assert not can_contain("column", "section")
        assert not can_contain("widget", "widget")


class TestValidateTree:
    def test_valid_page(self, page):
        assert validate_tree(page) == []

    def test_top_must_be_root(self):
        errors = validate_tree(make_section(node_id="s"))
        assert any("expected 'root'" in e for e in errors)

    def test_duplicate_ids(self):
        root = make_root([make_section(node_id="dup"), make_section(node_id="dup")])
        assert "duplicate id 'dup'" in validate_tree(root)

    def test_widget_under_section(self):
        root = make_root([make_section(children=[make_widget("text", node_id="w")], node_id="s")])
        assert "section 's' cannot contain widget 'w'" in validate_tree(root)

    def test_widget_without_type(self):
        root = make_root([make_section(children=[make_column(children=[Node(id="w", kind="widget")], node_id="c")], node_id="s")])
        assert "widget 'w' has no widgetType" in validate_tree(root)

    def test_non_widget_with_type(self):
        section = make_section(node_id="s")
        section.widget_type = "heading"
        assert "section 's' must not carry widgetType" in validate_tree(make_root([section]))

    def test_unknown_kind(self):
        root = make_root([Node(id="x", kind="banner")])
        assert any("unknown kind 'banner'" in e for e in validate_tree(root))

    def test_override_checks(self):
        heading = make_widget("heading", style={"color": "#000"}, node_id="h")
        heading.responsive = {
            "desktop": {"style": {"fontSize": 1}},
            "mobile": {"style": {"color": "#f00", "madeUp": 1}, "layout": {}},
        }
        root = make_root([make_section(children=[make_column(children=[heading], node_id="c")], node_id="s")])
        errors = validate_tree(root)
        assert "node 'h' has overrides for unknown breakpoint 'desktop'" in errors
        assert "node 'h' overrides non-responsive field 'style.color' on mobile" in errors
        assert "node 'h' has orphan override 'mobile.style.madeUp'" in errors
        assert "node 'h' has unknown override bucket 'mobile.layout'" in errors
        assert validate_tree(root, check_overrides=False) == []
