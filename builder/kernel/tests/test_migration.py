"""
Tests for loading stored page payloads into a root node.
"""

import logging

from builder.kernel.migration import load_tree
from builder.kernel.validation import validate_tree


class TestLoadTree:
    def test_none_is_empty_root(self):
        root = load_tree(None)
        assert root.kind == "root"
        assert root.children == []

    def test_wire_format(self, page):
        assert load_tree({"tree": page.to_dict()}) == page

    def test_bare_root(self, page):
        assert load_tree(page.to_dict()) == page

    def test_sections_without_root(self, page):
        sections = [s.to_dict() for s in page.children]
        root = load_tree({"sections": sections})
        assert [s.id for s in root.children] == ["sec-1", "sec-2"]
        assert validate_tree(root) == []

    def test_legacy_flat_sections_sorted_by_order(self):
        root = load_tree({
            "sections": [
                {"id": "b", "type": "products", "order": 2, "visible": False, "content": {"limit": 4}},
                {"id": "a", "type": "hero", "order": 1, "content": {"title": "Hi"}, "style": {"color": "#fff"}},
            ]
        })
        first, second = root.children
        assert (first.id, second.id) == ("a", "b")
        assert first.kind == "section"
        assert first.props == {"title": "Hi", "legacyType": "hero"}
        assert first.style == {"color": "#fff"}
        assert second.advanced == {"hidden": True}

    def test_type_used_as_kind(self):
        root = load_tree({"id": "root", "type": "root", "children": [{"id": "s", "type": "section"}]})
        assert root.children[0].kind == "section"

    def test_corrupted_children_repaired(self, caplog):
        with caplog.at_level(logging.WARNING, logger="builder.kernel.migration"):
            root = load_tree({"id": "root", "kind": "root", "children": [{"id": "s", "kind": "section", "children": "[]"}]})
        assert root.children[0].children == []
        assert "corrupted children" in caplog.text

    def test_single_section_wrapped(self):
        root = load_tree({"id": "s", "kind": "section"})
        assert root.kind == "root"
        assert root.children[0].id == "s"

    def test_garbage_is_empty_root(self):
        assert load_tree("not a tree").children == []
        assert load_tree({"foo": 1}).children == []
        assert load_tree([1, 2]).children == []
