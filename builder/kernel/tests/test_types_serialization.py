"""
Tests for Node serialization and the node factories.
"""

import json

from builder.kernel.nodes import generate_id, make_section_with_columns, make_widget
from builder.kernel.tree import collect_ids, count_nodes
from builder.kernel.types import Node


class TestNodeSerialization:
    def test_round_trip_through_json(self, page):
        restored = Node.from_dict(json.loads(json.dumps(page.to_dict())))
        assert restored == page

    def test_widget_type_key_only_on_widgets(self, page):
        d = page.to_dict()
        assert "widgetType" not in d
        assert "widgetType" not in d["children"][0]
        assert d["children"][0]["children"][0]["children"][0]["widgetType"] == "heading"

    def test_to_dict_does_not_share_mappings(self, page):
        d = page.to_dict()
        d["children"][0]["props"]["numColumns"] = 9
        assert page.children[0].props["numColumns"] == 2

    def test_from_dict_tolerates_missing_and_bad_fields(self):
        node = Node.from_dict({"id": 7, "kind": "column", "style": "oops", "responsive": {"mobile": "bad"}, "children": "x"})
        assert node.id == "7"
        assert node.style == {}
        assert node.responsive == {}
        assert node.children == []

    def test_has_responsive_overrides(self, page):
        heading = page.children[0].children[0].children[0]
        assert heading.has_responsive_overrides()
        assert not page.has_responsive_overrides()


class TestFactories:
    def test_generated_ids_are_unique(self):
        ids = {generate_id("widget") for _ in range(500)}
        assert len(ids) == 500
        assert all(i.startswith("widget-") for i in ids)

    def test_generate_id_avoids_taken(self):
        taken = {generate_id() for _ in range(10)}
        assert generate_id("node", taken) not in taken

    def test_generate_id_only_looks_up_taken(self):
        class LookupOnly:
            def __init__(self, ids):
                self.ids = set(ids)
                self.lookups = 0

            def __contains__(self, item):
                self.lookups += 1
                return item in self.ids

            def __iter__(self):
                raise AssertionError("taken ids were copied")

        taken = LookupOnly(generate_id() for _ in range(10))
        generate_id("node", taken)
        assert taken.lookups == 1

    def test_section_with_columns(self):
        section = make_section_with_columns(3)
        assert section.props["numColumns"] == 3
        assert [c.kind for c in section.children] == ["column"] * 3
        assert len(collect_ids(section)) == count_nodes(section) == 4
        assert section.advanced == {"display": "grid"}

    def test_section_with_columns_keeps_explicit_display(self):
        section = make_section_with_columns(2, advanced={"display": "flex", "zIndex": 1})
        assert section.advanced == {"display": "flex", "zIndex": 1}

    def test_widget_has_no_children(self):
        widget = make_widget("text", {"content": "x"})
        assert widget.children == []
        assert widget.widget_type == "text"
