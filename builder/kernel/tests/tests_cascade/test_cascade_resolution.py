"""
Page Builder Cascade — Resolution Tests

desktop baseline → tablet override, desktop baseline → mobile override.
Mobile never reads tablet.
"""

import logging

import pytest

from builder.kernel.cascade import (
    clear_override,
    effective_overrides,
    flatten_buckets,
    is_hidden_on,
    is_overridden,
    merged_style,
    resolve_value,
    set_override,
)
from builder.kernel.nodes import make_section, make_widget


@pytest.fixture
def heading():
    node = make_widget("heading", {"content": "Hi"}, style={"fontSize": 32, "color": "#111"}, node_id="h")
    node.responsive = {"tablet": {"style": {"fontSize": 24}}}
    return node


class TestResolveValue:
    def test_desktop_reads_baseline(self, heading):
        assert resolve_value(heading, "fontSize", "desktop", "style") == 32

    def test_tablet_override_wins(self, heading):
        assert resolve_value(heading, "fontSize", "tablet", "style") == 24

    def test_mobile_falls_back_to_desktop_not_tablet(self, heading):
        assert resolve_value(heading, "fontSize", "mobile", "style") == 32

    def test_registry_default_when_unset(self, heading):
        assert resolve_value(heading, "textAlign", "mobile", "style") == "left"

    def test_none_when_undeclared_and_unset(self, heading):
        assert resolve_value(heading, "letterSpacing", "desktop", "style") is None

    def test_desktop_ignores_stray_desktop_override(self, heading):
        heading.responsive["desktop"] = {"style": {"fontSize": 99}}
        assert resolve_value(heading, "fontSize", "desktop", "style") == 32

    def test_non_responsive_override_ignored_and_logged(self, heading, caplog):
        heading.responsive["mobile"] = {"style": {"color": "#f00"}}
        with caplog.at_level(logging.DEBUG, logger="builder.kernel.cascade"):
            assert resolve_value(heading, "color", "mobile", "style") == "#111"
        assert "non-responsive" in caplog.text

    def test_non_responsive_override_does_not_warn_per_render(self, heading, caplog):
        heading.responsive["mobile"] = {"style": {"color": "#f00"}}
        with caplog.at_level(logging.WARNING, logger="builder.kernel.cascade"):
            for _ in range(3):
                resolve_value(heading, "color", "mobile", "style")
                effective_overrides(heading, "mobile", "style")
        assert [r for r in caplog.records if r.levelno >= logging.WARNING] == []

    def test_undeclared_field_is_responsive(self, heading):
        heading.responsive["mobile"] = {"style": {"textShadow": "none"}}
        assert resolve_value(heading, "textShadow", "mobile", "style") == "none"

    def test_props_bucket_cascades(self):
        section = make_section(props={"numColumns": 3}, node_id="s")
        section.responsive = {"mobile": {"props": {"numColumns": 1}}}
        assert resolve_value(section, "numColumns", "mobile", "props") == 1
        assert resolve_value(section, "numColumns", "tablet", "props") == 3


class TestIsOverridden:
    def test_exact_breakpoint_only(self, heading):
        assert is_overridden(heading, "fontSize", "tablet", "style")
        assert not is_overridden(heading, "fontSize", "mobile", "style")

    def test_desktop_never_overridden(self, heading):
        heading.responsive["desktop"] = {"style": {"fontSize": 1}}
        assert not is_overridden(heading, "fontSize", "desktop", "style")

    def test_other_bucket(self, heading):
        assert not is_overridden(heading, "fontSize", "tablet", "advanced")


class TestSetOverride:
    def test_set_then_resolve(self, heading):
        updated = set_override(heading, "fontSize", "mobile", "style", 18)
        assert resolve_value(updated, "fontSize", "mobile", "style") == 18
        assert is_overridden(updated, "fontSize", "mobile", "style")

    def test_returns_new_node(self, heading):
        updated = set_override(heading, "fontSize", "mobile", "style", 18)
        assert updated is not heading
        assert "mobile" not in heading.responsive

    def test_keeps_other_overrides(self, heading):
        updated = set_override(heading, "lineHeight", "tablet", "style", 1.4)
        assert updated.responsive["tablet"]["style"] == {"fontSize": 24, "lineHeight": 1.4}

    def test_desktop_writes_baseline(self, heading):
        updated = set_override(heading, "fontSize", "desktop", "style", 40)
        assert updated.style["fontSize"] == 40
        assert "desktop" not in updated.responsive

    def test_unknown_breakpoint_is_noop(self, heading):
        assert set_override(heading, "fontSize", "watch", "style", 10) is heading

    def test_unknown_bucket_is_noop(self, heading):
        assert set_override(heading, "fontSize", "mobile", "layout", 10) is heading


class TestClearOverride:
    def test_clear_restores_fallback(self, heading):
        cleared = clear_override(heading, "fontSize", "tablet", "style")
        assert resolve_value(cleared, "fontSize", "tablet", "style") == 32
        assert not is_overridden(cleared, "fontSize", "tablet", "style")

    def test_clear_prunes_empty_entries(self, heading):
        cleared = clear_override(heading, "fontSize", "tablet", "style")
        assert cleared.responsive == {}
        assert cleared.to_dict()["responsive"] == {}

    def test_set_then_clear_round_trips(self, heading):
        before = heading.to_dict()
        after = clear_override(set_override(heading, "padding", "mobile", "style", 4), "padding", "mobile", "style")
        assert after.to_dict() == before

    def test_clear_absent_returns_same_node(self, heading):
        assert clear_override(heading, "fontSize", "mobile", "style") is heading


class TestMergedBuckets:
    def test_merged_style(self, heading):
        assert merged_style(heading, "tablet") == {"fontSize": 24, "color": "#111"}

    def test_effective_overrides_skip_non_responsive(self, heading):
        heading.responsive["mobile"] = {"style": {"color": "#f00", "fontSize": 14}}
        assert effective_overrides(heading, "mobile", "style") == {"fontSize": 14}

    def test_advanced_applied_after_style(self):
        node = make_widget("text", style={"margin": 4}, advanced={"margin": 8}, node_id="t")
        assert flatten_buckets(node, "desktop")["margin"] == 8


class TestVisibility:
    @pytest.mark.parametrize("advanced,device,hidden", [
        ({"hidden": True}, "desktop", True),
        ({"hideMobile": True}, "mobile", True),
        ({"hideMobile": True}, "tablet", False),
        ({"hideOn": ["tablet"]}, "tablet", True),
        ({"hideOn": ["tablet"]}, "desktop", False),
        ({}, "mobile", False),
    ])
    def test_is_hidden_on(self, advanced, device, hidden):
        node = make_widget("text", advanced=advanced, node_id="t")
        assert is_hidden_on(node, device) is hidden
