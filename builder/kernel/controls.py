"""
Page Builder Kernel — Control Schema Registry

Static description of the editable fields per node kind and widget type:
  (kind | widgetType) → { content: [Field], style: [Field], advanced: [Field] }

The editor panels build their controls from this data. The cascade reads
two things from it: a field's `responsive` flag (which fields may carry
per-breakpoint overrides) and its `default`.

Custom block types are added at import time with register_widget().
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from builder.kernel.types import KIND_COLUMN, KIND_ROOT, KIND_SECTION, KIND_WIDGET, Node


@dataclass(frozen=True)
class Field:
    name: str
    type: str
    default: Any = None
    responsive: bool = False
    options: tuple[Any, ...] | None = None
    min: float | None = None
    max: float | None = None
    unit: str | None = None
    label: str | None = None


@dataclass
class WidgetSchema:
    """Controls for one kind or widget type, grouped by editor tab."""

    key: str
    label: str
    icon: str = ""
    content: list[Field] = field(default_factory=list)
    style: list[Field] = field(default_factory=list)
    advanced: list[Field] = field(default_factory=list)

    def fields(self, bucket: str) -> list[Field]:
        # Node.props is edited from the "content" tab
        if bucket in ("props", "content"):
            return self.content
        if bucket == "style":
            return self.style
        if bucket == "advanced":
            return self.advanced
        return []

    def lookup(self, bucket: str, name: str) -> Field | None:
        for f in self.fields(bucket):
            if f.name == name:
                return f
        return None

    def defaults(self, bucket: str) -> dict[str, Any]:
        return {f.name: copy.deepcopy(f.default) for f in self.fields(bucket) if f.default is not None}


# ---------------------------------------------------------------------------
# Shared field groups
# ---------------------------------------------------------------------------

_SPACING = [
    Field("margin", "spacing", responsive=True),
    Field("padding", "spacing", responsive=True),
]

_VISIBILITY = [
    Field("customClass", "text"),
    Field("cssId", "text"),
    Field("hidden", "toggle", default=False),
    Field("hideDesktop", "toggle", default=False),
    Field("hideTablet", "toggle", default=False),
    Field("hideMobile", "toggle", default=False),
    Field("hideOn", "multiselect", options=("desktop", "tablet", "mobile")),
]

_TYPOGRAPHY = [
    Field("width", "unit-number", default="100%", responsive=True, unit="%"),
    Field("fontSize", "slider", responsive=True, min=12, max=72, unit="px"),
    Field("color", "color", default="#000000"),
    Field("hoverColor", "color"),
    Field("fontWeight", "select", options=("300", "400", "500", "700", "900")),
    Field("textAlign", "select", default="left", responsive=True, options=("left", "center", "right", "justify")),
    Field("lineHeight", "slider", responsive=True, min=1, max=3),
]

_CONTAINER_STYLE = [
    Field("backgroundColor", "color"),
    Field("backgroundImage", "image"),
    Field("backgroundSize", "select", default="cover", options=("cover", "contain", "auto")),
    Field("backgroundPosition", "select", default="center"),
    Field("minHeight", "unit-number", responsive=True, unit="px"),
    Field("height", "unit-number", responsive=True, unit="px"),
    Field("border", "border"),
    Field("shadow", "shadow"),
    *_SPACING,
    Field("gap", "unit-number", default="0px", responsive=True, unit="px"),
]

_FLEX_ADVANCED = [
    Field("direction", "buttongroup", responsive=True, options=("column", "row")),
    Field("display", "select", responsive=True, options=("block", "flex", "grid")),
    Field("flexDirection", "select", responsive=True, options=("row", "column")),
    Field("justifyContent", "align", options=("flex-start", "center", "flex-end", "space-between")),
    Field("alignItems", "align", options=("flex-start", "center", "flex-end")),
    Field("gap", "gap", responsive=True, unit="px"),
]


# ---------------------------------------------------------------------------
# Built-in schemas
# ---------------------------------------------------------------------------

_LAYOUT_SCHEMAS: dict[str, WidgetSchema] = {
    KIND_ROOT: WidgetSchema(key=KIND_ROOT, label="Page"),
    KIND_SECTION: WidgetSchema(
        key=KIND_SECTION,
        label="Section",
        content=[
            Field("contentWidthMode", "buttongroup", default="full_width", options=("full_width", "boxed")),
            Field("boxedMaxWidth", "number", default=1140, min=300, max=2000),
            Field("horizontalPadding", "number", default=15, min=0, max=200),
            Field("numColumns", "number", default=1, responsive=True, min=1, max=6),
        ],
        style=list(_CONTAINER_STYLE),
        advanced=[*_FLEX_ADVANCED, *_VISIBILITY],
    ),
    KIND_COLUMN: WidgetSchema(
        key=KIND_COLUMN,
        label="Column",
        content=[
            Field("verticalAlign", "select", default="flex-start", options=("flex-start", "center", "flex-end")),
            Field("horizontalAlign", "select", default="flex-start", options=("flex-start", "center", "flex-end")),
            Field("gap", "unit-number", default="0px", responsive=True, unit="px"),
        ],
        style=[
            Field("backgroundColor", "color"),
            *_SPACING,
            Field("border", "border"),
            Field("shadow", "shadow"),
            Field("minHeight", "unit-number", responsive=True, unit="px"),
            Field("height", "unit-number", responsive=True, unit="px"),
            Field("width", "unit-number", responsive=True, unit="%"),
        ],
        advanced=[
            Field("direction", "buttongroup", responsive=True, options=("column", "row")),
            Field("display", "select", default="flex", options=("block", "flex", "grid")),
            Field("flexDirection", "select", responsive=True, options=("row", "column")),
            Field("gap", "gap", responsive=True, unit="px"),
            *_VISIBILITY,
        ],
    ),
}

_WIDGET_SCHEMAS: dict[str, WidgetSchema] = {}


def register_widget(schema: WidgetSchema) -> WidgetSchema:
    """Register (or replace) a widget type. Returns the schema for chaining."""
    _WIDGET_SCHEMAS[schema.key] = schema
    return schema


register_widget(
    WidgetSchema(
        key="heading",
        label="Heading",
        icon="H",
        content=[
            Field("content", "text", default="Heading"),
            Field("link", "text", default=""),
            Field("openNewTab", "toggle", default=False),
            Field("level", "select", default="h2", options=("h1", "h2", "h3", "h4", "h5", "h6")),
        ],
        style=[*_TYPOGRAPHY, Field("letterSpacing", "slider", min=-5, max=20, unit="px"), *_SPACING],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="text",
        label="Text",
        icon="T",
        content=[Field("content", "richtext", default="<p>Add your text here</p>")],
        style=[*_TYPOGRAPHY, *_SPACING],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="button",
        label="Button",
        icon="fa-hand-pointer",
        content=[
            Field("text", "text", default="Click Me"),
            Field("icon", "icon", default=""),
            Field("link", "text", default="#"),
            Field("openNewTab", "toggle", default=False),
            Field("style", "select", default="primary", options=("primary", "secondary", "outline")),
        ],
        style=[
            Field("width", "unit-number", responsive=True),
            Field("buttonWidth", "unit-number", responsive=True),
            Field("fontSize", "slider", responsive=True, min=10, max=40, unit="px"),
            Field("textColor", "color", default="#ffffff"),
            Field("textHoverColor", "color"),
            Field("bgColor", "color", default="#0066cc"),
            Field("hoverBgColor", "color"),
            Field("paddingTop", "number", responsive=True, unit="px"),
            Field("paddingRight", "number", responsive=True, unit="px"),
            Field("paddingBottom", "number", responsive=True, unit="px"),
            Field("paddingLeft", "number", responsive=True, unit="px"),
            Field("borderRadius", "number", default=4, unit="px"),
            Field("alignment", "align", default="left", responsive=True, options=("left", "center", "right")),
            *_SPACING,
        ],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="image",
        label="Image",
        icon="fa-image",
        content=[
            Field("src", "image", default=""),
            Field("alt", "text", default=""),
            Field("caption", "text", default=""),
            Field("link", "text", default=""),
            Field("openNewTab", "toggle", default=False),
        ],
        style=[
            Field("width", "unit-number", default="100%", responsive=True, unit="%"),
            Field("height", "unit-number", responsive=True, unit="px"),
            Field("border", "border"),
            Field("boxShadow", "shadow"),
            Field("opacity", "slider", min=0, max=1),
            Field("objectFit", "select", default="cover", options=("cover", "contain", "fill", "none")),
            Field("alignment", "align", default="center", responsive=True, options=("left", "center", "right")),
            *_SPACING,
        ],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="video",
        label="Video",
        icon="fa-video",
        content=[
            Field("videoType", "select", default="youtube", options=("youtube", "upload")),
            Field("videoUrl", "text", default=""),
            Field("videoId", "text", default=""),
            Field("autoplay", "toggle", default=False),
            Field("showControls", "toggle", default=True),
            Field("loop", "toggle", default=False),
        ],
        style=[
            Field("width", "unit-number", default="100%", responsive=True, unit="%"),
            Field("aspectRatio", "select", default="16/9", options=("16/9", "4/3", "1/1")),
            Field("border", "border"),
            Field("boxShadow", "shadow"),
            Field("opacity", "slider", min=0, max=1),
            *_SPACING,
        ],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="divider",
        label="Divider",
        icon="fa-minus",
        style=[
            Field("lineStyle", "select", default="solid", options=("solid", "dashed", "dotted", "double")),
            Field("color", "color", default="#dddddd"),
            Field("thickness", "slider", default=1, responsive=True, min=1, max=20, unit="px"),
            Field("width", "unit-number", default="100%", unit="%"),
            Field("alignment", "align", default="center", options=("left", "center", "right")),
            Field("gap", "slider", default=15, responsive=True, unit="px"),
            *_SPACING,
        ],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="spacer",
        label="Spacer",
        icon="fa-arrows-alt-v",
        content=[Field("height", "slider", default=20, min=0, max=500, unit="px")],
        style=[Field("height", "slider", responsive=True, unit="px"), Field("backgroundColor", "color")],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="icon",
        label="Icon",
        icon="fa-star",
        content=[Field("icon", "icon", default="fas fa-star"), Field("link", "text", default="")],
        style=[
            Field("iconSize", "slider", default=40, responsive=True, unit="px"),
            Field("iconColor", "color", default="#333333"),
            Field("iconBackgroundColor", "color"),
            Field("iconPadding", "slider", responsive=True, unit="px"),
            Field("iconBorderRadius", "slider", responsive=True, unit="px"),
            Field("alignment", "align", default="center", options=("left", "center", "right")),
            Field("width", "unit-number", responsive=True),
            Field("margin", "spacing", responsive=True),
        ],
        advanced=list(_VISIBILITY),
    )
)

register_widget(
    WidgetSchema(
        key="iconlist",
        label="Icon List",
        icon="fa-list",
        content=[
            Field(
                "items",
                "repeater",
                default=[
                    {
                        "id": "item-1",
                        "icon": "fas fa-check",
                        "heading": "List item",
                        "text": "",
                        "link": "",
                        "openNewTab": False,
                    }
                ],
            ),
            Field("iconPosition", "select", default="left", options=("left", "top", "right")),
        ],
        style=[
            Field("itemsLayout", "select", default="vertical", options=("vertical", "horizontal")),
            Field("gap", "slider", responsive=True, unit="px"),
            Field("itemGap", "slider", responsive=True, unit="px"),
            Field("iconSize", "slider", default=20, unit="px"),
            Field("iconColor", "color"),
            Field("headingFontSize", "slider", responsive=True, unit="px"),
            Field("headingColor", "color"),
            Field("textFontSize", "slider", responsive=True, unit="px"),
            Field("textColor", "color"),
            *_SPACING,
        ],
        advanced=list(_VISIBILITY),
    )
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def widget_types() -> list[str]:
    return sorted(_WIDGET_SCHEMAS)


def get_widget_schema(widget_type: str) -> WidgetSchema | None:
    return _WIDGET_SCHEMAS.get(widget_type)


def get_schema(node: Node) -> WidgetSchema | None:
    """Schema for a node: layout kinds by kind, widgets by widget type."""
    if node.kind == KIND_WIDGET:
        return _WIDGET_SCHEMAS.get(node.widget_type or "")
    return _LAYOUT_SCHEMAS.get(node.kind)


def get_field(node: Node, bucket: str, name: str) -> Field | None:
    schema = get_schema(node)
    return schema.lookup(bucket, name) if schema else None


def field_default(node: Node, bucket: str, name: str) -> Any:
    """Declared default for a field, or None when undeclared."""
    f = get_field(node, bucket, name)
    return copy.deepcopy(f.default) if f else None


def is_responsive_field(node: Node, bucket: str, name: str) -> bool:
    """
    True if the field may carry per-breakpoint overrides.

    Only an explicit declaration with responsive=False says no. Fields
    missing from the registry (custom blocks, older data) are allowed.
    """
    f = get_field(node, bucket, name)
    return True if f is None else f.responsive


def widget_defaults(widget_type: str) -> dict[str, Any]:
    """Initial props for a new widget of this type, `{}` for unknown types."""
    schema = _WIDGET_SCHEMAS.get(widget_type)
    return schema.defaults("content") if schema else {}
