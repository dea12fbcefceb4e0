"""
Page Builder Kernel — CSS Declarations

Turns a flattened style mapping (field name → stored value) into a list of
CSS longhand declarations:

  expand_declarations({"padding": {"top": 10}, "fontSize": 14})
    → [("padding-top", "10px"), ("font-size", "14px")]

Style values come in four shapes, tagged by field name:
  scalar     "40px", 2, "#fff"
  border     {width, style, color, radius}
  shadow     {offsetX, offsetY, blur, spread, color, inset}
  box-edges  {top, right, bottom, left}   (padding, margin)

Structured values always expand to longhands. No shorthand is ever
emitted, so desktop inline declarations and responsive stylesheet rules
override each other property by property.

Pure functions. No IO.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class StyleValueKind(str, Enum):
    SCALAR = "scalar"
    BORDER = "border"
    SHADOW = "shadow"
    BOX_EDGES = "box-edges"


_EDGES = ("top", "right", "bottom", "left")

_SHADOW_FIELDS = frozenset({"shadow", "boxShadow"})
_BOX_FIELDS = frozenset({"padding", "margin"})

# Color fields that alias a CSS property. The first one present wins.
_COLOR_ALIASES = {
    "color": "color",
    "textColor": "color",
    "bgColor": "backgroundColor",
    "backgroundColor": "backgroundColor",
}

# Field names whose CSS property differs from the field name.
_RENAMED = {
    "direction": "flexDirection",
    "alignment": "textAlign",
}

# Hover colors are never emitted as declarations.
_HOVER_FIELDS = frozenset({"hoverColor", "textHoverColor", "hoverBgColor"})

# Editor-only keys kept in `advanced`.
_EDITOR_ONLY = frozenset(
    {"customClass", "cssId", "hidden", "hideDesktop", "hideTablet", "hideMobile", "hideOn"}
)

LENGTH_PROPERTIES = frozenset(
    {
        "width",
        "height",
        "minWidth",
        "maxWidth",
        "minHeight",
        "maxHeight",
        "top",
        "right",
        "bottom",
        "left",
        "fontSize",
        "letterSpacing",
        "gap",
        "rowGap",
        "columnGap",
        "borderWidth",
        "borderRadius",
        "paddingTop",
        "paddingRight",
        "paddingBottom",
        "paddingLeft",
        "marginTop",
        "marginRight",
        "marginBottom",
        "marginLeft",
        "textIndent",
        "flexBasis",
    }
)

UNITLESS_PROPERTIES = frozenset(
    {"lineHeight", "opacity", "zIndex", "fontWeight", "flex", "flexGrow", "flexShrink", "order"}
)

CSS_PROPERTIES = LENGTH_PROPERTIES | UNITLESS_PROPERTIES | frozenset(
    {
        "color",
        "backgroundColor",
        "backgroundImage",
        "backgroundSize",
        "backgroundPosition",
        "backgroundRepeat",
        "backgroundAttachment",
        "borderStyle",
        "borderColor",
        "boxShadow",
        "fontFamily",
        "fontStyle",
        "textAlign",
        "textTransform",
        "textDecoration",
        "whiteSpace",
        "display",
        "flexDirection",
        "flexWrap",
        "justifyContent",
        "alignItems",
        "alignContent",
        "alignSelf",
        "gridTemplateColumns",
        "position",
        "overflow",
        "objectFit",
        "objectPosition",
        "aspectRatio",
        "transform",
        "transition",
        "cursor",
    }
)

_UNIT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))\s*([a-zA-Z%]*)\s*$")
_KEBAB_RE = re.compile(r"(?<!^)(?=[A-Z])")
_UNSAFE_CHARS = frozenset("{};<>")
_UNSAFE_PREFIXES = ("javascript:", "expression:", "expression(")

DEFAULT_SHADOW_COLOR = "rgba(0, 0, 0, 0.1)"


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def to_kebab(name: str) -> str:
    """fontSize → font-size"""
    return _KEBAB_RE.sub("-", name).lower()


def parse_unit(value: Any) -> tuple[float, str] | None:
    """
    Split "40px" → (40.0, "px"), "-1.5rem" → (-1.5, "rem"), "12" → (12.0, "").
    Returns None when the value does not start with a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value), ""
    if not isinstance(value, str):
        return None
    m = _UNIT_RE.match(value)
    if not m:
        return None
    return float(m.group(1)), m.group(2)


def format_number(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


def with_unit(value: Any, default_unit: str = "px") -> str | None:
    """
    Length coercion: bare numbers (and numeric strings) get `default_unit`,
    values carrying a unit or a keyword ("auto") pass through.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    parsed = parse_unit(value)
    if parsed is None:
        return str(value).strip()
    magnitude, unit = parsed
    if unit:
        return str(value).strip()
    if magnitude == 0:
        return "0"
    return f"{format_number(magnitude)}{default_unit}"


def sanitize(value: str) -> str | None:
    """Drop values that could break out of a declaration or run script."""
    lowered = value.strip().lower()
    if lowered.startswith(_UNSAFE_PREFIXES) or any(c in _UNSAFE_CHARS for c in value):
        logger.warning("Dropping unsafe CSS value %r", value)
        return None
    return value


def classify(name: str, value: Any) -> StyleValueKind:
    """Tag a stored style value by its field name (and container shape)."""
    if name == "border" and isinstance(value, dict):
        return StyleValueKind.BORDER
    if name in _SHADOW_FIELDS and isinstance(value, dict):
        return StyleValueKind.SHADOW
    if name in _BOX_FIELDS and isinstance(value, (dict, str, int, float)) and not isinstance(value, bool):
        return StyleValueKind.BOX_EDGES
    return StyleValueKind.SCALAR


# ---------------------------------------------------------------------------
# Structured expansions
# ---------------------------------------------------------------------------


def expand_border(value: dict[str, Any], default_unit: str = "px") -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    width = with_unit(value.get("width"), default_unit)
    if width is not None:
        out.append(("border-width", width))
    if value.get("style"):
        out.append(("border-style", str(value["style"])))
    if value.get("color"):
        out.append(("border-color", str(value["color"])))
    radius = with_unit(value.get("radius"), default_unit)
    if radius is not None:
        out.append(("border-radius", radius))
    return out


def expand_shadow(value: dict[str, Any]) -> list[tuple[str, str]]:
    if not value:
        return []

    def num(key: str) -> str:
        parsed = parse_unit(value.get(key))
        return format_number(parsed[0]) if parsed else "0"

    inset = "inset " if value.get("inset") else ""
    color = value.get("color") or DEFAULT_SHADOW_COLOR
    shadow = f"{inset}{num('offsetX')}px {num('offsetY')}px {num('blur')}px {num('spread')}px {color}"
    return [("box-shadow", shadow)]


def _edges_from_string(value: str) -> dict[str, str]:
    parts = value.split()
    if not parts or len(parts) > 4:
        return {}
    if len(parts) == 1:
        parts = parts * 4
    elif len(parts) == 2:
        parts = [parts[0], parts[1], parts[0], parts[1]]
    elif len(parts) == 3:
        parts = [parts[0], parts[1], parts[2], parts[1]]
    return dict(zip(_EDGES, parts))


def expand_box_edges(name: str, value: Any, default_unit: str = "px") -> list[tuple[str, str]]:
    """padding/margin → padding-top, padding-right, padding-bottom, padding-left"""
    if isinstance(value, dict):
        edges = {edge: value.get(edge) for edge in _EDGES}
    elif isinstance(value, str):
        edges = _edges_from_string(value)
    else:
        edges = {edge: value for edge in _EDGES}

    out: list[tuple[str, str]] = []
    for edge in _EDGES:
        css_value = with_unit(edges.get(edge), default_unit)
        if css_value is not None:
            out.append((f"{name}-{edge}", css_value))
    return out


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _background_image(value: str, asset_base_url: str) -> str:
    url = value.strip()
    if url.startswith("url("):
        return url
    if url.startswith("/api/") and asset_base_url:
        url = asset_base_url.rstrip("/") + url
    return f"url('{url}')"


def _scalar(name: str, value: Any, default_unit: str) -> str | None:
    if value is None or value == "" or isinstance(value, (bool, list, dict)):
        return None
    if name in LENGTH_PROPERTIES:
        return with_unit(value, default_unit)
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def expand_declarations(
    mapping: dict[str, Any],
    default_unit: str = "px",
    asset_base_url: str = "",
    variables: dict[str, str] | None = None,
) -> list[tuple[str, str]]:
    """
    Flattened style/advanced mapping → ordered (css-property, value) pairs.

    Later entries for the same property replace earlier ones, except color
    aliases where the first present field wins. `variables` maps widget
    settings that are not CSS properties (iconSize) to custom properties
    (--pb-icon-size); any other unknown field is skipped.
    """
    declarations: dict[str, str] = {}
    aliased: set[str] = set()
    variables = variables or {}

    for name, value in mapping.items():
        if name in _HOVER_FIELDS or name in _EDITOR_ONLY:
            continue

        kind = classify(name, value)
        if name in variables:
            css_value = None if isinstance(value, (dict, list)) else with_unit(value, default_unit)
            pairs = [(variables[name], css_value)] if css_value is not None else []
        elif kind is StyleValueKind.BORDER:
            pairs = expand_border(value, default_unit)
        elif kind is StyleValueKind.SHADOW:
            pairs = expand_shadow(value)
        elif kind is StyleValueKind.BOX_EDGES:
            pairs = expand_box_edges(name, value, default_unit)
        else:
            prop = _COLOR_ALIASES.get(name) or _RENAMED.get(name, name)
            if prop not in CSS_PROPERTIES:
                continue
            if name in _COLOR_ALIASES:
                if prop in aliased or value in (None, ""):
                    continue
                aliased.add(prop)
            if prop == "backgroundImage" and isinstance(value, str) and value:
                css_value = _background_image(value, asset_base_url)
            else:
                css_value = _scalar(prop, value, default_unit)
            pairs = [(to_kebab(prop), css_value)] if css_value is not None else []

        for prop, css_value in pairs:
            safe = sanitize(css_value)
            if safe is not None:
                declarations[prop] = safe

    return list(declarations.items())


def inline_style(declarations: list[tuple[str, str]]) -> str:
    """Declarations as an element `style` attribute value."""
    return "; ".join(f"{prop}: {value}" for prop, value in declarations)


def rule_body(declarations: list[tuple[str, str]], important: bool = False) -> str:
    suffix = " !important" if important else ""
    return " ".join(f"{prop}: {value}{suffix};" for prop, value in declarations)
