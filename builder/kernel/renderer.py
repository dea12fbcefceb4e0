"""
Page Builder Kernel — Renderer

Pure function: (root, options?) → RenderResult(html, fragments, node_ids)
No IO. Deterministic: same tree + options → same output.

Two output layers per node:
- Inline `style` attribute: the node's resolved style/advanced for
  `options.device` (desktop on the live page).
- Stylesheet fragments: inline styles cannot express viewport conditions,
  so tablet/mobile overrides become `@media` rules scoped to the node's
  class, every declaration `!important` to beat the inline baseline.
  Fragment element ids are deterministic (`responsive-styles-{id}`,
  `section-responsive-{id}`) so a re-render replaces rather than appends;
  see stylesheet.py for the registry that keeps them in lock-step with
  the tree.

Containers (root/section/column) use only their own style. Nothing leaks
from a parent container into its children. Widgets are leaves rendered
from Mustache templates keyed by widget type.
"""

from __future__ import annotations

import re
from html import escape as _html_escape
from typing import Any

import chevron

from builder.kernel.cascade import (
    effective_overrides,
    flatten_buckets,
    is_hidden_everywhere,
    is_hidden_on,
    resolve_value,
)
from builder.kernel.controls import get_widget_schema
from builder.kernel.css import expand_declarations, inline_style, rule_body, sanitize, with_unit
from builder.kernel.types import (
    BUCKET_ADVANCED,
    BUCKET_STYLE,
    DESKTOP,
    KIND_COLUMN,
    KIND_ROOT,
    KIND_SECTION,
    KIND_WIDGET,
    MOBILE,
    OVERRIDE_BREAKPOINTS,
    TABLET,
    Node,
    RenderOptions,
    RenderResult,
)

_SAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9-]")
_YOUTUBE_ID = re.compile(r"(?:v=|youtu\.be/|embed/|shorts/)([A-Za-z0-9_-]{11})")
_VIDEO_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")
_HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")
_ICON_POSITIONS = ("left", "top", "right")

# Widget settings that are not CSS properties reach the template elements
# through custom properties, so responsive fragments can override them too.
_WIDGET_VARIABLES: dict[str, dict[str, str]] = {
    "divider": {
        "thickness": "--pb-divider-thickness",
        "lineStyle": "--pb-divider-style",
    },
    "icon": {
        "iconSize": "--pb-icon-size",
        "iconColor": "--pb-icon-color",
        "iconBackgroundColor": "--pb-icon-bg",
        "iconPadding": "--pb-icon-padding",
        "iconBorderRadius": "--pb-icon-radius",
    },
    "iconlist": {
        "iconSize": "--pb-icon-size",
        "iconColor": "--pb-icon-color",
        "itemGap": "--pb-item-gap",
        "headingFontSize": "--pb-heading-size",
        "headingColor": "--pb-heading-color",
        "textFontSize": "--pb-text-size",
    },
}

BASE_CSS = """
.pb-root { width: 100%; }
.pb-section { box-sizing: border-box; width: 100%; }
.pb-column { box-sizing: border-box; min-width: 0; }
.pb-widget { box-sizing: border-box; }
.pb-widget-button { display: inline-block; text-decoration: none; cursor: pointer; }
.pb-widget-image img, .pb-widget-video iframe, .pb-widget-video video { display: block; width: 100%; }
.pb-widget-video .pb-video-frame { position: relative; aspect-ratio: 16 / 9; }
.pb-widget-video iframe { height: 100%; border: 0; }
.pb-widget-divider hr {
  border: 0;
  border-top: var(--pb-divider-thickness, 1px) var(--pb-divider-style, solid) currentColor;
  margin: 0;
}
.pb-widget-icon i, .pb-iconlist-icon i {
  font-size: var(--pb-icon-size, 40px);
  color: var(--pb-icon-color, inherit);
  background: var(--pb-icon-bg, transparent);
  padding: var(--pb-icon-padding, 0);
  border-radius: var(--pb-icon-radius, 0);
}
.pb-iconlist { list-style: none; margin: 0; padding: 0; }
.pb-iconlist li { display: flex; gap: 12px; margin-bottom: var(--pb-item-gap, 8px); }
.pb-iconlist-top li { flex-direction: column; }
.pb-iconlist-right li { flex-direction: row-reverse; }
.pb-iconlist-heading { font-size: var(--pb-heading-size, inherit); color: var(--pb-heading-color, inherit); }
.pb-iconlist-text { font-size: var(--pb-text-size, inherit); }
.pb-editable { position: relative; }
.pb-selected { outline: 2px solid #3b82f6; outline-offset: 2px; }
.pb-hidden { opacity: 0.4; }
.pb-placeholder { padding: 2rem; text-align: center; color: #9ca3af; font-style: italic; }
""".strip()

_WIDGET_TEMPLATES: dict[str, str] = {
    "heading": (
        "<{{level}} {{{attrs}}}>"
        "{{#link}}<a href=\"{{link}}\"{{#openNewTab}} target=\"_blank\" rel=\"noopener noreferrer\"{{/openNewTab}}>"
        "{{content}}</a>{{/link}}"
        "{{^link}}{{content}}{{/link}}"
        "</{{level}}>"
    ),
    "text": "<div {{{attrs}}}>{{{content}}}</div>",
    "button": (
        "<a {{{attrs}}} href=\"{{link}}\"{{#openNewTab}} target=\"_blank\" rel=\"noopener noreferrer\"{{/openNewTab}}>"
        "{{#icon}}<i class=\"{{icon}}\" aria-hidden=\"true\"></i> {{/icon}}{{text}}</a>"
    ),
    "image": (
        "<figure {{{attrs}}}>"
        "{{#link}}<a href=\"{{link}}\"{{#openNewTab}} target=\"_blank\" rel=\"noopener noreferrer\"{{/openNewTab}}>{{/link}}"
        "<img src=\"{{src}}\" alt=\"{{alt}}\" loading=\"lazy\">"
        "{{#link}}</a>{{/link}}"
        "{{#caption}}<figcaption>{{caption}}</figcaption>{{/caption}}"
        "</figure>"
    ),
    "video": (
        "<div {{{attrs}}}><div class=\"pb-video-frame\">"
        "{{#embed_url}}<iframe src=\"{{embed_url}}\" title=\"Video\" allow=\"autoplay; encrypted-media\" allowfullscreen>"
        "</iframe>{{/embed_url}}"
        "{{#file_url}}<video src=\"{{file_url}}\"{{#showControls}} controls{{/showControls}}"
        "{{#autoplay}} autoplay muted{{/autoplay}}{{#loop}} loop{{/loop}} playsinline></video>{{/file_url}}"
        "</div></div>"
    ),
    "divider": "<div {{{attrs}}}><hr></div>",
    "spacer": "<div {{{attrs}}}></div>",
    "icon": (
        "<div {{{attrs}}}>"
        "{{#link}}<a href=\"{{link}}\">{{/link}}<i class=\"{{icon}}\" aria-hidden=\"true\"></i>{{#link}}</a>{{/link}}"
        "</div>"
    ),
    "iconlist": (
        "<ul {{{attrs}}}>"
        "{{#items}}<li>"
        "<span class=\"pb-iconlist-icon\"><i class=\"{{icon}}\" aria-hidden=\"true\"></i></span>"
        "<span class=\"pb-iconlist-body\">"
        "{{#link}}<a href=\"{{link}}\"{{#openNewTab}} target=\"_blank\" rel=\"noopener noreferrer\"{{/openNewTab}}>{{/link}}"
        "<span class=\"pb-iconlist-heading\">{{heading}}</span>"
        "{{#link}}</a>{{/link}}"
        "{{#text}}<span class=\"pb-iconlist-text\">{{text}}</span>{{/text}}"
        "</span></li>{{/items}}"
        "</ul>"
    ),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_tree(root: Node, options: RenderOptions | None = None) -> RenderResult:
    """
    Render the tree to an HTML fragment plus the stylesheet fragments of
    every rendered node.

    The editor keeps hidden nodes (dimmed). The live page skips nodes
    hidden on every device; a node hidden only on `options.device` gets
    an inline `display: none` and its fragment shows it again on the
    devices where it is visible, so one document serves every viewport.
    """
    opts = options or RenderOptions()
    result = RenderResult(html="")
    result.html = _render_node(root, opts, result)
    return result


def render_page(root: Node, options: RenderOptions | None = None) -> str:
    """Complete HTML document for the live page."""
    opts = options or RenderOptions()
    rendered = render_tree(root, opts)

    parts: list[str] = []
    parts.append("<!DOCTYPE html>")
    parts.append('<html lang="en">')
    parts.append("<head>")
    parts.append('  <meta charset="utf-8">')
    parts.append('  <meta name="viewport" content="width=device-width, initial-scale=1">')
    parts.append(f"  <title>{escape(opts.title)}</title>")
    parts.append('  <style id="pb-base">')
    parts.append(BASE_CSS)
    parts.append("  </style>")
    for fragment_id, css in rendered.fragments.items():
        parts.append(f'  <style id="{escape(fragment_id)}">')
        parts.append(css)
        parts.append("  </style>")
    parts.append("</head>")
    parts.append("<body>")
    parts.append('  <main class="pb-page">')
    parts.append(rendered.html)
    parts.append("  </main>")
    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts)


def compute_class_name(node_id: str) -> str:
    """
    `node-{id}` with any character outside [A-Za-z0-9-] written as
    `_{hex}_`. Distinct ids always give distinct class names.
    """
    safe = _SAFE_ID_CHARS.sub(lambda m: f"_{ord(m.group(0)):x}_", node_id)
    return f"node-{safe}"


def responsive_fragment_id(node_id: str) -> str:
    return f"responsive-styles-{node_id}"


def section_fragment_id(node_id: str) -> str:
    return f"section-responsive-{node_id}"


def synthesize_responsive_css(node: Node, options: RenderOptions | None = None) -> str | None:
    """
    Tablet/mobile overrides of `node` as stylesheet text, or None.

    One `@media (max-width: …)` block per breakpoint that has something to
    say, each holding a single `.node-{id}` rule. Style and advanced
    overrides are merged (style first) into that one rule. Per-device
    hide flags add `display: none`; a node hidden on the rendered device
    (desktop on the live page) gets its display back on the devices
    where it is visible.
    """
    opts = options or RenderOptions()
    class_name = compute_class_name(node.id)
    hidden_inline = is_hidden_on(node, opts.device)
    visibility_applies = not is_hidden_everywhere(node)
    blocks: list[str] = []

    for breakpoint in OVERRIDE_BREAKPOINTS:
        mapping = {
            **effective_overrides(node, breakpoint, BUCKET_STYLE),
            **effective_overrides(node, breakpoint, BUCKET_ADVANCED),
        }
        declarations = expand_declarations(
            mapping,
            default_unit=opts.default_unit,
            asset_base_url=opts.asset_base_url,
            variables=_WIDGET_VARIABLES.get(node.widget_type or ""),
        )
        if visibility_applies and is_hidden_on(node, breakpoint):
            declarations = [d for d in declarations if d[0] != "display"] + [("display", "none")]
        elif visibility_applies and hidden_inline and all(d[0] != "display" for d in declarations):
            declarations.append(("display", _shown_display(node, breakpoint)))
        if declarations:
            blocks.append(_media_block(_max_width(breakpoint, opts), class_name, declarations))

    return "\n".join(blocks) if blocks else None


def synthesize_section_grid_css(node: Node, options: RenderOptions | None = None) -> str | None:
    """
    Column collapse for a section's grid: at most 2 columns on tablet
    (when it has more), 1 on mobile. A `responsive[bp].props.numColumns`
    override takes precedence. Only sections with children get one.
    """
    if node.kind != KIND_SECTION or not node.children:
        return None
    opts = options or RenderOptions()
    class_name = compute_class_name(node.id)
    columns = _num_columns(node, DESKTOP)

    tablet = _explicit_columns(node, TABLET)
    if tablet is None and columns > 2:
        tablet = 2
    mobile = _explicit_columns(node, MOBILE) or 1

    blocks: list[str] = []
    if tablet is not None:
        blocks.append(_media_block(opts.tablet_max_width, class_name, [("grid-template-columns", _grid(tablet))]))
    blocks.append(_media_block(opts.mobile_max_width, class_name, [("grid-template-columns", _grid(mobile))]))
    return "\n".join(blocks)


def node_fragments(node: Node, options: RenderOptions | None = None) -> dict[str, str]:
    """All stylesheet fragments for one node, keyed by fragment element id."""
    fragments: dict[str, str] = {}
    responsive = synthesize_responsive_css(node, options)
    if responsive is not None:
        fragments[responsive_fragment_id(node.id)] = responsive
    grid = synthesize_section_grid_css(node, options)
    if grid is not None:
        fragments[section_fragment_id(node.id)] = grid
    return fragments


def escape(text: Any) -> str:
    """HTML-escape user content."""
    return _html_escape(str(text), quote=True)


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _render_node(node: Node, opts: RenderOptions, result: RenderResult) -> str:
    hidden = is_hidden_on(node, opts.device)
    if hidden and not opts.editing and is_hidden_everywhere(node):
        return ""

    if node.kind == KIND_WIDGET:
        html = _render_widget(node, opts, hidden)
        if not html:
            return ""
        _register(node, opts, result)
        return html

    _register(node, opts, result)
    children = [_render_node(child, opts, result) for child in node.children]
    inner = "".join(c for c in children if c)
    if not inner and opts.editing:
        label = "No sections yet. Add from left panel." if node.kind == KIND_ROOT else "Drop widgets here"
        inner = f'<div class="pb-placeholder">{escape(label)}</div>'

    tag = "section" if node.kind == KIND_SECTION else "div"
    attrs = _attributes(node, opts, _container_declarations(node, opts), hidden)
    return f"<{tag} {attrs}>{inner}</{tag}>"


def _register(node: Node, opts: RenderOptions, result: RenderResult) -> None:
    result.node_ids.append(node.id)
    result.fragments.update(node_fragments(node, opts))


def _attributes(
    node: Node,
    opts: RenderOptions,
    declarations: list[tuple[str, str]],
    hidden: bool,
    extra_classes: tuple[str, ...] = (),
) -> str:
    classes = [f"pb-{node.kind}"]
    if node.kind == KIND_WIDGET:
        classes = ["pb-widget", f"pb-widget-{node.widget_type}"]
    classes.extend(extra_classes)
    classes.append(compute_class_name(node.id))
    custom = node.advanced.get("customClass")
    if isinstance(custom, str) and custom.strip():
        classes.append(custom.strip())
    if opts.editing:
        classes.append("pb-editable")
        if node.id == opts.selected_id:
            classes.append("pb-selected")
        if hidden:
            classes.append("pb-hidden")
    elif hidden:
        declarations = [d for d in declarations if d[0] != "display"] + [("display", "none")]

    parts =[f'class="{escape(" ".join(classes))}"', f'data-node-id="{escape(node.id)}"']
    css_id = node.advanced.get("cssId")
    if isinstance(css_id, str) and css_id.strip():
        parts.append(f'id="{escape(css_id.strip())}"')
    if declarations:
        parts.append(f'style="{escape(inline_style(declarations))}"')
    return " ".join(parts)


def _media_block(max_width: int, class_name: str, declarations: list[tuple[str, str]]) -> str:
    return f"@media (max-width: {max_width}px) {{\n  .{class_name} {{ {rule_body(declarations, important=True)} }}\n}}"


def _max_width(breakpoint: str, opts: RenderOptions) -> int:
    return opts.tablet_max_width if breakpoint == TABLET else opts.mobile_max_width


def _shown_display(node: Node, breakpoint: str) -> str:
    """The display a visible node has at `breakpoint`."""
    if node.kind == KIND_COLUMN:
        return "flex"
    display = flatten_buckets(node, breakpoint).get("display")
    if isinstance(display, str) and display.strip() and display.strip() != "none":
        if sanitize(display.strip()) is not None:
            return display.strip()
    if node.widget_type == "button":
        return "inline-block"
    return "block"


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


def _num_columns(node: Node, breakpoint: str) -> int:
    value = resolve_value(node, "numColumns", breakpoint, "props")
    try:
        count = int(value)
    except (TypeError, ValueError):
        count = 0
    return count if count > 0 else max(1, len(node.children))


def _explicit_columns(node: Node, breakpoint: str) -> int | None:
    overrides = effective_overrides(node, breakpoint, "props")
    try:
        count = int(overrides["numColumns"])
    except (KeyError, TypeError, ValueError):
        return None
    return count if count > 0 else None


def _grid(columns: int) -> str:
    return "1fr" if columns == 1 else f"repeat({columns}, 1fr)"


def _container_declarations(node: Node, opts: RenderOptions) -> list[tuple[str, str]]:
    mapping = flatten_buckets(node, opts.device)

    if node.kind == KIND_SECTION:
        if mapping.get("display") == "grid":
            mapping["gridTemplateColumns"] = _grid(_num_columns(node, opts.device))
        if mapping.get("backgroundImage"):
            mapping.setdefault("position", "relative")
            mapping.setdefault("backgroundSize", "cover")
            mapping.setdefault("backgroundPosition", "center")
            mapping.setdefault("backgroundRepeat", "no-repeat")
        if resolve_value(node, "contentWidthMode", opts.device, "props") == "boxed":
            side = resolve_value(node, "horizontalPadding", opts.device, "props")
            mapping["maxWidth"] = resolve_value(node, "boxedMaxWidth", opts.device, "props")
            mapping["marginLeft"] = "auto"
            mapping["marginRight"] = "auto"
            mapping["paddingLeft"] = side
            mapping["paddingRight"] = side

    elif node.kind == KIND_COLUMN:
        mapping.pop("direction", None)
        mapping["display"] = "flex"
        mapping["flexDirection"] = "column"
        mapping["alignItems"] = node.props.get("verticalAlign") or "flex-start"
        horizontal = node.props.get("horizontalAlign")
        if horizontal:
            mapping["justifyContent"] = horizontal
        if "gap" not in mapping and node.props.get("gap") not in (None, ""):
            mapping["gap"] = node.props["gap"]
        if not mapping.get("backgroundColor") and not mapping.get("backgroundImage"):
            mapping["backgroundColor"] = "transparent"

    return expand_declarations(mapping, default_unit=opts.default_unit, asset_base_url=opts.asset_base_url)


# ---------------------------------------------------------------------------
# Widgets
# ---------------------------------------------------------------------------


def _render_widget(node: Node, opts: RenderOptions, hidden: bool) -> str:
    widget_type = node.widget_type or ""
    template = _WIDGET_TEMPLATES.get(widget_type)
    if template is None:
        if not opts.editing:
            return ""
        attrs = _attributes(node, opts, [], hidden, ("pb-placeholder",))
        return f"<div {attrs}>Unknown widget: {escape(widget_type or '?')}</div>"

    context = _widget_context(node)
    if context is None:
        if not opts.editing:
            return ""
        attrs = _attributes(node, opts, [], hidden, ("pb-placeholder",))
        return f"<div {attrs}>{escape(_empty_label(widget_type))}</div>"

    mapping = flatten_buckets(node, opts.device)
    if widget_type == "spacer" and "height" not in mapping:
        mapping["height"] = context["height"]
    declarations = expand_declarations(
        mapping,
        default_unit=opts.default_unit,
        asset_base_url=opts.asset_base_url,
        variables=_WIDGET_VARIABLES.get(widget_type),
    )
    extra: tuple[str, ...] = ()
    if widget_type == "iconlist":
        position = node.props.get("iconPosition")
        extra = ("pb-iconlist", f"pb-iconlist-{position if position in _ICON_POSITIONS else 'left'}")
    context["attrs"] = _attributes(node, opts, declarations, hidden, extra)
    return chevron.render(template, context)


def _empty_label(widget_type: str) -> str:
    schema = get_widget_schema(widget_type)
    label = schema.label if schema else widget_type
    return f"{label}: nothing to show yet"


def _safe_url(value: Any, default: str = "") -> str:
    url = str(value or "").strip()
    if url.lower().startswith(("javascript:", "data:", "vbscript:")):
        return default
    return url


def _widget_context(node: Node) -> dict[str, Any] | None:
    """Template context from props, or None when there is nothing to render."""
    props = node.props
    widget_type = node.widget_type
    ctx: dict[str, Any] = dict(props)

    if "link" in ctx:
        ctx["link"] = _safe_url(ctx["link"])

    if widget_type == "heading":
        level = str(props.get("level", "h2")).lower()
        ctx["level"] = level if level in _HEADING_LEVELS else "h2"
        ctx["content"] = props.get("content", "")
    elif widget_type == "button":
        ctx["link"] = _safe_url(props.get("link"), "#") or "#"
        ctx["text"] = props.get("text", "")
    elif widget_type == "image":
        src = _safe_url(props.get("src"))
        if not src:
            return None
        ctx["src"] = src
    elif widget_type == "video":
        embed, file_url = _video_sources(props)
        if not embed and not file_url:
            return None
        ctx["embed_url"] = embed
        ctx["file_url"] = file_url
        ctx["showControls"] = props.get("showControls", True)
    elif widget_type == "spacer":
        ctx["height"] = with_unit(props.get("height", 20)) or "20px"
    elif widget_type == "iconlist":
        items = props.get("items")
        ctx["items"] = [_iconlist_item(item) for item in items if isinstance(item, dict)] if isinstance(items, list) else []
    return ctx


def _iconlist_item(item: dict[str, Any]) -> dict[str, Any]:
    # every key is set so lookups never fall through to the widget's props
    return {
        "icon": item.get("icon") or "",
        "heading": item.get("heading") or "",
        "text": item.get("text") or "",
        "link": _safe_url(item.get("link")),
        "openNewTab": bool(item.get("openNewTab")),
    }


def _video_sources(props: dict[str, Any]) -> tuple[str, str]:
    """(youtube embed url, file url) for the video widget; empty strings when absent."""
    url = _safe_url(props.get("videoUrl"))
    if props.get("videoType", "youtube") != "youtube":
        return "", url

    video_id = str(props.get("videoId") or "").strip()
    if not _VIDEO_ID.match(video_id):
        m = _YOUTUBE_ID.search(url)
        video_id = m.group(1) if m else ""
    if not video_id:
        return "", ""

    params = []
    if props.get("autoplay"):
        params.append("autoplay=1&mute=1")
    if not props.get("showControls", True):
        params.append("controls=0")
    if props.get("loop"):
        params.append(f"loop=1&playlist={video_id}")
    query = f"?{'&'.join(params)}" if params else ""
    return f"https://www.youtube.com/embed/{video_id}{query}", ""
