"""
nudge_engine/renderer/base.py -- Shared layer rendering for every nudge type.

The per-type renderers (modal, banner, bottom sheet, tooltip) only differ
in how they frame the root container.  Everything below the root goes
through :func:`render_layer`:

    - invisible layers are skipped;
    - containers recurse into ``children`` in order, skipping ids that do
      not resolve to a layer, with the renderer's default flex direction
      when the container sets none;
    - leaves get their variant's fallback content (``"Text"``,
      ``"Button"``...) when fields are missing;
    - the selected layer gets an outline on a copy of its style dict.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from nudge_engine.models.layers import LayerBase
from nudge_engine.renderer.dynamic import (
    TickerRegistry,
    format_remaining,
    parse_end_time,
    utc_now,
)
from nudge_engine.renderer.nodes import RenderNode
from nudge_engine.style_resolver import format_number, is_number, px, resolve_style

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT = "#8B5CF6"
DEFAULT_PRIMARY = "#6366F1"

BADGE_VARIANT_COLORS: dict[str, tuple[str, str]] = {
    "success": ("#10B981", "#FFFFFF"),
    "error": ("#EF4444", "#FFFFFF"),
    "warning": ("#F59E0B", "#FFFFFF"),
    "info": ("#3B82F6", "#FFFFFF"),
}

LIST_MARKERS = {"checkmark": "✓", "bullet": "•", "icon": "•"}


def color_token(colors: Optional[Mapping], family: str, shade: Union[int, str], default: str) -> str:
    """Look up ``colors[family][shade]``, accepting int or str shade keys."""
    if not colors:
        return default
    palette = colors.get(family)
    if not isinstance(palette, Mapping):
        return default
    return palette.get(shade) or palette.get(str(shade)) or default


@dataclass
class RenderContext:
    """Everything a renderer needs besides the layer being drawn."""

    layers_by_id: dict[str, LayerBase]
    nudge_type: str
    selected_layer_id: Optional[str] = None
    on_layer_select: Optional[Callable[[str], None]] = None
    colors: Optional[Mapping] = None
    config: Any = None
    tickers: Optional[TickerRegistry] = None
    default_direction: str = "column"
    rendered_ids: set[str] = field(default_factory=set)
    _path: set[str] = field(default_factory=set)

    @property
    def highlight_color(self) -> str:
        return color_token(self.colors, "purple", 500, DEFAULT_HIGHLIGHT)

    @property
    def primary_color(self) -> str:
        return color_token(self.colors, "primary", 500, DEFAULT_PRIMARY)

    def select_callback(self, layer_id: str) -> Optional[Callable[[], None]]:
        if self.on_layer_select is None:
            return None
        callback = self.on_layer_select
        return lambda: callback(layer_id)


def decorate_selection(style: Mapping[str, Any], ctx: RenderContext, layer_id: str) -> dict[str, Any]:
    """Return a copy of *style*, outlined when *layer_id* is selected."""
    decorated = dict(style)
    if layer_id == ctx.selected_layer_id:
        decorated["outline"] = f"2px solid {ctx.highlight_color}"
        decorated["outlineOffset"] = "2px"
        z_index = decorated.get("zIndex")
        decorated["zIndex"] = (z_index if isinstance(z_index, int) else 0) + 10
    return decorated


def placeholder(text: str, style: Optional[dict[str, Any]] = None) -> RenderNode:
    return RenderNode(
        kind="placeholder",
        text=text,
        style=style or {"textAlign": "center", "color": "#6B7280", "padding": "20px"},
    )


def close_button(style: dict[str, Any]) -> RenderNode:
    return RenderNode(kind="close-button", text="×", style=style)


# ------------------------------------------------------------------
# Layer rendering
# ------------------------------------------------------------------

def base_style(layer: LayerBase, *, fill_defaults: bool = True) -> dict[str, Any]:
    """Resolved style plus geometry from ``position``, ``size`` and ``zIndex``."""
    css = resolve_style(layer, fill_defaults=fill_defaults)
    if layer.position.mode == "absolute":
        css["position"] = "absolute"
        css["left"] = px(layer.position.x)
        css["top"] = px(layer.position.y)
    for dimension in ("width", "height"):
        value = getattr(layer.size, dimension)
        if value != "auto" and dimension not in css:
            css[dimension] = px(value)
    css.setdefault("zIndex", layer.z_index)
    return css


def render_children(ctx: RenderContext, parent: LayerBase) -> list[RenderNode]:
    """Render *parent*'s children in order; dangling ids are skipped."""
    nodes = []
    for child_id in parent.children:
        child = ctx.layers_by_id.get(child_id)
        if child is None:
            logger.debug("Layer %s lists missing child %s; skipped", parent.id, child_id)
            continue
        node = render_layer(ctx, child)
        if node is not None:
            nodes.append(node)
    return nodes


def render_layer(ctx: RenderContext, layer: LayerBase) -> Optional[RenderNode]:
    """Render one layer (and its subtree).  Returns None for hidden layers."""
    if not layer.visible:
        return None
    if layer.id in ctx._path:
        logger.warning("Layer %s reached twice on one path; cycle skipped", layer.id)
        return None

    ctx._path.add(layer.id)
    try:
        style = base_style(layer)
        if layer.type == "container":
            node = _container(ctx, layer, style)
        else:
            builder = LEAF_BUILDERS.get(layer.type, _box)
            node = builder(ctx, layer, style)
    finally:
        ctx._path.discard(layer.id)

    if node is None:
        return None
    ctx.rendered_ids.add(layer.id)
    node.layer_id = layer.id
    node.style = decorate_selection(node.style, ctx, layer.id)
    node.props["selected"] = layer.id == ctx.selected_layer_id
    node.props.setdefault("name", layer.name)
    node.on_select = ctx.select_callback(layer.id)
    return node


def _container(ctx: RenderContext, layer: LayerBase, style: dict[str, Any]) -> RenderNode:
    extras = layer.style.model_extra or {}
    layout = layer.style.layout if layer.style.layout in ("row", "column") else None
    style.setdefault("display", "flex")
    style.setdefault("flexDirection", layout or extras.get("direction") or ctx.default_direction)
    style.setdefault("justifyContent", "flex-start")
    style.setdefault("alignItems", "stretch")
    style.setdefault("gap", "0px")
    style.setdefault("minHeight", "20px")
    return RenderNode(kind="container", style=style, children=render_children(ctx, layer))


# ------------------------------------------------------------------
# Leaf builders
# ------------------------------------------------------------------

def _text(ctx, layer, style):
    content = layer.content
    if content.font_size is not None:
        style["fontSize"] = px(content.font_size)
    if content.font_weight is not None:
        style["fontWeight"] = content.font_weight
    if content.text_color:
        style["color"] = content.text_color
    if content.text_align:
        style["textAlign"] = content.text_align
    return RenderNode(kind="text", style=style, text=content.text or "Text")


def _button(ctx, layer, style):
    content = layer.content
    style.setdefault("cursor", "pointer")
    style.setdefault("border", "none")
    if content.text_color:
        style["color"] = content.text_color
    if content.font_size is not None:
        style["fontSize"] = px(content.font_size)
    props: dict[str, Any] = {"buttonStyle": content.button_style or "primary"}
    if content.action is not None:
        props["action"] = content.action.to_wire()
    return RenderNode(kind="button", style=style, text=content.label or "Button", props=props)


def _media(ctx, layer, style):
    content = layer.content
    style.setdefault("display", "block")
    style.setdefault("maxWidth", "100%")
    props: dict[str, Any] = {"src": content.image_url or "https://via.placeholder.com/150"}
    if content.image_size is not None:
        props["naturalSize"] = (content.image_size.width, content.image_size.height)
    return RenderNode(kind="image", style=style, props=props)


def _handle(ctx, layer, style):
    style.setdefault("width", "40px")
    style.setdefault("height", "4px")
    style.setdefault("backgroundColor", "#D1D5DB")
    style.setdefault("alignSelf", "center")
    return RenderNode(kind="handle", style=style)


def _progress(content) -> tuple[float, float, float]:
    value = content.value or 0
    maximum = content.max or 100
    percentage = (value / maximum) * 100 if maximum else 0
    return value, maximum, max(0.0, min(100.0, percentage))


def _progress_bar(ctx, layer, style):
    content = layer.content
    _, maximum, percentage = _progress(content)
    fill_color = layer.style.background_color or ctx.primary_color
    style["backgroundColor"] = "#E5E7EB"
    style.setdefault("height", "8px")
    style.setdefault("overflow", "hidden")
    fill = RenderNode(
        kind="progress-fill",
        style={"width": f"{format_number(round(percentage, 2))}%", "height": "100%",
               "backgroundColor": fill_color},
    )
    children = [fill]
    for milestone in content.milestones:
        position = (milestone.value / maximum) * 100 if maximum else 0
        children.append(RenderNode(
            kind="milestone",
            text=milestone.label,
            style={"left": f"{format_number(round(position, 2))}%", "color": milestone.color},
        ))
    text = f"{round(percentage)}%" if content.show_percentage else None
    return RenderNode(kind="progress-bar", style=style, text=text, children=children,
                      props={"percentage": percentage})


def _progress_circle(ctx, layer, style):
    content = layer.content
    _, _, percentage = _progress(content)
    size = layer.size.width if is_number(layer.size.width) else 120
    stroke_width = 8
    radius = (size - stroke_width) / 2
    circumference = 2 * math.pi * radius
    props = {
        "size": size,
        "strokeWidth": stroke_width,
        "radius": radius,
        "circumference": circumference,
        "dashOffset": circumference - (percentage / 100) * circumference,
        "strokeColor": layer.style.background_color or ctx.primary_color,
        "percentage": percentage,
    }
    style.pop("backgroundColor", None)
    text = f"{round(percentage)}%" if content.show_percentage else None
    return RenderNode(kind="progress-circle", style=style, text=text, props=props)


def _countdown(ctx, layer, style):
    content = layer.content
    if ctx.tickers is not None:
        ticker = ctx.tickers.countdown(layer)
        text, remaining, urgent = ticker.text, ticker.remaining, ticker.urgent
    else:
        now = utc_now()
        remaining = max(0.0, (parse_end_time(content.end_time, now) - now).total_seconds())
        text = format_remaining(remaining, content.format)
        urgent = bool(content.urgency_threshold) and remaining < content.urgency_threshold
    if content.auto_hide and remaining <= 0:
        return None
    style["fontSize"] = px(content.font_size or 24)
    style.setdefault("fontWeight", "bold")
    style["color"] = "#EF4444" if urgent else (content.text_color or "#111827")
    style.setdefault("textAlign", "center")
    style.setdefault("fontFamily", "monospace")
    return RenderNode(kind="countdown", style=style, text=text,
                      props={"remaining": remaining, "urgent": urgent})


def _list(ctx, layer, style):
    content = layer.content
    list_style = content.list_style or "bullet"
    color = content.text_color or "#111827"
    items = []
    for index, item in enumerate(content.items):
        marker = f"{index + 1}." if list_style == "numbered" else LIST_MARKERS[list_style]
        items.append(RenderNode(
            kind="list-item",
            text=item,
            props={"marker": marker},
            style={"fontSize": px(content.font_size or 14), "color": color, "lineHeight": 1.5},
        ))
    style.setdefault("display", "flex")
    style.setdefault("flexDirection", "column")
    style.setdefault("gap", "8px")
    return RenderNode(kind="list", style=style, children=items, props={"listStyle": list_style})


def _input(ctx, layer, style):
    content = layer.content
    input_type = content.input_type or "text"
    border = color_token(ctx.colors, "border", "default", "#E5E7EB")
    style.setdefault("width", "100%")
    style.setdefault("border", f"1px solid {border}")
    style["fontSize"] = px(content.font_size or 14)
    if content.text_color:
        style["color"] = content.text_color
    if input_type == "textarea":
        style.setdefault("minHeight", "80px")
    return RenderNode(
        kind="textarea" if input_type == "textarea" else "input",
        style=style,
        props={
            "inputType": input_type,
            "placeholder": content.placeholder or "Enter text...",
            "required": bool(content.required),
        },
    )


def _statistic(ctx, layer, style):
    content = layer.content
    if ctx.tickers is not None:
        value = ctx.tickers.statistic(layer).value
    else:
        value = content.value or 0
    suffix = f" {content.suffix}" if content.suffix else ""
    style["fontSize"] = px(content.font_size or 36)
    style["fontWeight"] = content.font_weight or "bold"
    style["color"] = content.text_color or "#111827"
    style.setdefault("textAlign", "center")
    return RenderNode(
        kind="statistic",
        style=style,
        text=f"{content.prefix or ''}{format_number(value)}{suffix}",
        props={"value": value, "target": content.value or 0},
    )


def _rating(ctx, layer, style):
    content = layer.content
    max_stars = content.max_stars or 5
    rating = content.rating or 0
    star_color = layer.style.star_color or "#FFB800"
    empty_color = layer.style.empty_star_color or "#D1D5DB"
    star_size = layer.style.star_size or 20
    spacing = layer.style.star_spacing or 2
    whole = int(rating)
    stars = []
    for index in range(max_stars):
        if index < whole:
            glyph, state = "★", "full"
        elif index < rating:
            glyph, state = "⯨", "half"
        else:
            glyph, state = "☆", "empty"
        stars.append(RenderNode(
            kind="star",
            text=glyph,
            props={"state": state},
            style={
                "fontSize": px(star_size),
                "color": empty_color if state == "empty" else star_color,
                "marginRight": px(spacing) if index < max_stars - 1 else "0",
            },
        ))
    children = list(stars)
    review_count = content.review_count or 0
    if content.show_review_count and review_count > 0:
        children.append(RenderNode(
            kind="review-count",
            text=f"({review_count:,} reviews)",
            style={"fontSize": "14px", "color": "#6B7280"},
        ))
    style.setdefault("display", "flex")
    style.setdefault("alignItems", "center")
    return RenderNode(kind="rating", style=style, children=children, props={"rating": rating})


def _badge(ctx, layer, style):
    content = layer.content
    variant = content.badge_variant or "custom"
    if variant in BADGE_VARIANT_COLORS:
        background, foreground = BADGE_VARIANT_COLORS[variant]
    else:
        background = layer.style.badge_background_color or "#6B7280"
        foreground = layer.style.badge_text_color or "#FFFFFF"
    radius = layer.style.badge_border_radius
    style.update(
        display="inline-flex",
        alignItems="center",
        backgroundColor=background,
        color=foreground,
        fontSize="12px",
        fontWeight="600",
    )
    if radius is not None:
        style["borderRadius"] = px(radius)
    if layer.style.padding is None:
        style["padding"] = "4px 12px"
    if content.pulse:
        style["animation"] = "pulse 2s cubic-bezier(0.4, 0, 0.6, 1) infinite"
    props = {"variant": variant}
    if content.badge_icon:
        props["icon"] = content.badge_icon
        props["iconPosition"] = content.badge_icon_position or "left"
    return RenderNode(kind="badge", style=style, text=content.badge_text or "Badge", props=props)


def _gradient_overlay(ctx, layer, style):
    content = layer.content
    stops = [(s.color, s.position) for s in content.gradient_stops] or [
        ("#00000000", 0), ("#00000066", 100),
    ]
    stop_css = ", ".join(f"{color} {format_number(position)}%" for color, position in stops)
    if (content.gradient_type or "linear") == "radial":
        background = f"radial-gradient(circle, {stop_css})"
    else:
        direction = content.gradient_direction or "to bottom"
        if is_number(direction):
            direction = f"{format_number(direction)}deg"
        else:
            direction = str(direction).replace("to-", "to ")
        background = f"linear-gradient({direction}, {stop_css})"
    style.update(
        background=background,
        position="absolute",
        top="0",
        left="0",
        width="100%",
        height="100%",
        pointerEvents="none",
    )
    return RenderNode(kind="gradient-overlay", style=style)


def _checkbox(ctx, layer, style):
    content = layer.content
    style.setdefault("display", "flex")
    style.setdefault("alignItems", "center")
    style.setdefault("gap", "8px")
    if content.font_size is not None:
        style["fontSize"] = px(content.font_size)
    if content.text_color:
        style["color"] = content.text_color
    return RenderNode(
        kind="checkbox",
        style=style,
        text=content.checkbox_label or "Checkbox",
        props={
            "checked": bool(content.checked),
            "accentColor": content.checkbox_color or ctx.primary_color,
        },
    )


def _icon(ctx, layer, style):
    content = layer.content
    style["fontSize"] = px(content.font_size or 24)
    if content.text_color:
        style["color"] = content.text_color
    return RenderNode(kind="icon", style=style, props={"icon": content.icon_name or "star"})


def _video(ctx, layer, style):
    content = layer.content
    style.setdefault("width", "100%")
    props = {"src": content.video_url or ""}
    if content.image_url:
        props["poster"] = content.image_url
    return RenderNode(kind="video", style=style, props=props)


def _box(ctx, layer, style):
    return RenderNode(kind="box", style=style)


LEAF_BUILDERS: dict[str, Callable[[RenderContext, LayerBase, dict], Optional[RenderNode]]] = {
    "text": _text,
    "button": _button,
    "media": _media,
    "handle": _handle,
    "progress-bar": _progress_bar,
    "progress-circle": _progress_circle,
    "countdown": _countdown,
    "list": _list,
    "input": _input,
    "statistic": _statistic,
    "rating": _rating,
    "badge": _badge,
    "gradient-overlay": _gradient_overlay,
    "checkbox": _checkbox,
    "icon": _icon,
    "video": _video,
}
