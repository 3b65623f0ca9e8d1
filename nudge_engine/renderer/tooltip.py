"""
nudge_engine/renderer/tooltip.py -- Small callout next to a target element.
"""

from __future__ import annotations

from nudge_engine.models.campaign import TooltipConfig
from nudge_engine.renderer.base import (
    RenderContext,
    base_style,
    decorate_selection,
    placeholder,
    render_children,
)
from nudge_engine.renderer.nodes import RenderNode
from nudge_engine.style_resolver import px

EMPTY_TOOLTIP_TEXT = "Tooltip Container (Add layers here)"

# Side of the bubble the arrow sits on, for each placement
ARROW_SIDE = {"top": "bottom", "bottom": "top", "left": "right", "right": "left"}


def _arrow_node(config: TooltipConfig, color: str) -> RenderNode:
    side = ARROW_SIDE[config.placement]
    size = config.arrow_size
    style = {
        "position": "absolute",
        "width": px(size * 2),
        "height": px(size * 2),
        "backgroundColor": color,
        "transform": "rotate(45deg)",
        side: px(-size),
    }
    if side in ("top", "bottom"):
        style["left"] = f"calc(50% - {px(size)})"
    else:
        style["top"] = f"calc(50% - {px(size)})"
    return RenderNode(kind="arrow", style=style, props={"side": side})


def render_tooltip(ctx: RenderContext, root) -> RenderNode:
    config = ctx.config if isinstance(ctx.config, TooltipConfig) else TooltipConfig()
    ctx.default_direction = "column"

    style = {
        "position": "relative",
        "maxWidth": px(config.max_width),
        "backgroundColor": config.background_color,
        "color": "#FFFFFF",
        "borderRadius": "8px",
        "padding": "12px",
        "boxShadow": "0 4px 12px rgba(0,0,0,0.15)",
        "display": "flex",
        "flexDirection": "column",
        "zIndex": 50,
    }
    bubble = RenderNode(
        kind="tooltip",
        style=style,
        props={
            "placement": config.placement,
            "offset": config.offset,
            "targetSelector": config.target_selector,
        },
    )

    if root is None:
        bubble.children.append(placeholder(EMPTY_TOOLTIP_TEXT, {"color": "#D1D5DB", "fontSize": "12px"}))
    else:
        ctx.rendered_ids.add(root.id)
        root_style = base_style(root, fill_defaults=False)
        root_style.pop("zIndex", None)
        style.update(root_style)
        bubble.layer_id = root.id
        bubble.style = decorate_selection(style, ctx, root.id)
        bubble.props["selected"] = root.id == ctx.selected_layer_id
        bubble.props["name"] = root.name
        bubble.on_select = ctx.select_callback(root.id)
        bubble.children.extend(render_children(ctx, root))

    if config.show_arrow:
        bubble.children.append(_arrow_node(config, bubble.style["backgroundColor"]))
    return bubble
