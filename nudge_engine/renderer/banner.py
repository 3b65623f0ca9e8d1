"""
nudge_engine/renderer/banner.py -- Full-width strip pinned to the top or bottom.
"""

from __future__ import annotations

from nudge_engine.models.campaign import BannerConfig
from nudge_engine.renderer.base import (
    RenderContext,
    base_style,
    close_button,
    decorate_selection,
    placeholder,
    render_children,
)
from nudge_engine.renderer.nodes import RenderNode
from nudge_engine.style_resolver import px

EMPTY_BANNER_TEXT = "Banner Container (Add layers here)"


def render_banner(ctx: RenderContext, root) -> RenderNode:
    config = ctx.config if isinstance(ctx.config, BannerConfig) else BannerConfig()
    ctx.default_direction = "row"

    style = {
        "position": "absolute",
        "left": "0",
        "right": "0",
        config.position: "0",
        "backgroundColor": config.background_color or ctx.primary_color,
        "height": px(config.height),
        "display": "flex",
        "flexDirection": "row",
        "alignItems": "center",
        "padding": "0 16px",
        "boxShadow": "0 4px 12px rgba(0,0,0,0.1)",
        "zIndex": 50,
    }
    banner = RenderNode(kind="banner", style=style, props={"placement": config.position})

    if root is None:
        banner.children.append(placeholder(
            EMPTY_BANNER_TEXT, {"color": "white", "fontSize": "14px"},
        ))
    else:
        ctx.rendered_ids.add(root.id)
        root_style = base_style(root, fill_defaults=False)
        # Keep the banner pinned even if the root sets its own position
        for pinned in ("position", "left", "right", "top", "bottom", "zIndex"):
            root_style.pop(pinned, None)
        style.update(root_style)
        banner.layer_id = root.id
        banner.style = decorate_selection(style, ctx, root.id)
        banner.props["selected"] = root.id == ctx.selected_layer_id
        banner.on_select = ctx.select_callback(root.id)
        banner.children.extend(render_children(ctx, root))

    if config.show_close_button:
        banner.children.append(close_button({
            "position": "absolute",
            "right": "8px",
            "top": "50%",
            "transform": "translateY(-50%)",
            "color": "rgba(255,255,255,0.8)",
        }))
    return banner
