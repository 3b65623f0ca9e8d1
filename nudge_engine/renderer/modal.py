"""
nudge_engine/renderer/modal.py -- Centered dialog over a scrim.
"""

from __future__ import annotations

from nudge_engine.models.campaign import ModalConfig
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

EMPTY_MODAL_TEXT = "No layers yet. Add a container to start building."


def render_modal(ctx: RenderContext, root) -> RenderNode:
    config = ctx.config if isinstance(ctx.config, ModalConfig) else ModalConfig()
    ctx.default_direction = "column"

    style = {
        "width": px(config.width),
        "backgroundColor": config.background_color or "#FFFFFF",
        "borderRadius": px(config.border_radius),
        "padding": px(config.padding),
        "position": "relative",
        "boxShadow": "0 20px 25px -5px rgba(0, 0, 0, 0.1), 0 10px 10px -5px rgba(0, 0, 0, 0.04)",
        "display": "flex",
        "flexDirection": "column",
    }
    children: list[RenderNode] = []
    if config.show_close_button:
        children.append(close_button({
            "position": "absolute", "top": "12px", "right": "12px", "color": "#9CA3AF",
        }))

    dialog = RenderNode(kind="modal", style=style, children=children)
    if root is None:
        children.append(placeholder(EMPTY_MODAL_TEXT))
    else:
        ctx.rendered_ids.add(root.id)
        # The root container's own settings override the config
        style.update(base_style(root, fill_defaults=False))
        dialog.layer_id = root.id
        dialog.style = decorate_selection(style, ctx, root.id)
        dialog.props["selected"] = root.id == ctx.selected_layer_id
        dialog.on_select = ctx.select_callback(root.id)
        children.extend(render_children(ctx, root))

    return RenderNode(
        kind="overlay",
        style={
            "position": "absolute",
            "inset": "0",
            "backgroundColor": config.overlay_color,
            "display": "flex",
            "alignItems": "center",
            "justifyContent": "center",
            "zIndex": 50,
        },
        children=[dialog],
    )
