"""
nudge_engine/renderer/bottom_sheet.py -- Sheet anchored to the bottom edge.

The root container supplies the sheet surface; the per-document
``BottomSheetConfig`` fills in whatever the root leaves unset:

    - background: root style, then config, then white (``image-only`` mode
      shows the config image on a transparent sheet);
    - height: ``auto`` / ``half`` / ``full`` / pixels / ``vh`` / ``%``;
    - corners: top corners from the root or config, bottom corners square;
    - shadow: ``customShadow`` or the elevation preset.

An enabled overlay is drawn behind the sheet as a separate node.
"""

from __future__ import annotations

from nudge_engine.models.campaign import BottomSheetConfig
from nudge_engine.renderer.base import (
    RenderContext,
    decorate_selection,
    placeholder,
    render_children,
)
from nudge_engine.renderer.nodes import RenderNode
from nudge_engine.style_resolver import (
    BOTTOM_SHEET_RADIUS,
    corners_css,
    edges_css,
    elevation_shadow,
    format_number,
    px,
    resolve_background,
    resolve_corners,
    resolve_edges,
    resolve_sheet_height,
)

NO_ROOT_TEXT = "No bottom sheet container found. Add layers to see preview."
NO_CONTENT_TITLE = "No content layers found"
NO_CONTENT_HINT = "Add layers to the bottom sheet to see content"

DEFAULT_SHEET_PADDING = 20
DEFAULT_STACK_GAP = 16


def _overlay_node(config: BottomSheetConfig) -> RenderNode:
    overlay = config.overlay
    style = {
        "position": "absolute",
        "inset": "0",
        "backgroundColor": overlay.color,
        "opacity": overlay.opacity,
        "zIndex": 40,
    }
    if overlay.blur > 0:
        style["backdropFilter"] = f"blur({format_number(overlay.blur)}px)"
    return RenderNode(
        kind="overlay",
        style=style,
        props={"dismissOnClick": overlay.dismiss_on_click},
    )


def _sheet_corners(root, config: BottomSheetConfig):
    source = root.style.border_radius
    if source is None:
        source = config.border_radius
    corners = resolve_corners(source, BOTTOM_SHEET_RADIUS)
    return corners._replace(bottom_right=0, bottom_left=0)


def render_bottom_sheet(ctx: RenderContext, root) -> RenderNode:
    config = ctx.config if isinstance(ctx.config, BottomSheetConfig) else BottomSheetConfig()
    ctx.default_direction = "column"

    frame = RenderNode(kind="bottom-sheet-frame", style={"position": "relative", "height": "100%"})
    if root is None:
        frame.children.append(placeholder(NO_ROOT_TEXT))
        return frame

    if config.overlay.enabled:
        frame.children.append(_overlay_node(config))

    style = root.style
    sheet_style = {
        "position": "absolute",
        "left": "0",
        "right": "0",
        "bottom": "0",
        "display": "flex",
        "flexDirection": "column",
        "overflow": "hidden",
        "zIndex": 50,
    }
    sheet_style.update(
        {key: value for key, value in resolve_background(style, config).items() if value is not None}
    )
    sheet_style["borderRadius"] = corners_css(_sheet_corners(root, config))
    padding = style.padding if style.padding is not None else DEFAULT_SHEET_PADDING
    sheet_style["padding"] = edges_css(resolve_edges(padding))
    sheet_style["boxShadow"] = config.custom_shadow or elevation_shadow(config.elevation)
    # "full" height also squares the corners, so it is applied last
    sheet_style.update(resolve_sheet_height(config.height, style))
    animation = config.animation
    keyframes = "slideUp" if animation.type == "slide" else animation.type
    sheet_style["animation"] = f"{keyframes} {animation.duration}ms {animation.easing}"

    ctx.rendered_ids.add(root.id)
    direction = "row" if style.layout == "row" else "column"
    gap = style.gap if style.gap is not None else DEFAULT_STACK_GAP
    content = render_children(ctx, root)
    if not content:
        content = [
            placeholder(NO_CONTENT_TITLE, {"textAlign": "center", "color": "#6B7280", "fontWeight": "600"}),
            placeholder(NO_CONTENT_HINT, {"textAlign": "center", "color": "#9CA3AF", "fontSize": "12px"}),
        ]
    stack = RenderNode(
        kind="stack",
        style={"display": "flex", "flexDirection": direction, "gap": px(gap)},
        children=content,
    )

    sheet = RenderNode(
        kind="bottom-sheet",
        layer_id=root.id,
        style=decorate_selection(sheet_style, ctx, root.id),
        children=[stack],
        props={
            "selected": root.id == ctx.selected_layer_id,
            "name": root.name,
            "mode": config.mode,
            "dragHandle": config.drag_handle,
            "swipeToDismiss": config.swipe_to_dismiss,
        },
        on_select=ctx.select_callback(root.id),
    )
    frame.children.append(sheet)
    return frame
