"""
nudge_engine/defaults.py -- Default content, style and seed layers.

New layers get type-appropriate starting content and style; new campaigns
are seeded with a small, ready-to-edit layer tree for the nudge types that
have a renderer.  The reserved root names live here as well so the
renderers can still find the root of documents saved before
``rootLayerId`` existed.
"""

from __future__ import annotations

import logging
from typing import Any

from nudge_engine.models.campaign import CONFIG_CLASS_BY_TYPE
from nudge_engine.models.layers import LayerBase, parse_layer
from nudge_engine.utils import generate_layer_id

logger = logging.getLogger(__name__)

# Reserved root container names, per nudge type
ROOT_NAMES: dict[str, str] = {
    "modal": "Modal Container",
    "banner": "Banner Container",
    "bottomsheet": "Bottom Sheet",
    "tooltip": "Tooltip Container",
}

_ZERO_EDGES = {"top": 0, "right": 0, "bottom": 0, "left": 0}


def default_content(layer_type: str) -> dict[str, Any]:
    """Starting ``content`` for a freshly added layer of *layer_type*."""
    if layer_type == "text":
        return {
            "text": "New text",
            "fontSize": 16,
            "fontWeight": "normal",
            "textColor": "#111827",
            "textAlign": "left",
        }
    if layer_type == "button":
        return {
            "label": "Button",
            "buttonStyle": "primary",
            "action": {"type": "close", "trackConversion": False, "autoDismiss": True},
        }
    if layer_type == "media":
        return {
            "imageUrl": "https://via.placeholder.com/300x200",
            "imageSize": {"width": 300, "height": 200},
        }
    if layer_type == "input":
        return {
            "inputType": "text",
            "placeholder": "Enter text...",
            "required": False,
            "fontSize": 14,
            "textColor": "#374151",
        }
    if layer_type == "checkbox":
        return {
            "checkboxLabel": "I agree to terms",
            "checked": False,
            "checkboxColor": "#6366F1",
            "fontSize": 14,
            "textColor": "#374151",
        }
    return {}


def default_style(layer_type: str) -> dict[str, Any]:
    """Starting ``style`` for a freshly added layer of *layer_type*."""
    return {
        "backgroundColor": "#6366F1" if layer_type == "button" else "transparent",
        "borderRadius": 8 if layer_type == "button" else 0,
        "padding": dict(_ZERO_EDGES),
        "margin": dict(_ZERO_EDGES),
        "opacity": 1,
    }


def new_layer(
    layer_type: str,
    *,
    layer_id: str,
    parent: str | None = None,
    z_index: int = 0,
) -> LayerBase:
    """Build a layer of *layer_type* with its default content and style."""
    return parse_layer({
        "id": layer_id,
        "type": layer_type,
        "name": f"New {layer_type}",
        "parent": parent,
        "children": [],
        "visible": True,
        "locked": False,
        "zIndex": z_index,
        "position": {"x": 0, "y": 0},
        "size": {"width": "auto", "height": "auto"},
        "content": default_content(layer_type),
        "style": default_style(layer_type),
    })


def default_config(nudge_type: str):
    """Return the default config model for *nudge_type* (None if it has none)."""
    config_cls = CONFIG_CLASS_BY_TYPE.get(nudge_type)
    return config_cls() if config_cls else None


# ------------------------------------------------------------------
# Seed trees
# ------------------------------------------------------------------

def _edges(top=0, right=0, bottom=0, left=0) -> dict[str, float]:
    return {"top": top, "right": right, "bottom": bottom, "left": left}


def _seed_bottom_sheet() -> list[dict]:
    return [
        {
            "type": "container", "name": ROOT_NAMES["bottomsheet"],
            "size": {"width": "100%", "height": "auto"},
            "style": {
                "backgroundColor": "#FFFFFF",
                "borderRadius": 24,
                "padding": _edges(20, 20, 20, 20),
                "margin": _edges(),
            },
        },
        {
            "type": "handle", "name": "Drag Handle",
            "size": {"width": 40, "height": 4},
            "style": {
                "backgroundColor": "#D1D5DB",
                "borderRadius": 2,
                "margin": _edges(bottom=16),
                "padding": _edges(),
            },
        },
        {
            "type": "media", "name": "Image",
            "size": {"width": "100%", "height": 200},
            "content": {
                "imageUrl": "https://www.bbassets.com/media/uploads/blinkitUX/ecofriendlycoverimage.webp",
                "imageSize": {"width": 720, "height": 640},
            },
            "style": {"borderRadius": 12, "margin": _edges(bottom=16), "padding": _edges()},
        },
        {
            "type": "text", "name": "Title",
            "size": {"width": "100%", "height": "auto"},
            "content": {
                "text": "Skip a bag & go green!",
                "fontSize": 20,
                "fontWeight": "bold",
                "textColor": "#111827",
                "textAlign": "left",
            },
            "style": {"margin": _edges(bottom=8), "padding": _edges()},
        },
        {
            "type": "button", "name": "CTA Button",
            "size": {"width": "100%", "height": 48},
            "content": {
                "label": "Got it",
                "buttonStyle": "primary",
                "action": {"type": "close", "trackConversion": True, "autoDismiss": True},
            },
            "style": {
                "backgroundColor": "#22C55E",
                "borderRadius": 12,
                "margin": _edges(top=16),
                "padding": _edges(12, 24, 12, 24),
            },
        },
    ]


def _seed_modal() -> list[dict]:
    return [
        {
            "type": "container", "name": ROOT_NAMES["modal"],
            "size": {"width": 320, "height": "auto"},
            "style": {
                "backgroundColor": "#FFFFFF",
                "borderRadius": 16,
                "padding": _edges(24, 24, 24, 24),
                "margin": _edges(),
                "boxShadow": "0 10px 25px -5px rgba(0, 0, 0, 0.1), 0 10px 10px -5px rgba(0, 0, 0, 0.04)",
                "display": "flex",
                "flexDirection": "column",
                "alignItems": "center",
                "gap": 16,
            },
        },
        {
            "type": "text", "name": "Title",
            "size": {"width": "100%", "height": "auto"},
            "content": {
                "text": "Welcome Aboard!",
                "fontSize": 22,
                "fontWeight": "bold",
                "textColor": "#111827",
                "textAlign": "center",
            },
            "style": {"margin": _edges(bottom=8), "padding": _edges()},
        },
        {
            "type": "text", "name": "Description",
            "size": {"width": "100%", "height": "auto"},
            "content": {
                "text": "This is a modal nudge. You can use it to make announcements or ask for confirmation.",
                "fontSize": 15,
                "fontWeight": "normal",
                "textColor": "#4B5563",
                "textAlign": "center",
            },
            "style": {"margin": _edges(bottom=16), "padding": _edges(), "lineHeight": 1.5},
        },
        {
            "type": "button", "name": "Action Button",
            "size": {"width": "100%", "height": 44},
            "content": {
                "label": "Get Started",
                "buttonStyle": "primary",
                "action": {"type": "close", "trackConversion": True, "autoDismiss": True},
            },
            "style": {
                "backgroundColor": "#4F46E5",
                "borderRadius": 8,
                "margin": _edges(top=8),
                "padding": _edges(10, 20, 10, 20),
            },
        },
    ]


def _seed_banner() -> list[dict]:
    return [
        {
            "type": "container", "name": ROOT_NAMES["banner"],
            "size": {"width": "100%", "height": 60},
            "style": {
                "display": "flex",
                "flexDirection": "row",
                "alignItems": "center",
                "justifyContent": "space-between",
                "gap": 12,
                "padding": _edges(0, 16, 0, 16),
            },
        },
        {
            "type": "text", "name": "Message",
            "content": {
                "text": "Free delivery on your first order",
                "fontSize": 14,
                "fontWeight": "semibold",
                "textColor": "#FFFFFF",
            },
        },
        {
            "type": "button", "name": "Banner Button",
            "content": {
                "label": "Shop now",
                "buttonStyle": "secondary",
                "action": {"type": "deeplink", "trackConversion": True, "autoDismiss": True},
            },
            "style": {
                "backgroundColor": "#FFFFFF",
                "borderRadius": 6,
                "padding": _edges(6, 12, 6, 12),
            },
        },
    ]


def _seed_tooltip() -> list[dict]:
    return [
        {
            "type": "container", "name": ROOT_NAMES["tooltip"],
            "size": {"width": "auto", "height": "auto"},
            "style": {
                "borderRadius": 8,
                "padding": _edges(10, 12, 10, 12),
                "display": "flex",
                "flexDirection": "column",
                "gap": 4,
            },
        },
        {
            "type": "text", "name": "Tip",
            "content": {
                "text": "Tap here to see your rewards",
                "fontSize": 13,
                "textColor": "#FFFFFF",
            },
        },
    ]


_SEEDS = {
    "bottomsheet": _seed_bottom_sheet,
    "modal": _seed_modal,
    "banner": _seed_banner,
    "tooltip": _seed_tooltip,
}


def seed_layers(nudge_type: str) -> tuple[LayerBase, ...]:
    """Return the starting layers for a new campaign of *nudge_type*.

    The first entry is the root container; every other seed layer is its
    direct child.  Nudge types without a renderer start empty.
    """
    seed = _SEEDS.get(nudge_type)
    if seed is None:
        logger.debug("No seed layers for nudge type %r", nudge_type)
        return ()

    specs = seed()
    ids: list[str] = []
    for _ in specs:
        ids.append(generate_layer_id(ids))
    root_id = ids[0]

    layers = []
    for index, (layer_id, spec) in enumerate(zip(ids, specs)):
        is_root = index == 0
        data = {
            "id": layer_id,
            "parent": None if is_root else root_id,
            "children": ids[1:] if is_root else [],
            "zIndex": index,
            "position": {"x": 0, "y": 0},
            **spec,
        }
        layers.append(parse_layer(data))
    return tuple(layers)


def find_root_layer(
    layers,
    nudge_type: str,
    root_layer_id: str | None = None,
) -> LayerBase | None:
    """Locate the root container a renderer draws from.

    ``root_layer_id`` wins when it names a layer.  Documents saved before
    that field existed fall back to the reserved container name for the
    nudge type.
    """
    if root_layer_id is not None:
        for layer in layers:
            if layer.id == root_layer_id:
                return layer
    reserved = ROOT_NAMES.get(nudge_type)
    if reserved is None:
        return None
    for layer in layers:
        if layer.type == "container" and layer.name == reserved:
            return layer
    return None
