"""
nudge_engine/style_resolver.py -- Normalize layer styles into concrete values.

Designers may give ``padding``, ``margin``, ``borderWidth`` and
``borderRadius`` either as a single number or as a per-edge / per-corner
object.  Renderers never look at the raw form: everything here resolves it
into a fully specified 4-tuple first, fills in type-specific defaults, and
composes the effect sub-fields (filter, transform) into single expressions.

Resolution is idempotent: feeding a resolved value back in returns the same
value, so callers may resolve again without tracking what is already
resolved.

Usage::

    from nudge_engine.style_resolver import resolve_edges, resolve_style

    resolve_edges(8)                      # BoxEdges(8, 8, 8, 8)
    css = resolve_style(layer)
    css["padding"]                        # "8px 8px 8px 8px"
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, NamedTuple, Optional, Union

from nudge_engine.models.layers import (
    Corners,
    Edges,
    FilterEffect,
    LayerBase,
    LayerStyle,
    TransformEffect,
)

logger = logging.getLogger(__name__)


class BoxEdges(NamedTuple):
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0


class BoxCorners(NamedTuple):
    top_left: Union[float, str] = 0
    top_right: Union[float, str] = 0
    bottom_right: Union[float, str] = 0
    bottom_left: Union[float, str] = 0


# Radius used when a layer sets none, by layer type
TYPE_RADIUS_DEFAULTS: dict[str, Union[float, BoxCorners]] = {
    "button": 8,
    "badge": 12,
    "progress-bar": 4,
    "input": 8,
    "checkbox": 4,
}

# The bottom sheet root only rounds its top corners
BOTTOM_SHEET_RADIUS = BoxCorners(16, 16, 0, 0)

DEFAULT_SHEET_ELEVATION = 2


# ------------------------------------------------------------------
# Scalar formatting
# ------------------------------------------------------------------

def format_number(value: float) -> str:
    """Render *value* without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return f"{value:.4f}".rstrip("0").rstrip(".")
    return str(value)


def px(value: Union[float, str, None]) -> Optional[str]:
    """``8`` -> ``"8px"``; strings (``"50%"``, ``"auto"``) pass through."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return f"{format_number(value)}px"


# ------------------------------------------------------------------
# Box model
# ------------------------------------------------------------------

def _field(value: Any, name: str, camel: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name, value.get(camel))
    return getattr(value, name, None)


def resolve_edges(value: Any, default: float = 0) -> BoxEdges:
    """Resolve a scalar or per-edge value into :class:`BoxEdges`.

    Accepts ``None`` (all *default*), a number, an :class:`Edges` model, a
    mapping with ``top``/``right``/``bottom``/``left`` keys, or an
    already-resolved :class:`BoxEdges`.  Missing edges use *default*.
    """
    if isinstance(value, BoxEdges):
        return value
    if value is None:
        return BoxEdges(default, default, default, default)
    if isinstance(value, bool):
        raise TypeError(f"Invalid box value: {value!r}")
    if isinstance(value, (int, float)):
        return BoxEdges(value, value, value, value)
    if isinstance(value, str):
        try:
            number = float(value.strip().removesuffix("px"))
        except ValueError:
            raise TypeError(f"Invalid box value: {value!r}") from None
        return resolve_edges(number, default)
    if isinstance(value, (Edges, Mapping)):
        parts = []
        for name in BoxEdges._fields:
            part = _field(value, name, name)
            parts.append(default if part is None else part)
        return BoxEdges(*parts)
    raise TypeError(f"Invalid box value: {value!r}")


def resolve_corners(value: Any, default: Any = 0) -> BoxCorners:
    """Resolve a scalar or per-corner radius into :class:`BoxCorners`.

    *default* may itself be a scalar or a :class:`BoxCorners`; it fills
    every corner the value leaves unset.  A non-numeric CSS string (for
    example ``"50%"``) applies to all four corners.
    """
    if isinstance(value, BoxCorners):
        return value
    fallback = (
        default if isinstance(default, BoxCorners)
        else BoxCorners(default, default, default, default)
    )
    if value is None:
        return fallback
    if isinstance(value, bool):
        raise TypeError(f"Invalid radius value: {value!r}")
    if isinstance(value, (int, float, str)):
        return BoxCorners(value, value, value, value)
    if isinstance(value, (Corners, Mapping)):
        parts = []
        for index, name in enumerate(BoxCorners._fields):
            camel = _camel(name)
            part = _field(value, name, camel)
            parts.append(fallback[index] if part is None else part)
        return BoxCorners(*parts)
    raise TypeError(f"Invalid radius value: {value!r}")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(word.title() for word in rest)


def default_radius(layer_type: str, *, is_sheet_root: bool = False) -> Union[float, BoxCorners]:
    """Radius for a layer that sets none."""
    if is_sheet_root:
        return BOTTOM_SHEET_RADIUS
    return TYPE_RADIUS_DEFAULTS.get(layer_type, 0)


def edges_css(edges: BoxEdges) -> str:
    return " ".join(px(part) for part in edges)


def corners_css(corners: BoxCorners) -> str:
    return " ".join(px(part) for part in corners)


# ------------------------------------------------------------------
# Effects
# ------------------------------------------------------------------

def compose_filter(effect: Union[FilterEffect, Mapping, None]) -> Optional[str]:
    """Compose blur/brightness/contrast/grayscale into one filter expression.

    Brightness, contrast and grayscale are given in percent.  Missing
    sub-fields take their identity values (0 blur, 100% brightness and
    contrast, 0% grayscale).  Returns None when no filter is set.
    """
    if effect is None:
        return None
    if isinstance(effect, Mapping):
        effect = FilterEffect.model_validate(effect)
    blur = 0 if effect.blur is None else effect.blur
    brightness = 100 if effect.brightness is None else effect.brightness
    contrast = 100 if effect.contrast is None else effect.contrast
    grayscale = 0 if effect.grayscale is None else effect.grayscale
    return (
        f"blur({format_number(blur)}px) "
        f"brightness({format_number(brightness / 100)}) "
        f"contrast({format_number(contrast / 100)}) "
        f"grayscale({format_number(grayscale / 100)})"
    )


def compose_transform(effect: Union[TransformEffect, Mapping, None]) -> Optional[str]:
    """Compose rotate/scale/translate (plus optional axis scale and skew)."""
    if effect is None:
        return None
    if isinstance(effect, Mapping):
        effect = TransformEffect.model_validate(effect)
    rotate = 0 if effect.rotate is None else effect.rotate
    scale = 1 if effect.scale is None else effect.scale
    tx = 0 if effect.translate_x is None else effect.translate_x
    ty = 0 if effect.translate_y is None else effect.translate_y
    parts = [
        f"rotate({format_number(rotate)}deg)",
        f"scale({format_number(scale)})",
        f"translate({format_number(tx)}px, {format_number(ty)}px)",
    ]
    if effect.scale_x is not None:
        parts.append(f"scaleX({format_number(effect.scale_x)})")
    if effect.scale_y is not None:
        parts.append(f"scaleY({format_number(effect.scale_y)})")
    if effect.skew_x is not None:
        parts.append(f"skewX({format_number(effect.skew_x)}deg)")
    if effect.skew_y is not None:
        parts.append(f"skewY({format_number(effect.skew_y)}deg)")
    return " ".join(parts)


def compose_gradient(gradient) -> Optional[str]:
    if gradient is None or not gradient.colors:
        return None
    stops = ", ".join(
        f"{stop.color} {format_number(stop.position)}%" for stop in gradient.colors
    )
    if gradient.type == "radial":
        return f"radial-gradient(circle, {stops})"
    angle = 180 if gradient.angle is None else gradient.angle
    return f"linear-gradient({format_number(angle)}deg, {stops})"


def elevation_shadow(elevation: Optional[int]) -> str:
    """Upward shadow for a bottom sheet at elevation 0..5."""
    level = DEFAULT_SHEET_ELEVATION if elevation is None else elevation
    alpha = format_number(round(0.05 + level * 0.05, 4))
    return f"0 -{level * 2}px {level * 8}px rgba(0,0,0,{alpha})"


# ------------------------------------------------------------------
# Bottom sheet specifics
# ------------------------------------------------------------------

def resolve_background(style: LayerStyle, config=None) -> dict[str, Any]:
    """Resolve the bottom sheet root's background.

    Precedence is layer style, then config, then the built-in default.  In
    ``image-only`` mode the config's image wins and the colour becomes
    transparent.
    """
    image_only = config is not None and getattr(config, "mode", None) == "image-only"
    config_color = getattr(config, "background_color", None) if config else None
    color = style.background_color or config_color or "#FFFFFF"

    if image_only:
        image_url = getattr(config, "background_image_url", "") or ""
        return {
            "backgroundColor": "transparent",
            "backgroundImage": f"url({image_url})" if image_url else style.background_image,
            "backgroundSize": config.background_size or "cover",
            "backgroundPosition": config.background_position or "center center",
            "backgroundRepeat": style.background_repeat or "no-repeat",
        }
    return {
        "backgroundColor": color,
        "backgroundImage": style.background_image,
        "backgroundSize": style.background_size or "cover",
        "backgroundPosition": style.background_position or "center center",
        "backgroundRepeat": style.background_repeat or "no-repeat",
    }


def resolve_sheet_height(height: Union[float, str, None], style: Optional[LayerStyle] = None) -> dict[str, Any]:
    """Translate a bottom sheet height setting into size constraints.

    A positive ``maxHeight`` on the root layer's style overrides the config.
    Numbers are pixels; ``"50vh"`` / ``"80%"`` pass through; ``"half"`` and
    ``"full"`` map to 50% and 100%; anything else is ``auto``.
    """
    result: dict[str, Any] = {}
    max_height = style.max_height if style is not None else None
    max_width = style.max_width if style is not None else None

    if isinstance(max_height, (int, float)) and max_height > 0:
        result = {"height": px(max_height), "maxHeight": px(max_height)}
    elif isinstance(height, (int, float)) and not isinstance(height, bool):
        result = {"height": px(height), "minHeight": px(height), "maxHeight": px(height)}
    elif isinstance(height, str) and ("vh" in height or "%" in height):
        result = {"height": height, "minHeight": height, "maxHeight": height}
    elif height == "half":
        result = {"height": "50%", "minHeight": "50%", "maxHeight": "50%"}
    elif height == "full":
        result = {"height": "100%", "minHeight": "100%", "maxHeight": "100%", "borderRadius": "0"}
    else:
        result = {"minHeight": "200px", "maxHeight": "70%"}

    if isinstance(max_width, (int, float)) and max_width > 0:
        result.update(maxWidth=px(max_width), marginLeft="auto", marginRight="auto")
    return result


# ------------------------------------------------------------------
# Whole-style resolution
# ------------------------------------------------------------------

_PASSTHROUGH = (
    ("background_color", "backgroundColor"),
    ("border_color", "borderColor"),
    ("border_style", "borderStyle"),
    ("box_shadow", "boxShadow"),
    ("display", "display"),
    ("flex_direction", "flexDirection"),
    ("align_items", "alignItems"),
    ("justify_content", "justifyContent"),
    ("flex_wrap", "flexWrap"),
    ("align_self", "alignSelf"),
    ("cursor", "cursor"),
    ("overflow", "overflow"),
    ("position", "position"),
    ("font_family", "fontFamily"),
    ("font_weight", "fontWeight"),
    ("font_style", "fontStyle"),
    ("text_align", "textAlign"),
    ("text_transform", "textTransform"),
    ("text_decoration", "textDecoration"),
    ("text_shadow", "textShadow"),
    ("word_break", "wordBreak"),
    ("white_space", "whiteSpace"),
    ("color", "color"),
    ("background_image", "backgroundImage"),
    ("background_size", "backgroundSize"),
    ("background_position", "backgroundPosition"),
    ("background_repeat", "backgroundRepeat"),
    ("clip_path", "clipPath"),
    ("object_fit", "objectFit"),
    ("object_position", "objectPosition"),
    ("backdrop_filter", "backdropFilter"),
    ("mix_blend_mode", "mixBlendMode"),
    ("transition", "transition"),
    ("animation", "animation"),
)

_LENGTHS = (
    ("top", "top"),
    ("right", "right"),
    ("bottom", "bottom"),
    ("left", "left"),
    ("width", "width"),
    ("height", "height"),
    ("min_width", "minWidth"),
    ("min_height", "minHeight"),
    ("max_width", "maxWidth"),
    ("max_height", "maxHeight"),
    ("font_size", "fontSize"),
    ("line_height", "lineHeight"),
    ("letter_spacing", "letterSpacing"),
    ("gap", "gap"),
)


def resolve_style(
    layer: LayerBase,
    *,
    is_sheet_root: bool = False,
    fill_defaults: bool = True,
) -> dict[str, Any]:
    """Return the fully resolved, CSS-like style dict for *layer*.

    Box-model values are present as 4-part strings (with *fill_defaults*
    off, only the ones the layer sets); unset effects are omitted.  The
    returned dict is new on every call and safe for the caller to extend.
    """
    style = layer.style
    css: dict[str, Any] = {}

    for attr, key in _PASSTHROUGH:
        value = getattr(style, attr)
        if value is not None:
            css[key] = value
    for attr, key in _LENGTHS:
        value = getattr(style, attr)
        if value is not None:
            # line-height is unitless when numeric
            css[key] = value if attr == "line_height" else px(value)

    if fill_defaults or style.padding is not None:
        css["padding"] = edges_css(resolve_edges(style.padding))
    if fill_defaults or style.margin is not None:
        css["margin"] = edges_css(resolve_edges(style.margin))
    if style.border_width is not None:
        css["borderWidth"] = edges_css(resolve_edges(style.border_width))
    if fill_defaults or style.border_radius is not None:
        radius = resolve_corners(
            style.border_radius,
            default_radius(layer.type, is_sheet_root=is_sheet_root),
        )
        css["borderRadius"] = corners_css(radius)

    if style.opacity is not None:
        css["opacity"] = style.opacity

    filter_css = compose_filter(style.filter)
    if filter_css:
        css["filter"] = filter_css
    transform_css = compose_transform(style.transform)
    if transform_css:
        css["transform"] = transform_css
    gradient_css = compose_gradient(style.gradient)
    if gradient_css:
        css["backgroundImage"] = gradient_css

    if style.custom_css:
        css["customCss"] = style.custom_css
    return css


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
