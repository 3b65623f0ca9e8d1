"""
nudge_engine/models/layers.py -- Pydantic v2 models for editor layers.

A layer is one node of the nudge's visual tree.  Every layer shares the same
structural fields (id, parent, children, visibility, geometry, style) but the
``content`` block is specific to the layer's ``type``: a text layer carries
typography, a countdown carries an end time, and so on.  The union of all
layer classes is discriminated on ``type`` so pydantic picks the right class
while parsing and rejects content fields that do not belong to that type.

Key design decisions:
    - Models are frozen and sequences are tuples.  The document store never
      mutates a layer in place; it builds a new one, so any tuple of layers
      captured for undo stays valid.
    - Python attributes are snake_case, the wire format is camelCase
      (``zIndex``, ``borderRadius``) to stay compatible with stored
      campaigns.
    - ``LayerStyle`` allows extra keys; designers use free-form CSS-like
      fields (``badgePadding``, ``direction``) that the renderers read.

Usage::

    from nudge_engine.models.layers import parse_layer

    layer = parse_layer({"id": "layer_1", "type": "text", "name": "Title",
                         "content": {"text": "Hello"}})
    layer.content.text            # "Hello"
    layer.model_dump(by_alias=True, exclude_none=True)
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for every persisted model: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON-compatible camelCase form used for persistence."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------
# Box-model value objects
# ------------------------------------------------------------------

Length = Union[float, str]


class Edges(WireModel):
    """Per-edge box value (padding, margin, border width)."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


class Corners(WireModel):
    """Per-corner radius value."""

    top_left: Length = 0.0
    top_right: Length = 0.0
    bottom_right: Length = 0.0
    bottom_left: Length = 0.0


class FilterEffect(WireModel):
    blur: Optional[float] = None
    brightness: Optional[float] = None
    contrast: Optional[float] = None
    grayscale: Optional[float] = None


class TransformEffect(WireModel):
    rotate: Optional[float] = None
    scale: Optional[float] = None
    scale_x: Optional[float] = None
    scale_y: Optional[float] = None
    skew_x: Optional[float] = None
    skew_y: Optional[float] = None
    translate_x: Optional[float] = None
    translate_y: Optional[float] = None


class GradientStop(WireModel):
    color: str
    position: float = 0


class Gradient(WireModel):
    type: Literal["linear", "radial"] = "linear"
    angle: Optional[float] = None
    colors: tuple[GradientStop, ...] = ()


class LayerStyle(WireModel):
    """Box-model and visual-effect fields shared by every layer type.

    ``padding``, ``margin`` and ``border_width`` accept either a scalar or an
    :class:`Edges`; ``border_radius`` accepts a scalar, a CSS string or a
    :class:`Corners`.  :mod:`nudge_engine.style_resolver` normalizes both
    forms before rendering.
    """

    model_config = ConfigDict(extra="allow")

    # Box model
    background_color: Optional[str] = None
    border_radius: Union[float, str, Corners, None] = None
    border_color: Optional[str] = None
    border_width: Union[float, Edges, None] = None
    border_style: Optional[Literal["solid", "dashed", "dotted", "none"]] = None
    padding: Union[float, Edges, None] = None
    margin: Union[float, Edges, None] = None
    opacity: Optional[float] = None
    box_shadow: Optional[str] = None

    # Layout
    display: Optional[str] = None
    flex_direction: Optional[str] = None
    align_items: Optional[str] = None
    justify_content: Optional[str] = None
    gap: Optional[float] = None
    flex_wrap: Optional[str] = None
    align_self: Optional[str] = None
    layout: Optional[str] = None
    cursor: Optional[str] = None
    overflow: Optional[str] = None

    # Positioning and dimensions
    position: Optional[str] = None
    top: Optional[Length] = None
    right: Optional[Length] = None
    bottom: Optional[Length] = None
    left: Optional[Length] = None
    width: Optional[Length] = None
    height: Optional[Length] = None
    min_width: Optional[Length] = None
    min_height: Optional[Length] = None
    max_width: Optional[Length] = None
    max_height: Optional[Length] = None

    # Typography
    font_family: Optional[str] = None
    font_size: Optional[Length] = None
    font_weight: Optional[Union[str, int]] = None
    font_style: Optional[str] = None
    line_height: Optional[Length] = None
    letter_spacing: Optional[Length] = None
    text_align: Optional[str] = None
    text_transform: Optional[str] = None
    text_decoration: Optional[str] = None
    text_shadow: Optional[str] = None
    word_break: Optional[str] = None
    white_space: Optional[str] = None
    color: Optional[str] = None

    # Background
    background_image: Optional[str] = None
    background_size: Optional[str] = None
    background_position: Optional[str] = None
    background_repeat: Optional[str] = None
    gradient: Optional[Gradient] = None

    # Shapes, images and effects
    clip_path: Optional[str] = None
    object_fit: Optional[str] = None
    object_position: Optional[str] = None
    filter: Optional[FilterEffect] = None
    backdrop_filter: Optional[str] = None
    mix_blend_mode: Optional[str] = None
    transform: Optional[TransformEffect] = None
    transition: Optional[str] = None
    animation: Optional[str] = None

    # Widget-specific styling
    badge_background_color: Optional[str] = None
    badge_text_color: Optional[str] = None
    badge_border_radius: Optional[float] = None
    star_color: Optional[str] = None
    empty_star_color: Optional[str] = None
    star_size: Optional[float] = None
    star_spacing: Optional[float] = None

    custom_css: Optional[str] = None


class Position(WireModel):
    x: float = 0
    y: float = 0
    mode: Literal["absolute", "relative"] = Field("relative", alias="type")


class Size(WireModel):
    width: Length = "auto"
    height: Length = "auto"


# ------------------------------------------------------------------
# Per-type content blocks
# ------------------------------------------------------------------

class EmptyContent(WireModel):
    """Content for layer types that carry no fields of their own."""


class ContainerContent(WireModel):
    container_position: Optional[str] = None
    max_width: Optional[float] = None


class TextContent(WireModel):
    text: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[Union[str, int]] = None
    text_color: Optional[str] = None
    text_align: Optional[Literal["left", "center", "right", "justify"]] = None


class ButtonAction(WireModel):
    type: Literal["close", "deeplink", "navigate", "custom"] = "close"
    url: Optional[str] = None
    track_conversion: bool = False
    auto_dismiss: bool = True


class ButtonContent(WireModel):
    label: Optional[str] = None
    button_style: Optional[Literal["primary", "secondary", "outline", "ghost"]] = None
    action: Optional[ButtonAction] = None
    text_color: Optional[str] = None
    font_size: Optional[float] = None


class ImageSize(WireModel):
    width: float
    height: float


class MediaContent(WireModel):
    image_url: Optional[str] = None
    image_size: Optional[ImageSize] = None
    video_url: Optional[str] = None
    icon_name: Optional[str] = None


class Milestone(WireModel):
    value: float
    label: str = ""
    color: str = "#6366F1"


class ProgressContent(WireModel):
    value: Optional[float] = None
    max: Optional[float] = None
    show_percentage: Optional[bool] = None
    milestones: tuple[Milestone, ...] = ()


class CountdownContent(WireModel):
    end_time: Optional[str] = None
    format: Optional[Literal["HH:MM:SS", "MM:SS", "auto"]] = None
    urgency_threshold: Optional[float] = None
    auto_hide: Optional[bool] = None
    font_size: Optional[float] = None
    text_color: Optional[str] = None


class ListContent(WireModel):
    items: tuple[str, ...] = ()
    list_style: Optional[Literal["bullet", "numbered", "checkmark", "icon"]] = None
    font_size: Optional[float] = None
    text_color: Optional[str] = None


class InputContent(WireModel):
    input_type: Optional[Literal["text", "email", "number", "textarea"]] = None
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    validation: Optional[str] = None
    font_size: Optional[float] = None
    text_color: Optional[str] = None


class StatisticContent(WireModel):
    value: Optional[float] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    animate_on_load: Optional[bool] = None
    font_size: Optional[float] = None
    font_weight: Optional[Union[str, int]] = None
    text_color: Optional[str] = None


class RatingContent(WireModel):
    max_stars: Optional[int] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    show_review_count: Optional[bool] = None
    interactive: Optional[bool] = None
    filled_icon: Optional[str] = None
    empty_icon: Optional[str] = None


class BadgeContent(WireModel):
    badge_text: Optional[str] = None
    badge_variant: Optional[Literal["success", "error", "warning", "info", "custom"]] = None
    badge_icon: Optional[str] = None
    badge_icon_position: Optional[Literal["left", "right"]] = None
    pulse: Optional[bool] = None


class GradientOverlayContent(WireModel):
    gradient_type: Optional[Literal["linear", "radial"]] = None
    gradient_direction: Optional[Union[float, str]] = None
    gradient_stops: tuple[GradientStop, ...] = ()


class CheckboxContent(WireModel):
    checkbox_label: Optional[str] = None
    checked: Optional[bool] = None
    checkbox_color: Optional[str] = None
    font_size: Optional[float] = None
    text_color: Optional[str] = None


class IconContent(WireModel):
    icon_name: Optional[str] = None
    font_size: Optional[float] = None
    text_color: Optional[str] = None


class VideoContent(WireModel):
    video_url: Optional[str] = None
    image_url: Optional[str] = None


# ------------------------------------------------------------------
# Layer classes (discriminated on ``type``)
# ------------------------------------------------------------------

class LayerBase(WireModel):
    id: str
    name: str = ""
    parent: Optional[str] = None
    children: tuple[str, ...] = ()
    visible: bool = True
    locked: bool = False
    z_index: int = 0
    position: Position = Position()
    size: Size = Size()
    style: LayerStyle = LayerStyle()


class ContainerLayer(LayerBase):
    type: Literal["container"] = "container"
    content: ContainerContent = ContainerContent()


class TextLayer(LayerBase):
    type: Literal["text"] = "text"
    content: TextContent = TextContent()


class ButtonLayer(LayerBase):
    type: Literal["button"] = "button"
    content: ButtonContent = ButtonContent()


class MediaLayer(LayerBase):
    type: Literal["media"] = "media"
    content: MediaContent = MediaContent()


class ProgressBarLayer(LayerBase):
    type: Literal["progress-bar"] = "progress-bar"
    content: ProgressContent = ProgressContent()


class ProgressCircleLayer(LayerBase):
    type: Literal["progress-circle"] = "progress-circle"
    content: ProgressContent = ProgressContent()


class CountdownLayer(LayerBase):
    type: Literal["countdown"] = "countdown"
    content: CountdownContent = CountdownContent()


class ListLayer(LayerBase):
    type: Literal["list"] = "list"
    content: ListContent = ListContent()


class InputLayer(LayerBase):
    type: Literal["input"] = "input"
    content: InputContent = InputContent()


class StatisticLayer(LayerBase):
    type: Literal["statistic"] = "statistic"
    content: StatisticContent = StatisticContent()


class RatingLayer(LayerBase):
    type: Literal["rating"] = "rating"
    content: RatingContent = RatingContent()


class BadgeLayer(LayerBase):
    type: Literal["badge"] = "badge"
    content: BadgeContent = BadgeContent()


class GradientOverlayLayer(LayerBase):
    type: Literal["gradient-overlay"] = "gradient-overlay"
    content: GradientOverlayContent = GradientOverlayContent()


class CheckboxLayer(LayerBase):
    type: Literal["checkbox"] = "checkbox"
    content: CheckboxContent = CheckboxContent()


class HandleLayer(LayerBase):
    type: Literal["handle"] = "handle"
    content: EmptyContent = EmptyContent()


class IconLayer(LayerBase):
    type: Literal["icon"] = "icon"
    content: IconContent = IconContent()


class VideoLayer(LayerBase):
    type: Literal["video"] = "video"
    content: VideoContent = VideoContent()


class OverlayLayer(LayerBase):
    type: Literal["overlay"] = "overlay"
    content: EmptyContent = EmptyContent()


class ArrowLayer(LayerBase):
    type: Literal["arrow"] = "arrow"
    content: EmptyContent = EmptyContent()


class ControlsLayer(LayerBase):
    type: Literal["controls"] = "controls"
    content: EmptyContent = EmptyContent()


Layer = Annotated[
    Union[
        ContainerLayer, TextLayer, ButtonLayer, MediaLayer, ProgressBarLayer,
        ProgressCircleLayer, CountdownLayer, ListLayer, InputLayer,
        StatisticLayer, RatingLayer, BadgeLayer, GradientOverlayLayer,
        CheckboxLayer, HandleLayer, IconLayer, VideoLayer, OverlayLayer,
        ArrowLayer, ControlsLayer,
    ],
    Field(discriminator="type"),
]

LAYER_CLASSES: dict[str, type[LayerBase]] = {
    cls.model_fields["type"].default: cls
    for cls in (
        ContainerLayer, TextLayer, ButtonLayer, MediaLayer, ProgressBarLayer,
        ProgressCircleLayer, CountdownLayer, ListLayer, InputLayer,
        StatisticLayer, RatingLayer, BadgeLayer, GradientOverlayLayer,
        CheckboxLayer, HandleLayer, IconLayer, VideoLayer, OverlayLayer,
        ArrowLayer, ControlsLayer,
    )
}

LAYER_TYPES: tuple[str, ...] = tuple(LAYER_CLASSES)

_layer_adapter: TypeAdapter = TypeAdapter(Layer)


def parse_layer(data: Any) -> LayerBase:
    """Validate *data* (a dict or a layer) into the matching layer class."""
    if isinstance(data, LayerBase):
        return data
    return _layer_adapter.validate_python(data)


def is_container(layer: LayerBase) -> bool:
    return layer.type == "container"
