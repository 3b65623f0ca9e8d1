"""
nudge_engine/models/campaign.py -- The campaign document and per-type configs.

A ``CampaignDocument`` is the unit the editor owns: campaign metadata, the
flat list of layers, the one per-type config matching ``nudge_type``, the
targeting and display rules, the current selection and the undo history.

Documents are frozen.  The document store replaces the whole document on
every mutation (``model_copy(update=...)`` for fields whose values it has
already validated), so a document is never observed half-updated.

Usage::

    from nudge_engine.models.campaign import CampaignDocument

    doc = CampaignDocument.model_validate(payload)
    doc.active_config          # the BottomSheetConfig / ModalConfig / ...
    doc.find_layer("layer_1")
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from nudge_engine.models.layers import Corners, Layer, LayerBase, WireModel

NudgeType = Literal[
    "modal", "banner", "bottomsheet", "tooltip",
    "pip", "scratchcard", "carousel", "inline",
]
ExperienceType = Literal[
    "nudges", "messages", "stories", "challenges", "streaks", "survey",
]
CampaignStatus = Literal["active", "paused", "draft"]

NUDGE_TYPES: tuple[str, ...] = NudgeType.__args__  # type: ignore[attr-defined]

# nudge_type -> attribute holding that type's config
CONFIG_FIELD_BY_TYPE: dict[str, str] = {
    "bottomsheet": "bottom_sheet_config",
    "modal": "modal_config",
    "banner": "banner_config",
    "tooltip": "tooltip_config",
}


# ------------------------------------------------------------------
# Per-type configs
# ------------------------------------------------------------------

class _OpenConfig(WireModel):
    """Configs keep unknown keys so newer editor settings survive a load."""

    model_config = ConfigDict(extra="allow")


class SheetOverlay(_OpenConfig):
    enabled: bool = True
    opacity: float = 0.5
    blur: float = 0
    color: str = "#000000"
    dismiss_on_click: bool = True


class SheetAnimation(_OpenConfig):
    type: Literal["slide", "fade", "bounce"] = "slide"
    duration: int = 300
    easing: str = "ease-out"


class SafeArea(_OpenConfig):
    top: bool = False
    bottom: bool = True


class BottomSheetConfig(_OpenConfig):
    mode: Literal["container", "image-only"] = "container"
    height: Union[float, str] = "auto"
    max_height: Optional[float] = None
    min_height: Optional[float] = None
    drag_handle: bool = True
    swipe_to_dismiss: bool = True
    swipe_threshold: Optional[float] = None
    dismiss_velocity: Optional[float] = None
    background_color: str = "#FFFFFF"
    background_image_url: str = ""
    background_size: str = "cover"
    background_position: str = "center center"
    border_radius: Corners = Corners(top_left=16, top_right=16)
    elevation: int = Field(2, ge=0, le=5)
    custom_shadow: Optional[str] = None
    overlay: SheetOverlay = SheetOverlay()
    animation: SheetAnimation = SheetAnimation()
    safe_area: Optional[SafeArea] = None


class ModalConfig(_OpenConfig):
    width: float = 320
    border_radius: float = 16
    padding: float = 24
    background_color: str = "#FFFFFF"
    show_close_button: bool = True
    overlay_color: str = "rgba(0,0,0,0.5)"


class BannerConfig(_OpenConfig):
    position: Literal["top", "bottom"] = "top"
    height: float = 60
    background_color: Optional[str] = None
    show_close_button: bool = True


class TooltipConfig(_OpenConfig):
    placement: Literal["top", "bottom", "left", "right"] = "bottom"
    target_selector: str = ""
    show_arrow: bool = True
    arrow_size: float = 8
    offset: float = 8
    max_width: float = 240
    background_color: str = "#111827"


CONFIG_CLASS_BY_TYPE: dict[str, type[_OpenConfig]] = {
    "bottomsheet": BottomSheetConfig,
    "modal": ModalConfig,
    "banner": BannerConfig,
    "tooltip": TooltipConfig,
}


# ------------------------------------------------------------------
# Targeting and display rules
# ------------------------------------------------------------------

class TimeWindow(WireModel):
    value: int
    unit: Literal["hours", "days", "weeks"] = "days"


class TargetingRule(_OpenConfig):
    id: str
    type: Literal["user_property", "event", "segment"] = "user_property"
    property: Optional[str] = None
    operator: Optional[Literal[
        "equals", "not_equals", "greater_than", "less_than",
        "contains", "not_contains",
    ]] = None
    value: Optional[Union[str, float]] = None
    event: Optional[str] = None
    event_property: Optional[str] = None
    count: Optional[int] = None
    time_window: Optional[TimeWindow] = None
    combine_with: Optional[Literal["AND", "OR"]] = None
    children: tuple[TargetingRule, ...] = ()


class Frequency(WireModel):
    type: Literal["once", "custom", "always"] = "once"
    max_shows: Optional[int] = None
    time_window: Optional[TimeWindow] = None


class InteractionLimit(WireModel):
    type: Literal["unlimited", "limited"] = "unlimited"
    max_interactions: Optional[int] = None


class SessionLimit(WireModel):
    enabled: bool = False
    max_per_session: Optional[int] = None


class DisplayRules(WireModel):
    frequency: Frequency = Frequency()
    interaction_limit: InteractionLimit = InteractionLimit()
    session_limit: SessionLimit = SessionLimit()
    priority: int = 50
    platforms: tuple[Literal["web", "ios", "android"], ...] = ("ios", "android")


# ------------------------------------------------------------------
# CampaignDocument
# ------------------------------------------------------------------

def _lookup(data: dict, name: str) -> Any:
    """Read *name* from raw input that may be keyed snake_case or camelCase."""
    if name in data:
        return data[name]
    return data.get(to_camel(name))


def _drop(data: dict, name: str) -> None:
    data.pop(name, None)
    data.pop(to_camel(name), None)


class CampaignDocument(WireModel):
    """The campaign currently open in the editor."""

    id: str
    name: str = "New Campaign"
    experience_type: ExperienceType = "nudges"
    nudge_type: NudgeType
    trigger: Optional[str] = "screen_viewed"
    screen: Optional[str] = ""
    status: CampaignStatus = "draft"

    layers: tuple[Layer, ...] = ()
    root_layer_id: Optional[str] = None
    targeting: tuple[TargetingRule, ...] = ()
    display_rules: DisplayRules = DisplayRules()

    bottom_sheet_config: Optional[BottomSheetConfig] = None
    modal_config: Optional[ModalConfig] = None
    banner_config: Optional[BannerConfig] = None
    tooltip_config: Optional[TooltipConfig] = None

    selected_layer_id: Optional[str] = None
    history: tuple[tuple[Layer, ...], ...] = ()
    history_index: int = 0

    created_at: str = ""
    updated_at: str = ""
    last_saved: Optional[str] = None
    is_dirty: bool = False
    revision: int = Field(0, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_configs(cls, data: Any) -> Any:
        """Keep exactly the config that matches ``nudge_type``.

        A config for a different nudge type is an error; the matching one
        is created with defaults when absent.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        nudge_type = _lookup(data, "nudge_type")
        for other_type, field_name in CONFIG_FIELD_BY_TYPE.items():
            value = _lookup(data, field_name)
            if other_type == nudge_type:
                if value is None:
                    _drop(data, field_name)
                    data[field_name] = CONFIG_CLASS_BY_TYPE[other_type]()
            elif value is not None:
                raise ValueError(
                    f"{to_camel(field_name)} is not valid for nudge type '{nudge_type}'"
                )
        return data

    @model_validator(mode="after")
    def _check_history(self) -> CampaignDocument:
        if self.history and not 0 <= self.history_index < len(self.history):
            raise ValueError(
                f"historyIndex {self.history_index} outside history of "
                f"length {len(self.history)}"
            )
        return self

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def active_config(self) -> Optional[_OpenConfig]:
        """The per-type config for ``nudge_type`` (None for types without one)."""
        field_name = CONFIG_FIELD_BY_TYPE.get(self.nudge_type)
        return getattr(self, field_name) if field_name else None

    def find_layer(self, layer_id: Optional[str]) -> Optional[LayerBase]:
        if layer_id is None:
            return None
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def layer_index(self) -> dict[str, LayerBase]:
        return {layer.id: layer for layer in self.layers}

    def can_undo(self) -> bool:
        return self.history_index > 0

    def can_redo(self) -> bool:
        return self.history_index < len(self.history) - 1
