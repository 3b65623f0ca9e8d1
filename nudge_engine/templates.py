"""
nudge_engine/templates.py -- Named bundles of layers and config.

A template is a ready-made layer tree (plus, optionally, per-type config)
for one nudge type.  Applying a template replaces the open campaign's tree
through :meth:`DocumentStore.load_template`, which records exactly one
undo step.

The catalog holds a few built-in templates and can load more from a
directory of ``*.json`` files, each shaped like::

    {"id": "flash-sale", "name": "Flash Sale", "nudgeType": "bottomsheet",
     "description": "...", "featured": true,
     "layers": [...], "config": {...}}

Layer ids inside a template are only local names; every application gets
fresh ids so the same template can be applied repeatedly.

Usage::

    from nudge_engine.templates import TemplateCatalog

    catalog = TemplateCatalog.with_builtins()
    catalog.apply(store, "flash-sale")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import Field, ValidationError

from nudge_engine.document_store import DocumentStore, deep_merge, snake_keys_deep
from nudge_engine.errors import DocumentError, DocumentLoadError
from nudge_engine.models.campaign import NudgeType
from nudge_engine.models.layers import LayerBase, WireModel, parse_layer
from nudge_engine.models.validators import validate_layer_tree
from nudge_engine.utils import generate_layer_id, safe_read_json

logger = logging.getLogger(__name__)


class Template(WireModel):
    """One catalog entry."""

    id: str
    name: str
    nudge_type: NudgeType
    description: str = ""
    featured: bool = False
    layers: tuple[dict[str, Any], ...] = ()
    config: Optional[dict[str, Any]] = None
    tags: tuple[str, ...] = Field(default_factory=tuple)

    def instantiate(self, existing_ids: Iterable[str] = ()) -> tuple[LayerBase, ...]:
        """Return the template's layers with fresh ids.

        ``parent`` and ``children`` references are rewritten to the new
        ids; references to ids outside the template are dropped.
        """
        taken = set(existing_ids)
        id_map: dict[str, str] = {}
        for raw in self.layers:
            new_id = generate_layer_id(taken)
            taken.add(new_id)
            id_map[raw["id"]] = new_id

        layers = []
        for raw in self.layers:
            data = dict(raw)
            data["id"] = id_map[raw["id"]]
            data["parent"] = id_map.get(raw.get("parent")) if raw.get("parent") else None
            data["children"] = [id_map[c] for c in raw.get("children", []) if c in id_map]
            layers.append(parse_layer(data))
        return tuple(layers)


# ------------------------------------------------------------------
# Built-in templates
# ------------------------------------------------------------------

def _tree(specs: list[dict[str, Any]]) -> tuple[dict[str, Any], ...]:
    """Expand compact ``{"key", "under", ...}`` specs into linked layer dicts."""
    layers: dict[str, dict[str, Any]] = {}
    for index, spec in enumerate(specs):
        spec = dict(spec)
        key = spec.pop("key")
        under = spec.pop("under", None)
        layers[key] = {"id": key, "parent": under, "children": [], "zIndex": index, **spec}
        if under is not None:
            layers[under]["children"].append(key)
    return tuple(layers.values())


def _edges(top=0, right=0, bottom=0, left=0) -> dict[str, float]:
    return {"top": top, "right": right, "bottom": bottom, "left": left}


BUILTIN_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="flash-sale",
        name="Flash Sale",
        nudge_type="bottomsheet",
        description="Countdown-driven offer with a single call to action.",
        featured=True,
        tags=("sale", "urgency"),
        layers=_tree([
            {"key": "sheet", "type": "container", "name": "Bottom Sheet",
             "style": {"backgroundColor": "#FFFFFF", "padding": _edges(20, 20, 24, 20),
                       "display": "flex", "flexDirection": "column", "gap": 12}},
            {"key": "handle", "under": "sheet", "type": "handle", "name": "Drag Handle",
             "size": {"width": 40, "height": 4},
             "style": {"backgroundColor": "#D1D5DB", "borderRadius": 2}},
            {"key": "badge", "under": "sheet", "type": "badge", "name": "Badge",
             "content": {"badgeText": "LIMITED", "badgeVariant": "error", "pulse": True}},
            {"key": "title", "under": "sheet", "type": "text", "name": "Title",
             "content": {"text": "50% off ends soon", "fontSize": 22,
                         "fontWeight": "bold", "textColor": "#111827"}},
            {"key": "timer", "under": "sheet", "type": "countdown", "name": "Countdown",
             "content": {"endTime": "2030-01-01T00:00:00Z", "format": "HH:MM:SS",
                         "urgencyThreshold": 300, "fontSize": 28, "textColor": "#DC2626"}},
            {"key": "cta", "under": "sheet", "type": "button", "name": "CTA Button",
             "size": {"width": "100%", "height": 48},
             "content": {"label": "Shop the sale", "buttonStyle": "primary",
                         "action": {"type": "deeplink", "trackConversion": True}},
             "style": {"backgroundColor": "#DC2626", "borderRadius": 12}},
        ]),
        config={"height": "half", "elevation": 3},
    ),
    Template(
        id="streak-progress",
        name="Streak Progress",
        nudge_type="bottomsheet",
        description="Progress bar with milestones and a stat counter.",
        tags=("gamification",),
        layers=_tree([
            {"key": "sheet", "type": "container", "name": "Bottom Sheet",
             "style": {"padding": _edges(20, 20, 20, 20), "gap": 16}},
            {"key": "stat", "under": "sheet", "type": "statistic", "name": "Streak Days",
             "content": {"value": 12, "suffix": "days", "animateOnLoad": True,
                         "fontSize": 36, "fontWeight": 700}},
            {"key": "bar", "under": "sheet", "type": "progress-bar", "name": "Progress",
             "content": {"value": 12, "max": 30, "showPercentage": True,
                         "milestones": [{"value": 7, "label": "1 week"},
                                        {"value": 30, "label": "1 month"}]}},
            {"key": "cta", "under": "sheet", "type": "button", "name": "CTA Button",
             "content": {"label": "Keep going", "buttonStyle": "primary"}},
        ]),
    ),
    Template(
        id="welcome-modal",
        name="Welcome Modal",
        nudge_type="modal",
        description="Centered greeting with a rating prompt.",
        featured=True,
        tags=("onboarding",),
        layers=_tree([
            {"key": "modal", "type": "container", "name": "Modal Container",
             "style": {"display": "flex", "flexDirection": "column",
                       "alignItems": "center", "gap": 12}},
            {"key": "title", "under": "modal", "type": "text", "name": "Title",
             "content": {"text": "Welcome!", "fontSize": 24, "fontWeight": "bold",
                         "textAlign": "center"}},
            {"key": "rating", "under": "modal", "type": "rating", "name": "Rating",
             "content": {"maxStars": 5, "rating": 4.5, "reviewCount": 1280,
                         "showReviewCount": True}},
            {"key": "cta", "under": "modal", "type": "button", "name": "Action Button",
             "content": {"label": "Let's go", "buttonStyle": "primary"}},
        ]),
        config={"width": 340},
    ),
    Template(
        id="promo-banner",
        name="Promo Banner",
        nudge_type="banner",
        description="Slim top banner with an icon and a link.",
        tags=("promo",),
        layers=_tree([
            {"key": "banner", "type": "container", "name": "Banner Container",
             "style": {"display": "flex", "flexDirection": "row",
                       "alignItems": "center", "gap": 8}},
            {"key": "icon", "under": "banner", "type": "icon", "name": "Icon",
             "content": {"iconName": "gift", "fontSize": 18, "textColor": "#FFFFFF"}},
            {"key": "text", "under": "banner", "type": "text", "name": "Message",
             "content": {"text": "Free shipping this weekend", "textColor": "#FFFFFF"}},
        ]),
        config={"position": "top", "backgroundColor": "#4F46E5"},
    ),
)


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------

class TemplateCatalog:
    """Lookup of templates by id, in insertion order."""

    def __init__(self, templates: Iterable[Template] = ()):
        self._templates: dict[str, Template] = {}
        for template in templates:
            self.add(template)

    @classmethod
    def with_builtins(cls, directory: Optional[Path] = None) -> TemplateCatalog:
        catalog = cls(BUILTIN_TEMPLATES)
        if directory is not None:
            catalog.load_directory(directory)
        return catalog

    def add(self, template: Template) -> None:
        if template.id in self._templates:
            logger.info("Template %s replaced", template.id)
        self._templates[template.id] = template

    def load_directory(self, directory) -> int:
        """Add every valid ``*.json`` template under *directory*.

        Unreadable or invalid files are logged and skipped.  Returns the
        number of templates added.
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Template directory %s does not exist", directory)
            return 0
        added = 0
        for path in sorted(directory.glob("*.json")):
            data = safe_read_json(path)
            if data is None:
                logger.warning("Skipping unreadable template %s", path)
                continue
            try:
                template = Template.model_validate(data)
                layers = template.instantiate()
            except (ValidationError, KeyError) as exc:
                logger.warning("Skipping invalid template %s: %s", path, exc)
                continue
            report = validate_layer_tree(layers)
            if report.errors:
                logger.warning("Skipping template %s: %s", path, "; ".join(report.errors))
                continue
            self.add(template)
            added += 1
        logger.info("Loaded %d template(s) from %s", added, directory)
        return added

    def get(self, template_id: str) -> Template:
        try:
            return self._templates[template_id]
        except KeyError:
            raise DocumentError(f"Unknown template: {template_id}") from None

    def list(self, nudge_type: Optional[str] = None) -> list[Template]:
        return [
            t for t in self._templates.values()
            if nudge_type is None or t.nudge_type == nudge_type
        ]

    def featured(self, nudge_type: Optional[str] = None) -> list[Template]:
        return [t for t in self.list(nudge_type) if t.featured]

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def apply(self, store: DocumentStore, template_id: str) -> None:
        """Replace the open campaign's tree with *template_id*'s layers."""
        doc = store.require()
        template = self.get(template_id)
        if template.nudge_type != doc.nudge_type:
            raise DocumentLoadError(
                f"Template {template_id} is for {template.nudge_type} nudges, "
                f"not {doc.nudge_type}"
            )
        layers = template.instantiate(layer.id for layer in doc.layers)
        config = None
        if template.config is not None and doc.active_config is not None:
            # Template keys may be camelCase or snake_case; merge on field names
            config = deep_merge(doc.active_config.model_dump(), snake_keys_deep(template.config))
        store.load_template(layers, config)
