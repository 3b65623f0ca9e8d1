"""
nudge_engine/document_store.py -- The editable campaign and its mutation API.

``DocumentStore`` owns at most one :class:`CampaignDocument` and is the only
thing allowed to change it.  Every operation builds a new document
(copy-on-write) and swaps it in with a single assignment, then notifies the
subscribed listeners with a :class:`ChangeKind`.  An observer therefore sees
either the old document or the new one, never something in between.

Layer-tree policies:
    - ``delete_layer`` removes the layer and every transitive descendant;
      an unknown id is a no-op.
    - ``duplicate_layer`` clones the whole subtree with fresh ids.
    - ``reorder_layer`` only reorders among siblings (the parent's
      ``children``, or the root layers when the layer has no parent).
    - ``move_layer_to_parent`` refuses to create a cycle.

The store does not enforce ``locked``; the application session checks it
before forwarding content and style edits.  Undo history is recorded by
:class:`~nudge_engine.history.HistoryManager`, which subscribes to the store.

Usage::

    from nudge_engine.document_store import DocumentStore

    store = DocumentStore()
    store.create_campaign("nudges", "modal")
    text_id = store.add_layer("text", store.document.root_layer_id)
    store.update_layer_content(text_id, {"text": "Hello"})
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from nudge_engine import defaults
from nudge_engine.errors import (
    DocumentError,
    DocumentLoadError,
    LayerNotFoundError,
    NoDocumentError,
    TreeStructureError,
)
from nudge_engine.models.campaign import (
    CONFIG_CLASS_BY_TYPE,
    CONFIG_FIELD_BY_TYPE,
    CampaignDocument,
    DisplayRules,
    TargetingRule,
)
from nudge_engine.models.layers import LAYER_CLASSES, LayerBase, LayerStyle, parse_layer
from nudge_engine.models.validators import descendants_of, validate_layer_tree
from nudge_engine.utils import (
    generate_campaign_id,
    generate_layer_id,
    generate_rule_id,
    now_iso,
)

logger = logging.getLogger(__name__)

# Keys that only the structural operations may change
STRUCTURAL_KEYS = frozenset({"id", "type", "parent", "children"})


class ChangeKind(str, Enum):
    """What a store notification is about."""

    LOADED = "loaded"
    CLOSED = "closed"
    STRUCTURE = "structure"     # tree shape changed; recorded in history at once
    CONTENT = "content"         # layer content/style edit; recorded after a debounce
    SELECTION = "selection"
    META = "meta"               # name, trigger, screen, status, lock flags
    CONFIG = "config"
    TARGETING = "targeting"
    HISTORY = "history"
    SAVED = "saved"


Listener = Callable[[ChangeKind], None]


# ------------------------------------------------------------------
# Key and dict helpers
# ------------------------------------------------------------------

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_key(key: str) -> str:
    """``backgroundColor`` -> ``background_color``; snake_case passes through."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(model_cls: type[BaseModel], partial: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase keys of *partial* onto *model_cls* field names.

    Keys that match no field are kept as given (models with
    ``extra="allow"`` store them verbatim).
    """
    fields = model_cls.model_fields
    result: dict[str, Any] = {}
    for key, value in partial.items():
        if key in fields:
            result[key] = value
            continue
        snake = snake_key(key)
        result[snake if snake in fields else key] = value
    return result


def snake_keys_deep(value: Any) -> Any:
    """snake_case every mapping key in *value*, recursively."""
    if isinstance(value, Mapping):
        return {snake_key(k): snake_keys_deep(v) for k, v in value.items()}
    return value


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into a copy of *base*."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _replace_layer(layers: tuple, layer_id: str, new_layer: LayerBase) -> tuple:
    return tuple(new_layer if layer.id == layer_id else layer for layer in layers)


# ------------------------------------------------------------------
# DocumentStore
# ------------------------------------------------------------------

class DocumentStore:
    """Owns the open campaign and applies every change to it.

    Parameters
    ----------
    clock : callable, optional
        Returns the ISO timestamp stamped into ``updated_at``.
    """

    def __init__(self, clock: Callable[[], str] = now_iso):
        self._clock = clock
        self._document: Optional[CampaignDocument] = None
        self._listeners: list[Listener] = []
        self._before_listeners: list[Listener] = []
        # Never reused, even across loads, so a revision names one state
        self._last_revision = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def document(self) -> Optional[CampaignDocument]:
        return self._document

    def require(self) -> CampaignDocument:
        """Return the open document or raise :class:`NoDocumentError`."""
        if self._document is None:
            raise NoDocumentError("No campaign is open")
        return self._document

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every change.  Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def subscribe_before(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* just before a structural change or a load."""
        self._before_listeners.append(listener)
        return lambda: self._before_listeners.remove(listener)

    def _before(self, kind: ChangeKind) -> None:
        for listener in list(self._before_listeners):
            listener(kind)

    def _notify(self, kind: ChangeKind) -> None:
        for listener in list(self._listeners):
            listener(kind)

    def _commit(self, kind: ChangeKind, *, touch: bool = True, **update: Any) -> CampaignDocument:
        """Swap in a copy of the document with *update* applied.

        With *touch* the copy is marked dirty, stamped and gets a new
        revision number.
        """
        doc = self.require()
        if touch:
            update.setdefault("is_dirty", True)
            update.setdefault("updated_at", self._clock())
            update.setdefault("revision", self._next_revision())
        self._document = doc.model_copy(update=update)
        self._notify(kind)
        return self._document

    def _next_revision(self) -> int:
        self._last_revision += 1
        return self._last_revision

    def _layer(self, layer_id: str) -> LayerBase:
        layer = self.require().find_layer(layer_id)
        if layer is None:
            raise LayerNotFoundError(layer_id)
        return layer

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_campaign(
        self,
        experience_type: str = "nudges",
        nudge_type: str = "bottomsheet",
        name: str = "New Campaign",
    ) -> CampaignDocument:
        """Start a fresh campaign seeded with the default layers for *nudge_type*."""
        self._before(ChangeKind.LOADED)
        layers = defaults.seed_layers(nudge_type)
        stamp = self._clock()
        first_id = layers[0].id if layers else None
        try:
            doc = CampaignDocument(
                id=generate_campaign_id(),
                name=name,
                experience_type=experience_type,
                nudge_type=nudge_type,
                layers=layers,
                root_layer_id=first_id,
                selected_layer_id=first_id,
                history=(layers,),
                history_index=0,
                created_at=stamp,
                updated_at=stamp,
                revision=self._next_revision(),
            )
        except ValidationError as exc:
            raise DocumentError(f"Cannot create campaign: {exc}") from exc
        self._document = doc
        logger.info("Created %s campaign %s with %d layers", nudge_type, doc.id, len(layers))
        self._notify(ChangeKind.LOADED)
        return doc

    def load_document(self, doc: CampaignDocument) -> CampaignDocument:
        """Adopt a fully validated document.

        Fails with :class:`DocumentLoadError` (leaving the store untouched)
        when the layer tree is inconsistent.
        """
        report = validate_layer_tree(doc.layers)
        if report.errors:
            raise DocumentLoadError("Campaign layer tree is invalid", report.errors)
        for warning in report.warnings:
            logger.warning("Loading %s: %s", doc.id, warning)

        update: dict[str, Any] = {"revision": self._next_revision()}
        if not doc.history:
            update["history"] = (doc.layers,)
            update["history_index"] = 0
        if doc.root_layer_id is None or doc.find_layer(doc.root_layer_id) is None:
            root = defaults.find_root_layer(doc.layers, doc.nudge_type)
            update["root_layer_id"] = root.id if root else None
        if doc.selected_layer_id is not None and doc.find_layer(doc.selected_layer_id) is None:
            update["selected_layer_id"] = None

        self._before(ChangeKind.LOADED)
        self._document = doc.model_copy(update=update)
        logger.info("Loaded campaign %s (%d layers)", doc.id, len(doc.layers))
        self._notify(ChangeKind.LOADED)
        return self._document

    def load_payload(self, payload: Mapping[str, Any]) -> CampaignDocument:
        """Validate a persisted campaign payload and load it."""
        from nudge_engine.serialization import document_from_payload

        return self.load_document(document_from_payload(payload))

    def close(self) -> None:
        """Drop the open document."""
        if self._document is None:
            return
        self._before(ChangeKind.CLOSED)
        self._document = None
        self._notify(ChangeKind.CLOSED)

    # ------------------------------------------------------------------
    # Layer structure
    # ------------------------------------------------------------------

    def add_layer(self, layer_type: str, parent_id: Optional[str] = None) -> str:
        """Append a new layer (under *parent_id* if given) and select it."""
        doc = self.require()
        if layer_type not in LAYER_CLASSES:
            raise ValueError(f"Unknown layer type: {layer_type!r}")
        parent = None
        if parent_id is not None:
            parent = self._layer(parent_id)

        self._before(ChangeKind.STRUCTURE)
        new_id = generate_layer_id({layer.id for layer in doc.layers})
        layer = defaults.new_layer(
            layer_type, layer_id=new_id, parent=parent_id, z_index=len(doc.layers),
        )
        layers = doc.layers + (layer,)
        if parent is not None:
            layers = _replace_layer(
                layers, parent.id, parent.model_copy(update={"children": parent.children + (new_id,)}),
            )

        update: dict[str, Any] = {"layers": layers, "selected_layer_id": new_id}
        # A top-level container becomes the root of a document that has none
        if doc.root_layer_id is None and parent is None and layer_type == "container":
            update["root_layer_id"] = new_id
        self._commit(ChangeKind.STRUCTURE, **update)
        logger.debug("Added %s layer %s under %s", layer_type, new_id, parent_id)
        return new_id

    def update_layer(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        """Merge *partial* into a layer; ``content``/``style`` replace wholesale.

        Structural keys (id, type, parent, children) are refused; use the
        structural operations instead.  Unknown layer ids are ignored.
        """
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            logger.debug("update_layer: no layer %s", layer_id)
            return
        fields = normalize_keys(type(layer), partial)
        blocked = STRUCTURAL_KEYS.intersection(fields)
        if blocked:
            raise ValueError(
                f"update_layer cannot change {', '.join(sorted(blocked))}; "
                "use the structural operations"
            )
        self._before(ChangeKind.STRUCTURE)
        updated = parse_layer({**layer.model_dump(), **fields})
        self._commit(ChangeKind.STRUCTURE, layers=_replace_layer(doc.layers, layer_id, updated))

    def update_layer_content(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        """Merge *partial* into the layer's content (history is debounced)."""
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            logger.debug("update_layer_content: no layer %s", layer_id)
            return
        content_cls = type(layer.content)
        merged = {
            **layer.content.model_dump(exclude_none=True),
            **normalize_keys(content_cls, partial),
        }
        updated = layer.model_copy(update={"content": content_cls.model_validate(merged)})
        self._commit(ChangeKind.CONTENT, layers=_replace_layer(doc.layers, layer_id, updated))

    def update_layer_style(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        """Merge *partial* into the layer's style (history is debounced)."""
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            logger.debug("update_layer_style: no layer %s", layer_id)
            return
        merged = {
            **layer.style.model_dump(exclude_none=True),
            **normalize_keys(LayerStyle, partial),
        }
        updated = layer.model_copy(update={"style": LayerStyle.model_validate(merged)})
        self._commit(ChangeKind.CONTENT, layers=_replace_layer(doc.layers, layer_id, updated))

    def delete_layer(self, layer_id: str) -> None:
        """Remove *layer_id* and all of its descendants.  Unknown ids are ignored."""
        doc = self.require()
        if doc.find_layer(layer_id) is None:
            logger.debug("delete_layer: no layer %s", layer_id)
            return

        self._before(ChangeKind.STRUCTURE)
        removed = {layer_id} | descendants_of(doc.layers, layer_id)
        layers = []
        for layer in doc.layers:
            if layer.id in removed:
                continue
            if any(child in removed for child in layer.children):
                layer = layer.model_copy(update={
                    "children": tuple(c for c in layer.children if c not in removed),
                })
            layers.append(layer)

        update: dict[str, Any] = {"layers": tuple(layers)}
        if doc.selected_layer_id in removed:
            update["selected_layer_id"] = None
        if doc.root_layer_id in removed:
            update["root_layer_id"] = None
        self._commit(ChangeKind.STRUCTURE, **update)
        logger.debug("Deleted %d layer(s) starting at %s", len(removed), layer_id)

    def duplicate_layer(self, layer_id: str) -> str:
        """Clone *layer_id* and its whole subtree; select and return the copy."""
        doc = self.require()
        source = self._layer(layer_id)
        index = doc.layer_index()

        # Pre-order walk of the subtree, skipping dangling child ids
        subtree: list[LayerBase] = []
        stack = [source.id]
        while stack:
            current = index[stack.pop()]
            subtree.append(current)
            stack.extend(reversed([c for c in current.children if c in index]))

        self._before(ChangeKind.STRUCTURE)
        taken = set(index)
        id_map: dict[str, str] = {}
        for layer in subtree:
            new_id = generate_layer_id(taken)
            taken.add(new_id)
            id_map[layer.id] = new_id

        copies = []
        for offset, layer in enumerate(subtree):
            is_top = layer.id == source.id
            copies.append(layer.model_copy(update={
                "id": id_map[layer.id],
                "name": f"{layer.name} Copy" if is_top else layer.name,
                "parent": layer.parent if is_top else id_map[layer.parent],
                "children": tuple(id_map[c] for c in layer.children if c in id_map),
                "z_index": len(doc.layers) + offset,
            }))

        layers = doc.layers + tuple(copies)
        top_id = id_map[source.id]
        if source.parent is not None and source.parent in index:
            parent = index[source.parent]
            children = list(parent.children)
            children.insert(children.index(source.id) + 1, top_id)
            layers = _replace_layer(
                layers, parent.id, parent.model_copy(update={"children": tuple(children)}),
            )
        self._commit(ChangeKind.STRUCTURE, layers=layers, selected_layer_id=top_id)
        return top_id

    def reorder_layer(self, layer_id: str, new_index: int) -> None:
        """Move a layer to *new_index* among its siblings.

        For a child layer this reorders the parent's ``children``; for a
        root layer it reorders the root layers within the flat list.  The
        index is clamped to the sibling range.  Unknown ids are ignored.
        """
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            return

        if layer.parent is not None:
            parent = self._layer(layer.parent)
            siblings = [c for c in parent.children if c != layer_id]
            siblings.insert(max(0, min(new_index, len(siblings))), layer_id)
            if tuple(siblings) == parent.children:
                return
            self._before(ChangeKind.STRUCTURE)
            layers = _replace_layer(
                doc.layers, parent.id, parent.model_copy(update={"children": tuple(siblings)}),
            )
        else:
            slots = [i for i, item in enumerate(doc.layers) if item.parent is None]
            roots = [doc.layers[i] for i in slots if doc.layers[i].id != layer_id]
            roots.insert(max(0, min(new_index, len(roots))), layer)
            if [r.id for r in roots] == [doc.layers[i].id for i in slots]:
                return
            self._before(ChangeKind.STRUCTURE)
            reordered = list(doc.layers)
            for slot, root in zip(slots, roots):
                reordered[slot] = root
            layers = tuple(reordered)
        self._commit(ChangeKind.STRUCTURE, layers=layers)

    def move_layer_to_parent(self, layer_id: str, new_parent_id: Optional[str]) -> None:
        """Re-parent a layer in one atomic update.

        The layer leaves its old parent's ``children`` and is appended to
        the new parent's (``None`` makes it a root).  Moving into itself,
        into one of its descendants, or into a missing layer raises
        :class:`TreeStructureError`.  Unknown *layer_id* is ignored.
        Moving the root layer makes its new top-level ancestor the root.
        """
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            return
        if new_parent_id is not None:
            if doc.find_layer(new_parent_id) is None:
                raise TreeStructureError(f"Target parent '{new_parent_id}' does not exist")
            if new_parent_id == layer_id or new_parent_id in descendants_of(doc.layers, layer_id):
                raise TreeStructureError(
                    f"Cannot move '{layer_id}' into itself or one of its descendants"
                )

        self._before(ChangeKind.STRUCTURE)
        layers = []
        for item in doc.layers:
            if item.id == layer_id:
                item = item.model_copy(update={"parent": new_parent_id})
            else:
                children = item.children
                if item.id == layer.parent:
                    children = tuple(c for c in children if c != layer_id)
                if item.id == new_parent_id:
                    children = children + (layer_id,)
                if children != item.children:
                    item = item.model_copy(update={"children": children})
            layers.append(item)

        update: dict[str, Any] = {"layers": tuple(layers)}
        if doc.root_layer_id == layer_id and new_parent_id is not None:
            # The frame follows its new top-level ancestor
            by_id = {item.id: item for item in layers}
            top = by_id[new_parent_id]
            while top.parent is not None and top.parent in by_id:
                top = by_id[top.parent]
            update["root_layer_id"] = top.id
        self._commit(ChangeKind.STRUCTURE, **update)

    def load_template(self, layers: Iterable[Any], config: Optional[Mapping[str, Any]] = None) -> None:
        """Replace the whole layer tree (and optionally the per-type config)."""
        doc = self.require()
        try:
            parsed = tuple(parse_layer(item) for item in layers)
        except ValidationError as exc:
            raise DocumentLoadError("Template layers are invalid", [str(exc)]) from exc
        report = validate_layer_tree(parsed)
        if report.errors:
            raise DocumentLoadError("Template layer tree is invalid", report.errors)

        update: dict[str, Any] = {"layers": parsed, "selected_layer_id": None}
        root = defaults.find_root_layer(parsed, doc.nudge_type)
        if root is None:
            root = next((item for item in parsed if item.parent is None), None)
        update["root_layer_id"] = root.id if root else None

        field_name = CONFIG_FIELD_BY_TYPE.get(doc.nudge_type)
        if config is not None and field_name:
            config_cls = CONFIG_CLASS_BY_TYPE[doc.nudge_type]
            try:
                update[field_name] = config_cls.model_validate(config)
            except ValidationError as exc:
                raise DocumentLoadError("Template config is invalid", [str(exc)]) from exc

        self._before(ChangeKind.STRUCTURE)
        self._commit(ChangeKind.STRUCTURE, **update)
        logger.info("Loaded template with %d layers into %s", len(parsed), doc.id)

    # ------------------------------------------------------------------
    # Selection and flags
    # ------------------------------------------------------------------

    def select_layer(self, layer_id: Optional[str]) -> None:
        doc = self.require()
        if layer_id is not None:
            self._layer(layer_id)
        if doc.selected_layer_id == layer_id:
            return
        self._commit(ChangeKind.SELECTION, touch=False, selected_layer_id=layer_id)

    def toggle_visibility(self, layer_id: str) -> None:
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            return
        updated = layer.model_copy(update={"visible": not layer.visible})
        self._commit(ChangeKind.CONTENT, layers=_replace_layer(doc.layers, layer_id, updated))

    def toggle_lock(self, layer_id: str) -> None:
        doc = self.require()
        layer = doc.find_layer(layer_id)
        if layer is None:
            return
        updated = layer.model_copy(update={"locked": not layer.locked})
        self._commit(ChangeKind.META, layers=_replace_layer(doc.layers, layer_id, updated))

    # ------------------------------------------------------------------
    # Campaign metadata
    # ------------------------------------------------------------------

    def _update_meta(self, **update: Any) -> None:
        self.require()
        for name, value in update.items():
            annotation = CampaignDocument.model_fields[name].annotation
            try:
                TypeAdapter(annotation).validate_python(value)
            except ValidationError as exc:
                raise ValueError(f"Invalid {name}: {value!r}") from exc
        self._commit(ChangeKind.META, **update)

    def update_campaign_name(self, name: str) -> None:
        self._update_meta(name=name)

    def update_trigger(self, trigger: Optional[str]) -> None:
        self._update_meta(trigger=trigger)

    def update_screen(self, screen: Optional[str]) -> None:
        self._update_meta(screen=screen)

    def update_status(self, status: str) -> None:
        self._update_meta(status=status)

    # ------------------------------------------------------------------
    # Per-type config
    # ------------------------------------------------------------------

    def _update_config(self, nudge_type: str, partial: Mapping[str, Any], *, deep: bool) -> None:
        doc = self.require()
        if doc.nudge_type != nudge_type:
            raise DocumentError(
                f"Campaign {doc.id} is a {doc.nudge_type} nudge; "
                f"it has no {nudge_type} config"
            )
        field_name = CONFIG_FIELD_BY_TYPE[nudge_type]
        config_cls = CONFIG_CLASS_BY_TYPE[nudge_type]
        current = getattr(doc, field_name).model_dump()
        changes = snake_keys_deep(partial) if deep else normalize_keys(config_cls, partial)
        merged = deep_merge(current, changes) if deep else {**current, **changes}
        self._commit(ChangeKind.CONFIG, **{field_name: config_cls.model_validate(merged)})

    def update_bottom_sheet_config(self, partial: Mapping[str, Any]) -> None:
        """Deep-merge *partial* into the bottom sheet config (nested overlay etc.)."""
        self._update_config("bottomsheet", partial, deep=True)

    def update_modal_config(self, partial: Mapping[str, Any]) -> None:
        self._update_config("modal", partial, deep=False)

    def update_banner_config(self, partial: Mapping[str, Any]) -> None:
        self._update_config("banner", partial, deep=False)

    def update_tooltip_config(self, partial: Mapping[str, Any]) -> None:
        self._update_config("tooltip", partial, deep=False)

    # ------------------------------------------------------------------
    # Targeting and display rules
    # ------------------------------------------------------------------

    def add_targeting_rule(self, rule: Mapping[str, Any]) -> str:
        doc = self.require()
        data = {k: v for k, v in rule.items() if k != "id"}
        new_rule = TargetingRule.model_validate({**data, "id": generate_rule_id()})
        self._commit(ChangeKind.TARGETING, targeting=doc.targeting + (new_rule,))
        return new_rule.id

    def update_targeting_rule(self, rule_id: str, partial: Mapping[str, Any]) -> None:
        doc = self.require()
        rules = []
        for rule in doc.targeting:
            if rule.id == rule_id:
                changes = normalize_keys(TargetingRule, partial)
                changes.pop("id", None)
                rule = TargetingRule.model_validate({**rule.model_dump(), **changes})
            rules.append(rule)
        self._commit(ChangeKind.TARGETING, targeting=tuple(rules))

    def delete_targeting_rule(self, rule_id: str) -> None:
        doc = self.require()
        rules = tuple(rule for rule in doc.targeting if rule.id != rule_id)
        self._commit(ChangeKind.TARGETING, targeting=rules)

    def update_display_rules(self, partial: Mapping[str, Any]) -> None:
        doc = self.require()
        merged = {**doc.display_rules.model_dump(), **normalize_keys(DisplayRules, partial)}
        self._commit(ChangeKind.TARGETING, display_rules=DisplayRules.model_validate(merged))

    # ------------------------------------------------------------------
    # History and persistence hooks
    # ------------------------------------------------------------------

    def replace_history(self, history: tuple, history_index: int) -> None:
        """Store a new undo history without touching dirtiness."""
        self._commit(ChangeKind.HISTORY, touch=False, history=history, history_index=history_index)

    def restore_snapshot(self, history_index: int) -> None:
        """Make the snapshot at *history_index* the current layers.

        Selection is left alone, even if the selected layer is not part of
        the restored snapshot.
        """
        doc = self.require()
        self._commit(
            ChangeKind.HISTORY,
            layers=doc.history[history_index],
            history_index=history_index,
        )

    def mark_saved(self, saved_id: Optional[str], revision: int, saved_at: Optional[str] = None) -> None:
        """Record a successful save of *revision*.

        The document only becomes clean if nothing changed since that
        revision was captured.
        """
        doc = self.require()
        update: dict[str, Any] = {"last_saved": saved_at or self._clock()}
        if saved_id and saved_id != doc.id:
            update["id"] = saved_id
        if doc.revision == revision:
            update["is_dirty"] = False
        self._commit(ChangeKind.SAVED, touch=False, **update)
