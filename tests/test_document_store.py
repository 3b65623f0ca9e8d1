"""
Tests for nudge_engine/document_store.py -- the mutation API.

Covers:
    - Campaign creation, loading and closing
    - Layer structure operations (add, delete, duplicate, reorder, move)
    - Content, style and property edits
    - Selection, flags, metadata, per-type config and targeting
    - Copy-on-write and change notifications
"""

import pytest

from nudge_engine.defaults import ROOT_NAMES
from nudge_engine.document_store import (
    ChangeKind,
    DocumentStore,
    deep_merge,
    normalize_keys,
    snake_key,
)
from nudge_engine.errors import (
    DocumentError,
    DocumentLoadError,
    LayerNotFoundError,
    NoDocumentError,
    TreeStructureError,
)
from nudge_engine.models.campaign import CampaignDocument
from nudge_engine.models.layers import LayerStyle, parse_layer
from nudge_engine.models.validators import validate_layer_tree


def _root(store):
    doc = store.document
    return doc.find_layer(doc.root_layer_id)


def _assert_tree_ok(store):
    report = validate_layer_tree(store.document.layers)
    assert report.errors == []


# ======================================================================
# Helpers
# ======================================================================


class TestKeyHelpers:
    def test_snake_key(self):
        assert snake_key("backgroundColor") == "background_color"
        assert snake_key("zIndex") == "z_index"
        assert snake_key("padding") == "padding"

    def test_normalize_keys(self):
        result = normalize_keys(LayerStyle, {"backgroundColor": "#fff", "direction": "row"})
        assert result == {"background_color": "#fff", "direction": "row"}

    def test_deep_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"c": 3}})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 1}


# ======================================================================
# Lifecycle
# ======================================================================


class TestLifecycle:
    def test_require_without_document(self, store):
        with pytest.raises(NoDocumentError):
            store.require()

    def test_mutation_without_document(self, store):
        with pytest.raises(NoDocumentError):
            store.add_layer("text")

    def test_create_campaign_seeds_tree(self, sheet_store):
        doc = sheet_store.document
        root = _root(sheet_store)
        assert root.name == ROOT_NAMES["bottomsheet"]
        assert root.type == "container"
        assert len(root.children) == len(doc.layers) - 1
        assert doc.selected_layer_id == doc.layers[0].id
        assert doc.history == (doc.layers,)
        assert doc.history_index == 0
        assert doc.is_dirty is False
        _assert_tree_ok(sheet_store)

    def test_create_unrendered_type_starts_empty(self, store):
        doc = store.create_campaign("nudges", "pip")
        assert doc.layers == ()
        assert doc.root_layer_id is None
        assert doc.active_config is None

    def test_load_document_infers_root(self, store):
        root = parse_layer({"id": "r", "type": "container", "name": "Modal Container"})
        doc = CampaignDocument(id="c1", nudge_type="modal", layers=(root,), selected_layer_id="gone")
        loaded = store.load_document(doc)
        assert loaded.root_layer_id == "r"
        assert loaded.selected_layer_id is None
        assert loaded.history == (loaded.layers,)

    def test_load_rejects_broken_tree(self, modal_store):
        before = modal_store.document
        child = parse_layer({"id": "a", "type": "text", "parent": "ghost"})
        with pytest.raises(DocumentLoadError) as info:
            modal_store.load_document(CampaignDocument(id="c2", nudge_type="modal", layers=(child,)))
        assert info.value.issues
        assert modal_store.document is before

    def test_close(self, modal_store):
        events = []
        modal_store.subscribe(events.append)
        modal_store.close()
        assert modal_store.document is None
        assert events == [ChangeKind.CLOSED]


# ======================================================================
# Structure
# ======================================================================


class TestAddLayer:
    def test_add_child(self, modal_store):
        root = _root(modal_store)
        new_id = modal_store.add_layer("text", root.id)
        doc = modal_store.document
        assert _root(modal_store).children[-1] == new_id
        layer = doc.find_layer(new_id)
        assert layer.parent == root.id
        assert layer.content.text == "New text"
        assert doc.selected_layer_id == new_id
        assert doc.is_dirty
        _assert_tree_ok(modal_store)

    def test_add_root_level(self, modal_store):
        new_id = modal_store.add_layer("badge")
        assert modal_store.document.find_layer(new_id).parent is None

    def test_container_becomes_missing_root(self, store):
        store.create_campaign("nudges", "pip")
        new_id = store.add_layer("container")
        assert store.document.root_layer_id == new_id

    def test_unknown_type(self, modal_store):
        with pytest.raises(ValueError):
            modal_store.add_layer("hologram")

    def test_missing_parent(self, modal_store):
        with pytest.raises(LayerNotFoundError):
            modal_store.add_layer("text", "ghost")

    def test_copy_on_write(self, modal_store):
        before = modal_store.document
        before_layers = before.layers
        modal_store.add_layer("text", before.root_layer_id)
        assert modal_store.document is not before
        assert before.layers is before_layers
        assert len(before.layers) + 1 == len(modal_store.document.layers)

    def test_revision_and_timestamp(self, modal_store):
        before = modal_store.document
        modal_store.add_layer("text")
        after = modal_store.document
        assert after.revision == before.revision + 1
        assert after.updated_at != before.updated_at


class TestDeleteLayer:
    def test_cascades_to_descendants(self, modal_store):
        root_id = modal_store.document.root_layer_id
        box = modal_store.add_layer("container", root_id)
        inner = modal_store.add_layer("text", box)
        modal_store.delete_layer(box)
        doc = modal_store.document
        assert doc.find_layer(box) is None
        assert doc.find_layer(inner) is None
        assert box not in _root(modal_store).children
        _assert_tree_ok(modal_store)

    def test_clears_selection(self, modal_store):
        new_id = modal_store.add_layer("text", modal_store.document.root_layer_id)
        modal_store.delete_layer(new_id)
        assert modal_store.document.selected_layer_id is None

    def test_deleting_root_clears_root_id(self, modal_store):
        modal_store.delete_layer(modal_store.document.root_layer_id)
        doc = modal_store.document
        assert doc.root_layer_id is None
        assert doc.layers == ()

    def test_unknown_id_is_noop(self, modal_store):
        before = modal_store.document
        modal_store.delete_layer("ghost")
        assert modal_store.document is before


class TestDuplicateLayer:
    def test_deep_clone(self, modal_store):
        root_id = modal_store.document.root_layer_id
        box = modal_store.add_layer("container", root_id)
        modal_store.add_layer("text", box)
        before_count = len(modal_store.document.layers)

        copy_id = modal_store.duplicate_layer(box)
        doc = modal_store.document
        copy = doc.find_layer(copy_id)
        assert len(doc.layers) == before_count + 2
        assert copy.name.endswith(" Copy")
        assert copy.parent == root_id
        assert len(copy.children) == 1
        child_copy = doc.find_layer(copy.children[0])
        assert child_copy.parent == copy_id
        assert not child_copy.name.endswith(" Copy")
        assert doc.selected_layer_id == copy_id
        _assert_tree_ok(modal_store)

    def test_inserted_after_original(self, modal_store):
        root = _root(modal_store)
        first = root.children[0]
        copy_id = modal_store.duplicate_layer(first)
        children = _root(modal_store).children
        assert children.index(copy_id) == children.index(first) + 1

    def test_unknown_id(self, modal_store):
        with pytest.raises(LayerNotFoundError):
            modal_store.duplicate_layer("ghost")


class TestReorderLayer:
    def test_reorder_siblings(self, modal_store):
        children = list(_root(modal_store).children)
        modal_store.reorder_layer(children[-1], 0)
        assert _root(modal_store).children == (children[-1], *children[:-1])

    def test_index_clamped(self, modal_store):
        children = list(_root(modal_store).children)
        modal_store.reorder_layer(children[0], 99)
        assert _root(modal_store).children[-1] == children[0]

    def test_same_position_is_noop(self, modal_store):
        first = _root(modal_store).children[0]
        before = modal_store.document
        modal_store.reorder_layer(first, 0)
        assert modal_store.document is before

    def test_reorder_roots(self, modal_store):
        extra = modal_store.add_layer("badge")
        modal_store.reorder_layer(extra, 0)
        roots = [layer.id for layer in modal_store.document.layers if layer.parent is None]
        assert roots[0] == extra


class TestMoveLayer:
    def test_move_between_parents(self, modal_store):
        root_id = modal_store.document.root_layer_id
        box = modal_store.add_layer("container", root_id)
        title = _root(modal_store).children[0]
        modal_store.move_layer_to_parent(title, box)
        doc = modal_store.document
        assert doc.find_layer(title).parent == box
        assert title not in _root(modal_store).children
        assert doc.find_layer(box).children == (title,)
        _assert_tree_ok(modal_store)

    def test_move_to_root_level(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.move_layer_to_parent(title, None)
        assert modal_store.document.find_layer(title).parent is None
        _assert_tree_ok(modal_store)

    def test_moving_root_follows_new_top_level_parent(self, modal_store):
        old_root = modal_store.document.root_layer_id
        wrapper = modal_store.add_layer("container")
        modal_store.move_layer_to_parent(old_root, wrapper)
        doc = modal_store.document
        assert doc.root_layer_id == wrapper
        assert doc.find_layer(wrapper).parent is None
        _assert_tree_ok(modal_store)

        from nudge_engine.renderer import render_document

        tree = render_document(doc)
        assert tree.children[0].layer_id == wrapper
        assert tree.find(old_root) is not None

    def test_moving_root_into_nested_container(self, modal_store):
        old_root = modal_store.document.root_layer_id
        outer = modal_store.add_layer("container")
        inner = modal_store.add_layer("container", outer)
        modal_store.move_layer_to_parent(old_root, inner)
        assert modal_store.document.root_layer_id == outer

    def test_refuses_cycle(self, modal_store):
        root_id = modal_store.document.root_layer_id
        box = modal_store.add_layer("container", root_id)
        with pytest.raises(TreeStructureError):
            modal_store.move_layer_to_parent(root_id, box)
        with pytest.raises(TreeStructureError):
            modal_store.move_layer_to_parent(box, box)

    def test_missing_target(self, modal_store):
        title = _root(modal_store).children[0]
        with pytest.raises(TreeStructureError):
            modal_store.move_layer_to_parent(title, "ghost")


class TestLoadTemplate:
    def test_replaces_tree(self, modal_store):
        layers = [
            {"id": "t-root", "type": "container", "name": "Modal Container", "children": ["t-text"]},
            {"id": "t-text", "type": "text", "parent": "t-root"},
        ]
        modal_store.load_template(layers, {"width": 280})
        doc = modal_store.document
        assert [layer.id for layer in doc.layers] == ["t-root", "t-text"]
        assert doc.root_layer_id == "t-root"
        assert doc.selected_layer_id is None
        assert doc.modal_config.width == 280

    def test_rejects_broken_tree(self, modal_store):
        before = modal_store.document
        with pytest.raises(DocumentLoadError):
            modal_store.load_template([{"id": "a", "type": "text", "parent": "ghost"}])
        assert modal_store.document is before


# ======================================================================
# Edits
# ======================================================================


class TestEdits:
    def test_update_content_merges(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.update_layer_content(title, {"text": "Changed"})
        layer = modal_store.document.find_layer(title)
        assert layer.content.text == "Changed"
        assert layer.content.font_size == 22

    def test_update_content_invalid_field(self, modal_store):
        title = _root(modal_store).children[0]
        with pytest.raises(Exception):
            modal_store.update_layer_content(title, {"label": "not a text field"})

    def test_update_style_camel_keys(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.update_layer_style(title, {"backgroundColor": "#FF0000", "zIndex": 1})
        style = modal_store.document.find_layer(title).style
        assert style.background_color == "#FF0000"
        assert style.model_extra["zIndex"] == 1

    def test_update_layer_properties(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.update_layer(title, {"name": "Headline", "zIndex": 7})
        layer = modal_store.document.find_layer(title)
        assert layer.name == "Headline"
        assert layer.z_index == 7

    def test_update_layer_refuses_structure(self, modal_store):
        title = _root(modal_store).children[0]
        with pytest.raises(ValueError):
            modal_store.update_layer(title, {"parent": None})

    def test_missing_ids_are_noops(self, modal_store):
        before = modal_store.document
        modal_store.update_layer("ghost", {"name": "x"})
        modal_store.update_layer_content("ghost", {"text": "x"})
        modal_store.update_layer_style("ghost", {"opacity": 0.5})
        modal_store.toggle_visibility("ghost")
        assert modal_store.document is before

    def test_toggle_visibility_and_lock(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.toggle_visibility(title)
        modal_store.toggle_lock(title)
        layer = modal_store.document.find_layer(title)
        assert layer.visible is False
        assert layer.locked is True


class TestSelection:
    def test_select_does_not_dirty(self, modal_store):
        title = _root(modal_store).children[0]
        modal_store.select_layer(title)
        assert modal_store.document.selected_layer_id == title
        assert modal_store.document.is_dirty is False

    def test_select_none(self, modal_store):
        modal_store.select_layer(None)
        assert modal_store.document.selected_layer_id is None

    def test_select_unknown(self, modal_store):
        with pytest.raises(LayerNotFoundError):
            modal_store.select_layer("ghost")


class TestMetadataAndConfig:
    def test_name_trigger_screen_status(self, modal_store):
        modal_store.update_campaign_name("Renamed")
        modal_store.update_trigger("app_open")
        modal_store.update_screen("checkout")
        modal_store.update_status("active")
        doc = modal_store.document
        assert (doc.name, doc.trigger, doc.screen, doc.status) == ("Renamed", "app_open", "checkout", "active")

    def test_invalid_status(self, modal_store):
        with pytest.raises(ValueError):
            modal_store.update_status("archived")

    def test_modal_config(self, modal_store):
        modal_store.update_modal_config({"width": 400, "showCloseButton": False})
        config = modal_store.document.modal_config
        assert config.width == 400
        assert config.show_close_button is False
        assert config.padding == 24

    def test_tooltip_config(self, store):
        store.create_campaign("nudges", "tooltip")
        store.update_tooltip_config({"placement": "top", "maxWidth": 320})
        config = store.document.tooltip_config
        assert (config.placement, config.max_width) == ("top", 320)
        assert config.show_arrow is True

    def test_bottom_sheet_config_deep_merge(self, sheet_store):
        sheet_store.update_bottom_sheet_config({"overlay": {"opacity": 0.8}, "elevation": 4})
        config = sheet_store.document.bottom_sheet_config
        assert config.overlay.opacity == 0.8
        assert config.overlay.enabled is True
        assert config.elevation == 4

    def test_wrong_type_config(self, modal_store):
        with pytest.raises(DocumentError):
            modal_store.update_banner_config({"height": 80})


class TestTargeting:
    def test_add_update_delete(self, modal_store):
        rule_id = modal_store.add_targeting_rule({"type": "event", "event": "purchase", "count": 1})
        modal_store.update_targeting_rule(rule_id, {"count": 3})
        assert modal_store.document.targeting[0].count == 3
        modal_store.delete_targeting_rule(rule_id)
        assert modal_store.document.targeting == ()

    def test_display_rules(self, modal_store):
        modal_store.update_display_rules({"priority": 80})
        assert modal_store.document.display_rules.priority == 80


# ======================================================================
# Notifications and persistence hooks
# ======================================================================


class TestNotifications:
    def test_change_kinds(self, modal_store):
        events = []
        modal_store.subscribe(events.append)
        title = _root(modal_store).children[0]
        modal_store.add_layer("text")
        modal_store.update_layer_content(title, {"text": "x"})
        modal_store.select_layer(title)
        modal_store.update_campaign_name("n")
        assert events == [ChangeKind.STRUCTURE, ChangeKind.CONTENT, ChangeKind.SELECTION, ChangeKind.META]

    def test_before_hook_sees_old_document(self, modal_store):
        seen = []
        modal_store.subscribe_before(lambda kind: seen.append(len(modal_store.document.layers)))
        count = len(modal_store.document.layers)
        modal_store.add_layer("text")
        assert seen == [count]

    def test_unsubscribe(self, modal_store):
        events = []
        unsubscribe = modal_store.subscribe(events.append)
        unsubscribe()
        modal_store.add_layer("text")
        assert events == []


class TestMarkSaved:
    def test_clears_dirty_when_unchanged(self, modal_store):
        modal_store.add_layer("text")
        revision = modal_store.document.revision
        modal_store.mark_saved("server-id", revision, "2025-02-01T00:00:00+00:00")
        doc = modal_store.document
        assert doc.is_dirty is False
        assert doc.id == "server-id"
        assert doc.last_saved == "2025-02-01T00:00:00+00:00"

    def test_stays_dirty_after_newer_edit(self, modal_store):
        modal_store.add_layer("text")
        revision = modal_store.document.revision
        modal_store.add_layer("text")
        modal_store.mark_saved(None, revision)
        assert modal_store.document.is_dirty is True

    def test_revisions_not_reused_after_reload(self, modal_store):
        from nudge_engine.serialization import export_payload

        modal_store.add_layer("text")
        stale = modal_store.document.revision
        modal_store.load_payload(export_payload(modal_store.document))
        assert modal_store.document.revision > stale
        modal_store.update_campaign_name("renamed")
        modal_store.mark_saved(None, stale)
        assert modal_store.document.is_dirty is True


def test_store_independent_instances():
    first, second = DocumentStore(), DocumentStore()
    first.create_campaign("nudges", "modal")
    assert second.document is None
