"""
Tests for nudge_engine/history.py -- snapshot capture, undo and redo.
"""

from nudge_engine.document_store import ChangeKind


def _title_id(store):
    doc = store.document
    return next(layer.id for layer in doc.layers if layer.type == "text")


def _title_text(store):
    return store.document.find_layer(_title_id(store)).content.text


class TestStructuralCapture:
    def test_add_records_immediately(self, history, sheet_store):
        sheet_store.add_layer("text", sheet_store.document.root_layer_id)
        doc = sheet_store.document
        assert len(doc.history) == 2
        assert doc.history_index == 1
        assert doc.history[-1] is doc.layers

    def test_undo_and_redo_structure(self, history, sheet_store):
        original = sheet_store.document.layers
        new_id = sheet_store.add_layer("text", sheet_store.document.root_layer_id)

        assert history.undo() is True
        assert sheet_store.document.layers == original
        assert sheet_store.document.find_layer(new_id) is None

        assert history.redo() is True
        assert sheet_store.document.find_layer(new_id) is not None

    def test_undo_at_start(self, history, sheet_store):
        assert history.can_undo() is False
        assert history.undo() is False

    def test_redo_at_end(self, history, sheet_store):
        sheet_store.add_layer("text")
        assert history.can_redo() is False
        assert history.redo() is False

    def test_new_edit_drops_redo_branch(self, history, sheet_store):
        first = sheet_store.add_layer("text")
        history.undo()
        second = sheet_store.add_layer("badge")
        doc = sheet_store.document
        assert len(doc.history) == 2
        assert doc.find_layer(second) is not None
        assert doc.find_layer(first) is None
        assert history.can_redo() is False

    def test_selection_not_recorded(self, history, sheet_store):
        sheet_store.select_layer(_title_id(sheet_store))
        assert len(sheet_store.document.history) == 1

    def test_lock_not_recorded(self, history, sheet_store):
        sheet_store.toggle_lock(_title_id(sheet_store))
        assert len(sheet_store.document.history) == 1


class TestDebouncedCapture:
    def test_content_burst_is_one_entry(self, history, sheet_store, scheduler):
        title = _title_id(sheet_store)
        for text in ("S", "Su", "Sum", "Summer"):
            sheet_store.update_layer_content(title, {"text": text})
            scheduler.advance(100)
        assert history.pending
        assert len(sheet_store.document.history) == 1

        scheduler.advance(300)
        assert not history.pending
        assert len(sheet_store.document.history) == 2

        history.undo()
        assert _title_text(sheet_store) == "Skip a bag & go green!"

    def test_each_settled_edit_undoes_separately(self, history, sheet_store, scheduler):
        title = _title_id(sheet_store)
        before = sheet_store.document.layers
        edits = ["One", "Two", "Three", "Four", "Five"]
        for text in edits:
            sheet_store.update_layer_content(title, {"text": text})
            scheduler.advance(400)
        assert len(sheet_store.document.history) == len(edits) + 1

        for _ in edits:
            assert history.undo() is True
        assert sheet_store.document.layers == before
        assert history.can_undo() is False

    def test_undo_flushes_pending_edit(self, history, sheet_store):
        title = _title_id(sheet_store)
        sheet_store.update_layer_content(title, {"text": "Draft"})
        assert history.can_undo() is True
        assert history.undo() is True
        assert _title_text(sheet_store) == "Skip a bag & go green!"
        assert history.redo() is True
        assert _title_text(sheet_store) == "Draft"

    def test_structure_flushes_pending_edit(self, history, sheet_store):
        title = _title_id(sheet_store)
        sheet_store.update_layer_content(title, {"text": "Edited"})
        sheet_store.add_layer("text")
        assert len(sheet_store.document.history) == 3

        history.undo()
        assert _title_text(sheet_store) == "Edited"
        history.undo()
        assert _title_text(sheet_store) == "Skip a bag & go green!"

    def test_style_and_visibility_debounced(self, history, sheet_store, scheduler):
        title = _title_id(sheet_store)
        sheet_store.update_layer_style(title, {"opacity": 0.5})
        sheet_store.toggle_visibility(title)
        scheduler.advance(300)
        assert len(sheet_store.document.history) == 2

    def test_load_cancels_pending(self, history, sheet_store, scheduler):
        sheet_store.update_layer_content(_title_id(sheet_store), {"text": "Lost"})
        sheet_store.create_campaign("nudges", "modal")
        scheduler.advance(1000)
        assert len(sheet_store.document.history) == 1


class TestUndoSideEffects:
    def test_selection_left_alone(self, history, sheet_store):
        new_id = sheet_store.add_layer("text")
        history.undo()
        assert sheet_store.document.selected_layer_id == new_id

    def test_undo_marks_dirty(self, history, sheet_store):
        sheet_store.add_layer("text")
        revision = sheet_store.document.revision
        sheet_store.mark_saved(None, revision)
        history.undo()
        assert sheet_store.document.is_dirty is True

    def test_notifies_history_kind(self, history, sheet_store):
        sheet_store.add_layer("text")
        events = []
        sheet_store.subscribe(events.append)
        history.undo()
        assert events == [ChangeKind.HISTORY]

    def test_dispose_stops_recording(self, history, sheet_store):
        history.dispose()
        sheet_store.add_layer("text")
        assert len(sheet_store.document.history) == 1

    def test_no_document(self, history, sheet_store):
        sheet_store.close()
        assert history.can_undo() is False
        assert history.undo() is False
        assert history.redo() is False
