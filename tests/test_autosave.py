"""
Tests for nudge_engine/autosave.py -- polling, debounce and the save mutex.
"""

import pytest

from nudge_engine.autosave import AutosaveCoordinator, SaveStatus, SaveTicket
from nudge_engine.serialization import export_payload


class RecordingPersist:
    """persist() stand-in that records tickets and can be told to fail."""

    def __init__(self, saved_id=None, error=None):
        self.tickets = []
        self.saved_id = saved_id
        self.error = error

    def __call__(self, ticket):
        self.tickets.append(ticket)
        if self.error is not None:
            raise self.error
        return self.saved_id or ticket.campaign_id


@pytest.fixture
def persist():
    return RecordingPersist()


@pytest.fixture
def autosave(sheet_store, scheduler, persist):
    coordinator = AutosaveCoordinator(sheet_store, scheduler, persist, poll_ms=1000, debounce_ms=3000)
    coordinator.start()
    yield coordinator
    coordinator.dispose()


class TestTimers:
    def test_clean_document_never_saved(self, autosave, scheduler, persist):
        scheduler.advance(10_000)
        assert persist.tickets == []

    def test_edit_saved_after_debounce(self, autosave, sheet_store, scheduler, persist):
        sheet_store.add_layer("text")
        scheduler.advance(1000)          # poll arms the debounce
        scheduler.advance(2999)
        assert persist.tickets == []
        scheduler.advance(1)
        assert len(persist.tickets) == 1
        assert sheet_store.document.is_dirty is False
        assert sheet_store.document.last_saved is not None

    def test_continuous_edits_postpone_save(self, autosave, sheet_store, scheduler, persist):
        for _ in range(5):
            sheet_store.add_layer("text")
            scheduler.advance(1000)
        assert persist.tickets == []
        scheduler.advance(3000)
        assert len(persist.tickets) == 1
        assert persist.tickets[0].revision == sheet_store.document.revision

    def test_start_is_idempotent(self, autosave, scheduler):
        pending = scheduler.pending
        autosave.start()
        assert scheduler.pending == pending
        assert autosave.running

    def test_stop(self, autosave, sheet_store, scheduler, persist):
        sheet_store.add_layer("text")
        scheduler.advance(1000)
        autosave.stop()
        scheduler.advance(10_000)
        assert persist.tickets == []
        assert not autosave.running

    def test_load_cancels_armed_save(self, autosave, sheet_store, scheduler, persist):
        sheet_store.add_layer("text")
        scheduler.advance(1000)
        sheet_store.create_campaign("nudges", "modal")
        scheduler.advance(3000)
        assert persist.tickets == []


class TestSaveNow:
    def test_clean_without_force(self, autosave):
        assert autosave.save_now().status == SaveStatus.CLEAN

    def test_force_saves_clean_document(self, autosave, persist):
        result = autosave.save_now(force=True)
        assert result.status == SaveStatus.SAVED
        assert persist.tickets[0].is_new is True

    def test_second_save_not_new(self, autosave, sheet_store, persist):
        autosave.save_now(force=True)
        sheet_store.add_layer("text")
        autosave.save_now()
        assert [ticket.is_new for ticket in persist.tickets] == [True, False]

    def test_server_id_adopted(self, sheet_store, scheduler):
        coordinator = AutosaveCoordinator(sheet_store, scheduler, RecordingPersist(saved_id="srv-1"))
        result = coordinator.save_now(force=True)
        assert result.campaign_id == "srv-1"
        assert sheet_store.document.id == "srv-1"
        coordinator.dispose()

    def test_invalid_document(self, autosave, sheet_store, persist):
        sheet_store.update_campaign_name("  ")
        result = autosave.save_now()
        assert result.status == SaveStatus.INVALID
        assert "Campaign name is required" in autosave.last_error
        assert persist.tickets == []

    def test_failure_kept_and_not_retried(self, sheet_store, scheduler):
        persist = RecordingPersist(error=ConnectionError("offline"))
        coordinator = AutosaveCoordinator(sheet_store, scheduler, persist)
        coordinator.start()
        sheet_store.add_layer("text")
        scheduler.advance(4000)
        assert len(persist.tickets) == 1
        assert coordinator.last_error == "offline"
        assert sheet_store.document.is_dirty is True
        assert not coordinator.saving

        scheduler.advance(60_000)
        assert len(persist.tickets) == 1
        coordinator.dispose()

    def test_without_persist(self, sheet_store, scheduler):
        coordinator = AutosaveCoordinator(sheet_store, scheduler)
        with pytest.raises(RuntimeError):
            coordinator.save_now()
        coordinator.dispose()

    def test_results_reported(self, autosave, sheet_store):
        results = []
        autosave.subscribe(results.append)
        sheet_store.add_layer("text")
        autosave.save_now()
        assert [result.status for result in results] == [SaveStatus.SAVED]


class TestSplitSave:
    def test_overlapping_attempt_dropped(self, autosave, sheet_store):
        sheet_store.add_layer("text")
        ticket = autosave.begin_save()
        assert isinstance(ticket, SaveTicket)
        assert autosave.saving

        second = autosave.begin_save(force=True)
        assert second.status == SaveStatus.BUSY
        autosave.finish_save(ticket)
        assert not autosave.saving

    def test_edit_during_save_stays_dirty(self, autosave, sheet_store, scheduler, persist):
        sheet_store.add_layer("text")
        ticket = autosave.begin_save()
        sheet_store.add_layer("badge")
        autosave.finish_save(ticket)
        assert sheet_store.document.is_dirty is True

        scheduler.advance(1000 + 3000)
        assert len(persist.tickets) == 1
        assert persist.tickets[0].revision == sheet_store.document.revision

    def test_reload_during_save_keeps_new_edit_dirty(self, autosave, sheet_store):
        sheet_store.add_layer("text")
        ticket = autosave.begin_save()
        sheet_store.load_payload(export_payload(sheet_store.document))
        sheet_store.update_campaign_name("edited after reload")
        assert sheet_store.document.revision != ticket.revision

        autosave.finish_save(ticket)
        assert sheet_store.document.is_dirty is True

    def test_fail_save_releases_mutex(self, autosave, sheet_store):
        sheet_store.add_layer("text")
        ticket = autosave.begin_save()
        result = autosave.fail_save(ticket, TimeoutError())
        assert result.status == SaveStatus.FAILED
        assert autosave.last_error == "TimeoutError"
        assert not autosave.saving

    def test_on_due_replaces_inline_save(self, sheet_store, scheduler, persist):
        due = []
        coordinator = AutosaveCoordinator(sheet_store, scheduler, persist, on_due=lambda: due.append(1))
        coordinator.start()
        sheet_store.add_layer("text")
        scheduler.advance(4000)
        assert due == [1]
        assert persist.tickets == []
        coordinator.dispose()
