"""
nudge_studio/services/editor_session.py -- One open campaign in the editor.

EditorSession bundles everything the editor window needs for a campaign:
the document store, undo/redo history, autosave with background saves,
live preview tickers, and a Qt-signal view of all of it.  Panels call the
session's methods; the session forwards them to the store and turns store
notifications into signals (and into EventBus signals when a bus is
given).

Locked layers are enforced here: content, style and property edits on a
locked layer raise :class:`LayerLockedError`.  The store itself does not
check locks, so templates and undo can still rewrite locked layers.

Usage::

    session = EditorSession(settings, client=ApiClient.from_settings(settings))
    session.preview_invalidated.connect(lambda: preview.show_tree(session.render()))
    session.new_campaign("bottomsheet")
    layer_id = session.add_layer("text")
    session.update_layer_content(layer_id, {"text": "Hello"})
    session.undo()
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from nudge_engine.autosave import AutosaveCoordinator, SaveResult, SaveStatus, SaveTicket
from nudge_engine.document_store import ChangeKind, DocumentStore
from nudge_engine.errors import LayerLockedError
from nudge_engine.history import HistoryManager
from nudge_engine.models.campaign import CampaignDocument
from nudge_engine.renderer import RenderNode, TickerRegistry, render_document
from nudge_engine.scheduler import Scheduler
from nudge_engine.templates import TemplateCatalog
from nudge_studio.config import StudioSettings
from nudge_studio.services.api_client import ApiClient
from nudge_studio.services.event_bus import EventBus
from nudge_studio.services.qt_scheduler import QtScheduler
from nudge_studio.services.save_worker import SaveWorker

logger = logging.getLogger(__name__)


class EditorSession(QObject):
    """Editing session for one campaign at a time.

    Signals
    -------
    document_changed(str)
        The document changed.  Payload is the change kind.
    selection_changed(str)
        Selected layer id, ``""`` when nothing is selected.
    history_changed(bool, bool)
        (can_undo, can_redo) after any change.
    preview_invalidated()
        The preview should be re-rendered (document edit or ticker update).
    save_state_changed(str, str)
        (status, message) for every save attempt; status is a
        :class:`SaveStatus` value.

    Parameters
    ----------
    settings : StudioSettings, optional
        Timings, theme colors.  Defaults when omitted.
    client : ApiClient, optional
        Backend client; without one autosave is disabled.
    scheduler : Scheduler, optional
        Defaults to a :class:`QtScheduler` parented to the session.
    bus : EventBus, optional
        Editor-wide bus to mirror session events onto.
    """

    document_changed = Signal(str)
    selection_changed = Signal(str)
    history_changed = Signal(bool, bool)
    preview_invalidated = Signal()
    save_state_changed = Signal(str, str)

    def __init__(
        self,
        settings: Optional[StudioSettings] = None,
        client: Optional[ApiClient] = None,
        scheduler: Optional[Scheduler] = None,
        bus: Optional[EventBus] = None,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self.settings = settings or StudioSettings()
        self._client = client
        self._bus = bus
        self._scheduler = scheduler or QtScheduler(self)
        self._worker: Optional[SaveWorker] = None
        self._last_selection: Optional[str] = None

        self.store = DocumentStore()
        self.history = HistoryManager(self.store, self._scheduler, self.settings.history_debounce_ms)
        self.autosave = AutosaveCoordinator(
            self.store,
            self._scheduler,
            persist=client.save_ticket if client is not None else None,
            poll_ms=self.settings.autosave_poll_ms,
            debounce_ms=self.settings.autosave_debounce_ms,
            on_due=self._start_background_save,
        )
        self.tickers = TickerRegistry(self._scheduler, on_update=self.preview_invalidated.emit)

        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.autosave.subscribe(self._on_save_result)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def document(self) -> Optional[CampaignDocument]:
        return self.store.document

    @property
    def saving(self) -> bool:
        return self.autosave.saving

    @property
    def last_error(self) -> Optional[str]:
        return self.autosave.last_error

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def new_campaign(
        self,
        nudge_type: str = "bottomsheet",
        experience_type: str = "nudges",
        name: str = "New Campaign",
    ) -> CampaignDocument:
        doc = self.store.create_campaign(experience_type, nudge_type, name)
        self._start_autosave()
        return doc

    def open_payload(self, payload: Mapping[str, Any]) -> CampaignDocument:
        """Open a persisted campaign payload (raises DocumentLoadError)."""
        doc = self.store.load_payload(payload)
        self._start_autosave()
        return doc

    def open_remote(self, campaign_id: str) -> CampaignDocument:
        """Fetch a campaign from the backend and open it."""
        if self._client is None:
            raise RuntimeError("No backend client configured")
        doc = self.store.load_document(self._client.load_campaign(campaign_id))
        self._start_autosave()
        return doc

    def close(self) -> None:
        self.autosave.stop()
        self.tickers.stop_all()
        self.store.close()

    def shutdown(self) -> None:
        """Stop timers and wait for an in-flight save before the app exits."""
        self.close()
        self.autosave.dispose()
        self.history.dispose()
        self._unsubscribe()
        if self._worker is not None and self._worker.isRunning():
            self._worker.wait()

    def _start_autosave(self) -> None:
        if self._client is not None and self.settings.autosave_enabled:
            self.autosave.start()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _require_unlocked(self, layer_id: str) -> None:
        layer = self.store.require().find_layer(layer_id)
        if layer is not None and layer.locked:
            raise LayerLockedError(layer_id)

    def add_layer(self, layer_type: str, parent_id: Optional[str] = None) -> str:
        return self.store.add_layer(layer_type, parent_id)

    def update_layer(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        self._require_unlocked(layer_id)
        self.store.update_layer(layer_id, partial)

    def update_layer_content(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        self._require_unlocked(layer_id)
        self.store.update_layer_content(layer_id, partial)

    def update_layer_style(self, layer_id: str, partial: Mapping[str, Any]) -> None:
        self._require_unlocked(layer_id)
        self.store.update_layer_style(layer_id, partial)

    def delete_layer(self, layer_id: str) -> None:
        self.store.delete_layer(layer_id)

    def duplicate_layer(self, layer_id: str) -> str:
        return self.store.duplicate_layer(layer_id)

    def reorder_layer(self, layer_id: str, new_index: int) -> None:
        self.store.reorder_layer(layer_id, new_index)

    def move_layer_to_parent(self, layer_id: str, new_parent_id: Optional[str]) -> None:
        self.store.move_layer_to_parent(layer_id, new_parent_id)

    def toggle_visibility(self, layer_id: str) -> None:
        self.store.toggle_visibility(layer_id)

    def toggle_lock(self, layer_id: str) -> None:
        self.store.toggle_lock(layer_id)

    def select_layer(self, layer_id: Optional[str]) -> None:
        self.store.select_layer(layer_id)

    def apply_template(self, catalog: TemplateCatalog, template_id: str) -> None:
        catalog.apply(self.store, template_id)

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def render(self) -> Optional[RenderNode]:
        """Render the open document (None when no campaign is open)."""
        doc = self.store.document
        if doc is None:
            return None
        return render_document(
            doc,
            on_layer_select=self.select_layer,
            colors=self.settings.colors or None,
            tickers=self.tickers,
        )

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_now(self) -> Optional[SaveResult]:
        """Start a save right away, even if nothing changed.

        Returns the result when no save was started (busy, invalid...),
        otherwise None; the outcome arrives through ``save_state_changed``.
        """
        if self._client is None:
            raise RuntimeError("No backend client configured")
        return self._start_background_save(force=True)

    def _start_background_save(self, force: bool = False) -> Optional[SaveResult]:
        if self._client is None:
            return None
        ticket = self.autosave.begin_save(force=force)
        if isinstance(ticket, SaveResult):
            return ticket
        if self._bus is not None:
            self._bus.save_started.emit(ticket.campaign_id)
        # Bound slots on the session so results are queued onto its thread
        worker = SaveWorker(self._client, ticket, self)
        worker.saved.connect(self._on_worker_saved)
        worker.failed.connect(self._on_worker_failed)
        worker.finished.connect(self._on_worker_finished)
        self._worker = worker
        worker.start()
        return None

    def _current_ticket(self) -> Optional[SaveTicket]:
        return self._worker.ticket if self._worker is not None else None

    def _on_worker_saved(self, saved_id: str) -> None:
        ticket = self._current_ticket()
        if ticket is not None:
            self.autosave.finish_save(ticket, saved_id)

    def _on_worker_failed(self, message: str) -> None:
        ticket = self._current_ticket()
        if ticket is not None:
            self.autosave.fail_save(ticket, message)

    def _on_worker_finished(self) -> None:
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.deleteLater()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _on_store_change(self, kind: ChangeKind) -> None:
        doc = self.store.document
        self.document_changed.emit(kind.value)
        if kind != ChangeKind.SAVED:
            self.preview_invalidated.emit()
        self.history_changed.emit(self.can_undo(), self.can_redo())

        selection = doc.selected_layer_id if doc is not None else None
        if selection != self._last_selection:
            self._last_selection = selection
            self.selection_changed.emit(selection or "")
            if self._bus is not None:
                self._bus.layer_selected.emit(selection or "")

        if self._bus is None:
            return
        if kind == ChangeKind.LOADED and doc is not None:
            self._bus.document_loaded.emit(doc.id)
        elif kind == ChangeKind.CLOSED:
            self._bus.document_closed.emit()
        else:
            self._bus.document_changed.emit(kind.value)
        self._bus.history_changed.emit(self.can_undo(), self.can_redo())

    def _on_save_result(self, result: SaveResult) -> None:
        self.save_state_changed.emit(result.status.value, result.message)
        if self._bus is None:
            return
        self._bus.save_finished.emit(result.status.value, result.message)
        if result.status in (SaveStatus.FAILED, SaveStatus.INVALID):
            self._bus.error_occurred.emit(f"Save failed: {result.message}")
        elif result.status == SaveStatus.SAVED:
            self._bus.status_message.emit("All changes saved")
