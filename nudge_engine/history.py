"""
nudge_engine/history.py -- Undo/redo on top of the document store.

A history snapshot is the whole layer tuple.  Because the store never
mutates layers in place, a snapshot is just a reference to a tuple that no
later edit can touch.

Two capture modes:
    - Structural changes (add, delete, duplicate, move, reorder, whole-layer
      update, template load) are recorded immediately.
    - Content and style edits are recorded through a trailing debounce
      (300 ms by default), so a slider drag becomes one undo step.

Before a structural change, and before undo/redo, any pending debounced
snapshot is flushed so the content edit keeps its own undo step.  Recording
after an undo discards the redo branch.  Undo and redo restore layers only;
the selection is left as it is.

Usage::

    from nudge_engine.history import HistoryManager

    history = HistoryManager(store, scheduler)
    store.update_layer_content(layer_id, {"text": "Hi"})
    history.undo()
"""

from __future__ import annotations

import logging

from nudge_engine.document_store import ChangeKind, DocumentStore
from nudge_engine.scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)

HISTORY_DEBOUNCE_MS = 300


class HistoryManager:
    """Record layer snapshots from *store* and move through them.

    Parameters
    ----------
    store : DocumentStore
        The store to observe.  The manager subscribes on construction and
        unsubscribes in :meth:`dispose`.
    scheduler : Scheduler
        Drives the content-edit debounce.
    debounce_ms : int
        Quiet period before a burst of content edits is recorded.
    """

    def __init__(
        self,
        store: DocumentStore,
        scheduler: Scheduler,
        debounce_ms: int = HISTORY_DEBOUNCE_MS,
    ):
        self._store = store
        self._debouncer = Debouncer(scheduler, debounce_ms, self.record)
        self._unsubscribe = [
            store.subscribe(self._on_change),
            store.subscribe_before(self._before_change),
        ]

    def dispose(self) -> None:
        self._debouncer.cancel()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # ------------------------------------------------------------------
    # Store callbacks
    # ------------------------------------------------------------------

    def _before_change(self, kind: ChangeKind) -> None:
        if kind == ChangeKind.STRUCTURE:
            self._debouncer.flush()
        elif kind in (ChangeKind.LOADED, ChangeKind.CLOSED):
            self._debouncer.cancel()

    def _on_change(self, kind: ChangeKind) -> None:
        if kind == ChangeKind.STRUCTURE:
            self.record()
        elif kind == ChangeKind.CONTENT:
            self._debouncer.trigger()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def pending(self) -> bool:
        """True while a debounced content snapshot is waiting."""
        return self._debouncer.pending

    def record(self) -> None:
        """Append the current layers as a new history entry.

        Entries after the current index (the redo branch) are dropped.
        Recording a tuple identical to the current entry is skipped.
        """
        doc = self._store.document
        if doc is None:
            return
        history = doc.history[: doc.history_index + 1]
        if history and history[-1] == doc.layers:
            return
        history = history + (doc.layers,)
        self._store.replace_history(history, len(history) - 1)
        logger.debug("History entry %d recorded for %s", len(history) - 1, doc.id)

    def flush(self) -> bool:
        """Record a pending debounced snapshot right away."""
        return self._debouncer.flush()

    def can_undo(self) -> bool:
        doc = self._store.document
        if doc is None:
            return False
        return self.pending or doc.can_undo()

    def can_redo(self) -> bool:
        doc = self._store.document
        if doc is None:
            return False
        return not self.pending and doc.can_redo()

    def undo(self) -> bool:
        """Step back one entry.  Returns False at the start of history."""
        if self._store.document is None:
            return False
        self.flush()
        doc = self._store.document
        if not doc.can_undo():
            return False
        self._store.restore_snapshot(doc.history_index - 1)
        return True

    def redo(self) -> bool:
        """Step forward one entry.  Returns False at the end of history."""
        if self._store.document is None:
            return False
        self.flush()
        doc = self._store.document
        if not doc.can_redo():
            return False
        self._store.restore_snapshot(doc.history_index + 1)
        return True
