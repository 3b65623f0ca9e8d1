"""
nudge_engine/autosave.py -- Persist dirty campaigns without overlapping saves.

The coordinator polls the store (1 s by default).  When the document is
dirty and its revision moved since the last time it looked, it (re)arms a
trailing debounce (3 s).  When the debounce fires it saves.

Only one save runs at a time.  An attempt made while a save is in flight
is dropped, not queued; edits made during the save leave the document
dirty, so the next poll arms a fresh save that carries the latest state.

Failures are kept in :attr:`AutosaveCoordinator.last_error` and reported to
subscribers.  Nothing is retried automatically: the next edit, or an
explicit :meth:`save_now`, triggers the next attempt.

The save itself is split in three so the application can run the network
call off the UI thread::

    ticket = coordinator.begin_save()       # snapshot + take the mutex
    ...persist ticket.payload elsewhere...
    coordinator.finish_save(ticket, saved_id)   # or fail_save(ticket, exc)

:meth:`save_now` does all three inline with the ``persist`` callable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from nudge_engine.document_store import ChangeKind, DocumentStore
from nudge_engine.models.validators import validate_for_save
from nudge_engine.scheduler import Debouncer, Scheduler, TimerHandle
from nudge_engine.serialization import export_payload

logger = logging.getLogger(__name__)

AUTOSAVE_POLL_MS = 1000
AUTOSAVE_DEBOUNCE_MS = 3000


class SaveStatus(str, Enum):
    SAVED = "saved"
    BUSY = "busy"         # another save was in flight; attempt dropped
    INVALID = "invalid"   # failed save-readiness checks
    FAILED = "failed"     # persistence raised
    CLEAN = "clean"       # nothing to save


@dataclass(frozen=True)
class SaveResult:
    status: SaveStatus
    message: str = ""
    campaign_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (SaveStatus.SAVED, SaveStatus.CLEAN)


@dataclass(frozen=True)
class SaveTicket:
    """A snapshot taken at the start of a save."""

    campaign_id: str
    revision: int
    payload: dict[str, Any]
    is_new: bool


Persist = Callable[[SaveTicket], Optional[str]]


class AutosaveCoordinator:
    """Watches *store* and saves dirty documents through *persist*.

    Parameters
    ----------
    store : DocumentStore
        The store to watch.
    scheduler : Scheduler
        Drives the poll interval and the debounce.
    persist : callable, optional
        ``persist(ticket) -> saved_id``.  Required for :meth:`save_now`
        and for timer-driven saves; applications that save on a worker
        thread pass ``on_due`` instead and drive begin/finish themselves.
    on_due : callable, optional
        Called instead of :meth:`save_now` when the debounce fires.
    """

    def __init__(
        self,
        store: DocumentStore,
        scheduler: Scheduler,
        persist: Optional[Persist] = None,
        *,
        poll_ms: int = AUTOSAVE_POLL_MS,
        debounce_ms: int = AUTOSAVE_DEBOUNCE_MS,
        on_due: Optional[Callable[[], None]] = None,
    ):
        self._store = store
        self._scheduler = scheduler
        self._persist = persist
        self._on_due = on_due
        self.poll_ms = poll_ms
        self._debouncer = Debouncer(scheduler, debounce_ms, self._fire)
        self._poll_handle: Optional[TimerHandle] = None
        self._armed_revision: Optional[int] = None
        self._in_flight = False
        self.last_error: Optional[str] = None
        self._subscribers: list[Callable[[SaveResult], None]] = []
        self._unsubscribe = store.subscribe(self._on_store_change)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._poll_handle is not None and self._poll_handle.active

    @property
    def saving(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        """Begin polling.  Calling it twice is harmless."""
        if self.running:
            return
        self._poll_handle = self._scheduler.call_every(self.poll_ms, self.poll)
        logger.debug("Autosave polling every %d ms", self.poll_ms)

    def stop(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
        self._debouncer.cancel()

    def dispose(self) -> None:
        self.stop()
        self._unsubscribe()

    def subscribe(self, callback: Callable[[SaveResult], None]) -> None:
        """Call *callback* with the result of every save attempt."""
        self._subscribers.append(callback)

    def _on_store_change(self, kind: ChangeKind) -> None:
        if kind in (ChangeKind.LOADED, ChangeKind.CLOSED):
            self._debouncer.cancel()
            self._armed_revision = None
            self.last_error = None

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def poll(self) -> None:
        """Arm the debounce if the document changed since the last poll."""
        doc = self._store.document
        if doc is None or not doc.is_dirty:
            return
        if doc.revision == self._armed_revision:
            return
        self._armed_revision = doc.revision
        self._debouncer.trigger()

    def _fire(self) -> None:
        if self._on_due is not None:
            self._on_due()
        else:
            self.save_now()

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def begin_save(self, *, force: bool = False) -> Union[SaveTicket, SaveResult]:
        """Take the save mutex and snapshot the document.

        Returns a :class:`SaveTicket` when a save should go ahead, or a
        :class:`SaveResult` explaining why not.  With *force* a clean
        document is saved anyway.
        """
        if self._in_flight:
            logger.debug("Save skipped: another save is in flight")
            return self._report(SaveResult(SaveStatus.BUSY, "A save is already in progress"))
        doc = self._store.document
        if doc is None:
            return SaveResult(SaveStatus.CLEAN, "No campaign is open")
        if not doc.is_dirty and not force:
            return SaveResult(SaveStatus.CLEAN, campaign_id=doc.id)

        issues = validate_for_save(doc.name, doc.layers)
        if issues:
            self.last_error = "; ".join(issues)
            return self._report(SaveResult(SaveStatus.INVALID, self.last_error, doc.id))

        self._in_flight = True
        return SaveTicket(
            campaign_id=doc.id,
            revision=doc.revision,
            payload=export_payload(doc),
            is_new=doc.last_saved is None,
        )

    def finish_save(self, ticket: SaveTicket, saved_id: Optional[str] = None) -> SaveResult:
        """Release the mutex after a successful save of *ticket*."""
        self._in_flight = False
        self.last_error = None
        doc = self._store.document
        if doc is not None and doc.id == ticket.campaign_id:
            self._store.mark_saved(saved_id or ticket.campaign_id, ticket.revision)
            if self._store.document.is_dirty:
                # Edits landed during the save; let the next poll pick them up
                self._armed_revision = None
        logger.info("Saved campaign %s (revision %d)", saved_id or ticket.campaign_id, ticket.revision)
        return self._report(SaveResult(SaveStatus.SAVED, campaign_id=saved_id or ticket.campaign_id))

    def fail_save(self, ticket: SaveTicket, error: BaseException | str) -> SaveResult:
        """Release the mutex after a failed save and keep the error."""
        self._in_flight = False
        self.last_error = str(error) or error.__class__.__name__
        logger.warning("Saving campaign %s failed: %s", ticket.campaign_id, self.last_error)
        return self._report(SaveResult(SaveStatus.FAILED, self.last_error, ticket.campaign_id))

    def save_now(self, *, force: bool = False) -> SaveResult:
        """Save synchronously through the ``persist`` callable."""
        if self._persist is None:
            raise RuntimeError("AutosaveCoordinator has no persist callable")
        self._debouncer.cancel()
        ticket = self.begin_save(force=force)
        if isinstance(ticket, SaveResult):
            return ticket
        try:
            saved_id = self._persist(ticket)
        except Exception as exc:
            return self.fail_save(ticket, exc)
        return self.finish_save(ticket, saved_id)

    def _report(self, result: SaveResult) -> SaveResult:
        for callback in list(self._subscribers):
            callback(result)
        return result
