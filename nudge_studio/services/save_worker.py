"""
nudge_studio/services/save_worker.py -- QThread that runs one campaign save.

The autosave coordinator snapshots the document on the UI thread
(``begin_save``); this worker sends the snapshot to the backend and
reports back through signals, which Qt delivers on the UI thread where the
session calls ``finish_save`` / ``fail_save``.

Usage::

    worker = SaveWorker(client, ticket)
    worker.saved.connect(on_saved)
    worker.failed.connect(on_failed)
    worker.start()
"""

from __future__ import annotations

import logging

from PySide6.QtCore import QThread, Signal

from nudge_engine.autosave import SaveTicket
from nudge_studio.services.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)


class SaveWorker(QThread):
    """Background thread for one save request.

    Signals
    -------
    saved(str)
        The save succeeded.  Payload is the id the server stored it under.
    failed(str)
        The save failed.  Payload is the error message.
    """

    saved = Signal(str)
    failed = Signal(str)

    def __init__(self, client: ApiClient, ticket: SaveTicket, parent=None):
        super().__init__(parent)
        self._client = client
        self.ticket = ticket

    def run(self) -> None:
        try:
            saved_id = self._client.save_ticket(self.ticket)
        except ApiError as exc:
            logger.warning("Save of %s rejected: %s", self.ticket.campaign_id, exc)
            self.failed.emit(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error saving %s", self.ticket.campaign_id)
            self.failed.emit(str(exc) or exc.__class__.__name__)
        else:
            self.saved.emit(saved_id)
