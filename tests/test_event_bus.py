"""
Tests for nudge_studio/services/event_bus.py -- EventBus signals.
"""

from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from nudge_studio.services.event_bus import EventBus


@pytest.fixture()
def _ensure_qapp():
    """Make sure a QCoreApplication exists for signal/slot machinery."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class TestOwnership:
    def test_buses_are_independent(self, _ensure_qapp):
        first, second = EventBus(), EventBus()
        receiver = MagicMock()
        first.status_message.connect(receiver)
        second.status_message.emit("other bus")
        receiver.assert_not_called()


class TestSignals:
    def test_document_loaded(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.document_loaded.connect(receiver)
        bus.document_loaded.emit("campaign_1")
        receiver.assert_called_once_with("campaign_1")

    def test_document_closed(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.document_closed.connect(receiver)
        bus.document_closed.emit()
        receiver.assert_called_once_with()

    def test_layer_selected_empty_means_none(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.layer_selected.connect(receiver)
        bus.layer_selected.emit("")
        receiver.assert_called_once_with("")

    def test_history_changed(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.history_changed.connect(receiver)
        bus.history_changed.emit(True, False)
        receiver.assert_called_once_with(True, False)

    def test_save_finished(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.save_finished.connect(receiver)
        bus.save_finished.emit("failed", "offline")
        receiver.assert_called_once_with("failed", "offline")

    def test_multiple_receivers(self, _ensure_qapp):
        bus = EventBus()
        first, second = MagicMock(), MagicMock()
        bus.error_occurred.connect(first)
        bus.error_occurred.connect(second)
        bus.error_occurred.emit("boom")
        first.assert_called_once_with("boom")
        second.assert_called_once_with("boom")

    def test_disconnect(self, _ensure_qapp):
        bus = EventBus()
        receiver = MagicMock()
        bus.document_changed.connect(receiver)
        bus.document_changed.disconnect(receiver)
        bus.document_changed.emit("structure")
        receiver.assert_not_called()
