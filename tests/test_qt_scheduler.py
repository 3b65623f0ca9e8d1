"""
Tests for nudge_studio/services/qt_scheduler.py -- QTimer-backed scheduler.
"""

import time

import pytest
from PySide6.QtCore import QCoreApplication

from nudge_studio.services.qt_scheduler import QtScheduler


@pytest.fixture()
def _ensure_qapp():
    """Make sure a QCoreApplication exists for signal/slot machinery."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


def _spin(app, until, timeout_s=2.0):
    deadline = time.monotonic() + timeout_s
    while not until() and time.monotonic() < deadline:
        app.processEvents()
        time.sleep(0.001)


class TestQtScheduler:
    def test_call_later_fires_once(self, _ensure_qapp):
        scheduler = QtScheduler()
        calls = []
        handle = scheduler.call_later(0, lambda: calls.append(1))
        _spin(_ensure_qapp, lambda: calls)
        assert calls == [1]
        assert not handle.active

    def test_cancel_before_fire(self, _ensure_qapp):
        scheduler = QtScheduler()
        calls = []
        handle = scheduler.call_later(0, lambda: calls.append(1))
        handle.cancel()
        _spin(_ensure_qapp, lambda: False, timeout_s=0.05)
        assert calls == []

    def test_call_every_repeats_until_cancelled(self, _ensure_qapp):
        scheduler = QtScheduler()
        calls = []
        handle = scheduler.call_every(1, lambda: calls.append(1))
        _spin(_ensure_qapp, lambda: len(calls) >= 3)
        handle.cancel()
        count = len(calls)
        _spin(_ensure_qapp, lambda: False, timeout_s=0.05)
        assert count >= 3
        assert len(calls) == count

    def test_rejects_non_positive_interval(self, _ensure_qapp):
        with pytest.raises(ValueError):
            QtScheduler().call_every(0, lambda: None)

    def test_now_is_monotonic(self, _ensure_qapp):
        scheduler = QtScheduler()
        first = scheduler.now()
        time.sleep(0.005)
        assert scheduler.now() >= first
