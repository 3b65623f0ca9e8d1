"""
nudge_studio/services/event_bus.py -- Editor-wide event bus using Qt signals.

Panels and services connect to one EventBus instead of to each other.  The
bus is owned by whoever builds the editor (usually the EditorSession's
creator) and passed down, so tests can make as many as they like.

Usage::

    from nudge_studio.services.event_bus import EventBus

    bus = EventBus()
    bus.layer_selected.connect(my_handler)
    bus.layer_selected.emit("layer_1a2b3c")
"""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """Editor-wide signal bus.

    Signals
    -------
    document_loaded(str)
        A campaign was created or opened.  Payload is the campaign id.
    document_closed()
        The open campaign was closed.
    document_changed(str)
        The document changed.  Payload is the change kind
        (``"structure"``, ``"content"``...).
    layer_selected(str)
        Selection changed.  Payload is the layer id, ``""`` for none.
    history_changed(bool, bool)
        Undo/redo availability: (can_undo, can_redo).
    save_started(str)
        A save began.  Payload is the campaign id.
    save_finished(str, str)
        A save attempt ended: (status, message).
    error_occurred(str)
        An error needs to be shown to the user.
    status_message(str)
        Text for the status bar.
    """

    # Document lifecycle
    document_loaded = Signal(str)
    document_closed = Signal()
    document_changed = Signal(str)

    # Selection and history
    layer_selected = Signal(str)
    history_changed = Signal(bool, bool)

    # Persistence
    save_started = Signal(str)
    save_finished = Signal(str, str)

    # Error and status
    error_occurred = Signal(str)
    status_message = Signal(str)
