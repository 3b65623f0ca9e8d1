"""
Nudge Engine -- layer document model, mutation and undo engine, style
resolution and rendering for in-app nudges (modal, banner, bottom sheet,
tooltip).

Package layout:
    models/        Pydantic models for layers and campaign documents
    renderer/      Per-nudge-type render trees
    document_store Mutation API over an immutable CampaignDocument
    history        Debounced undo/redo snapshots
    autosave       Dirty polling and serialized persistence
    serialization  Wire format export/load
    templates      Built-in and on-disk template catalog

Nothing in this package imports Qt; the desktop services live in
``nudge_studio``.
"""

__version__ = "0.3.0"
