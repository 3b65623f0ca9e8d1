"""
nudge_engine/errors.py -- Exception hierarchy for the nudge engine.

Structural problems with the layer tree are raised as exceptions so callers
can surface them; validation of a campaign before saving is reported as a
list of issues instead (see ``nudge_engine.models.validators``).
"""


class DocumentError(Exception):
    """Base class for every error raised by the document engine."""


class NoDocumentError(DocumentError):
    """Raised when an operation needs a campaign but none is open."""


class DocumentLoadError(DocumentError):
    """Raised when a persisted or template document fails validation.

    The ``issues`` attribute carries the individual human-readable problems.
    """

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])


class LayerNotFoundError(DocumentError):
    """Raised when a layer id that must exist is missing."""

    def __init__(self, layer_id: str):
        super().__init__(f"Layer '{layer_id}' does not exist")
        self.layer_id = layer_id


class TreeStructureError(DocumentError):
    """Raised when an operation would corrupt the parent/children forest."""


class LayerLockedError(DocumentError):
    """Raised when content or style edits target a locked layer."""

    def __init__(self, layer_id: str):
        super().__init__(f"Layer '{layer_id}' is locked")
        self.layer_id = layer_id
