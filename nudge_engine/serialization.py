"""
nudge_engine/serialization.py -- Convert documents to and from the persisted shape.

The campaign API stores campaigns as::

    {
      "id": ..., "name": ..., "status": ..., "trigger": ..., "rules": [...],
      "config": {
        "type": "<nudgeType>", "experienceType": ..., "screen": ...,
        "layers": [...], "rootLayerId": ..., "displayRules": {...},
        "<nudgeType>Config": {...}
      },
      "createdAt": ..., "updatedAt": ..., "lastSaved": ...
    }

Loading runs three checks in order and stops at the first failure:

    1. JSON Schema (jsonschema) for the overall shape, so a payload from an
       older or foreign API gives one readable error instead of a pydantic
       error wall.
    2. Pydantic validation of the document and every layer.
    3. Tree integrity (parent/children agreement, no cycles).

Any failure raises :class:`~nudge_engine.errors.DocumentLoadError`; nothing
is partially loaded.

Usage::

    from nudge_engine.serialization import export_payload, document_from_payload

    payload = export_payload(store.document)
    doc = document_from_payload(payload)
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from jsonschema import Draft202012Validator
from pydantic import ValidationError

from nudge_engine.errors import DocumentLoadError
from nudge_engine.models.campaign import NUDGE_TYPES, CampaignDocument
from nudge_engine.models.layers import LAYER_TYPES
from nudge_engine.models.validators import validate_layer_tree
from nudge_engine.utils import safe_read_json, safe_write_json

logger = logging.getLogger(__name__)

# nudge_type -> key of its config inside the persisted ``config`` object
WIRE_CONFIG_KEY: dict[str, str] = {
    "bottomsheet": "bottomSheetConfig",
    "modal": "modalConfig",
    "banner": "bannerConfig",
    "tooltip": "tooltipConfig",
}

_LAYER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "type"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"enum": list(LAYER_TYPES)},
        "name": {"type": "string"},
        "parent": {"type": ["string", "null"]},
        "children": {"type": "array", "items": {"type": "string"}},
        "visible": {"type": "boolean"},
        "locked": {"type": "boolean"},
        "zIndex": {"type": "integer"},
        "content": {"type": "object"},
        "style": {"type": "object"},
    },
}

CAMPAIGN_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Persisted campaign",
    "type": "object",
    "required": ["name", "config"],
    "properties": {
        "id": {"type": "string"},
        "_id": {"type": "string"},
        "name": {"type": "string"},
        "status": {"enum": ["active", "paused", "draft"]},
        "trigger": {"type": ["string", "null"]},
        "rules": {"type": "array", "items": {"type": "object"}},
        "config": {
            "type": "object",
            "required": ["type", "layers"],
            "properties": {
                "type": {"enum": list(NUDGE_TYPES)},
                "experienceType": {"type": "string"},
                "screen": {"type": ["string", "null"]},
                "layers": {"type": "array", "items": _LAYER_SCHEMA},
                "rootLayerId": {"type": ["string", "null"]},
                "displayRules": {"type": "object"},
            },
        },
        "createdAt": {"type": "string"},
        "updatedAt": {"type": "string"},
        "lastSaved": {"type": ["string", "null"]},
    },
}

_validator = Draft202012Validator(CAMPAIGN_SCHEMA)


# ------------------------------------------------------------------
# Export
# ------------------------------------------------------------------

def export_payload(doc: CampaignDocument) -> dict[str, Any]:
    """Encode *doc* in the persisted campaign shape.

    Editor-only state (selection, undo history, dirtiness) is not exported.
    """
    config: dict[str, Any] = {
        "type": doc.nudge_type,
        "experienceType": doc.experience_type,
        "screen": doc.screen,
        "layers": [layer.to_wire() for layer in doc.layers],
        "rootLayerId": doc.root_layer_id,
        "displayRules": doc.display_rules.to_wire(),
    }
    active = doc.active_config
    if active is not None:
        config[WIRE_CONFIG_KEY[doc.nudge_type]] = active.to_wire()

    return {
        "id": doc.id,
        "name": doc.name,
        "status": doc.status,
        "trigger": doc.trigger,
        "rules": [rule.to_wire() for rule in doc.targeting],
        "config": config,
        "createdAt": doc.created_at,
        "updatedAt": doc.updated_at,
        "lastSaved": doc.last_saved,
    }


# ------------------------------------------------------------------
# Load
# ------------------------------------------------------------------

def schema_errors(payload: Any) -> list[str]:
    """Return JSON Schema violations of *payload*, most shallow first."""
    errors = sorted(_validator.iter_errors(payload), key=lambda e: len(e.path))
    messages = []
    for error in errors:
        location = "/".join(str(part) for part in error.absolute_path) or "<root>"
        messages.append(f"{location}: {error.message}")
    return messages


def _pydantic_issues(exc: ValidationError) -> list[str]:
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        issues.append(f"{location}: {error['msg']}")
    return issues


def document_from_payload(payload: Mapping[str, Any]) -> CampaignDocument:
    """Decode a persisted campaign into a :class:`CampaignDocument`."""
    issues = schema_errors(payload)
    if issues:
        raise DocumentLoadError("Campaign payload has the wrong shape", issues)

    config = payload["config"]
    nudge_type = config["type"]
    data: dict[str, Any] = {
        "id": payload.get("id") or payload.get("_id") or "",
        "name": payload["name"],
        "experienceType": config.get("experienceType", "nudges"),
        "nudgeType": nudge_type,
        "trigger": payload.get("trigger"),
        "screen": config.get("screen", ""),
        "status": payload.get("status", "draft"),
        "layers": config["layers"],
        "rootLayerId": config.get("rootLayerId"),
        "targeting": payload.get("rules", []),
        "createdAt": payload.get("createdAt", ""),
        "updatedAt": payload.get("updatedAt", ""),
        "lastSaved": payload.get("lastSaved"),
    }
    if "displayRules" in config:
        data["displayRules"] = config["displayRules"]
    for wire_key in WIRE_CONFIG_KEY.values():
        if config.get(wire_key) is not None:
            data[wire_key] = config[wire_key]

    if not data["id"]:
        raise DocumentLoadError("Campaign payload has no id", ["id: missing"])

    try:
        doc = CampaignDocument.model_validate(data)
    except ValidationError as exc:
        raise DocumentLoadError("Campaign payload failed validation", _pydantic_issues(exc)) from exc

    report = validate_layer_tree(doc.layers)
    if report.errors:
        raise DocumentLoadError("Campaign layer tree is invalid", report.errors)
    return doc


# ------------------------------------------------------------------
# Files
# ------------------------------------------------------------------

def save_document_file(doc: CampaignDocument, path) -> None:
    """Write *doc* to *path* in the persisted shape (atomically)."""
    safe_write_json(path, export_payload(doc))
    logger.info("Wrote campaign %s to %s", doc.id, path)


def load_document_file(path) -> CampaignDocument:
    """Read and validate a campaign JSON file."""
    payload = safe_read_json(path)
    if payload is None:
        raise DocumentLoadError(f"Cannot read campaign file {path}")
    return document_from_payload(payload)
