"""
nudge_engine/utils.py -- Small helpers shared across the engine.

JSON file I/O for campaigns, templates and settings, plus timestamps and
id generation.  Writes go to a sibling temp file that is then renamed over
the target, so a crash mid-write leaves the previous file intact.
"""

import json
import logging
import os
import secrets
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON files
# ---------------------------------------------------------------------------

def safe_read_json(path, default=None):
    """Parse the JSON file at *path*; *default* when it is absent or unreadable."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return default
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed JSON in %s: %s", path, exc)
        return default


def safe_write_json(path, data, *, indent=2):
    """Write *data* to *path* as UTF-8 JSON, replacing the file in one step.

    Missing parent directories are created.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=target.parent, prefix=f".{target.name}.", suffix=".tmp",
        delete=False,
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            json.dump(data, tmp, indent=indent, ensure_ascii=False)
            tmp.write("\n")
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    os.replace(tmp_path, target)


# ---------------------------------------------------------------------------
# Identifiers and timestamps
# ---------------------------------------------------------------------------

def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def generate_layer_id(existing=()) -> str:
    """Generate a layer id of the form ``layer_<12 hex chars>``.

    *existing* is any container supporting ``in``; the id is regenerated
    until it does not collide with one of its members.
    """
    while True:
        candidate = f"layer_{secrets.token_hex(6)}"
        if candidate not in existing:
            return candidate


def generate_campaign_id() -> str:
    """Generate a client-side campaign id used until the server assigns one."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"campaign_{stamp}_{secrets.token_hex(4)}"


def generate_rule_id() -> str:
    """Generate a targeting-rule id."""
    return f"rule_{secrets.token_hex(4)}"
