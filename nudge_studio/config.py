"""
nudge_studio/config.py -- User settings for the studio.

Settings come from three places, later ones winning:

    1. defaults on :class:`StudioSettings`;
    2. ``settings.json`` in the user config directory;
    3. environment variables (``NUDGE_STUDIO_API_URL``,
       ``NUDGE_STUDIO_API_KEY``, ``NUDGE_STUDIO_TIMEOUT``).

A corrupt or invalid settings file is logged and ignored rather than
preventing startup.  A bad environment value is dropped on its own.

Usage::

    from nudge_studio.config import load_settings

    settings = load_settings()
    client = ApiClient(settings.api_url, settings.api_key, settings.timeout)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nudge_engine.autosave import AUTOSAVE_DEBOUNCE_MS, AUTOSAVE_POLL_MS
from nudge_engine.history import HISTORY_DEBOUNCE_MS
from nudge_engine.utils import safe_read_json, safe_write_json
from nudge_studio.paths import get_settings_path

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:4000"
DEFAULT_TIMEOUT = 30.0

ENV_OVERRIDES = {
    "NUDGE_STUDIO_API_URL": "api_url",
    "NUDGE_STUDIO_API_KEY": "api_key",
    "NUDGE_STUDIO_TIMEOUT": "timeout",
}


class StudioSettings(BaseModel):
    """Persisted studio preferences."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    autosave_enabled: bool = True
    autosave_poll_ms: int = Field(AUTOSAVE_POLL_MS, gt=0)
    autosave_debounce_ms: int = Field(AUTOSAVE_DEBOUNCE_MS, ge=0)
    history_debounce_ms: int = Field(HISTORY_DEBOUNCE_MS, ge=0)
    templates_dir: Optional[str] = None
    colors: dict[str, dict[str, str]] = Field(default_factory=dict)

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> StudioSettings:
    """Load settings from *path* (default: the user settings file) and env."""
    path = Path(path) if path is not None else get_settings_path()
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = {}
    raw = safe_read_json(path, default=None)
    if isinstance(raw, dict):
        data.update(raw)
    elif raw is not None:
        logger.warning("Ignoring settings file %s: expected a JSON object", path)

    try:
        settings = StudioSettings.model_validate(data)
    except ValidationError as exc:
        logger.warning("Invalid settings in %s, using defaults: %s", path, exc)
        settings = StudioSettings()

    # Each override is checked on its own; a bad one is dropped, not the file
    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        try:
            settings = StudioSettings.model_validate({**settings.model_dump(), field_name: value})
        except ValidationError as exc:
            logger.warning("Ignoring %s: %s", env_name, exc.errors()[0]["msg"])
    return settings


def save_settings(settings: StudioSettings, path: Optional[Path] = None) -> Path:
    """Write *settings* to *path* (default: the user settings file).

    The API key is never written; it is expected to come from the
    environment.
    """
    path = Path(path) if path is not None else get_settings_path()
    safe_write_json(path, settings.model_dump(mode="json", exclude={"api_key"}))
    logger.info("Settings saved to %s", path)
    return path
