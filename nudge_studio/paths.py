"""
nudge_studio/paths.py -- Path resolution for settings, drafts and templates.

Uses platformdirs so settings and user templates live in the usual
per-user locations on every platform.
"""

from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

_APP_NAME = "NudgeStudio"
_APP_AUTHOR = "NudgeStudio"


def get_config_dir() -> Path:
    """Return the platform-appropriate config directory (created on demand)."""
    path = Path(user_config_dir(_APP_NAME, _APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_user_data_dir() -> Path:
    """Return the platform-appropriate user data directory."""
    path = Path(user_data_dir(_APP_NAME, _APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_settings_path() -> Path:
    return get_config_dir() / "settings.json"


def get_templates_dir() -> Path:
    """User template directory; JSON files here extend the built-in catalog."""
    path = get_user_data_dir() / "templates"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_drafts_dir() -> Path:
    """Local drafts written by ``nudge-studio new`` and the editor."""
    path = get_user_data_dir() / "drafts"
    path.mkdir(parents=True, exist_ok=True)
    return path
