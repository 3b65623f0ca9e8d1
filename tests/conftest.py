"""
Shared pytest fixtures for the Nudge Studio test suite.

Provides:
    - clock: a deterministic ISO timestamp source for the store
    - scheduler: a virtual-clock ManualScheduler
    - store: an empty DocumentStore using the fixed clock
    - sheet_store / modal_store / banner_store: stores with a freshly
      created campaign of that nudge type
    - history: a HistoryManager attached to sheet_store
    - sample_payload: a persisted modal campaign in the wire shape
"""

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure nudge_engine/ and nudge_studio/ are importable from anywhere
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from nudge_engine.document_store import DocumentStore  # noqa: E402
from nudge_engine.history import HistoryManager  # noqa: E402
from nudge_engine.scheduler import ManualScheduler  # noqa: E402


class FixedClock:
    """Returns increasing ISO timestamps, one second apart."""

    def __init__(self):
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        return f"2025-01-01T00:00:{self.ticks:02d}+00:00"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store(clock):
    return DocumentStore(clock=clock)


@pytest.fixture
def sheet_store(store):
    store.create_campaign("nudges", "bottomsheet", "Sheet campaign")
    return store


@pytest.fixture
def modal_store(store):
    store.create_campaign("nudges", "modal", "Modal campaign")
    return store


@pytest.fixture
def banner_store(store):
    store.create_campaign("nudges", "banner", "Banner campaign")
    return store


@pytest.fixture
def history(sheet_store, scheduler):
    manager = HistoryManager(sheet_store, scheduler, debounce_ms=300)
    yield manager
    manager.dispose()


@pytest.fixture
def sample_payload():
    """Return a persisted modal campaign with a root, a title and a button."""
    return {
        "id": "campaign_sample",
        "name": "Spring promo",
        "status": "draft",
        "trigger": "screen_viewed",
        "rules": [
            {"id": "rule_1", "type": "user_property", "property": "plan",
             "operator": "equals", "value": "free"},
        ],
        "config": {
            "type": "modal",
            "experienceType": "nudges",
            "screen": "home",
            "rootLayerId": "root",
            "layers": [
                {
                    "id": "root", "type": "container", "name": "Modal Container",
                    "parent": None, "children": ["title", "cta"],
                    "style": {"padding": 24, "borderRadius": 16},
                },
                {
                    "id": "title", "type": "text", "name": "Title", "parent": "root",
                    "content": {"text": "Spring sale", "fontSize": 22},
                },
                {
                    "id": "cta", "type": "button", "name": "CTA", "parent": "root",
                    "content": {"label": "Shop", "action": {"type": "deeplink", "url": "app://shop"}},
                },
            ],
            "modalConfig": {"width": 360, "overlayColor": "rgba(0,0,0,0.6)"},
        },
        "createdAt": "2025-01-01T00:00:00+00:00",
        "updatedAt": "2025-01-01T00:00:00+00:00",
        "lastSaved": None,
    }
