"""
Pytest configuration and shared fixtures for Companion Store tests.

Provides an instrumented fake app service and recording sinks so the
catalog state can be exercised without a network or a display.
"""

import asyncio
import pytest
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from store.alerts import AlertSink
from store.analytics import LoggingAnalytics
from store.app_catalog import AppRecord
from store.catalog_state import CatalogState
from store.preferences import PreferenceStore
from store.remote import AppService


# ============ Fakes ============

class FakeAppService(AppService):
    """
    In-memory AppService that records every call.

    Set ``gate`` to an asyncio.Event to hold enable/disable calls until
    the event is set. Put exceptions in ``fail_with`` keyed by method name.
    """

    GATED = ("enable_app", "disable_app")

    def __init__(self, apps: List[AppRecord]):
        self.apps = list(apps)
        self.calls: List[Tuple] = []
        self.enable_result = True
        self.delete_result = True
        self.owner_result = False
        self.fail_with: Dict[str, Exception] = {}
        self.gate: Optional[asyncio.Event] = None

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _call(self, name: str, *args):
        self.calls.append((name,) + args)
        if self.gate is not None and name in self.GATED:
            await self.gate.wait()
        if name in self.fail_with:
            raise self.fail_with[name]

    async def list_apps(self):
        await self._call("list_apps")
        return [AppRecord.from_dict(app.to_dict()) for app in self.apps]

    async def enable_app(self, app_id):
        await self._call("enable_app", app_id)
        return self.enable_result

    async def disable_app(self, app_id):
        await self._call("disable_app", app_id)

    async def delete_app(self, app_id):
        await self._call("delete_app", app_id)
        return self.delete_result

    async def is_app_owner(self, app_id):
        await self._call("is_app_owner", app_id)
        return self.owner_result

    async def set_app_visibility(self, app_id, is_public):
        await self._call("set_app_visibility", app_id, is_public)


class RecordingAlerts(AlertSink):
    """AlertSink that keeps every message."""

    def __init__(self):
        self.errors: List[str] = []
        self.successes: List[str] = []
        self.dialogs: List[Tuple[str, str]] = []

    def show_error(self, message):
        self.errors.append(message)

    def show_success(self, message):
        self.successes.append(message)

    def show_blocking_dialog(self, title, content):
        self.dialogs.append((title, content))


# ============ App Fixtures ============

@pytest.fixture
def sample_apps() -> List[AppRecord]:
    """A small catalog covering each capability and visibility."""
    return [
        AppRecord(
            id="weather_bot",
            name="Weather Bot",
            author="Skyline",
            description="Answers weather questions in chat",
            capabilities=["chat"],
        ),
        AppRecord(
            id="journal_private_01",
            name="My Journal",
            description="Summarizes memories into a daily journal",
            capabilities=["memories"],
            private=True,
        ),
        AppRecord(
            id="zapier_sync",
            name="Zapier Sync",
            description="Pushes conversations to Zapier",
            capabilities=["external_integration"],
            enabled=True,
        ),
        AppRecord(
            id="chat_coach",
            name="Chat Coach",
            description="Coaching in chat and memory follow-ups",
            capabilities=["chat", "memories"],
        ),
        AppRecord(
            id="nudger",
            name="Nudger",
            description="Proactive reminders",
            capabilities=["proactive_notification"],
        ),
    ]


# ============ Collaborator Fixtures ============

@pytest.fixture
def fake_service(sample_apps) -> FakeAppService:
    return FakeAppService(sample_apps)


@pytest.fixture
def alerts() -> RecordingAlerts:
    return RecordingAlerts()


@pytest.fixture
def analytics() -> LoggingAnalytics:
    return LoggingAnalytics()


@pytest.fixture
def prefs_path(tmp_path: Path) -> Path:
    return tmp_path / "companion" / "preferences.json"


@pytest.fixture
def prefs(prefs_path) -> PreferenceStore:
    return PreferenceStore(prefs_path)


@pytest.fixture
def catalog_state(fake_service, prefs, alerts, analytics) -> CatalogState:
    """CatalogState wired to fakes and a temp-file preference store."""
    return CatalogState(
        service=fake_service,
        preferences=prefs,
        alerts=alerts,
        analytics=analytics,
    )


@pytest.fixture
def notifications(catalog_state) -> List[int]:
    """Counts listener calls; each entry is the app count at that moment."""
    seen: List[int] = []
    catalog_state.add_listener(lambda: seen.append(len(catalog_state.apps)))
    return seen


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "gui: tests that need PyQt6"
    )
