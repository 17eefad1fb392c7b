"""
Preference Store - Local key-value cache for the app catalog.

Holds the selected app id and the last app list fetched from the service.
A store created without a path keeps everything in memory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, List, Dict, Any

from common.decorators import handle_errors
from utils.atomic_write import atomic_write_json

from .app_catalog import AppRecord

logger = logging.getLogger(__name__)

NO_SELECTED_APP = "no_selected"

SELECTED_APP_KEY = "selected_app_id"
APPS_LIST_KEY = "apps_list"


class PreferenceStore:
    """
    Persistent preferences backed by a JSON file.

    Read and write failures are logged, never raised: a broken file
    behaves like an empty one, and a failed write keeps the new value
    in memory for the rest of the session.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize PreferenceStore.

        Args:
            path: JSON file to persist to, or None for an in-memory store
        """
        self.path = Path(path) if path else None
        self._data: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._data is None:
            data = self._read() if self.path else None
            self._data = data if isinstance(data, dict) else {}
        return self._data

    @handle_errors(OSError, ValueError, log_level=logging.WARNING,
                   message="Failed to read preferences")
    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    @handle_errors(OSError, TypeError, ValueError, default=False,
                   message="Failed to save preferences")
    def _write(self) -> bool:
        atomic_write_json(self.path, self._data)
        return True

    def _set(self, key: str, value: Any) -> None:
        self._load()[key] = value
        if self.path:
            self._write()

    def _cached_apps(self) -> List[Any]:
        apps = self._load().get(APPS_LIST_KEY, [])
        if not isinstance(apps, list):
            logger.warning(f"Ignoring cached apps of type {type(apps).__name__}")
            return []
        return apps

    @property
    def selected_app_id(self) -> str:
        app_id = self._load().get(SELECTED_APP_KEY, NO_SELECTED_APP)
        return app_id if isinstance(app_id, str) else NO_SELECTED_APP

    @selected_app_id.setter
    def selected_app_id(self, app_id: str) -> None:
        self._set(SELECTED_APP_KEY, app_id)

    @property
    def apps_list(self) -> List[AppRecord]:
        """Cached apps. Every read returns fresh record objects."""
        apps = []
        for app_data in self._cached_apps():
            try:
                apps.append(AppRecord.from_dict(app_data))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed cached app: {e}")
        return apps

    @apps_list.setter
    def apps_list(self, apps: List[AppRecord]) -> None:
        self._set(APPS_LIST_KEY, [app.to_dict() for app in apps])

    def set_app_enabled(self, app_id: str, enabled: bool) -> None:
        """Flip the enabled flag of every cached app with this id."""
        apps = self._cached_apps()
        changed = False
        for app_data in apps:
            if isinstance(app_data, dict) and app_data.get("id") == app_id:
                app_data["enabled"] = enabled
                changed = True

        if not changed:
            logger.debug(f"set_app_enabled: {app_id} not in cached apps")
            return

        self._set(APPS_LIST_KEY, apps)

    def clear(self) -> None:
        """Forget all preferences."""
        self._data = {}
        if self.path:
            self._write()
