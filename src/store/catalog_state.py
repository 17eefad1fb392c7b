"""
Catalog State - Observable state behind the app list screens.

Holds the app list with a loading flag per entry, the filter and search
settings and the selected app. Every mutation notifies the registered
listeners so front ends can re-render.

All methods must be called from the thread running the asyncio event
loop. Operations that start background work (initialize,
set_app_visibility) need a running loop and return the spawned task.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Coroutine, List, Optional, Set, Any

from common.exceptions import RemoteServiceError

from .alerts import AlertSink
from .analytics import AnalyticsSink
from .app_catalog import AppRecord, filter_apps, is_public_app_id
from .preferences import PreferenceStore, NO_SELECTED_APP
from .remote import AppService

logger = logging.getLogger(__name__)

Listener = Callable[[], None]

ENABLE_FAILED_TITLE = "Error activating the app"
ENABLE_FAILED_CONTENT = "If this is an integration app, make sure the setup is completed."
DELETE_SUCCEEDED = "App deleted successfully"
DELETE_FAILED = "Failed to delete app. Please try again later."
VISIBILITY_CHANGED = "App visibility changed successfully. It may take a few minutes to reflect."
VISIBILITY_FAILED = "Failed to change app visibility. Please try again later."


@dataclass
class CatalogEntry:
    """An app paired with its enable/disable loading flag."""
    record: AppRecord
    loading: bool = False


class CatalogState:
    """
    App catalog state manager.

    Collaborators are injected so tests can substitute fakes:

    Args:
        service: Remote app service
        preferences: Local cache; the app list is always read back from it
        alerts: User-facing messages
        analytics: Enable/disable events
    """

    def __init__(
        self,
        service: AppService,
        preferences: PreferenceStore,
        alerts: AlertSink,
        analytics: AnalyticsSink,
    ):
        self._service = service
        self._preferences = preferences
        self._alerts = alerts
        self._analytics = analytics

        self._listeners: List[Listener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._entries: List[CatalogEntry] = []

        self.is_loading = False
        self.selected_app_id = NO_SELECTED_APP

        self.filter_chat = True
        self.filter_memories = True
        self.filter_external = True
        self.search_query = ""

        # Describe the most recently inspected app only
        self.is_app_owner = False
        self.app_public_toggled = False

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def apps(self) -> List[AppRecord]:
        return [entry.record for entry in self._entries]

    @property
    def app_loading(self) -> List[bool]:
        """Loading flags, index-aligned with apps."""
        return [entry.loading for entry in self._entries]

    @property
    def entries(self) -> List[CatalogEntry]:
        return list(self._entries)

    @property
    def filtered_apps(self) -> List[AppRecord]:
        """Apps passing the capability filters and the search query."""
        return filter_apps(
            self.apps,
            chat=self.filter_chat,
            memories=self.filter_memories,
            external=self.filter_external,
            query=self.search_query,
        )

    def find_index(self, app_id: str) -> Optional[int]:
        """Index of the first app with this id, or None."""
        for index, entry in enumerate(self._entries):
            if entry.record.id == app_id:
                return index
        return None

    # ------------------------------------------------------------------
    # Selection, loading flags, search and filters
    # ------------------------------------------------------------------

    def set_selected_app(self, app_id: Optional[str]) -> None:
        """Select an app, or restore the cached selection when app_id is None."""
        if app_id is None:
            self.selected_app_id = self._preferences.selected_app_id
        else:
            self.selected_app_id = app_id
            self._preferences.selected_app_id = app_id
        self.notify_listeners()

    def get_selected_app(self) -> Optional[AppRecord]:
        for entry in self._entries:
            if entry.record.id == self.selected_app_id:
                return entry.record
        return None

    def set_loading(self, index: int, value: bool) -> None:
        """
        Set the loading flag of one entry.

        Raises:
            IndexError: If index is outside the current app list
        """
        self._entry_at(index).loading = value
        self.notify_listeners()

    def _entry_at(self, index: int) -> CatalogEntry:
        if index < 0:
            raise IndexError(f"catalog index out of range: {index}")
        return self._entries[index]

    def set_loading_state(self, value: bool) -> None:
        self.is_loading = value
        self.notify_listeners()

    def clear_search_query(self) -> None:
        self.search_query = ""
        self.notify_listeners()

    def update_search_query(self, query: str) -> None:
        self.search_query = query
        self.notify_listeners()

    def toggle_filter_chat(self) -> None:
        self.filter_chat = not self.filter_chat
        self.notify_listeners()

    def toggle_filter_memories(self) -> None:
        self.filter_memories = not self.filter_memories
        self.notify_listeners()

    def toggle_filter_external(self) -> None:
        self.filter_external = not self.filter_external
        self.notify_listeners()

    @staticmethod
    def is_public(app_id: str) -> bool:
        return is_public_app_id(app_id)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _replace_apps(self, records: List[AppRecord], keep_loading: bool = False) -> None:
        # keep_loading carries flags over by app id so in-flight toggles stay latched
        previous = {}
        if keep_loading:
            previous = {entry.record.id: entry.loading for entry in self._entries}
        self._entries = [
            CatalogEntry(record, previous.get(record.id, False)) for record in records
        ]

    def _reload_from_cache(self, keep_loading: bool = False) -> None:
        self._replace_apps(self._preferences.apps_list, keep_loading=keep_loading)

    def load_from_cache(self) -> None:
        """Show the cached app list, if there is one."""
        cached = self._preferences.apps_list
        if cached:
            self._replace_apps(cached)
        self.notify_listeners()

    def persist_to_cache(self) -> None:
        self._preferences.apps_list = self.apps

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def refresh_catalog(self) -> None:
        """
        Fetch the app list, cache it and show what was cached.

        On failure the error propagates and apps and the cache keep
        their previous contents.
        """
        self.set_loading_state(True)
        try:
            records = await self._service.list_apps()
            self._preferences.apps_list = records
            self._reload_from_cache()
        finally:
            self.set_loading_state(False)
        logger.info(f"Catalog refreshed: {len(self._entries)} apps")
        self.notify_listeners()

    async def check_ownership(self, app_id: str) -> None:
        if not is_public_app_id(app_id):
            self.is_app_owner = True
            self.app_public_toggled = False
        else:
            is_owner = await self._service.is_app_owner(app_id)
            self.is_app_owner = is_owner
            self.app_public_toggled = is_owner
        self.notify_listeners()

    async def delete_app(self, app_id: str) -> bool:
        """
        Delete an app on the service and drop it from the list.

        Returns:
            True if the service deleted the app.
        """
        try:
            deleted = await self._service.delete_app(app_id)
        except RemoteServiceError as e:
            logger.error(f"Failed to delete {app_id}: {e}")
            deleted = False

        if deleted:
            self._preferences.apps_list = [
                entry.record for entry in self._entries if entry.record.id != app_id
            ]
            self._reload_from_cache(keep_loading=True)
            self._alerts.show_success(DELETE_SUCCEEDED)
        else:
            self._alerts.show_error(DELETE_FAILED)

        self.notify_listeners()
        return deleted

    def set_app_visibility(self, app_id: str, is_public: bool) -> asyncio.Task:
        """
        Change an app's visibility, optimistically.

        The app leaves the local list and success is reported at once.
        The remote change and the following catalog refresh run in the
        returned task, whose result is True if the service accepted the
        change.
        """
        self.app_public_toggled = is_public
        task = self._spawn(
            self._change_visibility(app_id, is_public), name=f"visibility-{app_id}"
        )

        self._preferences.apps_list = [
            entry.record for entry in self._entries if entry.record.id != app_id
        ]
        self._reload_from_cache(keep_loading=True)

        self._alerts.show_success(VISIBILITY_CHANGED)
        self.notify_listeners()
        return task

    async def _change_visibility(self, app_id: str, is_public: bool) -> bool:
        changed = True
        try:
            await self._service.set_app_visibility(app_id, is_public)
        except RemoteServiceError as e:
            logger.error(f"Failed to change visibility of {app_id}: {e}")
            self._alerts.show_error(VISIBILITY_FAILED)
            changed = False
        await self.refresh_catalog()
        return changed

    def initialize(self, chat_filter_only: bool = False) -> asyncio.Task:
        """
        Prepare the state for a new screen and start a refresh.

        chat_filter_only narrows the filters to chat apps; passing False
        leaves the filters as they are.
        """
        if chat_filter_only:
            self.filter_chat = True
            self.filter_memories = False
            self.filter_external = False

        for entry in self._entries:
            entry.loading = False

        task = self._spawn(self.refresh_catalog(), name="refresh-catalog")
        self.notify_listeners()
        return task

    async def toggle_enabled(self, app_id: str, enable: bool, index: int) -> None:
        """
        Enable or disable the app at index.

        Does nothing while a toggle for that entry is already in flight.
        """
        entry = self._entry_at(index)
        if entry.loading:
            return
        entry.loading = True
        self.notify_listeners()

        applied = False
        try:
            applied = await self._apply_toggle(app_id, enable)
        finally:
            self._clear_loading(entry)
            if applied:
                self._reload_from_cache(keep_loading=True)
            self.notify_listeners()

    async def _apply_toggle(self, app_id: str, enable: bool) -> bool:
        if enable:
            if not await self._service.enable_app(app_id):
                self._alerts.show_blocking_dialog(ENABLE_FAILED_TITLE, ENABLE_FAILED_CONTENT)
                return False
            self._preferences.set_app_enabled(app_id, True)
            self._analytics.record_app_enabled(app_id)
        else:
            await self._service.disable_app(app_id)
            self._preferences.set_app_enabled(app_id, False)
            self._analytics.record_app_disabled(app_id)
        return True

    def _clear_loading(self, entry: CatalogEntry) -> None:
        # The list may have been reloaded while the toggle was in flight
        entry.loading = False
        for live in self._entries:
            if live.record.id == entry.record.id:
                live.loading = False

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {task.get_name()} failed: {error}")

    async def wait_for_background_tasks(self) -> None:
        """Wait until every spawned task has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.wait(pending)
