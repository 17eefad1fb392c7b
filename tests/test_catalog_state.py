"""
Tests for the catalog state manager.
"""

import asyncio
import logging
import pytest

from common.exceptions import RemoteServiceError
from store.catalog_state import (
    CatalogState,
    DELETE_FAILED,
    DELETE_SUCCEEDED,
    ENABLE_FAILED_TITLE,
    VISIBILITY_CHANGED,
    VISIBILITY_FAILED,
)
from store.preferences import PreferenceStore, NO_SELECTED_APP
from store.analytics import APP_ENABLED_EVENT, APP_DISABLED_EVENT

pytestmark = pytest.mark.unit


def _ids(apps):
    return [app.id for app in apps]


async def _until(predicate, limit=50):
    """Yield to the loop until predicate() holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


class TestDefaults:
    """A fresh state starts empty with every filter on."""

    def test_initial_fields(self, catalog_state):
        assert catalog_state.apps == []
        assert catalog_state.app_loading == []
        assert catalog_state.selected_app_id == NO_SELECTED_APP
        assert catalog_state.filter_chat is True
        assert catalog_state.filter_memories is True
        assert catalog_state.filter_external is True
        assert catalog_state.search_query == ""
        assert catalog_state.is_app_owner is False
        assert catalog_state.app_public_toggled is False
        assert catalog_state.is_loading is False


class TestSelection:
    """Tests for selected app handling."""

    def test_set_selected_app_persists(self, catalog_state, prefs, notifications):
        catalog_state.set_selected_app("weather_bot")

        assert catalog_state.selected_app_id == "weather_bot"
        assert prefs.selected_app_id == "weather_bot"
        assert len(notifications) == 1

    def test_set_selected_app_none_restores_cached(self, fake_service, prefs_path, alerts, analytics):
        PreferenceStore(prefs_path).selected_app_id = "chat_coach"

        state = CatalogState(fake_service, PreferenceStore(prefs_path), alerts, analytics)
        state.set_selected_app(None)

        assert state.selected_app_id == "chat_coach"

    def test_get_selected_app_without_selection(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())

        assert catalog_state.apps
        assert catalog_state.get_selected_app() is None

    def test_get_selected_app_on_empty_catalog(self, catalog_state):
        catalog_state.set_selected_app("weather_bot")
        assert catalog_state.get_selected_app() is None

    def test_get_selected_app_returns_record(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())
        catalog_state.set_selected_app("chat_coach")

        app = catalog_state.get_selected_app()
        assert app is not None
        assert app.name == "Chat Coach"


class TestLoadingFlags:
    """Tests for per-entry loading flags."""

    def test_set_loading(self, catalog_state, notifications):
        asyncio.run(catalog_state.refresh_catalog())
        before = len(notifications)

        catalog_state.set_loading(1, True)

        assert catalog_state.app_loading[1] is True
        assert catalog_state.app_loading.count(True) == 1
        assert len(notifications) == before + 1

    def test_set_loading_out_of_range(self, catalog_state):
        with pytest.raises(IndexError):
            catalog_state.set_loading(0, True)

    def test_set_loading_negative_index(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())
        with pytest.raises(IndexError):
            catalog_state.set_loading(-1, True)


class TestSearchAndFilters:
    """Tests for search text and capability filters."""

    def test_update_and_clear_search(self, catalog_state, notifications):
        catalog_state.update_search_query("coach")
        assert catalog_state.search_query == "coach"

        catalog_state.clear_search_query()
        assert catalog_state.search_query == ""
        assert len(notifications) == 2

    def test_toggle_filters(self, catalog_state, notifications):
        catalog_state.toggle_filter_chat()
        catalog_state.toggle_filter_memories()
        catalog_state.toggle_filter_external()

        assert catalog_state.filter_chat is False
        assert catalog_state.filter_memories is False
        assert catalog_state.filter_external is False
        assert len(notifications) == 3

        catalog_state.toggle_filter_chat()
        assert catalog_state.filter_chat is True

    def test_filtered_apps_by_capability(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())

        # Nudger has none of the filterable capabilities
        assert _ids(catalog_state.filtered_apps) == [
            "weather_bot", "journal_private_01", "zapier_sync", "chat_coach",
        ]

        catalog_state.toggle_filter_memories()
        catalog_state.toggle_filter_external()
        assert _ids(catalog_state.filtered_apps) == ["weather_bot", "chat_coach"]

    def test_filtered_apps_by_query(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())
        catalog_state.update_search_query("ZAP")

        assert _ids(catalog_state.filtered_apps) == ["zapier_sync"]

    def test_find_index(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())

        assert catalog_state.find_index("zapier_sync") == 2
        assert catalog_state.find_index("missing") is None


class TestIsPublic:
    """Visibility comes from the app id alone."""

    def test_private_id(self, catalog_state):
        assert catalog_state.is_public("private_app_1") is False

    def test_public_id(self, catalog_state):
        assert catalog_state.is_public("pub_app_2") is True

    def test_static_access(self):
        assert CatalogState.is_public("my_private_thing") is False


class TestRefresh:
    """Tests for refresh_catalog."""

    def test_refresh_loads_apps(self, catalog_state, fake_service, prefs):
        asyncio.run(catalog_state.refresh_catalog())

        assert _ids(catalog_state.apps) == _ids(fake_service.apps)
        assert _ids(prefs.apps_list) == _ids(fake_service.apps)
        assert len(catalog_state.app_loading) == len(catalog_state.apps)
        assert not any(catalog_state.app_loading)
        assert catalog_state.is_loading is False

    def test_refresh_resets_loading_flags(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())
        catalog_state.set_loading(0, True)
        catalog_state.set_loading(3, True)

        asyncio.run(catalog_state.refresh_catalog())

        assert catalog_state.app_loading == [False] * len(catalog_state.apps)

    def test_refresh_replaces_wholesale(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.apps = fake_service.apps[:2]

        asyncio.run(catalog_state.refresh_catalog())

        assert _ids(catalog_state.apps) == ["weather_bot", "journal_private_01"]
        assert len(catalog_state.app_loading) == 2

    def test_refresh_sets_loading_state_while_fetching(self, catalog_state):
        observed = []
        catalog_state.add_listener(lambda: observed.append(catalog_state.is_loading))

        asyncio.run(catalog_state.refresh_catalog())

        assert observed[0] is True
        assert observed[-1] is False

    def test_refresh_failure_keeps_previous(self, catalog_state, fake_service, prefs):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.apps = []
        fake_service.fail_with["list_apps"] = RemoteServiceError("v1/apps", "boom")

        with pytest.raises(RemoteServiceError):
            asyncio.run(catalog_state.refresh_catalog())

        assert len(catalog_state.apps) == 5
        assert len(prefs.apps_list) == 5
        assert catalog_state.is_loading is False


class TestCache:
    """Tests for load_from_cache and persist_to_cache."""

    def test_load_from_empty_cache(self, catalog_state, notifications):
        catalog_state.load_from_cache()

        assert catalog_state.apps == []
        assert len(notifications) == 1

    def test_load_from_cache(self, catalog_state, prefs, sample_apps):
        prefs.apps_list = sample_apps[:3]

        catalog_state.load_from_cache()

        assert _ids(catalog_state.apps) == _ids(sample_apps[:3])
        assert catalog_state.app_loading == [False, False, False]

    def test_wrong_shape_cache_acts_empty(self, catalog_state, prefs_path):
        prefs_path.parent.mkdir(parents=True)
        prefs_path.write_text('{"apps_list": 5}')

        catalog_state.load_from_cache()
        assert catalog_state.apps == []

        asyncio.run(catalog_state.refresh_catalog())
        asyncio.run(catalog_state.toggle_enabled("weather_bot", True, 0))
        assert catalog_state.apps[0].enabled is True

    def test_empty_cache_does_not_clear_apps(self, catalog_state, prefs):
        asyncio.run(catalog_state.refresh_catalog())
        prefs.apps_list = []

        catalog_state.load_from_cache()

        assert len(catalog_state.apps) == 5

    def test_persist_to_cache(self, catalog_state, prefs_path):
        asyncio.run(catalog_state.refresh_catalog())
        catalog_state.apps[0].name = "Renamed"

        catalog_state.persist_to_cache()

        reloaded = PreferenceStore(prefs_path).apps_list
        assert reloaded[0].name == "Renamed"


class TestOwnership:
    """Tests for check_ownership."""

    def test_private_app_short_circuits(self, catalog_state, fake_service, notifications):
        asyncio.run(catalog_state.check_ownership("journal_private_01"))

        assert catalog_state.is_app_owner is True
        assert catalog_state.app_public_toggled is False
        assert fake_service.count("is_app_owner") == 0
        assert len(notifications) == 1

    @pytest.mark.parametrize("owner", [True, False])
    def test_public_app_asks_service(self, catalog_state, fake_service, owner):
        fake_service.owner_result = owner

        asyncio.run(catalog_state.check_ownership("weather_bot"))

        assert catalog_state.is_app_owner is owner
        assert catalog_state.app_public_toggled is owner
        assert fake_service.calls == [("is_app_owner", "weather_bot")]

    def test_failure_propagates(self, catalog_state, fake_service):
        fake_service.fail_with["is_app_owner"] = RemoteServiceError("owner", "down")

        with pytest.raises(RemoteServiceError):
            asyncio.run(catalog_state.check_ownership("weather_bot"))


class TestDelete:
    """Tests for delete_app."""

    def test_delete_success(
        self, catalog_state, fake_service, prefs_path, alerts, analytics, notifications
    ):
        asyncio.run(catalog_state.refresh_catalog())
        before = len(notifications)

        deleted = asyncio.run(catalog_state.delete_app("journal_private_01"))

        assert deleted is True
        assert "journal_private_01" not in _ids(catalog_state.apps)
        assert len(catalog_state.app_loading) == len(catalog_state.apps)
        assert alerts.successes == [DELETE_SUCCEEDED]
        assert len(notifications) > before

        fresh = CatalogState(fake_service, PreferenceStore(prefs_path), alerts, analytics)
        fresh.load_from_cache()
        assert "journal_private_01" not in _ids(fresh.apps)
        assert len(fresh.apps) == 4

    def test_delete_refused(self, catalog_state, fake_service, alerts, notifications):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.delete_result = False
        before = len(notifications)

        deleted = asyncio.run(catalog_state.delete_app("journal_private_01"))

        assert deleted is False
        assert len(catalog_state.apps) == 5
        assert alerts.errors == [DELETE_FAILED]
        assert alerts.successes == []
        assert len(notifications) == before + 1

    def test_delete_remote_error(self, catalog_state, fake_service, alerts):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.fail_with["delete_app"] = RemoteServiceError("v1/apps/x", "timeout")

        deleted = asyncio.run(catalog_state.delete_app("journal_private_01"))

        assert deleted is False
        assert len(catalog_state.apps) == 5
        assert alerts.errors == [DELETE_FAILED]


class TestVisibility:
    """Tests for set_app_visibility."""

    def test_optimistic_update(self, catalog_state, fake_service, alerts):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            task = catalog_state.set_app_visibility("chat_coach", True)

            # Before the background task gets to run
            assert catalog_state.app_public_toggled is True
            assert "chat_coach" not in _ids(catalog_state.apps)
            assert alerts.successes == [VISIBILITY_CHANGED]
            assert fake_service.count("set_app_visibility") == 0

            return await task

        assert asyncio.run(run()) is True

        assert fake_service.calls[-2:] == [
            ("set_app_visibility", "chat_coach", True),
            ("list_apps",),
        ]
        # The refresh brings back what the service reports
        assert "chat_coach" in _ids(catalog_state.apps)
        assert len(catalog_state.app_loading) == len(catalog_state.apps)

    def test_remote_failure_still_reports_success_first(self, catalog_state, fake_service, alerts):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.fail_with["set_app_visibility"] = RemoteServiceError("vis", "denied")
        refreshes = fake_service.count("list_apps")

        async def run():
            task = catalog_state.set_app_visibility("chat_coach", True)
            assert catalog_state.app_public_toggled is True
            return await task

        assert asyncio.run(run()) is False

        assert catalog_state.app_public_toggled is True
        assert alerts.successes == [VISIBILITY_CHANGED]
        assert alerts.errors == [VISIBILITY_FAILED]
        assert fake_service.count("list_apps") == refreshes + 1

    def test_make_private(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            await catalog_state.set_app_visibility("weather_bot", False)

        asyncio.run(run())

        assert catalog_state.app_public_toggled is False
        assert ("set_app_visibility", "weather_bot", False) in fake_service.calls


class TestInitialize:
    """Tests for initialize."""

    def test_chat_filter_only(self, catalog_state):
        async def run():
            await catalog_state.initialize(chat_filter_only=True)

        asyncio.run(run())

        assert catalog_state.filter_chat is True
        assert catalog_state.filter_memories is False
        assert catalog_state.filter_external is False

    def test_without_chat_filter_keeps_filters(self, catalog_state):
        catalog_state.toggle_filter_memories()

        async def run():
            await catalog_state.initialize(chat_filter_only=False)

        asyncio.run(run())

        assert catalog_state.filter_chat is True
        assert catalog_state.filter_memories is False
        assert catalog_state.filter_external is True

    def test_notifies_before_refresh_completes(self, catalog_state, notifications):
        async def run():
            task = catalog_state.initialize()
            assert notifications == [0]
            assert catalog_state.apps == []
            await task

        asyncio.run(run())

        assert len(catalog_state.apps) == 5
        assert not any(catalog_state.app_loading)

    def test_resets_stale_loading_flags(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())
        catalog_state.set_loading(2, True)

        async def run():
            task = catalog_state.initialize()
            assert catalog_state.app_loading == [False] * 5
            await task

        asyncio.run(run())

    def test_background_failure_is_logged(self, catalog_state, fake_service, caplog):
        fake_service.fail_with["list_apps"] = RemoteServiceError("v1/apps", "offline")

        async def run():
            catalog_state.initialize()
            await catalog_state.wait_for_background_tasks()

        with caplog.at_level(logging.ERROR):
            asyncio.run(run())

        assert "refresh-catalog failed" in caplog.text
        assert catalog_state.is_loading is False


class TestToggleEnabled:
    """Tests for toggle_enabled."""

    def test_enable(self, catalog_state, fake_service, prefs, analytics):
        asyncio.run(catalog_state.refresh_catalog())

        asyncio.run(catalog_state.toggle_enabled("weather_bot", True, 0))

        assert catalog_state.apps[0].enabled is True
        assert catalog_state.app_loading[0] is False
        assert prefs.apps_list[0].enabled is True
        assert [e["event"] for e in analytics.events] == [APP_ENABLED_EVENT]
        assert analytics.events[0]["app_id"] == "weather_bot"

    def test_disable(self, catalog_state, fake_service, prefs, analytics):
        asyncio.run(catalog_state.refresh_catalog())

        asyncio.run(catalog_state.toggle_enabled("zapier_sync", False, 2))

        assert catalog_state.apps[2].enabled is False
        assert prefs.apps_list[2].enabled is False
        assert fake_service.calls[-1] == ("disable_app", "zapier_sync")
        assert [e["event"] for e in analytics.events] == [APP_DISABLED_EVENT]

    def test_enable_refused(self, catalog_state, fake_service, prefs, alerts, analytics):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.enable_result = False
        before = [app.to_dict() for app in catalog_state.apps]

        asyncio.run(catalog_state.toggle_enabled("weather_bot", True, 0))

        assert catalog_state.app_loading[0] is False
        assert [app.to_dict() for app in catalog_state.apps] == before
        assert prefs.apps_list[0].enabled is False
        assert len(alerts.dialogs) == 1
        assert alerts.dialogs[0][0] == ENABLE_FAILED_TITLE
        assert analytics.events == []

    def test_marks_loading_while_in_flight(self, catalog_state):
        asyncio.run(catalog_state.refresh_catalog())
        observed = []
        catalog_state.add_listener(lambda: observed.append(catalog_state.app_loading[0]))

        asyncio.run(catalog_state.toggle_enabled("weather_bot", True, 0))

        assert observed[0] is True
        assert observed[-1] is False

    def test_second_toggle_on_same_index_is_noop(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            fake_service.gate = asyncio.Event()
            first = asyncio.create_task(catalog_state.toggle_enabled("weather_bot", True, 0))
            await _until(lambda: fake_service.count("enable_app") == 1)

            await catalog_state.toggle_enabled("weather_bot", True, 0)
            assert catalog_state.app_loading[0] is True

            fake_service.gate.set()
            await first

        asyncio.run(run())

        assert fake_service.count("enable_app") == 1
        assert catalog_state.app_loading[0] is False

    def test_different_indices_run_concurrently(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            fake_service.gate = asyncio.Event()
            first = asyncio.create_task(catalog_state.toggle_enabled("weather_bot", True, 0))
            second = asyncio.create_task(catalog_state.toggle_enabled("chat_coach", True, 3))
            await _until(lambda: fake_service.count("enable_app") == 2)
            assert catalog_state.app_loading == [True, False, False, True, False]

            fake_service.gate.set()
            await asyncio.gather(first, second)

        asyncio.run(run())

        assert catalog_state.apps[0].enabled is True
        assert catalog_state.apps[3].enabled is True
        assert not any(catalog_state.app_loading)

    def test_other_toggle_stays_latched_after_reload(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            fake_service.gate = asyncio.Event()
            slow = asyncio.create_task(catalog_state.toggle_enabled("weather_bot", True, 0))
            await _until(lambda: fake_service.count("enable_app") == 1)

            # A delete reloads the list from the cache mid-flight
            await catalog_state.delete_app("nudger")
            assert catalog_state.app_loading[0] is True

            fake_service.gate.set()
            await slow

        asyncio.run(run())

        assert not any(catalog_state.app_loading)
        assert catalog_state.apps[0].enabled is True

    def test_refresh_during_toggle(self, catalog_state, fake_service):
        asyncio.run(catalog_state.refresh_catalog())

        async def run():
            fake_service.gate = asyncio.Event()
            toggle = asyncio.create_task(catalog_state.toggle_enabled("weather_bot", True, 0))
            await _until(lambda: fake_service.count("enable_app") == 1)

            await catalog_state.refresh_catalog()
            assert not any(catalog_state.app_loading)

            fake_service.gate.set()
            await toggle

        asyncio.run(run())

        assert len(catalog_state.app_loading) == len(catalog_state.apps)
        assert not any(catalog_state.app_loading)
        assert catalog_state.apps[0].enabled is True

    def test_remote_error_clears_flag_and_propagates(self, catalog_state, fake_service, notifications):
        asyncio.run(catalog_state.refresh_catalog())
        fake_service.fail_with["disable_app"] = RemoteServiceError("v1/apps/disable", "HTTP 500")
        before = len(notifications)

        with pytest.raises(RemoteServiceError):
            asyncio.run(catalog_state.toggle_enabled("zapier_sync", False, 2))

        assert catalog_state.app_loading[2] is False
        assert catalog_state.apps[2].enabled is True
        assert len(notifications) == before + 2

    def test_index_out_of_range(self, catalog_state):
        with pytest.raises(IndexError):
            asyncio.run(catalog_state.toggle_enabled("weather_bot", True, 0))


class TestListeners:
    """Tests for listener registration."""

    def test_remove_listener(self, catalog_state):
        calls = []
        listener = lambda: calls.append(1)  # noqa: E731

        catalog_state.add_listener(listener)
        catalog_state.toggle_filter_chat()
        catalog_state.remove_listener(listener)
        catalog_state.toggle_filter_chat()

        assert calls == [1]

    def test_remove_unknown_listener(self, catalog_state):
        catalog_state.remove_listener(lambda: None)
