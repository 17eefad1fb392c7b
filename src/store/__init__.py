"""
Companion Store

Catalog of third-party apps: listing, filtering, enabling and managing
integrations backed by the app service and a local preference cache.
"""

from .app_catalog import AppRecord, AppCapability, filter_apps, is_public_app_id
from .catalog_state import CatalogState, CatalogEntry
from .preferences import PreferenceStore, NO_SELECTED_APP
from .remote import AppService, HttpAppService
from .alerts import AlertSink, ConsoleAlertSink
from .analytics import AnalyticsSink, LoggingAnalytics
from .config import StoreConfig

__all__ = [
    "AppRecord",
    "AppCapability",
    "filter_apps",
    "is_public_app_id",
    "CatalogState",
    "CatalogEntry",
    "PreferenceStore",
    "NO_SELECTED_APP",
    "AppService",
    "HttpAppService",
    "AlertSink",
    "ConsoleAlertSink",
    "AnalyticsSink",
    "LoggingAnalytics",
    "StoreConfig",
]
