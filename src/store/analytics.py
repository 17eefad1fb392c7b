"""
Analytics sinks - usage events emitted when apps are enabled or disabled.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import List, Dict, Any

logger = logging.getLogger(__name__)

APP_ENABLED_EVENT = "App Enabled"
APP_DISABLED_EVENT = "App Disabled"


class AnalyticsSink(ABC):
    """Receives app usage events."""

    @abstractmethod
    def record_app_enabled(self, app_id: str) -> None:
        pass

    @abstractmethod
    def record_app_disabled(self, app_id: str) -> None:
        pass


class LoggingAnalytics(AnalyticsSink):
    """
    Writes events to the log and keeps them for the session.

    Attributes:
        events: Recorded events, oldest first
    """

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def _track(self, event: str, **properties: Any) -> None:
        self.events.append({"event": event, "time": time.time(), **properties})
        logger.info(f"{event}: {properties}")

    def record_app_enabled(self, app_id: str) -> None:
        self._track(APP_ENABLED_EVENT, app_id=app_id)

    def record_app_disabled(self, app_id: str) -> None:
        self._track(APP_DISABLED_EVENT, app_id=app_id)
