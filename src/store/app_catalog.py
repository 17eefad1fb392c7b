"""
App Catalog - Records for third-party apps and their filtering rules.

An app is an integration that can be enabled for chat, for memory
processing, or as an external integration. Records come from the app
service and are mirrored in the local preference store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable

PRIVATE_MARKER = "private"


class AppCapability(Enum):
    """What an app can plug into."""
    CHAT = "chat"
    MEMORIES = "memories"
    EXTERNAL_INTEGRATION = "external_integration"
    PROACTIVE_NOTIFICATION = "proactive_notification"


def is_public_app_id(app_id: str) -> bool:
    """Apps whose id contains "private" are private, everything else is public."""
    return PRIVATE_MARKER not in app_id


def _capability_list(value: Any) -> List[str]:
    # A single capability may arrive as a bare string
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


_KNOWN_FIELDS = (
    "id", "name", "author", "description", "image", "capabilities",
    "enabled", "private", "uid", "installs", "rating_avg", "rating_count",
)


@dataclass
class AppRecord:
    """Information about an app."""
    id: str
    name: str = ""
    author: str = ""
    description: str = ""
    image: Optional[str] = None

    # Capability values are kept as strings; the service may add new ones
    capabilities: List[str] = field(default_factory=list)

    enabled: bool = False
    private: bool = False
    uid: Optional[str] = None  # Owner

    installs: int = 0
    rating_avg: Optional[float] = None
    rating_count: int = 0

    # Server fields this client does not interpret
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_public(self) -> bool:
        return is_public_app_id(self.id)

    def has_capability(self, capability: AppCapability) -> bool:
        return capability.value in self.capabilities

    def works_with_chat(self) -> bool:
        return self.has_capability(AppCapability.CHAT)

    def works_with_memories(self) -> bool:
        return self.has_capability(AppCapability.MEMORIES)

    def works_externally(self) -> bool:
        return self.has_capability(AppCapability.EXTERNAL_INTEGRATION)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "description": self.description,
            "image": self.image,
            "capabilities": list(self.capabilities),
            "enabled": self.enabled,
            "private": self.private,
            "uid": self.uid,
            "installs": self.installs,
            "rating_avg": self.rating_avg,
            "rating_count": self.rating_count,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppRecord":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            author=data.get("author", ""),
            description=data.get("description", ""),
            image=data.get("image"),
            capabilities=_capability_list(data.get("capabilities")),
            enabled=bool(data.get("enabled", False)),
            private=bool(data.get("private", False)),
            uid=data.get("uid"),
            installs=data.get("installs") or 0,
            rating_avg=data.get("rating_avg"),
            rating_count=data.get("rating_count") or 0,
            extra={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )


def filter_apps(
    apps: Iterable[AppRecord],
    chat: bool = True,
    memories: bool = True,
    external: bool = True,
    query: str = "",
) -> List[AppRecord]:
    """
    Filter apps by capability toggles and a name search.

    An app passes if any enabled toggle matches one of its capabilities.
    Apps with none of the three capabilities never pass.

    Args:
        apps: Apps to filter, order is preserved
        chat: Include apps that work with chat
        memories: Include apps that work with memories
        external: Include external integrations
        query: Case-insensitive substring of the app name

    Returns:
        List of matching apps.
    """
    results = [
        app for app in apps
        if (chat and app.works_with_chat())
        or (memories and app.works_with_memories())
        or (external and app.works_externally())
    ]

    if query:
        query_lower = query.lower()
        results = [app for app in results if query_lower in app.name.lower()]

    return results
