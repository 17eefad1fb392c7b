"""
Store Configuration - Where the app service lives and where state is kept.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

from common.exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "companion"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "store.json"

ENV_API_URL = "COMPANION_API_URL"
ENV_API_TOKEN = "COMPANION_API_TOKEN"
ENV_REQUEST_TIMEOUT = "COMPANION_REQUEST_TIMEOUT"


@dataclass
class StoreConfig:
    """Configuration for the store CLI and desktop window."""
    api_base_url: str = "http://localhost:8000/"
    api_token: Optional[str] = None
    request_timeout: float = 30.0
    preferences_path: Path = field(default_factory=lambda: CONFIG_DIR / "preferences.json")
    log_file: Optional[Path] = None
    json_logs: bool = False

    def validate(self) -> None:
        """
        Check field values.

        Raises:
            InvalidConfigError: If a field has an unusable value
        """
        if not self.api_base_url.startswith(("http://", "https://")):
            raise InvalidConfigError(
                "api_base_url", self.api_base_url, "must be an http(s) URL"
            )
        if self.request_timeout <= 0:
            raise InvalidConfigError(
                "request_timeout", self.request_timeout, "must be positive"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_base_url": self.api_base_url,
            "api_token": self.api_token,
            "request_timeout": self.request_timeout,
            "preferences_path": str(self.preferences_path),
            "log_file": str(self.log_file) if self.log_file else None,
            "json_logs": self.json_logs,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        config = cls()
        if "api_base_url" in data:
            config.api_base_url = data["api_base_url"]
        if "api_token" in data:
            config.api_token = data["api_token"]
        if "request_timeout" in data:
            config.request_timeout = _parse_timeout(data["request_timeout"])
        if data.get("preferences_path"):
            config.preferences_path = Path(data["preferences_path"]).expanduser()
        if data.get("log_file"):
            config.log_file = Path(data["log_file"]).expanduser()
        if "json_logs" in data:
            config.json_logs = bool(data["json_logs"])
        return config

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "StoreConfig":
        """
        Load configuration from file and environment.

        The file is optional; environment variables override file values.

        Args:
            path: Config file (default ~/.config/companion/store.json)

        Returns:
            Validated StoreConfig.

        Raises:
            InvalidConfigError: If the file is unreadable or a value is invalid
        """
        path = path or DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}

        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise InvalidConfigError("config_file", path, str(e))
            if not isinstance(data, dict):
                raise InvalidConfigError("config_file", path, "must contain a JSON object")
            logger.debug(f"Loaded config from {path}")

        config = cls.from_dict(data)

        env_url = os.environ.get(ENV_API_URL)
        if env_url:
            config.api_base_url = env_url
        env_token = os.environ.get(ENV_API_TOKEN)
        if env_token:
            config.api_token = env_token
        env_timeout = os.environ.get(ENV_REQUEST_TIMEOUT)
        if env_timeout:
            config.request_timeout = _parse_timeout(env_timeout)

        config.validate()
        return config


def _parse_timeout(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidConfigError("request_timeout", value, "must be a number")
