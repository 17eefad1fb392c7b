"""
App Service - Remote operations on the app catalog.

The catalog state talks to the service through the async AppService
interface. HttpAppService implements it over the REST API with requests,
running each blocking call in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Any

import requests
from requests.utils import quote

from common.decorators import retry, timed
from common.exceptions import RemoteServiceError, AuthenticationError

from .app_catalog import AppRecord

logger = logging.getLogger(__name__)


def _app_path(app_id: str) -> str:
    """Endpoint for one app; the id is a single escaped path segment."""
    return f"v1/apps/{quote(app_id, safe='')}"


class AppService(ABC):
    """Remote app catalog operations."""

    @abstractmethod
    async def list_apps(self) -> List[AppRecord]:
        """Fetch every app available to the user."""
        pass

    @abstractmethod
    async def enable_app(self, app_id: str) -> bool:
        """Enable an app. Returns False if the service refused."""
        pass

    @abstractmethod
    async def disable_app(self, app_id: str) -> None:
        """Disable an app."""
        pass

    @abstractmethod
    async def delete_app(self, app_id: str) -> bool:
        """Delete an app owned by the user. Returns False if refused."""
        pass

    @abstractmethod
    async def is_app_owner(self, app_id: str) -> bool:
        """Check whether the user owns the app."""
        pass

    @abstractmethod
    async def set_app_visibility(self, app_id: str, is_public: bool) -> None:
        """Make an owned app public or private."""
        pass


class HttpAppService(AppService):
    """
    AppService over the REST API.

    Raises RemoteServiceError for transport failures and unexpected
    replies, and AuthenticationError when the token is rejected.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the app service client.

        Args:
            base_url: API root, e.g. https://api.example.com/
            token: Bearer token (optional)
            timeout: Per-request timeout in seconds
            session: requests session to reuse (created if not provided)
        """
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "HttpAppService":
        """Build a client from a StoreConfig."""
        return cls(config.api_base_url, config.api_token, config.request_timeout)

    def close(self) -> None:
        self._session.close()

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._session.request(
            method, url, headers=self._get_headers(), timeout=self.timeout, **kwargs
        )

    @retry(max_attempts=3, delay=0.5, exceptions=(requests.ConnectionError, requests.Timeout))
    def _send_idempotent(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._send(method, url, **kwargs)

    @timed
    def _request(
        self, method: str, endpoint: str, idempotent: bool = False, **kwargs
    ) -> requests.Response:
        """
        Make an API request.

        Args:
            method: HTTP method
            endpoint: Path relative to base_url
            idempotent: Retry on connection errors and timeouts
            **kwargs: Additional arguments for requests

        Returns:
            The response, whatever its status (except 401).
        """
        url = f"{self.base_url}{endpoint}"
        send = self._send_idempotent if idempotent else self._send

        try:
            response = send(method, url, **kwargs)
        except requests.RequestException as e:
            raise RemoteServiceError(endpoint, str(e), cause=e) from e

        if response.status_code == 401:
            raise AuthenticationError(endpoint)

        logger.debug(f"{method} {endpoint} -> {response.status_code}")
        return response

    @staticmethod
    def _json(response: requests.Response, endpoint: str) -> Any:
        if not response.ok:
            raise RemoteServiceError(
                endpoint, f"HTTP {response.status_code}", status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(endpoint, "invalid JSON in response", cause=e) from e

    # Blocking implementations, run via asyncio.to_thread

    def _fetch_apps(self) -> List[AppRecord]:
        endpoint = "v1/apps"
        result = self._json(self._request("GET", endpoint, idempotent=True), endpoint)
        if isinstance(result, dict):
            result = result.get("apps", [])

        apps = []
        for app_data in result:
            try:
                apps.append(AppRecord.from_dict(app_data))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed app from service: {e}")
        logger.info(f"Fetched {len(apps)} apps")
        return apps

    def _post_enable(self, app_id: str) -> bool:
        response = self._request("POST", "v1/apps/enable", params={"app_id": app_id})
        if response.status_code != 200:
            logger.warning(f"Enable {app_id} refused: HTTP {response.status_code}")
            return False
        return True

    def _post_disable(self, app_id: str) -> None:
        endpoint = "v1/apps/disable"
        response = self._request("POST", endpoint, params={"app_id": app_id})
        if not response.ok:
            raise RemoteServiceError(
                endpoint, f"HTTP {response.status_code}", status_code=response.status_code
            )

    def _delete(self, app_id: str) -> bool:
        response = self._request("DELETE", _app_path(app_id))
        if response.status_code != 200:
            logger.warning(f"Delete {app_id} refused: HTTP {response.status_code}")
            return False
        return True

    def _get_owner(self, app_id: str) -> bool:
        endpoint = f"{_app_path(app_id)}/is-owner"
        result = self._json(self._request("GET", endpoint, idempotent=True), endpoint)
        if isinstance(result, dict):
            return bool(result.get("is_owner", False))
        return bool(result)

    def _patch_visibility(self, app_id: str, is_public: bool) -> None:
        endpoint = f"{_app_path(app_id)}/change-visibility"
        response = self._request(
            "PATCH", endpoint, params={"private": "false" if is_public else "true"}
        )
        if not response.ok:
            raise RemoteServiceError(
                endpoint, f"HTTP {response.status_code}", status_code=response.status_code
            )

    # AppService

    async def list_apps(self) -> List[AppRecord]:
        return await asyncio.to_thread(self._fetch_apps)

    async def enable_app(self, app_id: str) -> bool:
        return await asyncio.to_thread(self._post_enable, app_id)

    async def disable_app(self, app_id: str) -> None:
        await asyncio.to_thread(self._post_disable, app_id)

    async def delete_app(self, app_id: str) -> bool:
        return await asyncio.to_thread(self._delete, app_id)

    async def is_app_owner(self, app_id: str) -> bool:
        return await asyncio.to_thread(self._get_owner, app_id)

    async def set_app_visibility(self, app_id: str, is_public: bool) -> None:
        await asyncio.to_thread(self._patch_visibility, app_id, is_public)
