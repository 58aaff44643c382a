"""Credential handling for the wger API.

Two flavours are supported:
- a permanent API key, sent as ``Authorization: Token <key>``
- username/password, exchanged at ``POST /token`` for a JWT pair and sent as
  ``Authorization: Bearer <access>``; ``refresh()`` renews the access token
  with ``POST /token/refresh`` and falls back to a fresh login
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from wger_routines.config.settings import Settings
from wger_routines.routines.errors import AuthenticationError, RemoteError

TOKEN_PATH = "/token"
TOKEN_REFRESH_PATH = "/token/refresh"


class WgerAuthManager:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        username: str = "",
        password: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._username = username
        self._password = password
        self._timeout = timeout
        self._http = http_client
        self._owns_http = http_client is None
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> WgerAuthManager:
        return cls(
            base_url=settings.wger_base_url,
            api_key=settings.wger_api_key,
            username=settings.wger_username,
            password=settings.wger_password,
            http_client=http_client,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def method(self) -> str:
        if self._api_key:
            return "api_key"
        if self._username and self._password:
            return "password"
        return "none"

    @property
    def uses_jwt(self) -> bool:
        return self.method == "password"

    def has_credentials(self) -> bool:
        return self.method != "none"

    async def get_token(self) -> str:
        """Return a usable token, logging in first if needed.

        Raises:
            AuthenticationError: No credentials are configured or login was refused.
            RemoteError: The token endpoint could not be reached.
        """
        if not self.has_credentials():
            raise AuthenticationError("Authentication required.")
        if self._api_key:
            return self._api_key

        if self._access_token is None:
            async with self._lock:
                # Another caller may have logged in while we waited
                if self._access_token is None:
                    await self._login()
        assert self._access_token is not None
        return self._access_token

    async def authorization_header(self) -> dict[str, str]:
        token = await self.get_token()
        scheme = "Token" if self._api_key else "Bearer"
        return {"Authorization": f"{scheme} {token}"}

    async def refresh(self) -> None:
        """Drop the current access token and obtain a new one."""
        if not self.uses_jwt:
            return
        async with self._lock:
            self._access_token = None
            if self._refresh_token:
                try:
                    data = await self._post_json(TOKEN_REFRESH_PATH, {"refresh": self._refresh_token})
                    self._access_token = str(data["access"])
                    logger.debug("Refreshed wger access token")
                    return
                except (AuthenticationError, KeyError) as e:
                    logger.warning(f"Token refresh failed, logging in again: {e!s}")
                    self._refresh_token = None
            await self._login()

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _login(self) -> None:
        data = await self._post_json(
            TOKEN_PATH,
            {"username": self._username, "password": self._password},
        )
        try:
            self._access_token = str(data["access"])
        except KeyError as e:
            raise AuthenticationError("wger token response did not contain an access token.") from e
        self._refresh_token = data.get("refresh")
        logger.info(f"Obtained wger access token for user={self._username}")

    async def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await self._http.post(f"{self._base_url}{path}", json=body, timeout=self._timeout)
        except httpx.RequestError as e:
            raise RemoteError(f"Network error calling {path}: {e!s}", method="POST", path=path) from e

        if response.status_code in (400, 401, 403):
            raise AuthenticationError(f"wger rejected the credentials (HTTP {response.status_code}).")
        if response.is_error:
            raise RemoteError(
                f"HTTP {response.status_code} from {path}",
                status_code=response.status_code,
                method="POST",
                path=path,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"Non-JSON response from {path}", method="POST", path=path) from e
        if not isinstance(data, dict):
            raise RemoteError(f"Unexpected token response from {path}", method="POST", path=path)
        return data
