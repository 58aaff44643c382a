"""Async client for the wger REST API.

Thin transport used by the routine engine:
- GET/POST/PATCH/DELETE against collection paths, authenticated whenever
  credentials are configured (the exercise catalogue is public)
- Retries timeouts, network errors and 5xx with exponential backoff for GET,
  PATCH and DELETE; a POST is sent once
- One token refresh and retry on 401 when logged in with a JWT
- Every failure surfaces as a RemoteError subclass
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
from loguru import logger

from wger_routines.config.settings import Settings
from wger_routines.integrations.wger.auth import WgerAuthManager
from wger_routines.routines.errors import DecodeError, NotFoundError, RemoteError

MAX_BACKOFF_SECONDS = 10.0

# POST is not idempotent: a request the server saved before failing would be
# created twice if resent
RETRYABLE_METHODS = frozenset({"GET", "PATCH", "DELETE"})


class WgerClient:
    def __init__(
        self,
        base_url: str,
        auth: WgerAuthManager,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        owns_http: bool | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_seconds = backoff_seconds
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None if owns_http is None else owns_http

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        auth: WgerAuthManager | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> WgerClient:
        """Wire a client and auth manager over one HTTP connection pool.

        A pool built here is owned by the client and released by ``aclose()``.
        """
        owns_http = http_client is None
        http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        return cls(
            settings.wger_base_url,
            auth or WgerAuthManager.from_settings(settings, http_client=http_client),
            http_client=http_client,
            timeout=settings.http_timeout_seconds,
            max_retries=settings.http_max_retries,
            backoff_seconds=settings.retry_backoff_seconds,
            owns_http=owns_http,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def auth(self) -> WgerAuthManager:
        return self._auth

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, body: dict[str, Any]) -> Any:
        return await self._request("POST", path, body=body)

    async def patch(self, path: str, body: dict[str, Any]) -> Any:
        return await self._request("PATCH", path, body=body)

    async def delete(self, path: str) -> None:
        await self._request("DELETE", path)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
        await self._auth.aclose()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = self._url(path)
        retryable = method in RETRYABLE_METHODS
        attempt = 0
        refreshed = False

        while True:
            headers = await self._auth.authorization_header() if self._auth.has_credentials() else {}
            headers["Accept"] = "application/json"
            logger.debug(f"wger {method} {path} attempt={attempt + 1}", params=params)

            try:
                response = await self._http.request(
                    method,
                    url,
                    params=params,
                    json=body,
                    headers=headers,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as e:
                if retryable and attempt < self._max_retries - 1:
                    await self._backoff(method, path, attempt, "timeout")
                    attempt += 1
                    continue
                raise RemoteError(
                    f"{method} {path} timed out after {attempt + 1} attempts",
                    method=method,
                    path=path,
                ) from e
            except httpx.RequestError as e:
                if retryable and attempt < self._max_retries - 1:
                    await self._backoff(method, path, attempt, f"network error: {e!s}")
                    attempt += 1
                    continue
                raise RemoteError(
                    f"Network error on {method} {path}: {e!s}",
                    method=method,
                    path=path,
                ) from e

            if response.status_code == 401 and self._auth.uses_jwt and not refreshed:
                logger.warning(f"wger {method} {path} returned 401, refreshing token")
                refreshed = True
                await self._auth.refresh()
                continue

            if response.status_code >= 500 and retryable and attempt < self._max_retries - 1:
                await self._backoff(method, path, attempt, f"HTTP {response.status_code}")
                attempt += 1
                continue

            if response.is_error:
                raise self._status_error(method, path, response)

            return self._parse(method, path, response)

    async def _backoff(self, method: str, path: str, attempt: int, reason: str) -> None:
        wait_time = min(self._backoff_seconds * 2**attempt, MAX_BACKOFF_SECONDS)
        logger.warning(
            f"wger {method} {path} failed ({reason}). Retrying in {wait_time}s "
            f"(attempt {attempt + 1}/{self._max_retries})"
        )
        if wait_time > 0:
            await asyncio.sleep(wait_time)

    @staticmethod
    def _status_error(method: str, path: str, response: httpx.Response) -> RemoteError:
        detail = _error_detail(response)
        error_cls = NotFoundError if response.status_code == 404 else RemoteError
        logger.error(f"wger {method} {path} failed with HTTP {response.status_code}: {detail}")
        return error_cls(
            f"{method} {path} failed: {detail}",
            status_code=response.status_code,
            method=method,
            path=path,
        )

    @staticmethod
    def _parse(method: str, path: str, response: httpx.Response) -> Any:
        if method == "DELETE" or response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
                method=method,
                path=path,
            ) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return json.dumps(data, separators=(",", ":"), default=str)[:500]
