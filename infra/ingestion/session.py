"""Cookie session handling for the inventory source API.

The source API authenticates with browser cookies issued by a separate login
service.  Cookies are cached for a TTL in a :class:`LookupStore`; a forced
refresh asks the login service to bypass its own cache.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from .lookup_store import Clock, LookupStore

LOGGER = logging.getLogger(__name__)


class LoginServiceError(RuntimeError):
    """Raised when the login service does not return usable cookies."""


class LoginServiceClient:
    """Thin client for the ``/get-cookies`` endpoint of the login service."""

    LOGIN_ENDPOINT = "/get-cookies"
    DEFAULT_TIMEOUT = 45.0

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise LoginServiceError("LOGIN_SERVICE_URL must be configured")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._transport = transport

    async def get_cookies(self, username: str, password: str, *, force: bool = False) -> str:
        if not username or not password:
            raise LoginServiceError("Source API username and password must be configured")
        params = {"force": "true"} if force else None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}{self.LOGIN_ENDPOINT}",
                    params=params,
                    json={"username": username, "password": password},
                )
            except httpx.HTTPError as exc:
                raise LoginServiceError(f"Login service request failed: {exc}") from exc
        payload = _json_or_none(response)
        if not isinstance(payload, Mapping):
            raise LoginServiceError(f"Login service responded with HTTP {response.status_code} and no JSON body")
        cookies = payload.get("cookies")
        if not payload.get("success") or not cookies:
            reason = payload.get("error") or "no cookies returned"
            raise LoginServiceError(f"Login service error: {reason}")
        return str(cookies)


class SessionManager:
    """Process-wide cookie cache shared by every fetch against the source API."""

    def __init__(
        self,
        login_client: LoginServiceClient,
        *,
        username: str,
        password: str,
        ttl_seconds: float = 1800.0,
        clock: Clock | None = None,
    ) -> None:
        self._login_client = login_client
        self._username = username
        self._password = password
        self._force_next = False
        self._store: LookupStore[str, str] = LookupStore(self._login, ttl_seconds=ttl_seconds, clock=clock)

    @property
    def logins(self) -> int:
        return self._store.loads

    async def cookies(self) -> str:
        return await self._store.get(self._username)

    async def refresh(self) -> str:
        """Force new cookies; concurrent refreshes share one login."""

        self._force_next = True
        try:
            cookies = await self._store.refresh(self._username)
        finally:
            self._force_next = False
        LOGGER.info("Refreshed source API session cookies")
        return cookies

    async def _login(self, username: str) -> str:
        force, self._force_next = self._force_next, False
        return await self._login_client.get_cookies(username, self._password, force=force)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


__all__ = ["LoginServiceClient", "LoginServiceError", "SessionManager"]
