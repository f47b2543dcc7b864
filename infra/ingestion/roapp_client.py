"""Async REST client for the RO App / RemOnline inventory endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any, Dict, List, Mapping

import httpx

LOGGER = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = frozenset({401, 403})


class SourceApiError(RuntimeError):
    """Base error for source API failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SourceAuthorizationError(SourceApiError):
    """Raised when the session cookies were rejected (expired or revoked)."""


@dataclass(frozen=True)
class Page:
    """One page of records returned by the source API."""

    number: int
    data: List[Dict[str, Any]] = field(default_factory=list)
    raw_count: int | None = None

    def __len__(self) -> int:
        # Pagination decisions use the size the server sent, before filtering.
        return self.raw_count if self.raw_count is not None else len(self.data)


class RoappClient:
    """Cookie-authenticated client with page-number pagination."""

    DEFAULT_BASE_URL = "https://web.roapp.io"
    DEFAULT_TIMEOUT = 45.0
    DEFAULT_PAGE_SIZE = 50

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.page_size = int(page_size or self.DEFAULT_PAGE_SIZE)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport)

    async def fetch_page(
        self,
        path: str,
        page: int,
        cookies: str,
        params: Mapping[str, Any] | None = None,
    ) -> Page:
        """Fetch a single page; 401/403 raise :class:`SourceAuthorizationError`."""

        query: Dict[str, Any] = dict(params or {})
        query["page"] = page
        query["pageSize"] = self.page_size
        try:
            response = await self._client.get(
                "/" + path.lstrip("/"),
                params=query,
                headers=self._headers(cookies),
            )
        except httpx.HTTPError as exc:
            raise SourceApiError(f"Source API request to {path} failed: {exc}") from exc

        if response.status_code in AUTH_FAILURE_STATUSES:
            raise SourceAuthorizationError(
                f"Source API rejected the session for {path} (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code < 200 or response.status_code >= 300:
            raise SourceApiError(
                f"Source API responded with HTTP {response.status_code} for {path}: {response.text[:200]}",
                status_code=response.status_code,
            )
        payload = self._parse_payload(response, path)
        items = self._extract_items(payload)
        records = [dict(item) for item in items if isinstance(item, Mapping)]
        LOGGER.debug("Fetched %s page %d with %d records", path, page, len(items))
        return Page(number=page, data=records, raw_count=len(items))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RoappClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _headers(self, cookies: str) -> Mapping[str, str]:
        return {
            "Accept": "application/json, text/plain, */*",
            "User-Agent": "stockledger-ingestion/1.0",
            "Cookie": cookies,
        }

    def _parse_payload(self, response: httpx.Response, path: str) -> Any:
        # The web UI answers some errors with HTML; JSON is still attempted
        # regardless of the declared content type.
        try:
            return json.loads(response.text)
        except ValueError as exc:
            raise SourceApiError(
                f"Source API returned a non-JSON body for {path}: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc

    def _extract_items(self, payload: Any) -> List[Any]:
        if isinstance(payload, list):
            items = payload
        elif isinstance(payload, Mapping):
            items = payload.get("data")
            if items is None:
                items = payload.get("items")
            if items is None:
                items = []
        else:
            items = []
        if not isinstance(items, list):
            raise SourceApiError("Source API payload 'data' field is not a list")
        return items


__all__ = ["AUTH_FAILURE_STATUSES", "Page", "RoappClient", "SourceApiError", "SourceAuthorizationError"]
