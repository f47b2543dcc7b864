"""Collects every source feed for one product into :class:`OperationSources`."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import logging
from typing import Any, Dict, List, Mapping

import httpx

from infra.settings import Settings
from ledger.types import SOURCE_GOODS_FLOW, SOURCE_NAMES, OperationSources

from .adapters import ADAPTERS, RecordAdapter
from .pager import DEFAULT_MAX_PAGES, AuthRefreshFailure, FetchResult, fetch_all_pages
from .roapp_client import Page, RoappClient
from .session import LoginServiceClient, LoginServiceError, SessionManager

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedHistory:
    """Raw records and adapted operations for one product, per source."""

    product_id: str
    sources: OperationSources
    results: Dict[str, FetchResult] = field(default_factory=dict)
    records: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return all(result.ok for result in self.results.values())

    @property
    def auth_failed(self) -> bool:
        """True when every fetched source was refused a session."""

        return bool(self.results) and all(result.auth_failed for result in self.results.values())

    @property
    def failed_sources(self) -> List[str]:
        return [name for name, result in self.results.items() if not result.ok]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "complete": self.complete,
            "auth_failed": self.auth_failed,
            "results": {name: result.as_dict() for name, result in self.results.items()},
        }

    def dump_payload(self) -> Dict[str, Any]:
        """Source records in the layout ``stockledger replay`` reads back."""

        return {"product_id": self.product_id, **{name: list(items) for name, items in self.records.items()}}


class ProductHistoryFetcher:
    """Fetch the configured source feeds of a product one after another."""

    def __init__(
        self,
        client: RoappClient,
        session: SessionManager,
        *,
        resources: Mapping[str, str],
        max_pages: int = DEFAULT_MAX_PAGES,
        adapters: Mapping[str, RecordAdapter] | None = None,
    ) -> None:
        unknown = sorted(set(resources) - set(SOURCE_NAMES))
        if unknown:
            raise ValueError(f"Unknown source resources: {', '.join(unknown)}")
        self.client = client
        self.session = session
        self.resources = dict(resources)
        self.max_pages = max_pages
        self.adapters = dict(adapters or ADAPTERS)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ProductHistoryFetcher":
        api = settings.source_api
        login_client = LoginServiceClient(
            api.login_service_url or "",
            timeout=api.timeout_seconds,
            transport=transport,
        )
        client = RoappClient(
            base_url=api.base_url,
            timeout=api.timeout_seconds,
            page_size=api.page_size,
            transport=transport,
        )
        session = SessionManager(
            login_client,
            username=api.username or "",
            password=api.password or "",
            ttl_seconds=api.session_ttl_seconds,
        )
        return cls(client, session, resources=api.resources, max_pages=api.max_pages)

    async def fetch(
        self,
        product_id: str | int,
        start: datetime | date | int | None = None,
        end: datetime | date | int | None = None,
    ) -> FetchedHistory:
        """Fetch every configured source for *product_id* within ``[start, end]``."""

        params = {
            "id": str(product_id),
            "startDate": _epoch_millis(start) if start is not None else 0,
            "endDate": _epoch_millis(end if end is not None else datetime.now(timezone.utc)),
        }
        results: Dict[str, FetchResult] = {}
        records: Dict[str, List[Dict[str, Any]]] = {}
        operations: Dict[str, tuple] = {}
        for name in SOURCE_NAMES:
            path = self.resources.get(name)
            if not path:
                LOGGER.debug("No resource path configured for %s; skipping", name)
                continue
            result = await self._fetch_source(name, path, params)
            results[name] = result
            records[name] = result.records
            operations[name] = tuple(self.adapters[name].to_operations(result.records))

        history = FetchedHistory(
            product_id=str(product_id),
            sources=OperationSources(**operations),
            results=results,
            records=records,
        )
        if not history.complete:
            LOGGER.warning("Incomplete history for product %s: %s", product_id, ", ".join(history.failed_sources))
        return history

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _fetch_source(self, name: str, path: str, params: Mapping[str, Any]) -> FetchResult:
        async def request_page(page: int) -> Page:
            try:
                cookies = await self.session.cookies()
            except LoginServiceError as exc:
                raise AuthRefreshFailure(f"{name}: no usable source API session: {exc}") from exc
            return await self.client.fetch_page(path, page, cookies, params=params)

        return await fetch_all_pages(
            request_page,
            page_size=self.client.page_size,
            max_pages=self.max_pages,
            refresh_credentials=self.session.refresh,
            resource=name,
        )


def operation_sources_from_records(
    records: Mapping[str, Any],
    adapters: Mapping[str, RecordAdapter] | None = None,
) -> OperationSources:
    """Adapt already fetched (e.g. dumped) source records without any I/O."""

    chosen = dict(adapters or ADAPTERS)
    operations: Dict[str, tuple] = {}
    for name in SOURCE_NAMES:
        items = records.get(name)
        if items is None and name == SOURCE_GOODS_FLOW:
            # Goods-flow responses are commonly dumped as the raw ``{"data": [...]}`` body.
            items = records.get("data")
        if not items:
            continue
        if not isinstance(items, list):
            raise ValueError(f"Records for {name} must be a list")
        operations[name] = tuple(chosen[name].to_operations(items))
    return OperationSources(**operations)


def _epoch_millis(value: datetime | date | int) -> int:
    if isinstance(value, bool):
        raise TypeError("Boolean is not a valid date bound")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        moment = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    else:
        moment = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


__all__ = ["FetchedHistory", "ProductHistoryFetcher", "operation_sources_from_records"]
