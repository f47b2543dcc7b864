"""Sequential page-number pagination with a single credential refresh per page.

The source feeds paginate by page number over a record set that may be
written concurrently, so pages are requested strictly one after another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, Union

from .roapp_client import Page, SourceAuthorizationError

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_PAGES = 200

PageLike = Union[Page, Sequence[Mapping[str, Any]]]
RequestPage = Callable[[int], Awaitable[PageLike]]
RefreshCredentials = Callable[[], Awaitable[Any]]


class PaginationError(RuntimeError):
    """Base error for fetches that could not be completed."""


class PaginationOverrun(PaginationError):
    """The page ceiling was reached while the source still returned full pages."""


class AuthRefreshFailure(PaginationError):
    """Credentials were rejected again after the permitted refresh."""


@dataclass
class FetchResult:
    """Records gathered for one resource plus how the fetch ended."""

    resource: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    complete: bool = False
    overrun: bool = False
    auth_failed: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.complete and self.error is None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def raise_for_error(self) -> None:
        """Re-raise the recorded failure for callers that prefer exceptions."""

        if self.error is not None:
            raise self.error

    def as_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "records": len(self.records),
            "pages": self.pages,
            "complete": self.complete,
            "overrun": self.overrun,
            "auth_failed": self.auth_failed,
            "error": self.error_message,
        }


async def fetch_all_pages(
    request_page: RequestPage,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    refresh_credentials: RefreshCredentials | None = None,
    resource: str = "resource",
) -> FetchResult:
    """Request pages 1..n until an empty or short page signals the end.

    * A :class:`SourceAuthorizationError` triggers one ``refresh_credentials``
      call and a retry of the same page; a second rejection aborts the fetch,
      discarding its records, with ``auth_failed`` set.
    * Reaching ``max_pages`` with full pages keeps the partial records and
      sets ``overrun``.
    * Any other error stops pagination and keeps what was gathered so far.
    """

    if page_size < 1:
        raise ValueError("page_size must be positive")
    if max_pages < 1:
        raise ValueError("max_pages must be positive")

    result = FetchResult(resource=resource)
    for page_number in range(1, max_pages + 1):
        try:
            page = await _request_with_refresh(request_page, page_number, refresh_credentials, resource)
        except AuthRefreshFailure as exc:
            LOGGER.warning("Aborting %s fetch on page %d: %s", resource, page_number, exc)
            result.records = []
            result.auth_failed = True
            result.error = exc
            return result
        except Exception as exc:
            LOGGER.warning(
                "Stopping %s fetch early on page %d with %d records: %s",
                resource,
                page_number,
                len(result.records),
                exc,
            )
            result.error = exc
            return result

        records, size = _page_records(page)
        result.pages = page_number
        result.records.extend(records)
        LOGGER.debug("Fetched %s page %d (%d records)", resource, page_number, size)
        if size < page_size:
            result.complete = True
            LOGGER.info("Fetched %d %s records in %d pages", len(result.records), resource, result.pages)
            return result

    result.overrun = True
    result.error = PaginationOverrun(
        f"{resource}: reached the {max_pages}-page ceiling before the source signalled the last page"
    )
    LOGGER.warning("%s (kept %d records)", result.error, len(result.records))
    return result


async def _request_with_refresh(
    request_page: RequestPage,
    page_number: int,
    refresh_credentials: RefreshCredentials | None,
    resource: str,
) -> PageLike:
    try:
        return await request_page(page_number)
    except SourceAuthorizationError as first:
        if refresh_credentials is None:
            raise AuthRefreshFailure(f"{resource}: credentials rejected and no refresh is available") from first
        LOGGER.info("Credentials rejected on %s page %d; refreshing once", resource, page_number)
        try:
            await refresh_credentials()
        except Exception as exc:
            raise AuthRefreshFailure(f"{resource}: credential refresh failed: {exc}") from exc
        try:
            return await request_page(page_number)
        except SourceAuthorizationError as second:
            raise AuthRefreshFailure(
                f"{resource}: credentials rejected again on page {page_number} after refresh"
            ) from second


def _page_records(page: PageLike) -> tuple[List[Dict[str, Any]], int]:
    if isinstance(page, Page):
        return list(page.data), len(page)
    items = list(page or [])
    return [dict(item) for item in items if isinstance(item, Mapping)], len(items)


__all__ = [
    "AuthRefreshFailure",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_PAGE_SIZE",
    "FetchResult",
    "PaginationError",
    "PaginationOverrun",
    "fetch_all_pages",
]
