"""
Karbon API paginator: authenticated, bounded next-link pagination.

This module provides:
- Bearer token + AccessKey authentication headers
- Envelope handling for {"value": [...]}, bare arrays and bare objects
- "@odata.nextLink" / "odata.nextLink" following with a safety page bound
- HTTP failure classification into the core.exceptions hierarchy
- Cancellation between pages

Pages are never retried within a run: a failed page ends the entity's
fetch, and records from earlier pages are still handed downstream.
"""

import asyncio
import httpx
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from models.base import FetchOutcome
from core.config import settings
from core.exceptions import (
    SyncException,
    FetchError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
    SyncCancelledError,
)
import logging

logger = logging.getLogger(__name__)

NEXT_LINK_KEYS = ("@odata.nextLink", "odata.nextLink")


def parse_envelope(payload: Any) -> Tuple[List[Any], Optional[str]]:
    """
    Split a response body into (records, next link).

    A bare object (as /TenantSettings returns) is one record with no
    next page.
    """
    if isinstance(payload, list):
        return payload, None

    if isinstance(payload, dict):
        next_link = None
        for key in NEXT_LINK_KEYS:
            if payload.get(key):
                next_link = payload[key]
                break
        if isinstance(payload.get("value"), list):
            return payload["value"], next_link
        return [payload], None

    return [], None


class Pagination:
    """
    One lazy, finite, non-restartable walk over an endpoint.

    Iterate with ``async for``; once iteration ends, ``outcome`` is one of
    COMPLETE, TRUNCATED, FAILED or CANCELLED and ``error`` holds the
    exception for FAILED / CANCELLED.
    """

    def __init__(
        self,
        paginator: "KarbonPaginator",
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None
    ):
        self.paginator = paginator
        self.endpoint = endpoint
        self.params = dict(params or {})
        self.cancel_event = cancel_event

        self.outcome: Optional[FetchOutcome] = None
        self.error: Optional[SyncException] = None
        self.pages = 0
        self.records = 0
        self._started = False

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        if self._started:
            raise RuntimeError(f"Pagination over {self.endpoint} has already been consumed")
        self._started = True
        return self._walk()

    async def _walk(self) -> AsyncIterator[Dict[str, Any]]:
        url = self.paginator.url_for(self.endpoint)
        params: Optional[Dict[str, Any]] = self.params

        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self.outcome = FetchOutcome.CANCELLED
                self.error = SyncCancelledError(
                    f"Fetch of {self.endpoint} cancelled",
                    context={"endpoint": self.endpoint, "pages_fetched": self.pages}
                )
                logger.warning(f"{self.endpoint}: cancelled after {self.pages} pages")
                return

            if self.pages >= self.paginator.max_pages:
                self.outcome = FetchOutcome.TRUNCATED
                logger.warning(
                    f"{self.endpoint}: stopped at the {self.paginator.max_pages}-page bound "
                    f"with a next link still present ({self.records} records kept)"
                )
                return

            try:
                payload = await self.paginator.fetch_page(url, params, page=self.pages + 1)
            except FetchError as e:
                self.outcome = FetchOutcome.FAILED
                self.error = e
                logger.error(
                    f"{self.endpoint}: page {self.pages + 1} failed, "
                    f"keeping {self.records} records from earlier pages",
                    extra={"error_context": e.to_dict()}
                )
                return

            self.pages += 1
            items, next_link = parse_envelope(payload)
            for item in items:
                self.records += 1
                yield item

            if self.pages % 5 == 0:
                logger.info(f"{self.endpoint}: page {self.pages}, {self.records} records so far")

            if not next_link:
                self.outcome = FetchOutcome.COMPLETE
                return

            # the next link already carries the query string
            url, params = next_link, None


class KarbonPaginator:
    """
    Authenticated access to Karbon list endpoints.

    Attributes:
        base_url: API root, e.g. https://api.karbonhq.com/v3
        max_pages: Safety bound on pages per endpoint (default: SYNC_MAX_PAGES)
        timeout: Request timeout in seconds (default: REQUEST_TIMEOUT)
    """

    def __init__(
        self,
        access_key: Optional[str] = None,
        bearer_token: Optional[str] = None,
        base_url: Optional[str] = None,
        max_pages: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.access_key = access_key or settings.KARBON_ACCESS_KEY
        self.bearer_token = bearer_token or settings.KARBON_BEARER_TOKEN
        self.base_url = (base_url or settings.KARBON_BASE_URL).rstrip("/")
        self.max_pages = max_pages if max_pages is not None else settings.SYNC_MAX_PAGES
        self.timeout = timeout or settings.REQUEST_TIMEOUT

        self._client = client
        self._owns_client = client is None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.bearer_token}",
            "AccessKey": self.access_key or "",
            "Accept": "application/json",
        }

    async def __aenter__(self) -> "KarbonPaginator":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def url_for(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def paginate(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Pagination:
        """Start a lazy walk over an endpoint; nothing is requested until iteration"""
        return Pagination(self, endpoint, params, cancel_event)

    async def fetch_page(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        page: int = 1
    ) -> Any:
        """
        Request one page and decode its JSON body.

        Raises:
            AuthenticationError: 401 / 403
            ResourceNotFoundError: 404
            RateLimitError: 429
            NetworkError: transport failures, timeouts and 5xx
            FetchError: any other non-success status or an undecodable body
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        context = {"url": url, "page": page}
        logger.debug(f"GET {url} (page {page})")

        try:
            response = await self._client.get(url, headers=self.headers, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timeout on {url}",
                context={**context, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Network error on {url}",
                context=context,
                original_exception=e
            )

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {url}",
                context=context,
                status_code=status
            )
        if status == 404:
            raise ResourceNotFoundError(
                f"Resource not found: {url}",
                context=context,
                status_code=status
            )
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limit exceeded for {url}",
                context=context,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if status >= 500:
            raise NetworkError(
                f"Server error {status} on {url}",
                context={**context, "response_body": response.text[:500]},
                status_code=status
            )
        if not 200 <= status < 300:
            raise FetchError(
                f"Unexpected status {status} on {url}",
                context={**context, "response_body": response.text[:500]},
                status_code=status
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                "Failed to parse JSON response",
                context={**context, "response_body": response.text[:500]},
                original_exception=e,
                status_code=status
            )
