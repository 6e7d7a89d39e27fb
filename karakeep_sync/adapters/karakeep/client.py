"""Karakeep API client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from karakeep_sync.adapters.karakeep.models import KarakeepBookmarkPage

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

BOOKMARK_FETCH_LIMIT = 50


class KarakeepClientError(Exception):
    """Base exception for Karakeep client errors."""


class SourceUnavailableError(KarakeepClientError):
    """The bookmark listing could not be fetched.

    Carries the HTTP status and response body when the server answered,
    both None for transport failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class KarakeepClient:
    """Async HTTP client for the Karakeep bookmark listing."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        *,
        page_size: int = BOOKMARK_FETCH_LIMIT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Karakeep client.

        Args:
            api_url: Base URL for Karakeep API (e.g., https://karakeep.example/api/v1)
            api_key: API key sent as a bearer token
            timeout: Request timeout in seconds
            page_size: Number of bookmarks requested per page
            transport: Optional httpx transport, used by tests
        """
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise KarakeepClientError("Client not initialized. Use async context manager.")
        return self._client

    async def fetch_page(self, cursor: str | None = None) -> KarakeepBookmarkPage:
        """Fetch one page of bookmarks, oldest first.

        Args:
            cursor: Opaque continuation token from the previous page

        Returns:
            The page, with ``next_cursor`` set when more pages follow

        Raises:
            SourceUnavailableError: On a non-2xx status, a transport failure
                or an unparseable payload
        """
        params: dict[str, str | int] = {
            "limit": self.page_size,
            "sort": "createdAt",
            "order": "asc",
        }
        if cursor:
            params["cursor"] = cursor

        logger.debug(
            "karakeep_fetch_page",
            extra={"cursor_tail": cursor[-4:] if cursor else None, "limit": self.page_size},
        )
        try:
            response = await self.client.get("/bookmarks", params=params)
        except httpx.HTTPError as exc:
            logger.error("karakeep_transport_error", extra={"error": str(exc)})
            msg = f"Karakeep API request failed: {exc}"
            raise SourceUnavailableError(msg) from exc

        if not response.is_success:
            body = response.text
            logger.error(
                "karakeep_api_error",
                extra={"status_code": response.status_code, "body": body[:500]},
            )
            msg = f"Karakeep API request failed: {response.status_code} {body}"
            raise SourceUnavailableError(msg, status_code=response.status_code, body=body)

        try:
            page = KarakeepBookmarkPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("karakeep_invalid_payload", extra={"error": str(exc)})
            msg = f"Karakeep API returned an invalid bookmark page: {exc}"
            raise SourceUnavailableError(msg, status_code=response.status_code) from exc

        logger.info(
            "karakeep_page_fetched",
            extra={"count": len(page.bookmarks), "has_next": bool(page.next_cursor)},
        )
        return page
