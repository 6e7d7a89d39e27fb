"""Low-level SiYuan kernel API client.

Every kernel endpoint answers ``{"code": int, "msg": str, "data": ...}``;
a non-zero code is a failure even with HTTP 200.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

API_LS_NOTEBOOKS = "/api/notebook/lsNotebooks"
API_GET_BLOCK_ATTRS = "/api/attr/getBlockAttrs"
API_SET_BLOCK_ATTRS = "/api/attr/setBlockAttrs"
API_REMOVE_DOC_BY_ID = "/api/filetree/removeDocByID"
API_CREATE_DOC_WITH_MD = "/api/filetree/createDocWithMd"
API_UPLOAD_ASSET = "/api/asset/upload"
API_SQL_QUERY = "/api/query/sql"


class SiYuanAPIError(Exception):
    """SiYuan kernel call failed (transport, HTTP status or non-zero code)."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class SiYuanClient:
    """Async HTTP client for the SiYuan kernel API."""

    def __init__(
        self,
        api_url: str,
        api_token: str = "",
        timeout: float = 30.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        headers = {"Authorization": f"Token {self.api_token}"} if self.api_token else {}
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
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
            raise SiYuanAPIError("Client not initialized. Use async context manager.")
        return self._client

    async def post(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        data: dict[str, str] | None = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
    ) -> Any:
        """POST to a kernel endpoint and return the ``data`` member.

        Sends ``payload`` as JSON, or ``data``/``files`` as multipart form.

        Raises:
            SiYuanAPIError: On transport failure, HTTP error status, an
                unparseable body or a non-zero response code
        """
        try:
            if files is not None or data is not None:
                response = await self.client.post(endpoint, data=data, files=files)
            else:
                response = await self.client.post(endpoint, json=payload or {})
        except httpx.HTTPError as exc:
            msg = f"SiYuan request to {endpoint} failed: {exc}"
            raise SiYuanAPIError(msg) from exc

        if not response.is_success:
            msg = f"SiYuan {endpoint} returned HTTP {response.status_code}: {response.text[:200]}"
            raise SiYuanAPIError(msg)

        try:
            body = response.json()
        except ValueError as exc:
            msg = f"SiYuan {endpoint} returned a non-JSON body"
            raise SiYuanAPIError(msg) from exc

        if not isinstance(body, dict):
            msg = f"SiYuan {endpoint} returned an unexpected body"
            raise SiYuanAPIError(msg)

        code = body.get("code")
        if code != 0:
            msg = f"SiYuan {endpoint} failed [{code}]: {body.get('msg') or 'unknown error'}"
            raise SiYuanAPIError(msg, code=code if isinstance(code, int) else None)

        return body.get("data")
