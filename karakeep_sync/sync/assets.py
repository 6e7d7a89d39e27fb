"""Asset pipeline: download a bookmark asset and re-host it in the target store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from karakeep_sync.sync.paths import asset_file_name

if TYPE_CHECKING:
    from karakeep_sync.config.sync_settings import SyncSettings
    from karakeep_sync.sync.protocols import TargetStoreProtocol

logger = logging.getLogger(__name__)

ASSET_DIRECTORY = "/assets/karakeep-sync/"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def endpoint_origin(url: str) -> str | None:
    """``scheme://host[:port]`` of an absolute URL, or None if it has no origin."""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}".lower()


def karakeep_asset_url(api_endpoint: str, asset_id: str) -> str | None:
    origin = endpoint_origin(api_endpoint)
    if origin is None:
        logger.warning("karakeep_asset_url_unresolved", extra={"api_endpoint": api_endpoint})
        return None
    return f"{origin}/assets/{asset_id}"


def _url_basename(url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    return path.rsplit("/", 1)[-1]


class AssetPipeline:
    """Fetch assets (with the bearer token for same-origin URLs) and upload them."""

    def __init__(self, http_client: httpx.AsyncClient, store: TargetStoreProtocol) -> None:
        self._http = http_client
        self._store = store

    async def fetch_and_rehost(
        self,
        asset_url: str,
        id_hint: str,
        title_hint: str,
        settings: SyncSettings,
    ) -> str | None:
        """Download ``asset_url`` and upload it under the sync asset directory.

        Returns the store's relative asset reference, or None on any failure.
        Never raises.
        """
        try:
            return await self._fetch_and_rehost(asset_url, id_hint, title_hint, settings)
        except Exception:
            logger.exception("asset_rehost_failed", extra={"asset_url": asset_url})
            return None

    async def _fetch_and_rehost(
        self,
        asset_url: str,
        id_hint: str,
        title_hint: str,
        settings: SyncSettings,
    ) -> str | None:
        collection_id = settings.target_collection_id
        if not collection_id:
            logger.warning("asset_upload_no_collection", extra={"asset_url": asset_url})
            return None

        headers: dict[str, str] = {}
        api_origin = endpoint_origin(settings.api_endpoint)
        needs_auth = api_origin is not None and endpoint_origin(asset_url) == api_origin
        if needs_auth:
            headers["Authorization"] = f"Bearer {settings.api_key}"

        try:
            response = await self._http.get(asset_url, headers=headers, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.error("asset_download_error", extra={"asset_url": asset_url, "error": str(exc)})
            return None

        if not response.is_success:
            status = response.status_code
            if status == 404:
                logger.warning("asset_not_found", extra={"asset_url": asset_url})
            elif status in (401, 403):
                logger.warning(
                    "asset_unauthorized",
                    extra={"asset_url": asset_url, "status_code": status, "auth_sent": needs_auth},
                )
            else:
                logger.error(
                    "asset_download_failed", extra={"asset_url": asset_url, "status_code": status}
                )
            return None

        content = response.content
        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        file_name = asset_file_name(_url_basename(asset_url), content_type, id_hint, title_hint)

        logger.info(
            "asset_uploading",
            extra={"file_name": file_name, "size_kb": round(len(content) / 1024, 1)},
        )
        return await self._store.upload_asset(
            collection_id, ASSET_DIRECTORY, file_name, content, content_type
        )
