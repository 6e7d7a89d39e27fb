"""SiYuan implementation of the target document store.

Each operation is independent and converts kernel failures into the soft
results the reconciliation engine expects: lookups return None, deletes
return False, attribute writes only log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from karakeep_sync.adapters.siyuan.client import (
    API_CREATE_DOC_WITH_MD,
    API_GET_BLOCK_ATTRS,
    API_LS_NOTEBOOKS,
    API_REMOVE_DOC_BY_ID,
    API_SET_BLOCK_ATTRS,
    API_SQL_QUERY,
    API_UPLOAD_ASSET,
    SiYuanAPIError,
)
from karakeep_sync.sync.attributes import ATTR_EXTERNAL_ID

if TYPE_CHECKING:
    from karakeep_sync.adapters.siyuan.client import SiYuanClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notebook:
    id: str
    name: str
    closed: bool = False


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_external_id_query(notebook_id: str, external_id: str) -> str:
    """SQL selecting the document root carrying ``external_id`` in one notebook."""
    return (
        "SELECT b.id FROM blocks AS b "
        "JOIN attributes AS a ON b.id = a.block_id "
        f"WHERE b.box = {_sql_literal(notebook_id)} "
        "AND b.type = 'd' "
        f"AND a.name = {_sql_literal(ATTR_EXTERNAL_ID)} "
        f"AND a.value = {_sql_literal(external_id)} "
        "LIMIT 1"
    )


class SiYuanDocumentStore:
    """Document store backed by a SiYuan notebook."""

    def __init__(self, client: SiYuanClient) -> None:
        self._client = client

    async def find_by_external_id(self, collection_id: str, external_id: str) -> str | None:
        stmt = build_external_id_query(collection_id, external_id)
        try:
            rows = await self._client.post(API_SQL_QUERY, {"stmt": stmt})
        except SiYuanAPIError as exc:
            logger.error(
                "siyuan_lookup_failed",
                extra={"external_id": external_id, "notebook": collection_id, "error": str(exc)},
            )
            return None

        if not rows:
            logger.debug("siyuan_lookup_miss", extra={"external_id": external_id})
            return None
        doc_id = rows[0].get("id") if isinstance(rows[0], dict) else None
        logger.debug("siyuan_lookup_hit", extra={"external_id": external_id, "doc_id": doc_id})
        return doc_id or None

    async def get_attributes(self, doc_id: str) -> dict[str, str] | None:
        try:
            attrs = await self._client.post(API_GET_BLOCK_ATTRS, {"id": doc_id})
        except SiYuanAPIError as exc:
            logger.warning("siyuan_get_attrs_failed", extra={"doc_id": doc_id, "error": str(exc)})
            return None
        if not isinstance(attrs, dict):
            logger.warning("siyuan_get_attrs_empty", extra={"doc_id": doc_id})
            return None
        return {str(key): str(value) for key, value in attrs.items()}

    async def set_attributes(self, doc_id: str, attributes: dict[str, str]) -> None:
        try:
            await self._client.post(API_SET_BLOCK_ATTRS, {"id": doc_id, "attrs": attributes})
        except SiYuanAPIError as exc:
            logger.error("siyuan_set_attrs_failed", extra={"doc_id": doc_id, "error": str(exc)})
            return
        logger.debug("siyuan_attrs_set", extra={"doc_id": doc_id, "count": len(attributes)})

    async def create_document(self, collection_id: str, path: str, body: str) -> str | None:
        try:
            doc_id = await self._client.post(
                API_CREATE_DOC_WITH_MD,
                {"notebook": collection_id, "path": path, "markdown": body},
            )
        except SiYuanAPIError as exc:
            logger.error("siyuan_create_doc_failed", extra={"path": path, "error": str(exc)})
            return None
        if not doc_id or not isinstance(doc_id, str):
            logger.error("siyuan_create_doc_no_id", extra={"path": path})
            return None
        logger.info("siyuan_doc_created", extra={"doc_id": doc_id, "path": path})
        return doc_id

    async def delete_document(self, doc_id: str) -> bool:
        try:
            await self._client.post(API_REMOVE_DOC_BY_ID, {"id": doc_id})
        except SiYuanAPIError as exc:
            logger.error("siyuan_delete_doc_failed", extra={"doc_id": doc_id, "error": str(exc)})
            return False
        logger.info("siyuan_doc_deleted", extra={"doc_id": doc_id})
        return True

    async def upload_asset(
        self,
        collection_id: str,
        directory: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> str | None:
        form = {"assetsDirPath": directory, "notebook": collection_id}
        files = [("file[]", (file_name, content, content_type))]
        try:
            data = await self._client.post(API_UPLOAD_ASSET, data=form, files=files)
        except SiYuanAPIError as exc:
            logger.error("siyuan_upload_failed", extra={"file_name": file_name, "error": str(exc)})
            return None

        succ_map: dict[str, Any] = (data or {}).get("succMap") or {}
        asset_path = succ_map.get(file_name)
        if not asset_path:
            logger.error(
                "siyuan_upload_rejected",
                extra={"file_name": file_name, "err_files": (data or {}).get("errFiles")},
            )
            return None
        logger.info(
            "siyuan_asset_uploaded",
            extra={"file_name": file_name, "asset_path": asset_path, "size": len(content)},
        )
        return str(asset_path)

    async def list_notebooks(self) -> list[Notebook]:
        """List notebooks. Unlike the sync operations, failures propagate."""
        data = await self._client.post(API_LS_NOTEBOOKS)
        notebooks = (data or {}).get("notebooks") or []
        return [
            Notebook(id=str(nb.get("id")), name=str(nb.get("name", "")), closed=bool(nb.get("closed")))
            for nb in notebooks
            if isinstance(nb, dict) and nb.get("id")
        ]
