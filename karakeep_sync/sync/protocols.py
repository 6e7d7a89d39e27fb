"""Protocol definitions (ports) for the reconciliation engine.

The engine only sees these capabilities, so it runs unchanged against the
SiYuan adapter or an in-memory fake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark, KarakeepBookmarkPage
    from karakeep_sync.config.sync_settings import SyncSettings


class SourceClientProtocol(Protocol):
    async def fetch_page(self, cursor: str | None = None) -> KarakeepBookmarkPage: ...


class TargetStoreProtocol(Protocol):
    async def find_by_external_id(self, collection_id: str, external_id: str) -> str | None: ...

    async def get_attributes(self, doc_id: str) -> dict[str, str] | None: ...

    async def set_attributes(self, doc_id: str, attributes: dict[str, str]) -> None: ...

    async def create_document(self, collection_id: str, path: str, body: str) -> str | None: ...

    async def delete_document(self, doc_id: str) -> bool: ...

    async def upload_asset(
        self,
        collection_id: str,
        directory: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> str | None: ...


class HtmlConverterProtocol(Protocol):
    def convert(self, html: str) -> str | None: ...


class DocumentFormatterProtocol(Protocol):
    async def format(
        self, bookmark: KarakeepBookmark, title: str, settings: SyncSettings
    ) -> str: ...
