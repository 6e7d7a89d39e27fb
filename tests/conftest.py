"""Pytest configuration and shared test doubles.

The in-memory store and source implement the same protocols as the SiYuan
and Karakeep adapters, so engine tests run without any network.
"""

from __future__ import annotations

import itertools
from datetime import UTC, datetime
from typing import Any

import pytest

from karakeep_sync.adapters.karakeep.client import SourceUnavailableError
from karakeep_sync.adapters.karakeep.models import KarakeepBookmark, KarakeepBookmarkPage
from karakeep_sync.config.sync_settings import SyncSettings

DEFAULT_CREATED = datetime(2024, 3, 1, 10, 0, 0, tzinfo=UTC)


def make_settings(**overrides: Any) -> SyncSettings:
    """Sync settings that pass the configuration checks."""
    data: dict[str, Any] = {
        "apiKey": "test-key",
        "apiEndpoint": "https://karakeep.example/api/v1",
        "targetCollectionId": "nb-1",
        "downloadAssets": False,
    }
    data.update(overrides)
    return SyncSettings.model_validate(data)


def make_bookmark(bookmark_id: str = "bm-1", **overrides: Any) -> KarakeepBookmark:
    data: dict[str, Any] = {
        "id": bookmark_id,
        "createdAt": DEFAULT_CREATED.isoformat(),
        "title": f"Bookmark {bookmark_id}",
        "content": {"type": "link", "url": f"https://example.com/{bookmark_id}"},
    }
    data.update(overrides)
    return KarakeepBookmark.model_validate(data)


class FakeSourceClient:
    """Serve pre-built pages keyed by cursor; optionally fail on a given page."""

    def __init__(self, pages: list[list[KarakeepBookmark]], *, fail_on_page: int | None = None):
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.calls: list[str | None] = []

    async def fetch_page(self, cursor: str | None = None) -> KarakeepBookmarkPage:
        self.calls.append(cursor)
        index = int(cursor) if cursor else 0
        if self.fail_on_page is not None and index == self.fail_on_page:
            raise SourceUnavailableError(
                "Karakeep API request failed: 500 boom", status_code=500, body="boom"
            )
        bookmarks = self.pages[index] if index < len(self.pages) else []
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return KarakeepBookmarkPage(bookmarks=bookmarks, next_cursor=next_cursor)


class InMemoryDocumentStore:
    """Document store keeping documents and attributes in dicts."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.attributes: dict[str, dict[str, str]] = {}
        self.assets: dict[str, bytes] = {}
        self.calls: list[str] = []
        self.fail_create = False
        self.fail_delete = False
        self.fail_get_attributes = False
        self._ids = itertools.count(1)

    async def find_by_external_id(self, collection_id: str, external_id: str) -> str | None:
        self.calls.append("find_by_external_id")
        for doc_id, doc in self.documents.items():
            attrs = self.attributes.get(doc_id, {})
            if doc["collection_id"] == collection_id and attrs.get("custom-karakeep-id") == external_id:
                return doc_id
        return None

    async def get_attributes(self, doc_id: str) -> dict[str, str] | None:
        self.calls.append("get_attributes")
        if self.fail_get_attributes:
            return None
        return dict(self.attributes.get(doc_id, {}))

    async def set_attributes(self, doc_id: str, attributes: dict[str, str]) -> None:
        self.calls.append("set_attributes")
        self.attributes.setdefault(doc_id, {}).update(attributes)

    async def create_document(self, collection_id: str, path: str, body: str) -> str | None:
        self.calls.append("create_document")
        if self.fail_create:
            return None
        doc_id = f"doc-{next(self._ids)}"
        self.documents[doc_id] = {"collection_id": collection_id, "path": path, "body": body}
        return doc_id

    async def delete_document(self, doc_id: str) -> bool:
        self.calls.append("delete_document")
        if self.fail_delete or doc_id not in self.documents:
            return False
        del self.documents[doc_id]
        self.attributes.pop(doc_id, None)
        return True

    async def upload_asset(
        self,
        collection_id: str,
        directory: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> str | None:
        self.calls.append("upload_asset")
        self.assets[file_name] = content
        return f"assets/karakeep-sync/{file_name}"

    def document_for(self, external_id: str) -> dict[str, Any] | None:
        for doc_id, attrs in self.attributes.items():
            if attrs.get("custom-karakeep-id") == external_id:
                return self.documents.get(doc_id)
        return None


class FakeHtmlConverter:
    def __init__(self, result: str | None = "Converted snapshot", *, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[str] = []

    def convert(self, html: str) -> str | None:
        self.calls.append(html)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()
