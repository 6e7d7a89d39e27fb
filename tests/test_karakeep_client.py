"""Tests for the Karakeep listing client and its payload models."""

from __future__ import annotations

import json
import unittest
from datetime import UTC, datetime

import httpx

from karakeep_sync.adapters.karakeep.client import (
    BOOKMARK_FETCH_LIMIT,
    KarakeepClient,
    KarakeepClientError,
    SourceUnavailableError,
)
from karakeep_sync.adapters.karakeep.models import (
    AssetContent,
    KarakeepBookmark,
    KarakeepBookmarkPage,
    LinkContent,
    TextContent,
    UnknownContent,
)

API_URL = "https://karakeep.example/api/v1"

PAGE_PAYLOAD = {
    "bookmarks": [
        {
            "id": "bm-1",
            "createdAt": "2024-03-01T10:00:00.000Z",
            "modifiedAt": "2024-03-02T11:30:00.500Z",
            "title": None,
            "archived": False,
            "favourited": True,
            "taggingStatus": "success",
            "note": "remember this",
            "summary": None,
            "tags": [{"id": "t1", "name": "python", "attachedBy": "ai"}],
            "content": {
                "type": "link",
                "url": "https://example.com/a",
                "title": "Example",
                "imageAssetId": "img-1",
                "htmlContent": "<p>Hello</p>",
            },
            "assets": [],
        }
    ],
    "nextCursor": "cursor-2",
}


class TestKarakeepModels(unittest.TestCase):
    def test_page_parses_camel_case(self):
        page = KarakeepBookmarkPage.model_validate(PAGE_PAYLOAD)

        assert page.next_cursor == "cursor-2"
        bookmark = page.bookmarks[0]
        assert bookmark.favourited is True
        assert bookmark.tags[0].attached_by == "ai"
        assert isinstance(bookmark.content, LinkContent)
        assert bookmark.content.image_asset_id == "img-1"
        assert bookmark.content.html_content == "<p>Hello</p>"
        assert bookmark.source_url == "https://example.com/a"

    def test_effective_modified_falls_back_to_created(self):
        bookmark = KarakeepBookmark.model_validate(
            {"id": "x", "createdAt": "2024-01-01T00:00:00Z", "content": {"type": "text", "text": "hi"}}
        )
        assert bookmark.effective_modified_at == datetime(2024, 1, 1, tzinfo=UTC)
        assert isinstance(bookmark.content, TextContent)

    def test_unknown_content_type_is_tolerated(self):
        bookmark = KarakeepBookmark.model_validate(
            {"id": "x", "createdAt": "2024-01-01T00:00:00Z", "content": {"type": "video", "v": 1}}
        )
        assert isinstance(bookmark.content, UnknownContent)
        assert bookmark.source_url is None

    def test_missing_content_and_null_tags(self):
        bookmark = KarakeepBookmark.model_validate(
            {"id": "x", "createdAt": "2024-01-01T00:00:00Z", "tags": None}
        )
        assert isinstance(bookmark.content, UnknownContent)
        assert bookmark.tags == []

    def test_asset_content_source_url(self):
        bookmark = KarakeepBookmark.model_validate(
            {
                "id": "x",
                "createdAt": "2024-01-01T00:00:00Z",
                "content": {
                    "type": "asset",
                    "assetType": "pdf",
                    "assetId": "a-1",
                    "fileName": "paper.pdf",
                    "sourceUrl": "https://example.com/paper.pdf",
                },
            }
        )
        assert isinstance(bookmark.content, AssetContent)
        assert bookmark.content.file_name == "paper.pdf"
        assert bookmark.source_url == "https://example.com/paper.pdf"


class TestKarakeepClient(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_page_sends_listing_params_and_auth(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=PAGE_PAYLOAD)

        async with KarakeepClient(
            API_URL + "/", "secret", transport=httpx.MockTransport(handler)
        ) as client:
            page = await client.fetch_page()

        assert len(page.bookmarks) == 1
        request = requests[0]
        assert request.url.path == "/api/v1/bookmarks"
        assert request.url.params["limit"] == str(BOOKMARK_FETCH_LIMIT)
        assert request.url.params["sort"] == "createdAt"
        assert request.url.params["order"] == "asc"
        assert "cursor" not in request.url.params
        assert request.headers["Authorization"] == "Bearer secret"

    async def test_fetch_page_passes_cursor(self):
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params.get("cursor"))
            return httpx.Response(200, json={"bookmarks": [], "nextCursor": None})

        async with KarakeepClient(API_URL, "k", transport=httpx.MockTransport(handler)) as client:
            page = await client.fetch_page("cursor-2")

        assert seen == ["cursor-2"]
        assert page.bookmarks == []
        assert page.next_cursor is None

    async def test_non_success_status_raises_with_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="Unauthorized"))

        async with KarakeepClient(API_URL, "bad", transport=transport) as client:
            with self.assertRaises(SourceUnavailableError) as ctx:
                await client.fetch_page()

        assert ctx.exception.status_code == 401
        assert ctx.exception.body == "Unauthorized"
        assert str(ctx.exception) == "Karakeep API request failed: 401 Unauthorized"

    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with KarakeepClient(API_URL, "k", transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(SourceUnavailableError) as ctx:
                await client.fetch_page()

        assert ctx.exception.status_code is None

    async def test_invalid_json_raises(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"<html>", headers={"content-type": "text/html"})
        )

        async with KarakeepClient(API_URL, "k", transport=transport) as client:
            with self.assertRaises(SourceUnavailableError):
                await client.fetch_page()

    async def test_invalid_bookmark_payload_raises(self):
        payload = json.dumps({"bookmarks": [{"id": "no-created-at"}]}).encode()
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=payload))

        async with KarakeepClient(API_URL, "k", transport=transport) as client:
            with self.assertRaises(SourceUnavailableError):
                await client.fetch_page()

    async def test_client_requires_context_manager(self):
        client = KarakeepClient(API_URL, "k")
        with self.assertRaises(KarakeepClientError):
            await client.fetch_page()


if __name__ == "__main__":
    unittest.main()
