"""Tests for record filtering, document attributes and Markdown rendering."""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock

from karakeep_sync.sync.attributes import build_document_attributes
from karakeep_sync.sync.filters import (
    REASON_ARCHIVED,
    REASON_EXCLUDED_TAG,
    REASON_NOT_FAVOURITE,
    filter_reason,
)
from karakeep_sync.sync.formatter import DocumentFormatter, resolve_asset, tag_token
from tests.conftest import FakeHtmlConverter, make_bookmark, make_settings


class TestFilterReason(unittest.TestCase):
    def test_passes_by_default(self):
        assert filter_reason(make_bookmark(), make_settings()) is None

    def test_archived(self):
        bookmark = make_bookmark(archived=True, favourited=True)
        assert filter_reason(bookmark, make_settings()) == REASON_ARCHIVED

    def test_not_favourite(self):
        assert filter_reason(make_bookmark(), make_settings(onlyFavorites=True)) == REASON_NOT_FAVOURITE

    def test_excluded_tag_case_insensitive(self):
        bookmark = make_bookmark(tags=[{"name": " Secret "}])
        settings = make_settings(excludedTags="secret, other")
        assert filter_reason(bookmark, settings) == REASON_EXCLUDED_TAG

    def test_favourite_ignores_excluded_tags(self):
        bookmark = make_bookmark(favourited=True, tags=[{"name": "secret"}])
        assert filter_reason(bookmark, make_settings(excludedTags=["secret"])) is None

    def test_archived_checked_before_favourites(self):
        bookmark = make_bookmark(archived=True)
        settings = make_settings(onlyFavorites=True)
        assert filter_reason(bookmark, settings) == REASON_ARCHIVED


class TestDocumentAttributes(unittest.TestCase):
    def test_attribute_map(self):
        bookmark = make_bookmark(
            "bm-1",
            modifiedAt="2024-03-05T08:00:00.123456Z",
            summary="Short",
            favourited=True,
            tags=[{"name": "python"}, {"name": "web dev"}],
        )

        attrs = build_document_attributes(bookmark, "Title")

        assert attrs == {
            "custom-karakeep-id": "bm-1",
            "custom-karakeep-modified": "2024-03-05T08:00:00.123Z",
            "title": "Title",
            "custom-karakeep-url": "https://example.com/bm-1",
            "custom-karakeep-created": "2024-03-01T10:00:00.000Z",
            "custom-karakeep-tags": "python, web dev",
            "custom-karakeep-summary": "Short",
            "custom-karakeep-favourited": "true",
            "custom-karakeep-archived": "false",
        }


class TestResolveAsset(unittest.TestCase):
    endpoint = "https://karakeep.example/api/v1"

    def test_image_asset(self):
        bookmark = make_bookmark(content={"type": "asset", "assetType": "image", "assetId": "a1"})
        candidate = resolve_asset(bookmark, "T", self.endpoint)
        assert candidate.url == "https://karakeep.example/assets/a1"
        assert candidate.id_hint == "a1"

    def test_pdf_asset_has_no_embed(self):
        bookmark = make_bookmark(content={"type": "asset", "assetType": "pdf", "assetId": "a1"})
        assert resolve_asset(bookmark, "T", self.endpoint) is None

    def test_link_prefers_image_asset_over_screenshot(self):
        bookmark = make_bookmark(
            content={
                "type": "link",
                "url": "https://x.org",
                "imageAssetId": "img",
                "screenshotAssetId": "shot",
                "imageUrl": "https://cdn.x.org/i.png",
            }
        )
        assert resolve_asset(bookmark, "T", self.endpoint).id_hint == "img"

    def test_link_screenshot(self):
        bookmark = make_bookmark(
            content={"type": "link", "url": "https://x.org", "screenshotAssetId": "shot"}
        )
        assert resolve_asset(bookmark, "T", self.endpoint).url == "https://karakeep.example/assets/shot"

    def test_link_external_image(self):
        bookmark = make_bookmark(
            content={"type": "link", "url": "https://x.org", "imageUrl": "https://cdn.x.org/i.png"}
        )
        candidate = resolve_asset(bookmark, "T", self.endpoint)
        assert candidate.url == "https://cdn.x.org/i.png"
        assert candidate.id_hint == bookmark.id

    def test_text_has_no_asset(self):
        bookmark = make_bookmark(content={"type": "text", "text": "hi"})
        assert resolve_asset(bookmark, "T", self.endpoint) is None


class TestTagToken(unittest.TestCase):
    def test_whitespace_becomes_dash(self):
        assert tag_token(" machine  learning ") == "#machine-learning"


class TestDocumentFormatter(unittest.IsolatedAsyncioTestCase):
    async def test_link_document_sections_in_order(self):
        converter = FakeHtmlConverter("Snapshot body")
        bookmark = make_bookmark(
            "bm-1",
            summary="A summary",
            note="My note",
            tags=[{"name": "python"}, {"name": "web dev"}],
            content={
                "type": "link",
                "url": "https://example.com/a",
                "description": "Desc",
                "htmlContent": "<p>Snapshot body</p>",
            },
        )

        body = await DocumentFormatter(html_converter=converter).format(
            bookmark, "Title", make_settings()
        )

        assert body == (
            "# Title\n\n"
            "**URL:** [https://example.com/a](https://example.com/a)\n\n"
            "## Summary\n\nA summary\n\n"
            "## Description\n\nDesc\n\n"
            "**Tags:** #python #web-dev\n\n"
            "## Notes\n\nMy note\n\n"
            "## Content Snapshot\n\nSnapshot body\n\n"
            "----\n[View in Karakeep](https://karakeep.example/dashboard/preview/bm-1)"
        )
        assert converter.calls == ["<p>Snapshot body</p>"]

    async def test_text_document(self):
        bookmark = make_bookmark(
            "bm-2", content={"type": "text", "text": " Some text ", "sourceUrl": "https://src.org"}
        )

        body = await DocumentFormatter().format(bookmark, "T", make_settings())

        assert "**URL:** [https://src.org](https://src.org)" in body
        assert "## Text Content\n\nSome text\n\n" in body
        assert "## Description" not in body

    async def test_notes_section_always_present(self):
        bookmark = make_bookmark("bm-3", note=None)
        body = await DocumentFormatter().format(bookmark, "T", make_settings())
        assert "## Notes\n\n\n\n" in body

    async def test_asset_document_has_no_url_line(self):
        bookmark = make_bookmark(
            "bm-4",
            content={"type": "asset", "assetType": "pdf", "sourceUrl": "https://x.org/f.pdf"},
        )
        body = await DocumentFormatter().format(bookmark, "T", make_settings())
        assert "**URL:**" not in body

    async def test_asset_text_rendered_as_description(self):
        bookmark = make_bookmark(
            "bm-4b", content={"type": "asset", "assetType": "pdf", "text": "Extracted text"}
        )
        body = await DocumentFormatter().format(bookmark, "T", make_settings())
        assert "## Description\n\nExtracted text\n\n" in body

    async def test_external_embed_when_downloads_disabled(self):
        assets = AsyncMock()
        bookmark = make_bookmark(
            "bm-5", content={"type": "link", "url": "https://x.org", "imageAssetId": "img-1"}
        )

        body = await DocumentFormatter(assets=assets).format(
            bookmark, "Pic", make_settings(downloadAssets=False)
        )

        assert "![Pic](https://karakeep.example/assets/img-1)\n\n" in body
        assets.fetch_and_rehost.assert_not_called()

    async def test_local_embed_after_rehost(self):
        assets = AsyncMock()
        assets.fetch_and_rehost.return_value = "assets/karakeep-sync/img.png"
        bookmark = make_bookmark(
            "bm-6", content={"type": "link", "url": "https://x.org", "imageAssetId": "img-1"}
        )

        body = await DocumentFormatter(assets=assets).format(
            bookmark, "Pic", make_settings(downloadAssets=True)
        )

        assert body.startswith("# Pic\n\n![Pic](assets/karakeep-sync/img.png)\n\n")

    async def test_fallback_link_when_rehost_fails(self):
        assets = AsyncMock()
        assets.fetch_and_rehost.return_value = None
        bookmark = make_bookmark(
            "bm-7", content={"type": "link", "url": "https://x.org", "imageUrl": "https://cdn/i.png"}
        )

        body = await DocumentFormatter(assets=assets).format(
            bookmark, "Pic", make_settings(downloadAssets=True)
        )

        assert "[Failed to download asset: View on Karakeep](https://cdn/i.png)" in body

    async def test_snapshot_omitted_when_conversion_fails(self):
        converter = FakeHtmlConverter(error=ValueError("bad html"))
        bookmark = make_bookmark(
            "bm-8", content={"type": "link", "url": "https://x.org", "htmlContent": "<p>x</p>"}
        )

        body = await DocumentFormatter(html_converter=converter).format(
            bookmark, "T", make_settings()
        )

        assert "Content Snapshot" not in body
        assert body.endswith("[View in Karakeep](https://karakeep.example/dashboard/preview/bm-8)")

    async def test_snapshot_omitted_when_conversion_empty(self):
        converter = FakeHtmlConverter("   ")
        bookmark = make_bookmark(
            "bm-9", content={"type": "link", "url": "https://x.org", "htmlContent": "<p>x</p>"}
        )
        body = await DocumentFormatter(html_converter=converter).format(
            bookmark, "T", make_settings()
        )
        assert "Content Snapshot" not in body


if __name__ == "__main__":
    unittest.main()
