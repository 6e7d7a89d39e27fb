"""Render a bookmark into the Markdown body of its SiYuan document."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from karakeep_sync.adapters.karakeep.models import AssetContent, LinkContent, TextContent
from karakeep_sync.sync.assets import endpoint_origin, karakeep_asset_url

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark
    from karakeep_sync.config.sync_settings import SyncSettings
    from karakeep_sync.sync.assets import AssetPipeline
    from karakeep_sync.sync.protocols import HtmlConverterProtocol

logger = logging.getLogger(__name__)

LABEL_SUMMARY = "Summary"
LABEL_DESCRIPTION = "Description"
LABEL_TEXT_CONTENT = "Text Content"
LABEL_TAGS = "Tags"
LABEL_NOTES = "Notes"
LABEL_SNAPSHOT = "Content Snapshot"
LABEL_VIEW_ON_SOURCE = "View in Karakeep"
LABEL_ASSET_FAILED = "Failed to download asset: View on Karakeep"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class AssetCandidate:
    url: str
    id_hint: str
    description: str


def resolve_asset(bookmark: KarakeepBookmark, title: str, api_endpoint: str) -> AssetCandidate | None:
    """Pick the image to embed; first match wins.

    Order: an image asset's own id, a link's image asset, a link's
    screenshot asset, then a link's external image URL.
    """
    content = bookmark.content
    description = title or "asset"

    asset_id: str | None = None
    if isinstance(content, AssetContent) and content.asset_type == "image" and content.asset_id:
        asset_id = content.asset_id
    elif isinstance(content, LinkContent):
        asset_id = content.image_asset_id or content.screenshot_asset_id

    if asset_id:
        url = karakeep_asset_url(api_endpoint, asset_id)
        if url:
            return AssetCandidate(url=url, id_hint=asset_id, description=description)

    if isinstance(content, LinkContent) and content.image_url:
        return AssetCandidate(
            url=content.image_url, id_hint=bookmark.id, description=title or "image"
        )
    return None


def _description_of(content: object) -> str | None:
    if isinstance(content, LinkContent):
        text = content.description
    elif isinstance(content, TextContent | AssetContent):
        text = content.text
    else:
        return None
    return text.strip() if text and text.strip() else None


def tag_token(name: str) -> str:
    return "#" + _WHITESPACE_RE.sub("-", name.strip())


class DocumentFormatter:
    """Build the Markdown body for one bookmark.

    Sections, each only when there is data: heading, asset embed, URL,
    summary, description or text, tags, notes (always), content snapshot,
    and a back-link to Karakeep.
    """

    def __init__(
        self,
        assets: AssetPipeline | None = None,
        html_converter: HtmlConverterProtocol | None = None,
    ) -> None:
        self._assets = assets
        self._html_converter = html_converter

    async def format(self, bookmark: KarakeepBookmark, title: str, settings: SyncSettings) -> str:
        content = bookmark.content
        parts: list[str] = [f"# {title}\n\n"]

        asset_markdown = await self._asset_section(bookmark, title, settings)
        if asset_markdown:
            parts.append(asset_markdown)

        url = bookmark.source_url
        if url and not isinstance(content, AssetContent):
            parts.append(f"**URL:** [{url}]({url})\n\n")

        if bookmark.summary and bookmark.summary.strip():
            parts.append(f"## {LABEL_SUMMARY}\n\n{bookmark.summary.strip()}\n\n")

        description = _description_of(content)
        if description:
            label = LABEL_TEXT_CONTENT if isinstance(content, TextContent) else LABEL_DESCRIPTION
            parts.append(f"## {label}\n\n{description}\n\n")

        if bookmark.tags:
            tokens = " ".join(tag_token(tag.name) for tag in bookmark.tags)
            parts.append(f"**{LABEL_TAGS}:** {tokens}\n\n")

        parts.append(f"## {LABEL_NOTES}\n\n{bookmark.note or ''}\n\n")

        snapshot = self._snapshot_section(bookmark)
        if snapshot:
            parts.append(snapshot)

        parts.append(self._back_link(bookmark, settings))
        return "".join(parts)

    async def _asset_section(
        self, bookmark: KarakeepBookmark, title: str, settings: SyncSettings
    ) -> str | None:
        candidate = resolve_asset(bookmark, title, settings.api_endpoint)
        if candidate is None:
            return None

        if not settings.download_assets or self._assets is None:
            return f"![{candidate.description}]({candidate.url})\n\n"

        local_ref = await self._assets.fetch_and_rehost(
            candidate.url, candidate.id_hint, candidate.description, settings
        )
        if local_ref:
            return f"![{candidate.description}]({local_ref})\n\n"
        logger.info(
            "asset_fallback_link",
            extra={"bookmark_id": bookmark.id, "asset_url": candidate.url},
        )
        return f"[{LABEL_ASSET_FAILED}]({candidate.url})\n\n"

    def _snapshot_section(self, bookmark: KarakeepBookmark) -> str | None:
        content = bookmark.content
        html = content.html_content if isinstance(content, LinkContent) else None
        if not html or not html.strip() or self._html_converter is None:
            return None

        try:
            markdown = self._html_converter.convert(html)
        except Exception:
            logger.exception("snapshot_conversion_failed", extra={"bookmark_id": bookmark.id})
            return None

        if not markdown or not markdown.strip():
            logger.info("snapshot_conversion_empty", extra={"bookmark_id": bookmark.id})
            return None
        return f"## {LABEL_SNAPSHOT}\n\n{markdown.strip()}\n\n"

    def _back_link(self, bookmark: KarakeepBookmark, settings: SyncSettings) -> str:
        origin = endpoint_origin(settings.api_endpoint)
        if origin is None:
            logger.warning(
                "karakeep_origin_unresolved", extra={"api_endpoint": settings.api_endpoint}
            )
            return f"----\nKarakeep ID: {bookmark.id}"
        return f"----\n[{LABEL_VIEW_ON_SOURCE}]({origin}/dashboard/preview/{bookmark.id})"
