"""Document attribute names and the attribute map written after each create."""

from __future__ import annotations

from typing import TYPE_CHECKING

from karakeep_sync.core.time_utils import format_iso_ms

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark

ATTR_PREFIX = "custom-karakeep-"
ATTR_EXTERNAL_ID = f"{ATTR_PREFIX}id"
ATTR_MODIFIED = f"{ATTR_PREFIX}modified"
ATTR_URL = f"{ATTR_PREFIX}url"
ATTR_CREATED = f"{ATTR_PREFIX}created"
ATTR_TAGS = f"{ATTR_PREFIX}tags"
ATTR_SUMMARY = f"{ATTR_PREFIX}summary"
ATTR_FAVOURITED = f"{ATTR_PREFIX}favourited"
ATTR_ARCHIVED = f"{ATTR_PREFIX}archived"


def build_document_attributes(bookmark: KarakeepBookmark, title: str) -> dict[str, str]:
    return {
        ATTR_EXTERNAL_ID: bookmark.id,
        ATTR_MODIFIED: format_iso_ms(bookmark.effective_modified_at),
        "title": title,
        ATTR_URL: bookmark.source_url or "",
        ATTR_CREATED: format_iso_ms(bookmark.created_at),
        ATTR_TAGS: ", ".join(tag.name for tag in bookmark.tags),
        ATTR_SUMMARY: bookmark.summary or "",
        ATTR_FAVOURITED: str(bookmark.favourited).lower(),
        ATTR_ARCHIVED: str(bookmark.archived).lower(),
    }
