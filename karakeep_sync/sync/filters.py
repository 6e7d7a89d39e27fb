"""Per-record filters applied before any store access."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark
    from karakeep_sync.config.sync_settings import SyncSettings

REASON_ARCHIVED = "Archived"
REASON_NOT_FAVOURITE = "Not favourite"
REASON_EXCLUDED_TAG = "Excluded tag"


def filter_reason(bookmark: KarakeepBookmark, settings: SyncSettings) -> str | None:
    """Return why ``bookmark`` is filtered out, or None if it should sync.

    Checks run in order: archived, not favourite, excluded tag. Favourited
    bookmarks are never dropped for their tags.
    """
    if settings.exclude_archived and bookmark.archived:
        return REASON_ARCHIVED
    if settings.only_favorites and not bookmark.favourited:
        return REASON_NOT_FAVOURITE
    if not bookmark.favourited:
        excluded = settings.excluded_tags_normalized
        if excluded and any(tag.name.lower().strip() in excluded for tag in bookmark.tags):
            return REASON_EXCLUDED_TAG
    return None
