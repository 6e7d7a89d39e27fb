"""Karakeep source adapter: paginated bookmark listing."""

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
    KarakeepTag,
    LinkContent,
    TextContent,
    UnknownContent,
)

__all__ = [
    "BOOKMARK_FETCH_LIMIT",
    "AssetContent",
    "KarakeepBookmark",
    "KarakeepBookmarkPage",
    "KarakeepClient",
    "KarakeepClientError",
    "KarakeepTag",
    "LinkContent",
    "SourceUnavailableError",
    "TextContent",
    "UnknownContent",
]
