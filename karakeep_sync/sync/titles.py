"""Document title derivation for bookmarks without an explicit title."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

from karakeep_sync.adapters.karakeep.models import AssetContent, LinkContent, TextContent
from karakeep_sync.sync.paths import iso_date

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark

MAX_TEXT_TITLE_LENGTH = 100

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_SEPARATOR_RE = re.compile(r"[-_]")


def _last_path_segment(path: str) -> str | None:
    segments = path.split("/")
    last = segments.pop() if segments else ""
    if not last and segments:
        last = segments.pop()
    return last or None


def _parse_url(url: str) -> tuple[str, str] | None:
    """Return (path, hostname) or None when ``url`` is not an absolute URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts.path, parts.hostname


def _title_from_link(content: LinkContent) -> str | None:
    if content.title and content.title.strip():
        return content.title.strip()
    if not content.url:
        return None

    parsed = _parse_url(content.url)
    if parsed is None:
        return content.url[:MAX_TEXT_TITLE_LENGTH]
    path, hostname = parsed

    segment = _last_path_segment(path)
    if segment:
        path_title = _SEPARATOR_RE.sub(" ", _EXTENSION_RE.sub("", unquote(segment))).strip()
        if path_title:
            return path_title
    return hostname.removeprefix("www.")


def _title_from_text(content: TextContent) -> str | None:
    if not content.text:
        return None
    first_line = content.text.split("\n")[0].strip()
    if not first_line:
        return None
    if len(first_line) <= MAX_TEXT_TITLE_LENGTH:
        return first_line
    return first_line[: MAX_TEXT_TITLE_LENGTH - 3] + "..."


def _title_from_asset(content: AssetContent) -> str | None:
    if content.file_name:
        name = _EXTENSION_RE.sub("", content.file_name).strip()
        if name:
            return name
    if not content.source_url:
        return None

    parsed = _parse_url(content.source_url)
    if parsed is None:
        return content.source_url[:MAX_TEXT_TITLE_LENGTH]
    path, hostname = parsed

    segment = _last_path_segment(path)
    if segment:
        return unquote(segment)
    return hostname


def derive_title(bookmark: KarakeepBookmark) -> str:
    """Pick the document title for a bookmark.

    An explicit non-blank title wins. Otherwise the content decides (link:
    page title, URL path, hostname; text: first line; asset: file name,
    source URL) with ``Bookmark-<id prefix>-<date>`` as the last resort.
    """
    if bookmark.title and bookmark.title.strip():
        return bookmark.title.strip()

    content = bookmark.content
    derived: str | None = None
    if isinstance(content, LinkContent):
        derived = _title_from_link(content)
    elif isinstance(content, TextContent):
        derived = _title_from_text(content)
    elif isinstance(content, AssetContent):
        derived = _title_from_asset(content)

    if derived:
        return derived
    return f"Bookmark-{bookmark.id[:8]}-{iso_date(bookmark.created_at)}"
