"""Pure helpers deriving document paths and asset file names."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from karakeep_sync.core.time_utils import ensure_utc

if TYPE_CHECKING:
    from datetime import datetime

MAX_TITLE_LENGTH = 60

_PATH_UNSAFE_RE = re.compile(r"[\\/:*?\"<>|#%^&{}\[\]\n\r\t]")
_WHITESPACE_RE = re.compile(r"\s+")
_DASH_RUN_RE = re.compile(r"-+")
_FILENAME_UNSAFE_RE = re.compile(r"[\\/:*?\"<>|]")
_TITLE_HINT_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
}
FALLBACK_EXTENSION = "asset"


def iso_date(value: datetime) -> str:
    """Calendar day of ``value`` in UTC, as YYYY-MM-DD."""
    return ensure_utc(value).date().isoformat()


def sanitize_document_name(title: str, created_at: datetime) -> str:
    """Build ``<date>-<title>`` suitable as a document path segment.

    Unsafe characters and whitespace become ``-``, runs of ``-`` collapse,
    and the title part is capped at 60 characters. An empty title part
    falls back to ``bookmark-<date>``.
    """
    date_str = iso_date(created_at)

    name = _PATH_UNSAFE_RE.sub("-", title)
    name = _WHITESPACE_RE.sub("-", name)
    name = _DASH_RUN_RE.sub("-", name)
    name = name.strip("-").strip(".")

    if len(name) > MAX_TITLE_LENGTH:
        name = name[:MAX_TITLE_LENGTH].rstrip("-")

    if not name:
        name = f"bookmark-{date_str}"

    return f"{date_str}-{name}"


def document_path(title: str, created_at: datetime) -> str:
    return "/" + sanitize_document_name(title, created_at)


def extension_for(content_type: str | None, fallback_file_name: str | None = None) -> str:
    """Pick a file extension from the Content-Type, then the existing name."""
    main_type = (content_type or "").split(";")[0].strip().lower()
    if main_type in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[main_type]
    if fallback_file_name and "." in fallback_file_name:
        ext = fallback_file_name.rsplit(".", 1)[-1]
        if ext and len(ext) < 5:
            return ext.lower()
    return FALLBACK_EXTENSION


def sanitize_file_name(file_name: str) -> str:
    return _WHITESPACE_RE.sub("_", _FILENAME_UNSAFE_RE.sub("-", file_name))


def asset_file_name(
    url_basename: str, content_type: str | None, id_hint: str, title_hint: str
) -> str:
    """Choose the uploaded file name for an asset.

    The URL basename is kept when it has an extension and is at most 50
    characters; otherwise ``<id prefix>-<title>.<ext>`` is synthesized.
    """
    file_name = url_basename
    if not file_name or len(file_name) > 50 or "." not in file_name:
        extension = extension_for(content_type, file_name)
        safe_title = _TITLE_HINT_UNSAFE_RE.sub("-", title_hint)[:20]
        id_part = id_hint[:8]
        file_name = f"{id_part}-{safe_title or 'asset'}.{extension}"
    return sanitize_file_name(file_name)
