from __future__ import annotations

import logging
import re

import trafilatura

logger = logging.getLogger(__name__)

_BLANK_LINE_RE = re.compile(r"\n{3,}")


class TrafilaturaHtmlConverter:
    """Convert archived page HTML into Markdown with trafilatura.

    ``convert`` never raises: extraction errors are logged and reported as
    None so the caller can omit the snapshot.

    The result is main-content extraction, not a faithful rendering of the
    page. Navigation and boilerplate are dropped, and on short pages
    trafilatura may emit headings as plain lines without ``#`` markup
    (``<h1>Title</h1><p>Body.</p>`` becomes ``Title\\nBody.``).
    """

    def __init__(self, *, include_links: bool = True, include_tables: bool = True) -> None:
        self.include_links = include_links
        self.include_tables = include_tables

    def convert(self, html: str) -> str | None:
        if not html or not html.strip():
            return None
        try:
            markdown = trafilatura.extract(
                html,
                output_format="markdown",
                include_comments=False,
                include_links=self.include_links,
                include_tables=self.include_tables,
                include_formatting=True,
                favor_recall=True,
            )
        except Exception as exc:
            logger.warning("html_to_markdown_failed", extra={"error": str(exc)})
            return None

        if not markdown or not markdown.strip():
            return None
        return _BLANK_LINE_RE.sub("\n\n", markdown).strip()
