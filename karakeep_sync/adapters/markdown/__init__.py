"""HTML to Markdown conversion for content snapshots."""

from karakeep_sync.adapters.markdown.html_converter import TrafilaturaHtmlConverter

__all__ = ["TrafilaturaHtmlConverter"]
