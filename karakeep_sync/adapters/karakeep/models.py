"""Pydantic models for the Karakeep API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

_KNOWN_CONTENT_TYPES = frozenset({"link", "text", "asset"})


class KarakeepTag(BaseModel):
    """Karakeep tag attached to a bookmark."""

    id: str | None = None
    name: str
    attached_by: str | None = Field(default=None, alias="attachedBy")  # ai, human

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}


class _ContentBase(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}


class LinkContent(_ContentBase):
    type: Literal["link"] = "link"
    url: str | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    image_asset_id: str | None = Field(default=None, alias="imageAssetId")
    screenshot_asset_id: str | None = Field(default=None, alias="screenshotAssetId")
    full_page_archive_asset_id: str | None = Field(default=None, alias="fullPageArchiveAssetId")
    favicon: str | None = None
    html_content: str | None = Field(default=None, alias="htmlContent")
    crawled_at: datetime | None = Field(default=None, alias="crawledAt")


class TextContent(_ContentBase):
    type: Literal["text"] = "text"
    text: str | None = None
    source_url: str | None = Field(default=None, alias="sourceUrl")


class AssetContent(_ContentBase):
    type: Literal["asset"] = "asset"
    asset_type: str | None = Field(default=None, alias="assetType")  # image, pdf
    asset_id: str | None = Field(default=None, alias="assetId")
    file_name: str | None = Field(default=None, alias="fileName")
    source_url: str | None = Field(default=None, alias="sourceUrl")
    text: str | None = None


class UnknownContent(_ContentBase):
    type: Literal["unknown"] = "unknown"


BookmarkContent = Annotated[
    LinkContent | TextContent | AssetContent | UnknownContent, Field(discriminator="type")
]


class KarakeepBookmark(BaseModel):
    """Karakeep bookmark record. ``id`` is the stable correlation key."""

    id: str
    created_at: datetime = Field(alias="createdAt")
    modified_at: datetime | None = Field(default=None, alias="modifiedAt")
    title: str | None = None
    archived: bool = False
    favourited: bool = False
    tagging_status: str | None = Field(default=None, alias="taggingStatus")
    note: str | None = None
    summary: str | None = None
    tags: list[KarakeepTag] = Field(default_factory=list)
    content: BookmarkContent = Field(default_factory=UnknownContent)

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_unknown_content(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value
        if not isinstance(value, dict):
            return {"type": "unknown"}
        if value.get("type") not in _KNOWN_CONTENT_TYPES:
            return {"type": "unknown"}
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        return value or []

    @property
    def effective_modified_at(self) -> datetime:
        """Modification reference: ``modified_at``, else ``created_at``."""
        return self.modified_at or self.created_at

    @property
    def source_url(self) -> str | None:
        content = self.content
        if isinstance(content, LinkContent):
            return content.url
        if isinstance(content, TextContent | AssetContent):
            return content.source_url
        return None


class KarakeepBookmarkPage(BaseModel):
    """One page of the bookmark listing."""

    bookmarks: list[KarakeepBookmark] = Field(default_factory=list)
    total: int | None = None
    next_cursor: str | None = Field(default=None, alias="nextCursor")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("bookmarks", mode="before")
    @classmethod
    def _coerce_bookmarks(cls, value: Any) -> Any:
        return value or []
