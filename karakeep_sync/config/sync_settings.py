"""Sync settings: the user-facing configuration consumed by every sync run."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_KARAKEEP_API_ENDPOINT = "https://api.karakeep.app/api/v1"


class SyncSettings(BaseModel):
    """Karakeep → SiYuan sync settings, stored as camelCase JSON."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_key: str = Field(default="", alias="apiKey")
    api_endpoint: str = Field(default=DEFAULT_KARAKEEP_API_ENDPOINT, alias="apiEndpoint")
    target_collection_id: str | None = Field(
        default=None,
        alias="targetCollectionId",
        validation_alias=AliasChoices(
            "targetCollectionId", "syncNotebookId", "target_collection_id"
        ),
    )
    sync_interval_minutes: int = Field(default=60, alias="syncIntervalMinutes")
    last_sync_timestamp: int = Field(default=0, alias="lastSyncTimestamp")
    update_existing_files: bool = Field(default=False, alias="updateExistingFiles")
    exclude_archived: bool = Field(default=True, alias="excludeArchived")
    only_favorites: bool = Field(default=False, alias="onlyFavorites")
    excluded_tags: tuple[str, ...] = Field(default=(), alias="excludedTags")
    download_assets: bool = Field(default=True, alias="downloadAssets")

    @field_validator("api_key", mode="before")
    @classmethod
    def _validate_api_key(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        key = str(value).strip()
        if len(key) > 500:
            msg = "Karakeep API key appears to be too long"
            raise ValueError(msg)
        return key

    @field_validator("api_endpoint", mode="before")
    @classmethod
    def _validate_api_endpoint(cls, value: Any) -> str:
        url = str(value or DEFAULT_KARAKEEP_API_ENDPOINT).strip()
        if not url:
            return DEFAULT_KARAKEEP_API_ENDPOINT
        if not url.startswith("http"):
            msg = "Karakeep API endpoint must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("target_collection_id", mode="before")
    @classmethod
    def _validate_collection(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    @field_validator("sync_interval_minutes", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 60))
        except ValueError as exc:
            msg = "Sync interval must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10080:
            msg = "Sync interval must be between 0 and 10080 minutes"
            raise ValueError(msg)
        return parsed

    @field_validator("last_sync_timestamp", mode="before")
    @classmethod
    def _validate_last_sync(cls, value: Any) -> int:
        if value in (None, ""):
            return 0
        return max(int(value), 0)

    @field_validator("excluded_tags", mode="before")
    @classmethod
    def _parse_excluded_tags(cls, value: Any) -> tuple[str, ...]:
        if value in (None, ""):
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(str(tag).strip() for tag in value if str(tag).strip())

    @property
    def excluded_tags_normalized(self) -> frozenset[str]:
        return frozenset(tag.lower() for tag in self.excluded_tags)

    def to_storage(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True)
        data["excludedTags"] = list(self.excluded_tags)
        return data


class SyncSettingsStore:
    """Load and save :class:`SyncSettings` as a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> SyncSettings:
        """Load settings, merging stored known keys over the defaults.

        A missing file yields defaults. Unknown keys are ignored.

        Raises:
            RuntimeError: If the file is unreadable or holds invalid values.
        """
        if not self.path.exists():
            logger.info("sync_settings_defaults_used", extra={"path": str(self.path)})
            return SyncSettings()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Could not read settings file {self.path}: {exc}"
            raise RuntimeError(msg) from exc

        if not isinstance(raw, dict):
            msg = f"Settings file {self.path} must contain a JSON object"
            raise RuntimeError(msg)

        try:
            settings = SyncSettings.model_validate(raw)
        except ValidationError as exc:
            msg = f"Invalid settings in {self.path}: {exc}"
            raise RuntimeError(msg) from exc

        logger.debug("sync_settings_loaded", extra={"path": str(self.path)})
        return settings

    def save(self, settings: SyncSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(settings.to_storage(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        tmp_path.replace(self.path)
        logger.info("sync_settings_saved", extra={"path": str(self.path)})
