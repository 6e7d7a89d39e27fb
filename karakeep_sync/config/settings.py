from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "karakeep-sync-settings.json"


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="loguru", validation_alias="LOG_FORMAT")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    request_timeout_sec: float = Field(default=30.0, validation_alias="REQUEST_TIMEOUT_SEC")
    settings_path: str = Field(
        default=DEFAULT_SETTINGS_PATH,
        validation_alias=AliasChoices("KARAKEEP_SYNC_SETTINGS_PATH", "SETTINGS_PATH"),
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_format", mode="before")
    @classmethod
    def _validate_log_format(cls, value: Any) -> str:
        log_format = str(value or "loguru").lower().strip()
        if log_format not in {"loguru", "json"}:
            msg = f"Invalid log format: {value}. Must be 'loguru' or 'json'"
            raise ValueError(msg)
        return log_format

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        try:
            timeout = float(str(value or 30))
        except ValueError as exc:
            msg = "Timeout must be a valid number"
            raise ValueError(msg) from exc
        if timeout <= 0:
            msg = "Timeout must be positive"
            raise ValueError(msg)
        if timeout > 3600:
            msg = "Timeout too large (max 3600 seconds)"
            raise ValueError(msg)
        return timeout

    @field_validator("settings_path", mode="before")
    @classmethod
    def _validate_settings_path(cls, value: Any) -> str:
        path = str(value or DEFAULT_SETTINGS_PATH).strip()
        if "\x00" in path:
            msg = "Settings path contains invalid characters"
            raise ValueError(msg)
        return path or DEFAULT_SETTINGS_PATH


class SiYuanConfig(BaseModel):
    """Connection to the SiYuan kernel that receives the synced documents."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_url: str = Field(default="http://127.0.0.1:6806", validation_alias="SIYUAN_API_URL")
    api_token: str = Field(default="", validation_alias="SIYUAN_API_TOKEN")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "http://127.0.0.1:6806").strip()
        if not url:
            return "http://127.0.0.1:6806"
        if not url.startswith("http"):
            msg = "SiYuan API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("api_token", mode="before")
    @classmethod
    def _validate_api_token(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        return str(value).strip()


@dataclass(frozen=True)
class AppConfig:
    runtime: RuntimeConfig
    siyuan: SiYuanConfig


class Settings(BaseSettings):
    """Process settings loaded from environment variables and ``.env``.

    Nested models are populated by matching validation_alias on each field.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    siyuan: SiYuanConfig = Field(default_factory=SiYuanConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables.

        Constructor arguments take precedence over the environment.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**dict(os.environ), **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(runtime=self.runtime, siyuan=self.siyuan)


def load_config(**overrides: Any) -> AppConfig:
    """Load process configuration from the environment.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc
    return settings.as_app_config()
