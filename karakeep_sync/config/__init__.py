from __future__ import annotations

from .settings import AppConfig, RuntimeConfig, Settings, SiYuanConfig, load_config
from .sync_settings import DEFAULT_KARAKEEP_API_ENDPOINT, SyncSettings, SyncSettingsStore

__all__ = [
    "DEFAULT_KARAKEEP_API_ENDPOINT",
    "AppConfig",
    "RuntimeConfig",
    "Settings",
    "SiYuanConfig",
    "SyncSettings",
    "SyncSettingsStore",
    "load_config",
]
