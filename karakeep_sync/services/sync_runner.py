"""Run controller shared by manual and scheduled syncs."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager, AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING

import httpx

from karakeep_sync.adapters.karakeep.client import KarakeepClient
from karakeep_sync.adapters.markdown.html_converter import TrafilaturaHtmlConverter
from karakeep_sync.adapters.siyuan.client import SiYuanClient
from karakeep_sync.adapters.siyuan.store import SiYuanDocumentStore
from karakeep_sync.core.logging_utils import generate_correlation_id
from karakeep_sync.core.time_utils import to_epoch_ms
from karakeep_sync.sync.assets import AssetPipeline
from karakeep_sync.sync.engine import ReconciliationEngine
from karakeep_sync.sync.formatter import DocumentFormatter
from karakeep_sync.sync.models import RunState, SyncRunSummary

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from datetime import datetime

    from karakeep_sync.config.settings import AppConfig
    from karakeep_sync.config.sync_settings import SyncSettings, SyncSettingsStore

    EngineFactory = Callable[[SyncSettings], AbstractAsyncContextManager[ReconciliationEngine]]

logger = logging.getLogger(__name__)

MESSAGE_ALREADY_RUNNING = "Sync already in progress"


def default_engine_factory(
    config: AppConfig,
) -> Callable[[SyncSettings], AbstractAsyncContextManager[ReconciliationEngine]]:
    """Build engines wired to Karakeep, SiYuan and trafilatura."""

    @asynccontextmanager
    async def _factory(settings: SyncSettings) -> AsyncIterator[ReconciliationEngine]:
        timeout = config.runtime.request_timeout_sec
        async with AsyncExitStack() as stack:
            source = await stack.enter_async_context(
                KarakeepClient(settings.api_endpoint, settings.api_key, timeout=timeout)
            )
            siyuan = await stack.enter_async_context(
                SiYuanClient(config.siyuan.api_url, config.siyuan.api_token, timeout=timeout)
            )
            asset_http = await stack.enter_async_context(httpx.AsyncClient(timeout=timeout))

            store = SiYuanDocumentStore(siyuan)
            formatter = DocumentFormatter(
                assets=AssetPipeline(asset_http, store),
                html_converter=TrafilaturaHtmlConverter(),
            )
            yield ReconciliationEngine(source, store, formatter)

    return _factory


class SyncRunner:
    """Run one sync at a time and persist the last-sync marker afterwards.

    A request arriving while a run is active is rejected, not queued.
    """

    def __init__(
        self,
        settings_store: SyncSettingsStore,
        engine_factory: EngineFactory,
    ) -> None:
        self._settings_store = settings_store
        self._engine_factory = engine_factory
        self._state = RunState.IDLE
        self._last_summary: SyncRunSummary | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state is RunState.RUNNING

    @property
    def last_summary(self) -> SyncRunSummary | None:
        return self._last_summary

    async def run(self, trigger: str = "manual") -> SyncRunSummary:
        if self.is_syncing:
            logger.info("sync_rejected_already_running", extra={"trigger": trigger})
            return SyncRunSummary(
                success=False, message=MESSAGE_ALREADY_RUNNING, state=RunState.RUNNING
            )

        self._state = RunState.RUNNING
        correlation_id = generate_correlation_id()
        logger.info("sync_triggered", extra={"trigger": trigger, "correlation_id": correlation_id})
        summary: SyncRunSummary | None = None
        try:
            summary = await self._run_once(correlation_id)
        finally:
            self._state = summary.state if summary else RunState.CRITICAL_FAILURE

        self._last_summary = summary
        logger.info(
            "sync_finished",
            extra={
                "trigger": trigger,
                "correlation_id": correlation_id,
                "success": summary.success,
                "summary": summary.message,
            },
        )
        return summary

    async def _run_once(self, correlation_id: str) -> SyncRunSummary:
        try:
            settings = self._settings_store.load()
            async with self._engine_factory(settings) as engine:
                summary = await engine.run(settings, correlation_id=correlation_id)
        except Exception as exc:
            logger.exception("sync_run_setup_failed", extra={"correlation_id": correlation_id})
            return SyncRunSummary(
                success=False,
                message=f"Sync failed: {exc}",
                state=RunState.CRITICAL_FAILURE,
                correlation_id=correlation_id,
            )

        if summary.state is RunState.COMPLETED and summary.completed_at is not None:
            self._persist_last_sync(settings, summary, summary.completed_at)
        return summary

    def _persist_last_sync(
        self, settings: SyncSettings, summary: SyncRunSummary, completed_at: datetime
    ) -> None:
        # Re-read so edits made to the file during the run are not overwritten.
        try:
            current = self._settings_store.load()
        except RuntimeError:
            current = settings
        updated = current.model_copy(update={"last_sync_timestamp": to_epoch_ms(completed_at)})
        try:
            self._settings_store.save(updated)
        except OSError as exc:
            logger.error(
                "sync_last_timestamp_save_failed",
                extra={"correlation_id": summary.correlation_id, "error": str(exc)},
            )
