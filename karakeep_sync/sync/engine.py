"""Reconciliation engine: Karakeep bookmarks → SiYuan documents, one way."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from karakeep_sync.core.logging_utils import generate_correlation_id
from karakeep_sync.core.time_utils import parse_iso, to_epoch_ms, utc_now
from karakeep_sync.sync.attributes import ATTR_MODIFIED, build_document_attributes
from karakeep_sync.sync.errors import SyncConfigurationError
from karakeep_sync.sync.filters import filter_reason
from karakeep_sync.sync.models import (
    ProcessResult,
    RecordStatus,
    RunState,
    SyncRunStats,
    SyncRunSummary,
)
from karakeep_sync.sync.paths import document_path
from karakeep_sync.sync.titles import derive_title

if TYPE_CHECKING:
    from karakeep_sync.adapters.karakeep.models import KarakeepBookmark
    from karakeep_sync.config.sync_settings import SyncSettings
    from karakeep_sync.sync.protocols import (
        DocumentFormatterProtocol,
        SourceClientProtocol,
        TargetStoreProtocol,
    )

logger = logging.getLogger(__name__)


def check_preconditions(settings: SyncSettings) -> str:
    """Return the target collection id, or raise if the settings cannot sync."""
    if not settings.api_key:
        raise SyncConfigurationError("Karakeep API key not configured.")
    if not settings.target_collection_id:
        raise SyncConfigurationError("Target SiYuan notebook not configured.")
    return settings.target_collection_id


class ReconciliationEngine:
    """Paginate the source and create, refresh or skip one document per bookmark.

    Records are handled strictly one after another. An update deletes the
    existing document and creates a new one at the same path, so the
    document id changes while the external-id attribute stays the same.
    """

    def __init__(
        self,
        source: SourceClientProtocol,
        store: TargetStoreProtocol,
        formatter: DocumentFormatterProtocol,
    ) -> None:
        self._source = source
        self._store = store
        self._formatter = formatter

    async def run(
        self, settings: SyncSettings, *, correlation_id: str | None = None
    ) -> SyncRunSummary:
        """Execute one full sync run. Never raises; failures land in the summary."""
        correlation_id = correlation_id or generate_correlation_id()
        start_time = time.time()
        stats = SyncRunStats()

        try:
            collection_id = check_preconditions(settings)
        except SyncConfigurationError as exc:
            logger.error(
                "sync_configuration_error",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )
            return SyncRunSummary(
                success=False,
                message=str(exc),
                state=RunState.CRITICAL_FAILURE,
                stats=stats,
                correlation_id=correlation_id,
            )

        logger.info(
            "sync_run_start",
            extra={"correlation_id": correlation_id, "notebook": collection_id},
        )

        try:
            await self._sync_all_pages(settings, collection_id, stats, correlation_id)
        except Exception as exc:
            stats.record_error(f"Critical: {exc}")
            stats.duration_seconds = time.time() - start_time
            logger.exception(
                "sync_run_critical_failure",
                extra={"correlation_id": correlation_id, "processed": stats.processed},
            )
            return SyncRunSummary(
                success=False,
                message=f"Sync failed: {exc}",
                state=RunState.CRITICAL_FAILURE,
                stats=stats,
                correlation_id=correlation_id,
            )

        stats.duration_seconds = time.time() - start_time
        # Keys must not collide with LogRecord attributes such as "created".
        logger.info(
            "sync_run_complete",
            extra={
                "correlation_id": correlation_id,
                "created_count": stats.created,
                "updated_count": stats.updated,
                "skipped_count": stats.skipped,
                "filtered_count": stats.skipped_filtered,
                "error_count": stats.errors,
                "duration": stats.duration_seconds,
            },
        )
        return SyncRunSummary(
            success=stats.errors == 0,
            message=f"Sync complete: {stats.tally()}",
            state=RunState.COMPLETED,
            stats=stats,
            completed_at=utc_now(),
            correlation_id=correlation_id,
        )

    async def _sync_all_pages(
        self,
        settings: SyncSettings,
        collection_id: str,
        stats: SyncRunStats,
        correlation_id: str,
    ) -> None:
        seen_ids: set[str] = set()
        cursor: str | None = None
        page_number = 0

        while True:
            page_number += 1
            page = await self._source.fetch_page(cursor)
            logger.info(
                "sync_page_received",
                extra={
                    "correlation_id": correlation_id,
                    "page": page_number,
                    "count": len(page.bookmarks),
                    "has_next": bool(page.next_cursor),
                },
            )

            for bookmark in page.bookmarks:
                if bookmark.id in seen_ids:
                    logger.warning(
                        "sync_duplicate_bookmark",
                        extra={"correlation_id": correlation_id, "bookmark_id": bookmark.id},
                    )
                    continue
                seen_ids.add(bookmark.id)

                result = await self.process_bookmark(
                    bookmark, settings, collection_id, correlation_id=correlation_id
                )
                stats.record(result)
                if result.status is RecordStatus.ERROR:
                    logger.error(
                        "sync_bookmark_failed",
                        extra={
                            "correlation_id": correlation_id,
                            "bookmark_id": bookmark.id,
                            "error": result.message,
                        },
                    )

            if not page.next_cursor:
                break
            cursor = page.next_cursor

    async def process_bookmark(
        self,
        bookmark: KarakeepBookmark,
        settings: SyncSettings,
        collection_id: str,
        *,
        correlation_id: str | None = None,
    ) -> ProcessResult:
        """Filter, then create, update or skip the document for one bookmark."""
        reason = filter_reason(bookmark, settings)
        if reason:
            logger.debug(
                "sync_bookmark_filtered",
                extra={"correlation_id": correlation_id, "bookmark_id": bookmark.id, "reason": reason},
            )
            return ProcessResult(RecordStatus.SKIPPED_FILTERED, reason)

        title = derive_title(bookmark)
        path = document_path(title, bookmark.created_at)

        try:
            existing_doc_id = await self._store.find_by_external_id(collection_id, bookmark.id)
            if existing_doc_id is None:
                logger.info(
                    "sync_creating_document",
                    extra={"correlation_id": correlation_id, "bookmark_id": bookmark.id, "path": path},
                )
                return await self._create_document(bookmark, settings, collection_id, title, path)

            if not await self.should_update(existing_doc_id, bookmark, settings):
                logger.debug(
                    "sync_document_up_to_date",
                    extra={"correlation_id": correlation_id, "doc_id": existing_doc_id},
                )
                return ProcessResult(RecordStatus.SKIPPED, "Exists, no update needed")

            logger.info(
                "sync_updating_document",
                extra={
                    "correlation_id": correlation_id,
                    "bookmark_id": bookmark.id,
                    "doc_id": existing_doc_id,
                    "path": path,
                },
            )
            return await self._replace_document(
                existing_doc_id, bookmark, settings, collection_id, title, path
            )
        except Exception as exc:
            logger.exception(
                "sync_bookmark_processing_error",
                extra={"correlation_id": correlation_id, "bookmark_id": bookmark.id, "path": path},
            )
            return ProcessResult(RecordStatus.ERROR, str(exc) or type(exc).__name__)

    async def should_update(
        self, doc_id: str, bookmark: KarakeepBookmark, settings: SyncSettings
    ) -> bool:
        """Decide whether an existing document must be refreshed.

        Requires updates to be enabled; then refreshes when the stored
        modification time is missing, unreadable or older than the
        bookmark's. Unavailable attributes count as stale.
        """
        if not settings.update_existing_files:
            return False

        attrs = await self._store.get_attributes(doc_id)
        if attrs is None:
            logger.warning("sync_attrs_unavailable_assume_stale", extra={"doc_id": doc_id})
            return True

        stored = parse_iso(attrs.get(ATTR_MODIFIED))
        if stored is None:
            return True
        return to_epoch_ms(bookmark.effective_modified_at) > to_epoch_ms(stored)

    async def _create_document(
        self,
        bookmark: KarakeepBookmark,
        settings: SyncSettings,
        collection_id: str,
        title: str,
        path: str,
    ) -> ProcessResult:
        body = await self._formatter.format(bookmark, title, settings)
        doc_id = await self._store.create_document(collection_id, path, body)
        if not doc_id:
            return ProcessResult(RecordStatus.ERROR, f"Failed to create document at {path}")

        await self._store.set_attributes(doc_id, build_document_attributes(bookmark, title))
        return ProcessResult(RecordStatus.CREATED)

    async def _replace_document(
        self,
        existing_doc_id: str,
        bookmark: KarakeepBookmark,
        settings: SyncSettings,
        collection_id: str,
        title: str,
        path: str,
    ) -> ProcessResult:
        if not await self._store.delete_document(existing_doc_id):
            return ProcessResult(RecordStatus.ERROR, f"Failed to delete old doc {existing_doc_id}")

        # The old document is gone from here on; a failed create leaves none.
        result = await self._create_document(bookmark, settings, collection_id, title, path)
        if result.status is RecordStatus.CREATED:
            return ProcessResult(RecordStatus.UPDATED)

        logger.error(
            "sync_recreate_after_delete_failed",
            extra={"bookmark_id": bookmark.id, "previous_doc_id": existing_doc_id},
        )
        return result
