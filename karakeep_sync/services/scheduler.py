"""Background scheduler for periodic Karakeep syncs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from datetime import datetime

    from karakeep_sync.services.sync_runner import SyncRunner

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "karakeep_sync"


class SchedulerService:
    """Trigger the shared :class:`SyncRunner` on a fixed interval.

    Timer ticks go through the same runner as manual syncs, so a tick that
    lands during a run is rejected by the runner.
    """

    def __init__(self, runner: SyncRunner) -> None:
        self.runner = runner
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False
        self._interval_minutes = 0

    def start(self, interval_minutes: int) -> None:
        """Start the scheduler; an interval of 0 leaves periodic sync off."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")
        self.reschedule(interval_minutes)

    def reschedule(self, interval_minutes: int) -> None:
        """Replace the sync job with one at the new interval."""
        if not self._scheduler or not self._started:
            logger.warning("scheduler_not_started")
            return

        if self._scheduler.get_job(SYNC_JOB_ID):
            self._scheduler.remove_job(SYNC_JOB_ID)
        self._interval_minutes = interval_minutes

        if interval_minutes <= 0:
            logger.info("scheduler_sync_job_disabled", extra={"interval_minutes": interval_minutes})
            return

        self._scheduler.add_job(
            self._run_scheduled_sync,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=SYNC_JOB_ID,
            name="Karakeep Bookmark Sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "scheduler_sync_job_added",
            extra={"job_id": SYNC_JOB_ID, "interval_minutes": interval_minutes},
        )

    def stop(self) -> None:
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def _run_scheduled_sync(self) -> None:
        if self.runner.is_syncing:
            logger.info("scheduled_sync_skipped_running")
            return
        logger.info("scheduled_sync_starting")
        summary = await self.runner.run(trigger="scheduled")
        logger.info(
            "scheduled_sync_complete",
            extra={"success": summary.success, "summary": summary.message},
        )

    def get_next_run_time(self) -> datetime | None:
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None
