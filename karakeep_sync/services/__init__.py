"""Run control and scheduling for Karakeep sync."""

from karakeep_sync.services.scheduler import SchedulerService
from karakeep_sync.services.sync_runner import SyncRunner, default_engine_factory

__all__ = ["SchedulerService", "SyncRunner", "default_engine_factory"]
