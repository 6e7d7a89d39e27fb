"""Run bookkeeping models: per-record outcomes, run statistics and summary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import StrEnum

from pydantic import BaseModel, Field


class RecordStatus(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    SKIPPED_FILTERED = "skipped_filtered"
    ERROR = "error"


class RunState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CRITICAL_FAILURE = "critical_failure"


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of reconciling one bookmark."""

    status: RecordStatus
    message: str | None = None


class SyncRunStats(BaseModel):
    """Counters for one run."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    skipped_filtered: int = 0
    errors: int = 0
    error_messages: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, result: ProcessResult) -> None:
        if result.status is RecordStatus.CREATED:
            self.created += 1
        elif result.status is RecordStatus.UPDATED:
            self.updated += 1
        elif result.status is RecordStatus.SKIPPED:
            self.skipped += 1
        elif result.status is RecordStatus.SKIPPED_FILTERED:
            self.skipped_filtered += 1
        else:
            self.record_error(result.message or "Unknown error")

    def record_error(self, message: str) -> None:
        self.errors += 1
        self.error_messages.append(message)

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped + self.skipped_filtered + self.errors

    def tally(self) -> str:
        """Human-readable counts; ``skipped`` includes the filtered ones."""
        return (
            f"{self.created} created, {self.updated} updated, "
            f"{self.skipped + self.skipped_filtered} skipped "
            f"({self.skipped_filtered} filtered), {self.errors} errors"
        )


class SyncRunSummary(BaseModel):
    """What a run reports to its caller."""

    success: bool
    message: str
    state: RunState
    stats: SyncRunStats = Field(default_factory=SyncRunStats)
    completed_at: datetime | None = None
    correlation_id: str | None = None
