"""Domain entities for record reprocessing."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    QUEUED = "Queued"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    ABORTED = "Aborted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in (JobStatus.FAILED, JobStatus.ABORTED)


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.ABORTED})


@dataclass(slots=True)
class JobHandle:
    """Local view of a launched batch job, refreshed by the polling cycle."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    percent_complete: float = 0
    items_processed: int = 0
    total_items: int = 0
    error_count: int = 0
    extended_status: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def apply(
        self,
        *,
        status: JobStatus,
        percent_complete: float,
        items_processed: int,
        total_items: int,
        error_count: int,
        extended_status: str,
    ) -> bool:
        """Overwrite the mutable fields; returns ``False`` once the job is terminal."""

        if self.is_terminal:
            return False
        self.status = status
        self.percent_complete = percent_complete
        self.total_items = max(0, total_items)
        self.items_processed = max(0, min(items_processed, self.total_items))
        self.error_count = max(0, error_count)
        self.extended_status = extended_status
        return True


@dataclass(slots=True)
class EventLogEntry:
    """One execution-log event received from the push channel."""

    id: str
    timestamp: str | None = None
    message: str | None = None
    context: str | None = None
    trigger_name: str | None = None
    sobject_type: str | None = None
    related_record_ids: list[str] = field(default_factory=list)
    matched: bool = False


@dataclass(slots=True)
class ReprocessorState:
    """Operator selections held by one reprocessing session."""

    target_type: str
    trigger_context: str
    filter: str = ""
    batch_size: int = 100
    target_types: list[str] = field(default_factory=list)
    logic_options: list[Any] = field(default_factory=list)
    selected_logic_ids: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    field_text: str = ""
    field_options: list[str] = field(default_factory=list)
    record_count: int = 0
