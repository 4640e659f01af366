"""Domain layer definitions."""

from .reprocessing import (
    TERMINAL_STATUSES,
    EventLogEntry,
    JobHandle,
    JobStatus,
    ReprocessorState,
)

__all__ = [
    "EventLogEntry",
    "JobHandle",
    "JobStatus",
    "ReprocessorState",
    "TERMINAL_STATUSES",
]
