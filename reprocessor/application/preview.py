"""Dry-run query and paged view over its results."""
from __future__ import annotations

import logging
from typing import Any

from reprocessor.core import pagination
from reprocessor.core.errors import ServiceError, ValidationError, describe_error
from reprocessor.core.pagination import PreviewPage
from reprocessor.infrastructure import Notifier, ReprocessingService

logger = logging.getLogger(__name__)


def record_id(record: dict[str, Any]) -> str | None:
    value = record.get("Id", record.get("id"))
    return None if value is None else str(value)


class PreviewEngine:
    """Holds the last preview result set and the working set derived from it."""

    def __init__(self, service: ReprocessingService, notifier: Notifier, *, page_size: int = 10) -> None:
        self._service = service
        self._notifier = notifier
        self._view = pagination.first_page([], page_size)
        self._record_ids: tuple[str, ...] = ()
        self.record_count = 0

    @property
    def view(self) -> PreviewPage:
        return self._view

    @property
    def record_ids(self) -> tuple[str, ...]:
        return self._record_ids

    @property
    def records(self) -> list[dict[str, Any]]:
        return list(self._view.records)

    async def preview(self, target_type: str, filter: str) -> list[dict[str, Any]] | None:
        if not target_type:
            raise ValidationError("target type is required")
        try:
            records = await self._service.preview_query(target_type, filter)
            count = await self._service.count_records(target_type, filter)
        except ServiceError as exc:
            logger.warning("Preview of %s failed: %s", target_type, exc)
            self._notifier.notify("Error", f"Failed to preview records: {describe_error(exc)}", "error")
            return None

        self._view = pagination.first_page(records, self._view.page_size)
        self._record_ids = tuple(rid for rid in (record_id(row) for row in records) if rid is not None)
        self.record_count = count
        logger.info("Preview of %s returned %d record(s) of %d", target_type, len(records), count)
        return records

    def next_page(self) -> PreviewPage:
        self._view = pagination.next_page(self._view)
        return self._view

    def prev_page(self) -> PreviewPage:
        self._view = pagination.prev_page(self._view)
        return self._view

    def snapshot(self) -> dict[str, object]:
        view = self._view
        return {
            "page": view.page,
            "page_size": view.page_size,
            "total_pages": view.total_pages,
            "preview_count": len(view.records),
            "record_count": self.record_count,
            "records": view.paged_records,
            "has_next": view.has_next,
            "has_previous": view.has_previous,
        }
