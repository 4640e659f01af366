from __future__ import annotations

import logging

from reprocessor.core.errors import ServiceError, describe_error
from reprocessor.core.log_lines import LogLine, format_log_lines, highlight_spans
from reprocessor.core.schema import TriggerLogRecord
from reprocessor.infrastructure import Notifier, ReprocessingService

logger = logging.getLogger(__name__)


class TriggerLogViewer:
    """Read-only access to the persisted trigger logs of one record."""

    def __init__(self, service: ReprocessingService, notifier: Notifier) -> None:
        self._service = service
        self._notifier = notifier

    async def load(self, record_id: str) -> list[TriggerLogRecord]:
        try:
            logs = await self._service.list_trigger_logs(record_id)
        except ServiceError as exc:
            logger.warning("Error loading logs for %s: %s", record_id, exc)
            self._notifier.notify("Error", f"Failed to load logs: {describe_error(exc)}", "error")
            return []
        logger.debug("Loaded %d log(s) for %s", len(logs), record_id)
        return logs

    async def is_logging_enabled(self) -> bool:
        try:
            return await self._service.is_logging_enabled()
        except ServiceError as exc:
            self._notifier.notify("Error", f"Failed to read logging settings: {describe_error(exc)}", "error")
            return False

    async def lines(self, record_id: str, log_id: str, filter_text: str = "") -> list[dict[str, object]] | None:
        """Numbered lines of one log, with offsets of ``record_id`` in each line."""

        logs = await self.load(record_id)
        selected = next((log for log in logs if log.id == log_id), None)
        if selected is None:
            return None
        return [_line_payload(line, record_id) for line in format_log_lines(selected.message, filter_text)]


def _line_payload(line: LogLine, record_id: str) -> dict[str, object]:
    return {
        "number": line.number,
        "level": line.level,
        "text": line.text,
        "highlights": [list(span) for span in highlight_spans(line.text, record_id)],
    }
