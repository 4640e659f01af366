"""Contract for the remote job executor and an in-memory stand-in."""
from __future__ import annotations

import itertools
import json
import math
import re
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from reprocessor.core.errors import QueryError, ServiceError
from reprocessor.core.fields import split_field_list
from reprocessor.core.schema import JobStatusSnapshot, LaunchJobRequest, LogicOption, TriggerLogRecord

_CLAUSE_SPLIT = re.compile(r"\s+and\s+", re.IGNORECASE)
_CLAUSE = re.compile(r"^\s*(\w+)\s*=\s*(?:'([^']*)'|\"([^\"]*)\"|(\S+))\s*$")


class ReprocessingService(Protocol):
    """Remote operations the reprocessor depends on."""

    async def list_target_types(self) -> list[str]: ...

    async def count_records(self, target_type: str, filter: str) -> int: ...

    async def preview_query(self, target_type: str, filter: str) -> list[dict[str, Any]]: ...

    async def list_logic_options(self, target_type: str, trigger_context: str) -> list[LogicOption]: ...

    async def describe_fields(self, target_type: str) -> list[str]: ...

    async def launch_job(self, request: LaunchJobRequest) -> str: ...

    async def get_job_status(self, job_id: str) -> JobStatusSnapshot: ...

    async def list_trigger_logs(self, record_id: str) -> list[TriggerLogRecord]: ...

    async def is_logging_enabled(self) -> bool: ...


def parse_filter(text: str | None) -> list[tuple[str, str]]:
    """Parse ``field = 'value' AND ...`` into lowercase field/value pairs."""

    if not text or not text.strip():
        return []
    clauses: list[tuple[str, str]] = []
    for raw in _CLAUSE_SPLIT.split(text.strip()):
        match = _CLAUSE.match(raw)
        if not match:
            raise QueryError(f"unsupported filter clause: {raw.strip()}")
        field_name = match.group(1).lower()
        value = next(group for group in match.groups()[1:] if group is not None)
        clauses.append((field_name, value))
    return clauses


class InMemoryReprocessingService:
    """Deterministic executor used for local runs and tests."""

    def __init__(
        self,
        records: dict[str, list[dict[str, Any]]] | None = None,
        logic_options: list[dict[str, Any]] | None = None,
        *,
        fields: dict[str, list[str]] | None = None,
        trigger_logs: list[dict[str, Any]] | None = None,
        logging_enabled: bool = True,
    ) -> None:
        self._records = {key: [dict(row) for row in rows] for key, rows in (records or {}).items()}
        self._logic_options = [dict(option) for option in logic_options or []]
        self._fields = dict(fields or {})
        self._trigger_logs = [dict(log) for log in trigger_logs or []]
        self._logging_enabled = logging_enabled
        self._job_counter = itertools.count(1)
        self._jobs: dict[str, list[JobStatusSnapshot]] = {}
        self._scripted: list[list[dict[str, Any]]] = []
        self._failures: dict[str, Exception] = {}
        self.launched: list[LaunchJobRequest] = []
        self.status_calls = 0

    @classmethod
    def from_fixture(cls, path: Path | str) -> "InMemoryReprocessingService":
        with Path(path).open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        return cls(
            records=data.get("records") or {},
            logic_options=data.get("logic_options") or [],
            fields=data.get("fields") or {},
            trigger_logs=data.get("trigger_logs") or [],
            logging_enabled=bool(data.get("logging_enabled", True)),
        )

    # ------------------------------------------------------------------
    # test hooks
    # ------------------------------------------------------------------
    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        """Make the next call to ``operation`` raise ``error``."""

        self._failures[operation] = error or ServiceError(f"{operation} failed")

    def script_statuses(self, statuses: list[dict[str, Any]]) -> None:
        """Queue the status sequence reported for the next launched job."""

        self._scripted.append(list(statuses))

    def _maybe_fail(self, operation: str) -> None:
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _query(self, target_type: str, filter: str) -> list[dict[str, Any]]:
        if target_type not in self._records:
            raise QueryError(f"unsupported target type: {target_type}")
        clauses = parse_filter(filter)
        matched: list[dict[str, Any]] = []
        for row in self._records[target_type]:
            lowered = {str(key).lower(): value for key, value in row.items()}
            if all(str(lowered.get(name, "")) == value for name, value in clauses):
                matched.append(dict(row))
        return matched

    # ------------------------------------------------------------------
    # service contract
    # ------------------------------------------------------------------
    async def list_target_types(self) -> list[str]:
        self._maybe_fail("list_target_types")
        return sorted(self._records)

    async def count_records(self, target_type: str, filter: str) -> int:
        self._maybe_fail("count_records")
        return len(self._query(target_type, filter))

    async def preview_query(self, target_type: str, filter: str) -> list[dict[str, Any]]:
        self._maybe_fail("preview_query")
        return self._query(target_type, filter)

    async def list_logic_options(self, target_type: str, trigger_context: str) -> list[LogicOption]:
        self._maybe_fail("list_logic_options")
        options: list[LogicOption] = []
        for raw in self._logic_options:
            option_target = raw.get("target_type") or raw.get("SObject_Type__c")
            if option_target and option_target != target_type:
                continue
            try:
                option = LogicOption.model_validate(raw)
            except PydanticValidationError as exc:
                raise ServiceError(f"invalid logic option: {exc.errors()[0].get('msg')}") from exc
            if option.enabled and option.trigger_context in (None, trigger_context):
                options.append(option)
        return options

    async def describe_fields(self, target_type: str) -> list[str]:
        self._maybe_fail("describe_fields")
        if target_type in self._fields:
            return list(self._fields[target_type])
        if target_type not in self._records:
            raise ServiceError(f"unsupported target type: {target_type}")
        names: dict[str, None] = {}
        for row in self._records[target_type]:
            for key in row:
                names.setdefault(str(key).lower(), None)
        return sorted(names)

    async def launch_job(self, request: LaunchJobRequest) -> str:
        self._maybe_fail("launch_job")
        known = {str(option.get("id") or option.get("Id")) for option in self._logic_options}
        unknown = [logic_id for logic_id in request.logic_ids if logic_id not in known]
        if unknown:
            raise ServiceError(f"unknown logic ids: {', '.join(unknown)}")
        job_id = f"job-{next(self._job_counter):05d}"
        if self._scripted:
            sequence = self._scripted.pop(0)
        else:
            count = len(self._query(request.target_type, request.filter))
            batches = math.ceil(count / request.batch_size)
            sequence = [
                {"status": "Queued", "total_items": batches},
                {"status": "Processing", "percent_complete": 50, "items_processed": batches // 2, "total_items": batches},
                {"status": "Completed", "percent_complete": 100, "items_processed": batches, "total_items": batches},
            ]
        self._jobs[job_id] = [JobStatusSnapshot.model_validate(item) for item in sequence]
        self.launched.append(request)
        return job_id

    async def get_job_status(self, job_id: str) -> JobStatusSnapshot:
        self.status_calls += 1
        self._maybe_fail("get_job_status")
        sequence = self._jobs.get(job_id)
        if not sequence:
            raise ServiceError(f"unknown job: {job_id}")
        if len(sequence) > 1:
            return sequence.pop(0)
        return sequence[0]

    async def list_trigger_logs(self, record_id: str) -> list[TriggerLogRecord]:
        self._maybe_fail("list_trigger_logs")
        logs = [
            TriggerLogRecord.model_validate(raw)
            for raw in self._trigger_logs
            if record_id in split_field_list(raw.get("related_record_ids") or raw.get("Related_Record_Ids__c"))
        ]
        logs.sort(key=lambda log: log.created_date or "", reverse=True)
        return logs

    async def is_logging_enabled(self) -> bool:
        self._maybe_fail("is_logging_enabled")
        return self._logging_enabled
