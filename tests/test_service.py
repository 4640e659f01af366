from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from reprocessor.core.errors import QueryError, ServiceError
from reprocessor.core.schema import LaunchJobRequest
from reprocessor.domain import JobStatus
from reprocessor.infrastructure import InMemoryReprocessingService
from reprocessor.infrastructure.service import parse_filter


def test_parse_filter_reads_equality_clauses():
    assert parse_filter("") == []
    assert parse_filter("Industry = 'Energy' AND Rating = \"Hot\" and Active__c = true") == [
        ("industry", "Energy"),
        ("rating", "Hot"),
        ("active__c", "true"),
    ]
    with pytest.raises(QueryError):
        parse_filter("Name LIKE 'A%'")


def test_fixture_round_trip(tmp_path):
    fixture = tmp_path / "fixture.json"
    fixture.write_text(
        json.dumps(
            {
                "records": {"Account": [{"Id": "001A", "Name": "Acme"}]},
                "logic_options": [
                    {"Id": "m1", "Trigger_Context__c": "before_insert", "target_type": "Account"},
                    {"Id": "m2", "Is_Enabled__c": False, "target_type": "Account"},
                ],
                "fields": {"Account": ["id", "name", "phone"]},
                "logging_enabled": False,
            }
        ),
        encoding="utf-8",
    )
    service = InMemoryReprocessingService.from_fixture(fixture)

    async def scenario():
        return (
            await service.list_target_types(),
            await service.list_logic_options("Account", "before_insert"),
            await service.list_logic_options("Account", "after_insert"),
            await service.describe_fields("Account"),
            await service.is_logging_enabled(),
        )

    types, before, after, fields, enabled = asyncio.run(scenario())

    assert types == ["Account"]
    assert [option.id for option in before] == ["m1"]
    assert after == []
    assert fields == ["id", "name", "phone"]
    assert enabled is False


def test_unknown_target_type_is_a_query_error():
    service = InMemoryReprocessingService(records={"Account": []})

    with pytest.raises(QueryError, match="unsupported target type"):
        asyncio.run(service.count_records("Opportunity", ""))


def test_scripted_statuses_hold_last_value():
    service = InMemoryReprocessingService(records={"Account": [{"Id": "001A"}]}, logic_options=[{"Id": "m1"}])
    service.script_statuses([{"status": "Processing", "percent_complete": 40}, {"status": "Aborted"}])
    request = LaunchJobRequest(target_type="Account", trigger_context="before_insert", logic_ids=["m1"])

    async def scenario():
        job_id = await service.launch_job(request)
        statuses = [(await service.get_job_status(job_id)).status for _ in range(3)]
        return job_id, statuses

    job_id, statuses = asyncio.run(scenario())

    assert job_id == "job-00001"
    assert statuses == [JobStatus.PROCESSING, JobStatus.ABORTED, JobStatus.ABORTED]


def test_launch_rejects_unknown_logic_and_jobs():
    service = InMemoryReprocessingService(records={"Account": []}, logic_options=[{"Id": "m1"}])
    request = LaunchJobRequest(target_type="Account", trigger_context="before_insert", logic_ids=["m7"])

    with pytest.raises(ServiceError, match="unknown logic ids: m7"):
        asyncio.run(service.launch_job(request))
    with pytest.raises(ServiceError, match="unknown job"):
        asyncio.run(service.get_job_status("job-99999"))
    assert service.launched == []


def test_malformed_logic_option_is_a_service_error():
    service = InMemoryReprocessingService(logic_options=[{"Logic_Name__c": "No id"}])

    with pytest.raises(ServiceError, match="invalid logic option"):
        asyncio.run(service.list_logic_options("Account", "before_insert"))
