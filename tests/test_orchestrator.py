from __future__ import annotations

import asyncio
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from reprocessor.application import JobOrchestrationController
from reprocessor.core.errors import ServiceError, ValidationError
from reprocessor.core.schema import JobStatusSnapshot
from reprocessor.domain import JobHandle, JobStatus
from reprocessor.infrastructure import InMemoryNotifier, InMemoryReprocessingService

LAUNCH_ARGS = dict(
    target_type="Account",
    trigger_context="before_insert",
    logic_ids=["m1"],
    filter="",
    fields=["id", "name", "id"],
    batch_size=100,
    record_ids=["001A", "001B"],
)


class ScriptedService:
    """Executor stub returning a fixed job id and a scripted status sequence."""

    def __init__(self, statuses: list[dict], job_id: str = "J1") -> None:
        self.statuses = list(statuses)
        self.job_id = job_id
        self.calls = 0
        self.launched: list = []
        self.gate: asyncio.Event | None = None

    async def launch_job(self, request) -> str:
        self.launched.append(request)
        return self.job_id

    async def get_job_status(self, job_id: str) -> JobStatusSnapshot:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return JobStatusSnapshot.model_validate(item)


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def test_launch_polls_until_completed():
    service = ScriptedService(
        [
            {"status": "Processing", "percent_complete": 40, "items_processed": 4, "total_items": 10},
            {"status": "Completed", "percent_complete": 100, "items_processed": 10, "total_items": 10, "error_count": 0},
        ]
    )
    notifier = InMemoryNotifier()

    async def scenario():
        controller = JobOrchestrationController(service, notifier, poll_interval=0.01)
        handle = await controller.launch(**LAUNCH_ARGS)
        assert handle is not None
        assert handle.job_id == "J1"
        assert handle.status is JobStatus.QUEUED
        assert controller.progress_visible is True

        await _wait_until(lambda: controller.handle is None)
        await asyncio.sleep(0.05)
        return controller, handle

    controller, handle = asyncio.run(scenario())

    assert service.calls == 2
    assert service.launched[0].fields == ["id", "name"]
    assert handle.status is JobStatus.COMPLETED
    assert handle.items_processed == 10 and handle.total_items == 10
    assert controller.is_polling is False
    assert controller.progress_visible is False
    assert controller.last_job is handle

    latest = notifier.notifications[0]
    assert latest.title == "Batch Job Completed"
    assert latest.severity == "success"
    assert "Processed 10 of 10 batches. 0 errors" in latest.message
    assert any(item.message == "Processing job launched successfully." for item in notifier.notifications)


@pytest.mark.parametrize("status", ["Failed", "Aborted"])
def test_failed_or_aborted_job_raises_error_notification(status):
    service = ScriptedService(
        [
            {
                "Status": status,
                "JobItemsProcessed": 3,
                "TotalJobItems": 8,
                "NumberOfErrors": 2,
                "ExtendedStatus": "First error: boom",
            }
        ]
    )
    notifier = InMemoryNotifier()

    async def scenario():
        controller = JobOrchestrationController(service, notifier, poll_interval=0.01)
        handle = await controller.launch(**LAUNCH_ARGS)
        await _wait_until(lambda: controller.handle is None)
        return controller, handle

    controller, handle = asyncio.run(scenario())

    assert handle.status.value == status
    assert controller.progress_visible is False
    latest = notifier.notifications[0]
    assert latest.title == "Batch Job Failed"
    assert latest.severity == "error"
    assert "First error: boom" in latest.message
    assert "processing 3 of 8 batches. 2 errors" in latest.message


def test_launch_preconditions_are_checked_before_remote_call():
    service = ScriptedService([{"status": "Completed"}])
    notifier = InMemoryNotifier()

    async def scenario():
        controller = JobOrchestrationController(service, notifier)
        with pytest.raises(ValidationError):
            await controller.launch(**{**LAUNCH_ARGS, "logic_ids": []})
        with pytest.raises(ValidationError):
            await controller.launch(**{**LAUNCH_ARGS, "record_ids": []})
        return controller

    controller = asyncio.run(scenario())

    assert service.launched == []
    assert controller.handle is None


def test_launch_failure_is_surfaced():
    service = InMemoryReprocessingService(logic_options=[{"Id": "m1"}])
    service.fail_next("launch_job", ServiceError("insufficient access"))
    notifier = InMemoryNotifier()

    async def scenario():
        controller = JobOrchestrationController(service, notifier)
        handle = await controller.launch(**LAUNCH_ARGS)
        return controller, handle

    controller, handle = asyncio.run(scenario())

    assert handle is None
    assert controller.is_polling is False
    assert notifier.notifications[0].message == "Failed to launch processing job: insufficient access"


def test_status_error_stops_polling_and_keeps_last_state():
    service = InMemoryReprocessingService(
        records={"Account": [{"Id": "001A"}]},
        logic_options=[{"Id": "m1"}],
    )
    service.fail_next("get_job_status", ServiceError("session expired"))
    notifier = InMemoryNotifier()

    async def scenario():
        controller = JobOrchestrationController(service, notifier, poll_interval=0.01)
        handle = await controller.launch(**LAUNCH_ARGS)
        await _wait_until(lambda: not controller.is_polling)
        await asyncio.sleep(0.05)
        return controller, handle

    controller, handle = asyncio.run(scenario())

    assert service.status_calls == 1
    assert handle.status is JobStatus.QUEUED
    assert controller.handle is handle
    assert notifier.notifications[0].message == "Failed to fetch job status: session expired"


def test_only_one_poll_in_flight():
    service = ScriptedService([{"status": "Processing", "percent_complete": 10, "total_items": 5}])

    async def scenario():
        service.gate = asyncio.Event()
        controller = JobOrchestrationController(service, InMemoryNotifier(), poll_interval=30)
        await controller.launch(**LAUNCH_ARGS)
        first = asyncio.create_task(controller.poll_once())
        await asyncio.sleep(0)
        second = await controller.poll_once()
        assert second is controller.handle
        assert second.status is JobStatus.QUEUED
        service.gate.set()
        result = await first
        controller.stop()
        return result

    result = asyncio.run(scenario())

    assert service.calls == 1
    assert result.status is JobStatus.PROCESSING
    assert result.percent_complete == 10


def test_status_arriving_after_stop_is_discarded():
    service = ScriptedService([{"status": "Completed", "items_processed": 1, "total_items": 1}])
    notifier = InMemoryNotifier()

    async def scenario():
        service.gate = asyncio.Event()
        controller = JobOrchestrationController(service, notifier, poll_interval=30)
        handle = await controller.launch(**LAUNCH_ARGS)
        pending = asyncio.create_task(controller.poll_once())
        await asyncio.sleep(0)
        controller.stop()
        service.gate.set()
        await pending
        return controller, handle

    controller, handle = asyncio.run(scenario())

    assert handle.status is JobStatus.QUEUED
    assert all(item.title != "Batch Job Completed" for item in notifier.notifications)


def test_relaunch_starts_fresh_handle():
    service = ScriptedService([{"status": "Processing", "percent_complete": 50, "total_items": 2}])

    async def scenario():
        controller = JobOrchestrationController(service, InMemoryNotifier(), poll_interval=30)
        first = await controller.launch(**LAUNCH_ARGS)
        await controller.poll_once()
        service.job_id = "J2"
        second = await controller.launch(**LAUNCH_ARGS)
        controller.stop()
        return first, second, controller

    first, second, controller = asyncio.run(scenario())

    assert first.status is JobStatus.PROCESSING
    assert second.job_id == "J2"
    assert second.status is JobStatus.QUEUED
    assert controller.handle is second


def test_terminal_handle_never_transitions():
    handle = JobHandle(job_id="J1")
    update = dict(percent_complete=100, items_processed=4, total_items=4, error_count=0, extended_status="")

    assert handle.apply(status=JobStatus.COMPLETED, **update) is True
    assert handle.apply(status=JobStatus.PROCESSING, **update) is False
    assert handle.apply(status=JobStatus.FAILED, **update) is False
    assert handle.status is JobStatus.COMPLETED


def test_items_processed_never_exceeds_total():
    handle = JobHandle(job_id="J1")
    handle.apply(
        status=JobStatus.PROCESSING,
        percent_complete=90,
        items_processed=12,
        total_items=10,
        error_count=0,
        extended_status="",
    )

    assert handle.items_processed == 10


def test_transitional_statuses_read_as_queued():
    assert JobStatusSnapshot.model_validate({"Status": "Holding"}).status is JobStatus.QUEUED
    assert JobStatusSnapshot.model_validate({"Status": "Preparing"}).status is JobStatus.QUEUED
    snapshot = JobStatusSnapshot.model_validate({"Status": "Processing", "ExtendedStatus": None, "NumberOfErrors": None})
    assert snapshot.extended_status == ""
    assert snapshot.error_count == 0
