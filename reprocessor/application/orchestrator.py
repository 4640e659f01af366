"""Launches a batch job and polls it until it reaches a terminal status."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from reprocessor.core.errors import ServiceError, ValidationError, describe_error
from reprocessor.core.fields import unique_in_order
from reprocessor.core.schema import LaunchJobRequest
from reprocessor.domain import JobHandle
from reprocessor.infrastructure import Notifier, ReprocessingService

logger = logging.getLogger(__name__)


class JobOrchestrationController:
    """Owns the active :class:`JobHandle` and its polling task.

    Polling runs as one task that sleeps ``poll_interval`` and then polls, so
    the loop never has two status calls in flight.  ``poll_once`` may also be
    called directly; it returns the current handle without a remote call when
    a poll is already outstanding.
    """

    def __init__(
        self,
        service: ReprocessingService,
        notifier: Notifier,
        *,
        poll_interval: float = 1.0,
        on_terminal: Callable[[JobHandle], None] | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._service = service
        self._notifier = notifier
        self._poll_interval = poll_interval
        self._on_terminal = on_terminal
        self._handle: JobHandle | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._poll_in_flight = False
        self._generation = 0
        self.last_job: JobHandle | None = None
        self.progress_visible = False

    @property
    def handle(self) -> JobHandle | None:
        return self._handle

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # ------------------------------------------------------------------
    # launch
    # ------------------------------------------------------------------
    async def launch(
        self,
        target_type: str,
        trigger_context: str,
        logic_ids: Sequence[str],
        filter: str,
        fields: Sequence[str],
        batch_size: int,
        record_ids: Sequence[str],
    ) -> JobHandle | None:
        if not logic_ids:
            raise ValidationError("at least one logic block must be selected")
        if not record_ids:
            raise ValidationError("preview records before launching a job")

        request = LaunchJobRequest(
            target_type=target_type,
            trigger_context=trigger_context,
            logic_ids=list(logic_ids),
            filter=filter,
            fields=unique_in_order(fields),
            batch_size=batch_size,
        )
        logger.info("Launching job for %s (%s) with logic %s", target_type, trigger_context, request.logic_ids)
        try:
            job_id = await self._service.launch_job(request)
        except ServiceError as exc:
            logger.exception("Launch failed")
            self._notifier.notify("Error", f"Failed to launch processing job: {describe_error(exc)}", "error")
            return None

        self.stop()
        self._generation += 1
        handle = JobHandle(job_id=job_id)
        self._handle = handle
        self.last_job = handle
        self.progress_visible = True
        self._poll_task = asyncio.create_task(self._poll_forever(), name=f"poll-{job_id}")
        self._notifier.notify("Success", "Processing job launched successfully.", "success")
        return handle

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------
    async def _poll_forever(self) -> None:
        task = asyncio.current_task()
        while self._poll_task is task:
            await asyncio.sleep(self._poll_interval)
            if self._poll_task is not task:
                return
            await self.poll_once()

    async def poll_once(self) -> JobHandle | None:
        handle = self._handle
        if handle is None or self._poll_in_flight:
            return handle

        generation = self._generation
        self._poll_in_flight = True
        try:
            snapshot = await self._service.get_job_status(handle.job_id)
        except Exception as exc:
            if generation == self._generation:
                logger.warning("Status check for %s failed: %s", handle.job_id, exc)
                self._cancel_polling()
                self.progress_visible = False
                self._notifier.notify("Error", f"Failed to fetch job status: {describe_error(exc)}", "error")
            return handle
        finally:
            self._poll_in_flight = False

        if generation != self._generation or self._handle is not handle:
            logger.debug("Discarding late status for %s", handle.job_id)
            return handle

        logger.debug("Job %s status %s (%s%%)", handle.job_id, snapshot.status.value, snapshot.percent_complete)
        handle.apply(
            status=snapshot.status,
            percent_complete=snapshot.percent_complete,
            items_processed=snapshot.items_processed,
            total_items=snapshot.total_items,
            error_count=snapshot.error_count,
            extended_status=snapshot.extended_status,
        )
        if handle.is_terminal:
            self._finish(handle)
        return handle

    def _finish(self, handle: JobHandle) -> None:
        self._cancel_polling()
        self._handle = None
        self.progress_visible = False
        if handle.status.is_failure:
            self._notifier.notify(
                "Batch Job Failed",
                f"Error: {handle.extended_status} The job failed after processing {handle.items_processed} "
                f"of {handle.total_items} batches. {handle.error_count} errors were recorded.",
                "error",
            )
        else:
            self._notifier.notify(
                "Batch Job Completed",
                f"Job completed. Processed {handle.items_processed} of {handle.total_items} batches. "
                f"{handle.error_count} errors were recorded.",
                "success",
            )
        logger.info("Job %s finished with status %s", handle.job_id, handle.status.value)
        if self._on_terminal is not None:
            try:
                self._on_terminal(handle)
            except Exception:
                logger.exception("on_terminal callback failed for job %s", handle.job_id)

    def _cancel_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------
    def stop(self) -> None:
        """Cancel polling; a status call still in flight is ignored when it returns."""

        self._generation += 1
        self._cancel_polling()

    def close_progress(self) -> None:
        self.progress_visible = False

    def snapshot(self) -> dict[str, object]:
        job = self._handle or self.last_job
        return {
            "active": self._handle is not None,
            "polling": self.is_polling,
            "progress_visible": self.progress_visible,
            "job": None
            if job is None
            else {
                "job_id": job.job_id,
                "status": job.status.value,
                "percent_complete": job.percent_complete,
                "items_processed": job.items_processed,
                "total_items": job.total_items,
                "error_count": job.error_count,
                "extended_status": job.extended_status,
                "terminal": job.is_terminal,
            },
        }

