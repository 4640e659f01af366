"""Operator session: selections, preview, launch and live logs in one place."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable

from reprocessor.core import fields as field_merge
from reprocessor.core.errors import ServiceError, ValidationError, describe_error
from reprocessor.core.settings import Settings
from reprocessor.domain import JobHandle, ReprocessorState
from reprocessor.infrastructure import Notifier, PushChannel, ReprocessingService

from .correlator import LiveEventCorrelator
from .orchestrator import JobOrchestrationController
from .preview import PreviewEngine

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], Awaitable[bool]]


class ReprocessorSession:
    """Coordinates the reprocessing use cases for one operator view.

    ``start`` and ``stop`` mirror mounting and unmounting the view: the push
    subscription is acquired on start and always released on stop, together
    with any polling task.
    """

    def __init__(
        self,
        service: ReprocessingService,
        channel: PushChannel,
        notifier: Notifier,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._service = service
        self._notifier = notifier
        self.state = ReprocessorState(
            target_type=self.settings.default_target_type,
            trigger_context=self.settings.default_trigger_context,
            batch_size=self.settings.batch_size,
            fields=field_merge.normalise_fields(self.settings.default_fields),
        )
        self.state.field_text = field_merge.fields_to_text(self.state.fields)
        self.preview_engine = PreviewEngine(service, notifier, page_size=self.settings.page_size)
        self.controller = JobOrchestrationController(
            service, notifier, poll_interval=self.settings.poll_interval_seconds
        )
        self.correlator = LiveEventCorrelator(
            channel,
            notifier,
            lambda: self.preview_engine.record_ids,
            channel_name=self.settings.channel_name,
            replay_position=self.settings.replay_position,
            capacity=self.settings.event_buffer_capacity,
            suppress_unmatched=self.settings.suppress_unmatched_events,
        )
        self.started = False

    @property
    def service(self) -> ReprocessingService:
        return self._service

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        self.correlator.register_error_listener()
        await self.correlator.subscribe()
        self.started = True

        try:
            self.state.target_types = await self._service.list_target_types()
        except ServiceError as exc:
            self._notifier.notify("Error", f"Failed to load sObject types: {describe_error(exc)}", "error")

        await self._refresh_record_count()
        await self.fetch_logic_options()

    async def stop(self) -> None:
        try:
            self.controller.stop()
        finally:
            await self.correlator.unsubscribe()
            self.started = False

    async def __aenter__(self) -> "ReprocessorSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _refresh_record_count(self) -> None:
        try:
            self.state.record_count = await self._service.count_records(self.state.target_type, self.state.filter)
        except ServiceError as exc:
            self._notifier.notify("Error", f"Failed to get record count: {describe_error(exc)}", "error")

    # ------------------------------------------------------------------
    # selections
    # ------------------------------------------------------------------
    async def change_target_type(self, target_type: str) -> None:
        if not target_type:
            raise ValidationError("target type is required")
        self.state.target_type = target_type
        self.state.selected_logic_ids = []
        await self.fetch_logic_options()
        await self._refresh_record_count()

    async def change_trigger_context(self, trigger_context: str) -> None:
        if trigger_context not in self.settings.trigger_context_values:
            raise ValidationError(f"unknown trigger context: {trigger_context}")
        self.state.trigger_context = trigger_context
        self.state.selected_logic_ids = []
        await self.fetch_logic_options()

    async def fetch_logic_options(self) -> None:
        if not (self.state.target_type and self.state.trigger_context):
            return
        try:
            options = await self._service.list_logic_options(self.state.target_type, self.state.trigger_context)
        except ServiceError as exc:
            self._notifier.notify("Error", f"Failed to fetch logic options: {describe_error(exc)}", "error")
            return
        self.state.logic_options = options
        available = {option.id for option in options}
        self.state.selected_logic_ids = [logic_id for logic_id in self.state.selected_logic_ids if logic_id in available]

    def select_logic(self, logic_ids: Iterable[str]) -> list[str]:
        """Select logic blocks by id and merge their required fields."""

        wanted = list(dict.fromkeys(logic_ids))
        by_id = {option.id: option for option in self.state.logic_options}
        missing = [logic_id for logic_id in wanted if logic_id not in by_id]
        if missing:
            raise ValidationError(f"unknown logic ids: {', '.join(missing)}")
        rows = [by_id[logic_id].model_dump() for logic_id in wanted]
        self.state.selected_logic_ids = wanted
        self.state.fields = field_merge.merge_from_row_selection(self.state.fields, rows, key="required_fields")
        self.state.field_text = field_merge.fields_to_text(self.state.fields)
        logger.debug("Selected logic %s; fields are now %s", wanted, self.state.fields)
        return self.state.fields

    async def fetch_field_options(self) -> list[str]:
        if not self.state.target_type:
            return []
        try:
            self.state.field_options = await self._service.describe_fields(self.state.target_type)
        except ServiceError as exc:
            self._notifier.notify("Error", f"Failed to fetch describe fields: {describe_error(exc)}", "error")
        return self.state.field_options

    def select_fields(self, fields: Iterable[str]) -> list[str]:
        self.state.fields = field_merge.normalise_fields(fields)
        self.state.field_text = field_merge.fields_to_text(self.state.fields)
        return self.state.fields

    def apply_field_text(self, text: str) -> list[str]:
        self.state.field_text = text
        self.state.fields = field_merge.merge_from_free_text(text)
        return self.state.fields

    def set_filter(self, filter: str) -> None:
        self.state.filter = filter or ""

    def set_batch_size(self, batch_size: int) -> None:
        if int(batch_size) < 1:
            raise ValidationError("batch size must be at least 1")
        self.state.batch_size = int(batch_size)

    # ------------------------------------------------------------------
    # preview
    # ------------------------------------------------------------------
    async def preview(self) -> list[dict[str, Any]] | None:
        records = await self.preview_engine.preview(self.state.target_type, self.state.filter)
        if records is not None:
            self.state.record_count = self.preview_engine.record_count
        return records

    def next_page(self) -> None:
        self.preview_engine.next_page()

    def prev_page(self) -> None:
        self.preview_engine.prev_page()

    # ------------------------------------------------------------------
    # launch
    # ------------------------------------------------------------------
    def confirmation_message(self) -> str:
        ids = self.state.selected_logic_ids
        return (
            f"Are you sure you want to process {self.state.record_count} record(s) "
            f"using {len(ids)} logic block(s): {', '.join(ids)}?"
        )

    async def run_logic(self, confirm: ConfirmCallback | None = None) -> JobHandle | None:
        if not self.state.selected_logic_ids or not self.preview_engine.record_ids:
            self._notifier.notify(
                "Missing Selections",
                "You must select at least one logic block and preview records first.",
                "warning",
            )
            return None

        message = self.confirmation_message()
        if confirm is not None:
            confirmed = await confirm(message)
        else:
            confirmed = await self._notifier.confirm(message, label="Confirm Record Processing")
        if not confirmed:
            logger.info("User canceled processing.")
            return None

        try:
            return await self.controller.launch(
                self.state.target_type,
                self.state.trigger_context,
                self.state.selected_logic_ids,
                self.state.filter,
                self.state.fields,
                self.state.batch_size,
                self.preview_engine.record_ids,
            )
        except ValidationError as exc:
            self._notifier.notify("Missing Selections", describe_error(exc), "warning")
            return None

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def snapshot(self) -> dict[str, Any]:
        state = self.state
        return {
            "started": self.started,
            "target_type": state.target_type,
            "trigger_context": state.trigger_context,
            "filter": state.filter,
            "batch_size": state.batch_size,
            "target_types": list(state.target_types),
            "trigger_contexts": [
                {"value": value, "label": label} for value, label in self.settings.trigger_contexts
            ],
            "logic_options": [option.model_dump() for option in state.logic_options],
            "selected_logic_ids": list(state.selected_logic_ids),
            "fields": list(state.fields),
            "field_text": state.field_text,
            "field_options": list(state.field_options),
            "record_count": state.record_count,
            "preview": self.preview_engine.snapshot(),
            "job": self.controller.snapshot(),
            "subscribed": self.correlator.subscription is not None,
        }
