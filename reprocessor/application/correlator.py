"""Streams execution-log events and correlates them to the record working set."""
from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Callable, Collection

from pydantic import ValidationError as PydanticValidationError

from reprocessor.core.errors import describe_error
from reprocessor.core.fields import split_field_list
from reprocessor.core.schema import TriggerLogEvent
from reprocessor.domain import EventLogEntry
from reprocessor.infrastructure import Notifier, PushChannel, Subscription

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class LiveEventCorrelator:
    """Keeps a bounded, newest-first history of trigger log events.

    Every event is matched against the working set returned by
    ``working_set``.  Unless ``suppress_unmatched`` is set, events are
    recorded whether or not they match; the match is kept on the entry.
    """

    def __init__(
        self,
        channel: PushChannel,
        notifier: Notifier,
        working_set: Callable[[], Collection[str]],
        *,
        channel_name: str = "/event/Trigger_Log__e",
        replay_position: int = -1,
        capacity: int = DEFAULT_CAPACITY,
        suppress_unmatched: bool = False,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._channel = channel
        self._notifier = notifier
        self._working_set = working_set
        self.channel_name = channel_name
        self.replay_position = replay_position
        self.capacity = capacity
        self.suppress_unmatched = suppress_unmatched
        self._subscription: Subscription | None = None
        self._entries: list[EventLogEntry] = []
        self._error_listener_registered = False
        self._local_ids = itertools.count(1)

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    @property
    def channel(self) -> PushChannel:
        return self._channel

    @property
    def entries(self) -> list[EventLogEntry]:
        return list(self._entries)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def subscribe(self) -> Subscription | None:
        if self._subscription is not None:
            return self._subscription
        try:
            subscription = await self._channel.subscribe(self.channel_name, self.replay_position, self.on_event)
        except Exception as exc:
            logger.error("Failed to subscribe to %s: %s", self.channel_name, exc)
            self._notifier.notify("Error", f"Failed to subscribe to live logs: {describe_error(exc)}", "error")
            return None
        logger.info("Subscribed to channel %s", subscription.channel)
        self._subscription = subscription
        return subscription

    async def unsubscribe(self) -> bool:
        subscription = self._subscription
        if subscription is None:
            return False
        self._subscription = None
        try:
            released = await self._channel.unsubscribe(subscription)
        except Exception:
            logger.exception("Failed to unsubscribe %s", subscription.id)
            return False
        logger.info("unsubscribe() response: %s", released)
        return bool(released)

    def register_error_listener(self) -> None:
        if self._error_listener_registered:
            return
        self._channel.on_error(self._on_transport_error)
        self._error_listener_registered = True

    def _on_transport_error(self, error: Any) -> None:
        logger.error("Received error from server: %s", error)
        try:
            message = json.dumps(error, default=str)
        except (TypeError, ValueError):
            message = str(error)
        self._notifier.notify("Error", message, "error")

    async def __aenter__(self) -> "LiveEventCorrelator":
        self.register_error_listener()
        await self.subscribe()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unsubscribe()

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------
    def on_event(self, message: dict[str, Any]) -> EventLogEntry | None:
        data = message.get("data") if isinstance(message, dict) else None
        if isinstance(data, dict):
            payload = data.get("payload")
            event_meta = data.get("event")
            replay_id = event_meta.get("replayId") if isinstance(event_meta, dict) else None
        else:
            payload = message
            replay_id = None
        if not payload or not isinstance(payload, dict):
            logger.warning("No payload in platform event response")
            return None

        try:
            event = TriggerLogEvent.model_validate(payload)
        except PydanticValidationError as exc:
            logger.warning("Ignoring malformed event payload: %s", exc)
            return None

        related_ids = split_field_list(event.related_record_ids)
        working_set = self._working_set()
        matched = any(record_id in working_set for record_id in related_ids)
        if not matched:
            if self.suppress_unmatched:
                logger.debug("No matching related record IDs. Event skipped.")
                return None
            logger.debug("No matching related record IDs. Event recorded anyway.")

        entry = EventLogEntry(
            id=str(replay_id) if replay_id is not None else f"local-{next(self._local_ids)}",
            timestamp=event.timestamp,
            message=event.message,
            context=event.context,
            trigger_name=event.trigger_name,
            sobject_type=event.sobject_type,
            related_record_ids=related_ids,
            matched=matched,
        )
        self._entries = [entry, *self._entries][: self.capacity]
        return entry

    def clear(self) -> None:
        self._entries = []
