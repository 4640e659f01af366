"""Push channel used to stream execution-log events."""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from reprocessor.core.errors import SubscriptionError

logger = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], Any]
ErrorCallback = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class Subscription:
    id: str
    channel: str
    replay_position: int = -1


class PushChannel(Protocol):
    """Contract for a publish/subscribe event transport."""

    async def subscribe(self, channel: str, replay_position: int, callback: EventCallback) -> Subscription: ...

    async def unsubscribe(self, subscription: Subscription) -> bool: ...

    def on_error(self, callback: ErrorCallback) -> None: ...


class InMemoryEventBus:
    """Single-process event bus; ``publish`` delivers synchronously on the caller's loop."""

    def __init__(self, channels: set[str] | None = None) -> None:
        self._channels = channels
        self._subscribers: dict[str, dict[str, EventCallback]] = {}
        self._error_callbacks: list[ErrorCallback] = []
        self._ids = itertools.count(1)
        self._replay_ids = itertools.count(1)

    async def subscribe(self, channel: str, replay_position: int, callback: EventCallback) -> Subscription:
        if not channel.startswith("/"):
            raise SubscriptionError(f"invalid channel name: {channel}")
        if self._channels is not None and channel not in self._channels:
            raise SubscriptionError(f"unknown channel: {channel}")
        subscription = Subscription(id=f"sub-{next(self._ids):05d}", channel=channel, replay_position=replay_position)
        self._subscribers.setdefault(channel, {})[subscription.id] = callback
        logger.debug("Subscribed %s to %s", subscription.id, channel)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> bool:
        removed = self._subscribers.get(subscription.channel, {}).pop(subscription.id, None)
        logger.debug("Unsubscribed %s from %s", subscription.id, subscription.channel)
        return removed is not None

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, {}))

    def publish(self, channel: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every subscriber and return the delivery count."""

        message = {"channel": channel, "data": {"payload": payload, "event": {"replayId": next(self._replay_ids)}}}
        callbacks = list(self._subscribers.get(channel, {}).values())
        for callback in callbacks:
            callback(message)
        return len(callbacks)

    def emit_error(self, error: Any) -> None:
        for callback in list(self._error_callbacks):
            callback(error)
