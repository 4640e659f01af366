"""Infrastructure layer exports."""

from .events import InMemoryEventBus, PushChannel, Subscription
from .http_service import HttpReprocessingService
from .notifications import InMemoryNotifier, Notification, Notifier
from .service import InMemoryReprocessingService, ReprocessingService

__all__ = [
    "HttpReprocessingService",
    "InMemoryEventBus",
    "InMemoryNotifier",
    "InMemoryReprocessingService",
    "Notification",
    "Notifier",
    "PushChannel",
    "ReprocessingService",
    "Subscription",
]
