"""User-facing notification sink.

The reprocessor never talks to a screen directly.  Every toast or
confirmation goes through a :class:`Notifier`; the in-memory implementation
logs the notification and keeps a short history for the HTTP surface.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Severity = Literal["info", "success", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier(Protocol):
    """Contract for surfacing messages to the operator."""

    def notify(self, title: str, message: str, severity: Severity = "error") -> None:
        """Show a non-blocking notification."""

    async def confirm(self, message: str, *, label: str = "") -> bool:
        """Ask the operator to confirm an irreversible action."""


@dataclass(slots=True)
class Notification:
    title: str
    message: str
    severity: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class InMemoryNotifier:
    """Notifier that logs and remembers the most recent notifications."""

    def __init__(self, *, auto_confirm: bool = False, history: int = 100) -> None:
        self.auto_confirm = auto_confirm
        self._history: deque[Notification] = deque(maxlen=history)
        self.confirmations: list[str] = []

    def notify(self, title: str, message: str, severity: Severity = "error") -> None:
        logger.log(_LOG_LEVELS.get(severity, logging.INFO), "%s: %s", title, message)
        self._history.appendleft(Notification(title=title, message=message, severity=severity))

    async def confirm(self, message: str, *, label: str = "") -> bool:
        self.confirmations.append(message)
        logger.info("Confirmation requested (%s): %s -> %s", label or "confirm", message, self.auto_confirm)
        return self.auto_confirm

    @property
    def notifications(self) -> list[Notification]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
        self.confirmations.clear()
