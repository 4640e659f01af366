"""Process-wide session wiring used by the HTTP surface."""
from __future__ import annotations

import logging

from reprocessor.core.settings import Settings
from reprocessor.infrastructure import (
    HttpReprocessingService,
    InMemoryEventBus,
    InMemoryNotifier,
    InMemoryReprocessingService,
    Notifier,
    PushChannel,
    ReprocessingService,
)

from .logs import TriggerLogViewer
from .session import ReprocessorSession

logger = logging.getLogger(__name__)

_session: ReprocessorSession | None = None
_log_viewer: TriggerLogViewer | None = None


def build_service(settings: Settings) -> ReprocessingService:
    if settings.api_base:
        logger.info("Using remote executor at %s", settings.api_base)
        return HttpReprocessingService(settings.api_base, token=settings.api_token)
    if settings.fixtures_path:
        logger.info("Using in-memory executor seeded from %s", settings.fixtures_path)
        return InMemoryReprocessingService.from_fixture(settings.fixtures_path)
    logger.info("No executor configured; using an empty in-memory executor")
    return InMemoryReprocessingService()


def build_session(
    settings: Settings,
    *,
    service: ReprocessingService | None = None,
    channel: PushChannel | None = None,
    notifier: Notifier | None = None,
) -> ReprocessorSession:
    return ReprocessorSession(
        service or build_service(settings),
        channel or InMemoryEventBus(),
        notifier or InMemoryNotifier(auto_confirm=settings.auto_confirm),
        settings,
    )


def configure_session(session: ReprocessorSession) -> None:
    """Install the session served by the HTTP routes."""

    global _session, _log_viewer
    _session = session
    _log_viewer = TriggerLogViewer(session.service, session.notifier)


def get_session() -> ReprocessorSession:
    if _session is None:
        raise RuntimeError("no reprocessor session configured")
    return _session


def get_log_viewer() -> TriggerLogViewer:
    if _log_viewer is None:
        raise RuntimeError("no reprocessor session configured")
    return _log_viewer


def reset_session() -> None:
    """Forget the configured session (used in tests)."""

    global _session, _log_viewer
    _session = None
    _log_viewer = None
