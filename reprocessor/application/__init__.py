"""Application services."""

from .correlator import LiveEventCorrelator
from .logs import TriggerLogViewer
from .orchestrator import JobOrchestrationController
from .preview import PreviewEngine
from .session import ReprocessorSession
from .wiring import build_session, configure_session, get_log_viewer, get_session, reset_session

__all__ = [
    "JobOrchestrationController",
    "LiveEventCorrelator",
    "PreviewEngine",
    "ReprocessorSession",
    "TriggerLogViewer",
    "build_session",
    "configure_session",
    "get_log_viewer",
    "get_session",
    "reset_session",
]
