from __future__ import annotations


class ReprocessorError(Exception):
    """Base class for every failure raised by the reprocessor core."""


class ValidationError(ReprocessorError):
    """Raised when a precondition fails before any remote call is made."""


class ServiceError(ReprocessorError):
    """Raised when a call to the remote job executor fails."""


class QueryError(ServiceError):
    """Raised when a preview or count query is rejected by the executor."""


class SubscriptionError(ServiceError):
    """Raised when the push channel refuses a subscription."""


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or exc.__class__.__name__
