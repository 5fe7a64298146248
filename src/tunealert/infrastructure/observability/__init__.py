"""Observability infrastructure for structured logging."""

from tunealert.infrastructure.observability.log_messages import LogMessages, LogTemplate
from tunealert.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from tunealert.infrastructure.observability.middleware import RequestLoggingMiddleware

__all__ = [
    "LogMessages",
    "LogTemplate",
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
