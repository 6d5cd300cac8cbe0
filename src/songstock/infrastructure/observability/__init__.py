"""Observability infrastructure for structured logging."""

from songstock.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    redact,
    set_correlation_id,
)
from songstock.infrastructure.observability.middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "redact",
    "set_correlation_id",
]
