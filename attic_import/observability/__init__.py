"""Observability package for Attic Import Plugins.

Structured logging with request-scoped context.
"""

from attic_import.observability.logging import (
    StructuredLogger,
    correlation_scope,
    get_logger,
    request_context_scope,
    setup_logging,
)
from attic_import.observability.middleware import setup_observability

__all__ = [
    "StructuredLogger",
    "correlation_scope",
    "get_logger",
    "request_context_scope",
    "setup_logging",
    "setup_observability",
]
