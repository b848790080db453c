"""Structured logging for Attic Import Plugins.

Events are rendered by structlog. Two context variables decorate every
event: the correlation ID of the HTTP request being served, and the plugin
call scope (plugin id, external id, operation) opened by the import service.
"""

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, FilteringBoundLogger

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_call_context: ContextVar[dict[str, Any]] = ContextVar("call_context", default={})


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_call_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    # Fields passed to the log call win over the scope
    for key, value in _call_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


class StructuredLogger:
    """Configures structlog once per process."""

    def __init__(self) -> None:
        self._configured = False

    def setup_logging(self, json_format: bool = True, log_level: str = "INFO") -> None:
        """Route structlog through stdlib logging on stdout.

        Args:
            json_format: Render JSON lines instead of the console format
            log_level: Minimum level name (DEBUG, INFO, WARNING, ...)
        """
        if self._configured:
            return

        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, log_level.upper()),
        )

        renderer = structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                add_correlation_id,
                add_call_context,
                structlog.processors.format_exc_info,
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        self._configured = True


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a structured logger.

    Loggers are lazy proxies, so modules may call this at import time
    before ``setup_logging`` has run.
    """
    return structlog.get_logger(name)


def setup_logging(json_format: bool = True, log_level: str = "INFO") -> StructuredLogger:
    structured_logger = StructuredLogger()
    structured_logger.setup_logging(json_format=json_format, log_level=log_level)
    return structured_logger


@contextmanager
def correlation_scope(correlation_id: str) -> Generator[None, None, None]:
    """Tag every event emitted inside the block with ``correlation_id``."""
    token = _correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


@contextmanager
def request_context_scope(**context: Any) -> Generator[None, None, None]:
    """Add fields to every event emitted inside the block.

    Values are merged over the enclosing scope, so nested scopes can add
    fields (e.g. ``external_id``) without dropping the outer ``plugin_id``.

    Example:
        >>> with request_context_scope(plugin_id="bgg_boardgames"):
        ...     logger.info("search_started")
    """
    token = _call_context.set({**_call_context.get(), **context})
    try:
        yield
    finally:
        _call_context.reset(token)
