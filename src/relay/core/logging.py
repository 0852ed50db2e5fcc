"""
Relay logging - structured logging for the dispatcher, hub and notifier.

Every component logs dotted event names with key/value fields through
structlog, e.g. ``logger.info("completion.signal", message_id=42,
path="resolved")``. Production runs emit ECS-compatible JSON; a terminal
gets colored console output.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="relay")
            │
            ▼
        processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars        (message_id bound by LogContext)
          3. add_log_level
          4. add_service_metadata
          5. elasticsearch_compatible (JSON only)
          6. JSONRenderer | ConsoleRenderer

Examples:
    >>> from relay.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> with LogContext(message_id=1767007964179):
    ...     logger.info("request.queued", bucket="pending")

Tags:
    logging, structlog, observability, relay

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "relay"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    if "logger_name" in event_dict:
        event_dict["log.logger"] = event_dict.pop("logger_name")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "relay",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # stderr keeps stdout clean for `relay send` answers and --json output
    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is carried as ``logger_name`` in the event dict and renamed to
    ``log.logger`` in JSON output.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)


class LogContext:
    """Bind fields into every log line emitted inside the block.

    Works for both ``with`` and ``async with``. Keys that were already bound
    when the block started are restored on exit instead of dropped, so
    nested contexts for the same key unwind correctly.

    Example:
        async with LogContext(message_id=42):
            logger.info("request.waiting")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._previous: dict[str, Any] = {}

    def _push(self) -> None:
        bound = structlog.contextvars.get_contextvars()
        self._previous = {k: bound[k] for k in self._fields if k in bound}
        structlog.contextvars.bind_contextvars(**self._fields)

    def _pop(self) -> None:
        structlog.contextvars.unbind_contextvars(*self._fields)
        if self._previous:
            structlog.contextvars.bind_contextvars(**self._previous)

    def __enter__(self) -> LogContext:
        self._push()
        return self

    def __exit__(self, *args: Any) -> None:
        self._pop()

    async def __aenter__(self) -> LogContext:
        self._push()
        return self

    async def __aexit__(self, *args: Any) -> None:
        self._pop()


__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
]
