"""Structured logging configuration via structlog.

Modules log through ``structlog.get_logger(__name__)`` with snake_case event
names and keyword context. ``configure_logging`` installs the processor
chain once per process; logs emitted inside an active span carry
``trace_id`` and ``span_id`` for correlation.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN_ID, INVALID_TRACE_ID

from branchline.errors import ConfigurationError

EventDict = MutableMapping[str, Any]

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL")


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Add the active span's trace_id and span_id to a log event.

    Args:
        logger: The logger instance (unused, required by the processor API).
        method_name: The log method name (unused).
        event_dict: The event dictionary to enrich.

    Returns:
        The event dictionary, with trace context when a span is active.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.trace_id != INVALID_TRACE_ID and ctx.span_id != INVALID_SPAN_ID:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog with trace context injection.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING/WARN, ERROR, CRITICAL).
        json_output: Emit JSON lines if True, otherwise console format.

    Raises:
        ConfigurationError: If the log level is not recognised.

    Examples:
        >>> configure_logging(log_level="DEBUG", json_output=False)
    """
    level_name = log_level.upper()
    if level_name not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log level {log_level!r}. Valid levels: {', '.join(VALID_LOG_LEVELS)}",
            field="log_level",
        )
    if level_name == "WARN":
        level_name = "WARNING"
    level = getattr(logging, level_name)

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_trace_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


__all__ = [
    "VALID_LOG_LEVELS",
    "add_trace_context",
    "configure_logging",
]
