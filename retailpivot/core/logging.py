"""Structured logging with structlog.

Two context variables correlate log events:
- request_id: set per HTTP request by RequestIdMiddleware.
- view_id: set while a PivotView refreshes, so filter, derive, and build
  events of one refresh can be grouped together.
"""

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from retailpivot.core.config import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
view_id_ctx: ContextVar[str | None] = ContextVar("view_id", default=None)


def add_correlation_ids(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add request_id and view_id from context to log events."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    view_id = view_id_ctx.get()
    if view_id:
        event_dict["view_id"] = view_id
    return event_dict


@contextmanager
def bind_view_id(view_id: str) -> Iterator[None]:
    """Tag every log event emitted inside the block with a pivot view id.

    Args:
        view_id: Identifier of the pivot view being refreshed.
    """
    token = view_id_ctx.set(view_id)
    try:
        yield
    finally:
        view_id_ctx.reset(token)


def configure_logging() -> None:
    """Configure structlog for the application."""
    settings = get_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_ids,
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger.
    """
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
