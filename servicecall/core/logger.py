"""Centralized logging configuration using structlog.

This module provides consistent, structured logging for servicecall with:
- JSON output for log aggregation (SERVICECALL_LOG_FORMAT=json)
- Colored console output for local development (default)
- Context variables (service name, entry point) merged into every event

servicecall never configures logging on import. Applications that want the
package's formatting call configure_logging() once at startup; everyone
else gets whatever their own logging setup does with the events.

Usage:
    from servicecall.core import get_logger
    logger = get_logger(__name__)
    logger.debug("service_call.started", service="CreateInvoice")
"""

import logging
import sys

import structlog
from structlog.types import Processor

from servicecall.core.config import get_settings

bind_contextvars = structlog.contextvars.bind_contextvars
bound_contextvars = structlog.contextvars.bound_contextvars
clear_contextvars = structlog.contextvars.clear_contextvars


class _ServiceCallHandler(logging.StreamHandler):
    """Marker type so repeated configure_logging() calls replace our handler only."""


def _get_log_level(level_name: str) -> int:
    return getattr(logging, level_name.upper(), logging.INFO)


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and stdlib logging. Call once at application startup.

    This sets up:
    1. structlog processors for structured logging
    2. stdlib logging to use structlog's ProcessorFormatter

    Args:
        level: Log level name. Defaults to Settings.log_level.
        fmt: "json" or "console". Defaults to Settings.log_format.
    """
    settings = get_settings()
    log_level = _get_log_level(level or settings.log_level)
    use_json = (fmt or settings.log_format) == "json"

    # Shared processors for both structlog and stdlib logs
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root_logger = logging.getLogger()

    # Leave handlers installed by the host application alone
    root_logger.handlers = [
        h for h in root_logger.handlers if not isinstance(h, _ServiceCallHandler)
    ]

    handler = _ServiceCallHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A structlog BoundLogger that supports structured key-value logging.

    Example:
        logger = get_logger(__name__)
        logger.debug("service_call.gate_failed", gate="request", error_count=2)
    """
    return structlog.stdlib.get_logger(name)
