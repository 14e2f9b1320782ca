"""Core utilities for servicecall.

This module exports commonly used utilities for easy importing:
    from servicecall.core import get_logger
"""

from servicecall.core.config import Settings, clear_settings_cache, get_settings
from servicecall.core.logger import (
    bind_contextvars,
    bound_contextvars,
    clear_contextvars,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "bind_contextvars",
    "bound_contextvars",
    "clear_contextvars",
    "clear_settings_cache",
    "configure_logging",
    "get_logger",
    "get_settings",
]
