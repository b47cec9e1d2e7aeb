"""Core EntityStore utilities.

This module exports core utilities for use throughout the application.
"""

from entitystore.core.config import Settings, get_settings
from entitystore.core.logging import configure_logging, get_logger, operation_context

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "operation_context",
]
