"""Core CosmoDB utilities.

This module exports configuration and logging helpers for use
throughout the package.
"""

from cosmodb.core.config import Settings, get_settings
from cosmodb.core.logging import (
    LoggingContext,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
]
