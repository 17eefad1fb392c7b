"""
Companion Store Common Utilities

Shared exceptions, decorators and logging for the store applications.

The Qt dialogs live in ``common.dialogs`` and are imported directly by the
desktop window so that the CLI does not pull in PyQt6.
"""

from .exceptions import (
    StoreError, RemoteServiceError, AuthenticationError, AppNotFoundError,
    ConfigError, InvalidConfigError,
)
from .decorators import handle_errors, retry, timed
from .logging_config import setup_logging, LogContext

__all__ = [
    # Exceptions
    "StoreError", "RemoteServiceError", "AuthenticationError", "AppNotFoundError",
    "ConfigError", "InvalidConfigError",
    # Decorators
    "handle_errors", "retry", "timed",
    # Logging
    "setup_logging", "LogContext",
]
