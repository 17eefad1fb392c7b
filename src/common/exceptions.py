"""
Companion Store Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, user feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class StoreError(Exception):
    """
    Base exception for all Companion Store errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Remote service errors
# =============================================================================

class RemoteServiceError(StoreError):
    """Request to the app service failed."""
    def __init__(
        self,
        endpoint: str,
        reason: str,
        cause: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            f"Request to {endpoint} failed: {reason}",
            code="REMOTE_REQUEST_FAILED",
            details={"endpoint": endpoint, "reason": reason, "status_code": status_code},
            cause=cause,
        )
        self.endpoint = endpoint
        self.status_code = status_code


class AuthenticationError(RemoteServiceError):
    """The app service rejected our credentials."""
    def __init__(self, endpoint: str):
        super().__init__(endpoint, "not authorized", status_code=401)
        self.code = "AUTHENTICATION_FAILED"
        self.recoverable = False


# =============================================================================
# Catalog errors
# =============================================================================

class AppNotFoundError(StoreError):
    """App is not in the catalog."""
    def __init__(self, app_id: str):
        super().__init__(
            f"App '{app_id}' not found",
            code="APP_NOT_FOUND",
            details={"app_id": app_id},
            recoverable=False,
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(StoreError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )
