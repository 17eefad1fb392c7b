"""
Error Handling Decorators

Logging wrappers around preference I/O and app service calls.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Type, Tuple, Callable, Any, Optional

logger = logging.getLogger(__name__)


def handle_errors(
    *exception_types: Type[Exception],
    default: Any = None,
    log_level: int = logging.ERROR,
    message: Optional[str] = None,
):
    """
    Log listed exceptions and return ``default`` instead of raising.

    Args:
        exception_types: Exception types to catch (default: Exception)
        default: Value to return on error
        log_level: Level to log at; tracebacks are attached from ERROR up
        message: Log message prefix (default: "<function> failed")

    Example:
        @handle_errors(OSError, ValueError, default=None)
        def read_preferences(path):
            ...
    """
    if not exception_types:
        exception_types = (Exception,)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exception_types as e:
                prefix = message or f"{func.__name__} failed"
                logger.log(log_level, f"{prefix}: {e}", exc_info=log_level >= logging.ERROR)
                return default
        return wrapper
    return decorator


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
):
    """
    Retry a call with exponential backoff, re-raising the last failure.

    The wrapped call may run ``max_attempts`` times, so only use it on
    idempotent requests.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__} gave up after {attempt} attempts: {e}")
                        raise
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_attempts} failed: {e}")
                    time.sleep(wait)
                    wait *= backoff
        return wrapper
    return decorator


def timed(func: Callable) -> Callable:
    """Log how long each call took, at DEBUG."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            logger.debug(f"{func.__name__} completed in {time.perf_counter() - start:.3f}s")
    return wrapper
