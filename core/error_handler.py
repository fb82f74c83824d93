"""Decorators for consistent error handling and timing around pipeline steps."""
from __future__ import annotations

import functools
import time
from typing import Callable, TypeVar

from loguru import logger

T = TypeVar('T')


def log_execution_time(logger_instance=logger, level: str = "DEBUG"):
    """Decorator logging how long the wrapped call took.

    Args:
        logger_instance: Logger to use
        level: Log level name (DEBUG, INFO, ...)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start_time
                log_func = getattr(logger_instance, level.lower(), logger_instance.debug)
                log_func(f"{func.__name__} executed in {elapsed:.3f}s")
        return wrapper
    return decorator


def retry_on_failure(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: tuple = (Exception,),
):
    """Decorator retrying a call that raises one of ``exceptions``.

    Args:
        max_retries: Maximum number of attempts
        delay: Seconds to wait before the first retry
        backoff: Factor applied to the wait after each failed attempt
        exceptions: Exception types that trigger a retry

    The last exception is re-raised once all attempts are exhausted.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(f"{func.__name__} gave up after {max_retries} attempts: {e}")
                        raise
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_retries} failed, retrying in {wait:.1f}s: {e}")
                    time.sleep(wait)
                    wait *= backoff
        return wrapper
    return decorator
