"""Cross-cutting decorators for logging and timing client operations.

Arguments are never logged: they routinely carry credentials and patient
data.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, TypeVar, cast

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


def log_execution(level: int = logging.DEBUG) -> Callable[[F], F]:
    """Decorator to log entry, completion and failure of a function.

    Args:
        level: Logging level for entry and completion records

    Returns:
        Decorated function with logging capabilities
    """
    def decorator(func: F) -> F:
        func_name = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            logger.log(level, "Executing %s", func_name)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error("Error in %s: %s", func_name, e)
                raise
            logger.log(level, "Completed %s", func_name)
            return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            logger.log(level, "Executing %s", func_name)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error("Error in %s: %s", func_name, e)
                raise
            logger.log(level, "Completed %s", func_name)
            return result

        if asyncio.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


def measure_execution_time(
    log_level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[[F], F]:
    """Decorator to measure and log execution time of a coroutine.

    Args:
        log_level: Logging level for timing information
        threshold_ms: Only log if execution time exceeds threshold (milliseconds)

    Returns:
        Decorated coroutine function with timing capabilities
    """
    def decorator(func: F) -> F:
        func_name = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                execution_time_ms = (time.perf_counter() - start_time) * 1000
                logger.log(
                    log_level, "%s failed after %.2fms", func_name, execution_time_ms
                )
                raise

            execution_time_ms = (time.perf_counter() - start_time) * 1000
            if threshold_ms is None or execution_time_ms > threshold_ms:
                logger.log(
                    log_level, "%s executed in %.2fms", func_name, execution_time_ms
                )
            return result

        return cast(F, async_wrapper)

    return decorator


def cache_operation(
    log_level: int = logging.DEBUG,
    timing_threshold_ms: float | None = 250.0,
) -> Callable[[F], F]:
    """Composite decorator for entity cache actions.

    Combines execution logging with slow-operation timing.
    """
    def decorator(func: F) -> F:
        decorated = measure_execution_time(
            log_level=logging.INFO, threshold_ms=timing_threshold_ms
        )(func)
        return log_execution(level=log_level)(decorated)

    return decorator
