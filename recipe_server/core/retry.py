"""
Bounded retry for infrastructure I/O.

Owned by the component that performs the I/O (stores, license registries).
Logical outcomes (missing rows, unknown keys) are return values and never
reach this code path.
"""
from __future__ import annotations

import functools
import logging
import time
from typing import Callable, Optional, Type

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from recipe_server.core.errors import ServiceUnavailableError


logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 2.0


def compute_backoff(attempt: int, base_seconds: float) -> float:
    """Exponential backoff with a hard cap."""
    if base_seconds <= 0:
        return 0.0
    return min(base_seconds * (2 ** attempt), MAX_BACKOFF_SECONDS)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, PoolTimeoutError)):
        return True
    # Other DBAPI errors (integrity, programming) are deterministic
    if isinstance(exc, DBAPIError):
        return bool(getattr(exc, "connection_invalidated", False))
    return isinstance(exc, (ConnectionError, TimeoutError))


def call_with_retry(
    fn: Callable,
    *args,
    attempts: int,
    backoff_seconds: float,
    unavailable_error: Type[ServiceUnavailableError] = ServiceUnavailableError,
    operation: str = "io",
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
):
    """Run fn, retrying transient failures up to `attempts` times in total.

    Raises `unavailable_error` once attempts are exhausted. Non-transient
    exceptions propagate unchanged on the first occurrence.
    """
    attempts = max(1, attempts)
    last_exc: Optional[BaseException] = None
    for attempt in range(attempts):
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            if not is_transient(exc):
                raise
            last_exc = exc
            logger.warning(
                "io.retry",
                extra={"operation": operation, "attempt": attempt + 1, "error_code": type(exc).__name__},
            )
            if attempt + 1 < attempts:
                sleep(compute_backoff(attempt, backoff_seconds))

    raise unavailable_error(f"{operation} unavailable after {attempts} attempts") from last_exc


def retrying(operation: str, unavailable_error: Type[ServiceUnavailableError] = ServiceUnavailableError):
    """Method decorator: retry with the instance's `retry_attempts` / `retry_backoff_seconds`."""

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            return call_with_retry(
                method,
                self,
                *args,
                attempts=self.retry_attempts,
                backoff_seconds=self.retry_backoff_seconds,
                unavailable_error=unavailable_error,
                operation=operation,
                **kwargs,
            )
        return wrapper

    return decorator
