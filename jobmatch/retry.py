"""Retry decorator with exponential backoff — stdlib only."""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Tuple, Type

from jobmatch.log import get_logger

log = get_logger(__name__)


def backoff_delay(
    attempt: int, base_delay: float, backoff_factor: float, max_delay: float, jitter: bool
) -> float:
    """Delay before retry number *attempt* (1-based)."""
    delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator: re-invokes the wrapped function on *retryable* errors.

    Only exceptions listed in *retryable* are retried; anything else
    propagates on the first attempt. The last error is re-raised once
    *max_attempts* is exhausted. Exception messages are logged as-is, so
    callers must raise already-redacted errors.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt >= max_attempts:
                        log.error(
                            "%s gave up after %d attempt(s): %s",
                            fn.__qualname__, attempt, exc,
                        )
                        raise
                    delay = backoff_delay(attempt, base_delay, backoff_factor, max_delay, jitter)
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
