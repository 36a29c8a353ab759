"""
Resilience primitives for Todoist API calls.

Provides timeout budgets and bounded retry with exponential backoff.

Timeout Budget Categories
=========================

    FAST_TIMEOUT (5s)      - Single small reads
    MEDIUM_TIMEOUT (30s)   - Default per-request HTTP timeout
    SLOW_TIMEOUT (120s)    - Whole CLI command budget (fetch + batch write)

Example usage:

    from todoist_cli.core.resilience import retry_with_backoff

    data = retry_with_backoff(
        lambda: client.get("/projects"),
        max_retries=2,
        should_retry=lambda exc: getattr(exc, "retryable", False),
    )
"""

import logging
import random
import time
from typing import Callable, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Timeout Budget Constants
# ---------------------------------------------------------------------------

#: Fast operations: single small reads
FAST_TIMEOUT: float = 5.0

#: Medium operations: one HTTP round trip including retries of a read
MEDIUM_TIMEOUT: float = 30.0

#: Slow operations: a whole command (snapshot fetch plus grouped writes)
SLOW_TIMEOUT: float = 120.0


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Timeout Error
# ---------------------------------------------------------------------------


class TimeoutException(Exception):
    """Operation timed out.

    Attributes:
        timeout_seconds: The timeout duration that was exceeded.
        operation: Name of the operation that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.operation = operation


# ---------------------------------------------------------------------------
# Retry with Backoff
# ---------------------------------------------------------------------------


def compute_backoff(
    attempt: int,
    *,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Delay before retry number ``attempt + 1`` (``attempt`` is zero-based)."""
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


def retry_with_backoff(
    func: Callable[[], T],
    *,
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[List[Type[Exception]]] = None,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    retry_delay: Optional[Callable[[Exception], Optional[float]]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Retry a function with exponential backoff.

    Args:
        func: Zero-argument callable to run (use a lambda for arguments).
        max_retries: Retries after the first attempt (0 disables retrying).
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay cap in seconds.
        exponential_base: Multiplier for each retry.
        jitter: Randomize each delay between 50% and 150%.
        retryable_exceptions: Exception types eligible for retry (default: all).
        should_retry: Further filter on a caught exception; returning False
            re-raises immediately.
        retry_delay: Optional server-supplied delay for an exception (e.g. a
            Retry-After header); overrides the computed backoff when set.
        sleep: Sleep function, injectable for tests.

    Returns:
        Result from ``func`` on success.

    Raises:
        Exception: The last exception once retries are exhausted, or the
            first non-retryable one.
    """
    retryable = tuple(retryable_exceptions or [Exception])

    for attempt in range(max_retries + 1):
        try:
            return func()
        except retryable as e:
            if should_retry is not None and not should_retry(e):
                raise
            if attempt == max_retries:
                raise

            delay = retry_delay(e) if retry_delay is not None else None
            if delay is None:
                delay = compute_backoff(
                    attempt,
                    base_delay=base_delay,
                    max_delay=max_delay,
                    exponential_base=exponential_base,
                    jitter=jitter,
                )
            logger.warning(
                "Retrying after %s (attempt %d/%d, waiting %.1fs)",
                type(e).__name__,
                attempt + 1,
                max_retries,
                delay,
            )
            sleep(delay)

    raise RuntimeError("retry_with_backoff: unexpected state")
