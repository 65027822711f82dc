"""Resilience utilities for complaint engine collaborators.

This module provides standard retry policies and the dependency guard used around
repository and media-store calls, so transient failures are retried and persistent
ones surface as DependencyUnavailable.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from civic_core_lib.errors import ComplaintError, DependencyUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Startup connections (Redis ping): 5 attempts, 2s..32s exponential backoff, then re-raise
service_startup_retry = retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=32),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def dependency_retrying(attempts: int) -> AsyncRetrying:
    """Retry policy for collaborator calls; engine errors are final."""
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_not_exception_type(ComplaintError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def guard_dependency(
    operation: str,
    call: Callable[[], Awaitable[T]],
    *,
    timeout: float = 10.0,
    attempts: int = 1,
    **context: Any,
) -> T:
    """Await a collaborator call with timeout and retry.

    ComplaintError subclasses raised by the collaborator propagate unchanged and are
    never retried. Anything else (including timeouts) is retried up to ``attempts``
    times and then raised as DependencyUnavailable. Pass ``attempts=1`` for writes that
    are not idempotent; a timed-out attempt may still have committed.

    Args:
        operation: Name used in logs and in the raised error
        call: Zero-argument callable producing the awaitable; invoked once per attempt
        timeout: Per-attempt timeout in seconds
        attempts: Total attempts (1 disables retry)
        **context: Extra fields attached to DependencyUnavailable

    Example:
        ```python
        record = await guard_dependency(
            "complaints.get", lambda: repo.get(complaint_id), complaint_id=complaint_id
        )
        ```
    """
    try:
        async for attempt in dependency_retrying(attempts):
            with attempt:
                return await asyncio.wait_for(call(), timeout=timeout)
    except ComplaintError:
        raise
    except Exception as exc:
        logger.error(f"[Resilience] {operation} failed: {exc!r}")
        raise DependencyUnavailable(operation, exc, **context) from exc
