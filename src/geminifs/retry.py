"""Caller-level retry for typed client errors.

The client components never retry.  Code sitting above them (the CLI, or an
embedding application) can wrap a call with :func:`call_with_retry`, which
retries only when :func:`~geminifs.errors.is_retryable` says the error kind
makes another attempt meaningful (rate limits, uncategorized transport
failures).  ``Forbidden`` or ``ProcessingFailed`` are raised on first sight.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from geminifs.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
) -> T:
    """Await ``fn()``, retrying retryable :class:`~geminifs.errors.ApiError` kinds.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts including the first.
        min_wait: Lower bound of the exponential backoff, in seconds.
        max_wait: Upper bound of the exponential backoff, in seconds.

    Returns:
        The first successful result.

    Raises:
        ApiError: The last error once attempts are exhausted, or any
            non-retryable error immediately.
    """
    async for attempt in AsyncRetrying(
        wait=wait_exponential(min=min_wait, max=max_wait),
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await fn()
    raise AssertionError("unreachable")  # pragma: no cover
