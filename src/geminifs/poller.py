"""Bounded polling for server-side processing.

Uploaded files (and store documents / long-running operations) start out
pending and move exactly once to a terminal state.  :class:`ProcessingPoller`
re-fetches the resource until that happens or the deadline passes.

Each tick follows the same order: check the deadline, fetch, then sleep
only if still pending.  Because the deadline is checked before the fetch
and not after the sleep, the worst-case wall-clock time is
``timeout + interval``.

A transport error during a tick aborts the whole wait immediately.  The
remaining budget is not spent on retrying a flaky poll; callers that want
that can catch the :class:`~geminifs.errors.ApiError` and call again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from statemachine import State, StateMachine

from geminifs.errors import (
    ApiError,
    ProcessingFailedError,
    ProcessingTimeoutError,
    normalize_error,
)
from geminifs.models import ProcessingResult, ProcessingStatus

logger = logging.getLogger(__name__)

StatusReader = Callable[[dict[str, Any]], "tuple[ProcessingStatus, Any]"]
Fetcher = Callable[[str], Awaitable[dict[str, Any]]]


class PollingStateMachine(StateMachine):
    """Four-state lifecycle of one wait.

    States:
        polling   -- still pending, keep fetching.
        ready     -- processing succeeded (ACTIVE).
        failed    -- server reported FAILED.
        timed_out -- deadline passed while pending.

    Terminal states are final: a terminal outcome can never be re-observed
    as pending.
    """

    polling = State("polling", initial=True, value="polling")
    ready = State("ready", value="ready", final=True)
    failed = State("failed", value="failed", final=True)
    timed_out = State("timed_out", value="timed_out", final=True)

    finish = polling.to(ready)
    report_failure = polling.to(failed)
    expire = polling.to(timed_out)


# ---------------------------------------------------------------------------
# Status readers
# ---------------------------------------------------------------------------


def read_file_status(resource: dict[str, Any]) -> tuple[ProcessingStatus, Any]:
    """Map a file/document ``state`` field to :class:`ProcessingStatus`.

    Accepts both ``ACTIVE`` (files) and ``STATE_ACTIVE`` (store documents).
    Unknown or missing states count as still processing.
    """
    state = str(resource.get("state") or "").upper()
    if state.startswith("STATE_"):
        state = state[len("STATE_"):]
    if state == ProcessingStatus.ACTIVE.value:
        return ProcessingStatus.ACTIVE, None
    if state == ProcessingStatus.FAILED.value:
        return ProcessingStatus.FAILED, resource.get("error")
    return ProcessingStatus.PROCESSING, None


def read_operation_status(resource: dict[str, Any]) -> tuple[ProcessingStatus, Any]:
    """Map a long-running operation (``done`` / ``error``) to :class:`ProcessingStatus`."""
    if resource.get("error"):
        return ProcessingStatus.FAILED, resource["error"]
    if resource.get("done"):
        return ProcessingStatus.ACTIVE, None
    return ProcessingStatus.PROCESSING, None


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


class ProcessingPoller:
    """Waits for a resource to reach a terminal processing state.

    Args:
        fetch: Async callable returning the current JSON resource for a name.
        status_reader: Maps the resource to ``(status, error detail)``.
        clock: Monotonic clock in seconds.  Injectable for tests.
        sleep: Async sleep.  Injectable for tests.
    """

    def __init__(
        self,
        fetch: Fetcher,
        status_reader: StatusReader = read_file_status,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetch = fetch
        self._status_reader = status_reader
        self._clock = clock
        self._sleep = sleep

    async def wait_until_active(
        self,
        name: str,
        timeout: float,
        interval: float,
    ) -> ProcessingResult:
        """Poll *name* until ACTIVE.

        Returns:
            The terminal :class:`ProcessingResult` with the last resource seen.

        Raises:
            ProcessingFailedError: The server reported FAILED.  Not re-polled.
            ProcessingTimeoutError: Still pending when the deadline passed.
            ApiError: A tick's fetch failed (normalized, raised at once).
            ValueError: On a non-positive timeout or negative interval.
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if interval < 0:
            raise ValueError(f"interval must not be negative, got {interval}")

        machine = PollingStateMachine()
        started = self._clock()
        ticks = 0

        while self._clock() - started < timeout:
            ticks += 1
            try:
                resource = await self._fetch(name)
            except ApiError:
                raise
            except Exception as exc:
                raise normalize_error(exc) from exc

            status, detail = self._status_reader(resource)
            logger.debug("Poll %d for %s: %s", ticks, name, status.value)

            if status is ProcessingStatus.ACTIVE:
                machine.finish()
                elapsed = self._clock() - started
                logger.info("%s is ACTIVE after %d polls (%.1fs)", name, ticks, elapsed)
                return ProcessingResult(
                    name=name,
                    status=status,
                    resource=resource,
                    ticks=ticks,
                    elapsed=elapsed,
                )
            if status is ProcessingStatus.FAILED:
                machine.report_failure()
                logger.info("%s processing FAILED after %d polls", name, ticks)
                raise ProcessingFailedError(name, detail)

            await self._sleep(interval)

        machine.expire()
        logger.warning("Timed out after %gs waiting for %s (%d polls)", timeout, name, ticks)
        raise ProcessingTimeoutError(name, timeout)
