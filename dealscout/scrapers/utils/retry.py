"""Retry policy for page fetches (linear back-off)."""

from typing import Awaitable, Callable, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from dealscout.core.exceptions import FetchError


logger = structlog.get_logger(__name__)

# Attempt failures worth another try. BlockedError is never retried.
RETRYABLE_ERRORS = (
    FetchError,
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome else None
    logger.warning(
        "fetch_retry_scheduled",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error) if error else None,
    )


def linear_retrying(
    max_attempts: int,
    base_delay: float,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> AsyncRetrying:
    """Build an AsyncRetrying that waits base_delay * attempt between attempts.

    Args:
        max_attempts: Total attempts, first one included
        base_delay: Seconds to wait after the first failed attempt
        sleep: Awaitable sleep function, injectable for tests
        should_stop: Extra stop condition checked after every failure,
            e.g. an exhausted request budget

    Returns:
        Configured AsyncRetrying that re-raises the last error
    """
    stop = stop_after_attempt(max_attempts)
    if should_stop is not None:
        stop = stop | (lambda _state: should_stop())

    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return AsyncRetrying(
        stop=stop,
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=_log_before_sleep,
        reraise=True,
        **kwargs,
    )
