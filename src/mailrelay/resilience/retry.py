"""Bounded retry with exponential backoff for messaging API calls.

Builds tenacity ``AsyncRetrying`` controllers that callers drive as an
explicit attempt loop::

    async for attempt in build_retrying("telegram.sendMessage"):
        with attempt:
            await post_once()

Only ``RetryableTransportError`` triggers another attempt.  Anything else,
including ``NonRetryableTransportError``, propagates from the first attempt.
After the final attempt the last error is re-raised unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from mailrelay.domain.errors import RetryableTransportError
from mailrelay.observability.metrics import SEND_RETRIES

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 3

# Seconds to wait after attempt n is 2 ** n (2s, 4s, ...), capped.
_BACKOFF_MULTIPLIER = 2
_BACKOFF_MAX_SECONDS = 60

SleepFunc = Callable[[float], Awaitable[None]]


def _before_sleep_log(api_name: str) -> Callable[[RetryCallState], None]:
    def log_retry(retry_state: RetryCallState) -> None:
        SEND_RETRIES.labels(api_name=api_name).inc()
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying API call",
            api_name=api_name,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
            error=str(exception),
        )

    return log_retry


def backoff_seconds(attempt_number: int) -> float:
    """Return the delay applied after a failed attempt (``2 ** attempt``)."""
    return float(min(_BACKOFF_MULTIPLIER**attempt_number, _BACKOFF_MAX_SECONDS))


def _wait_backoff(retry_state: RetryCallState) -> float:
    return backoff_seconds(retry_state.attempt_number)


def build_retrying(
    api_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    sleep: SleepFunc | None = None,
) -> AsyncRetrying:
    """Create a retry controller for one logical API call.

    Args:
        api_name: Human-readable name for the API (used in logs).
        max_attempts: Total attempts, including the first.
        sleep: Coroutine used to wait between attempts.  Defaults to
            tenacity's asyncio sleep; tests inject a no-op.

    Returns:
        A fresh ``AsyncRetrying`` instance.  Use one per call.
    """
    kwargs: dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=_wait_backoff,
        retry=retry_if_exception_type(RetryableTransportError),
        before_sleep=_before_sleep_log(api_name),
        reraise=True,
        **kwargs,
    )
