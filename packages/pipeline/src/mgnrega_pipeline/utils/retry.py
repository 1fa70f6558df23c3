"""
utils/retry.py — Delay primitives and tenacity wait strategies.

The fetcher retries a page with exponential backoff (base_delay * 2^attempt,
i.e. 2 s, 4 s, 8 s for a 2 s base). A 429 adds the server's Retry-After
interval on top of the backoff for that attempt; it does not grant an
extra attempt.

Usage:
    from tenacity import AsyncRetrying, stop_after_attempt
    from mgnrega_pipeline.utils.retry import sleep, wait_backoff, wait_retry_after

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(4),
        wait=wait_backoff(2.0) + wait_retry_after(),
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            ...
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from tenacity import RetryCallState
from tenacity.wait import wait_base

from mgnrega_pipeline.errors import RateLimited

DEFAULT_RETRY_AFTER_S = 60.0


async def sleep(seconds: float) -> None:
    """Non-blocking delay. Negative values are treated as zero."""
    await asyncio.sleep(max(0.0, seconds))


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retry number *attempt* (zero-based): base_delay * 2**attempt."""
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    return base_delay * (2 ** attempt)


def parse_retry_after(value: str | None, default: float = DEFAULT_RETRY_AFTER_S) -> float:
    """
    Seconds to wait from a Retry-After header value.

    Only the delta-seconds form is honoured; a missing, negative or
    non-numeric header (including the HTTP-date form) falls back to *default*.
    """
    if value is None:
        return default
    try:
        seconds = float(value.strip())
    except ValueError:
        return default
    return seconds if seconds >= 0 else default


class wait_backoff(wait_base):
    """tenacity wait: backoff_delay() keyed on the number of failed attempts."""

    def __init__(self, base_delay: float) -> None:
        self.base_delay = base_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number - 1, self.base_delay)


class wait_retry_after(wait_base):
    """tenacity wait: the Retry-After interval when the last attempt was rate limited."""

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return 0.0
        exc = outcome.exception()
        if isinstance(exc, RateLimited):
            return exc.retry_after
        return 0.0


def log_before_sleep(bound_log: Any, max_attempts: int) -> Callable[[RetryCallState], None]:
    """tenacity before_sleep hook that logs the failed attempt and the upcoming delay."""

    def _log(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        bound_log.warning(
            "retry_attempt",
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            delay_s=delay,
            rate_limited=isinstance(exc, RateLimited),
            error=str(exc) if exc else None,
        )

    return _log
