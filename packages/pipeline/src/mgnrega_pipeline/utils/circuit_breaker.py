"""
utils/circuit_breaker.py — Failure-count circuit breaker for upstream calls.

A breaker belongs to one pipeline run and is handed to the source that
makes the calls. Only fully exhausted fetches (all retries spent) count as
failures; after `threshold` of them in a row the breaker opens for
`cooldown` seconds, during which every fetch is refused without touching
the network. The first is_open() check after the cooldown closes it again.

Not thread-safe: one run drives one breaker from a single asyncio task.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

log = structlog.get_logger(__name__)


@dataclass
class CircuitBreaker:
    threshold: int = 3
    cooldown: float = 3600.0
    clock: Callable[[], float] = field(default=time.time, repr=False)
    failure_count: int = 0
    open_until: float = 0.0

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {self.threshold}")
        if self.cooldown < 0:
            raise ValueError(f"cooldown must be >= 0, got {self.cooldown}")

    @property
    def state(self) -> str:
        return "open" if self.open_until > self.clock() else "closed"

    def is_open(self) -> bool:
        """
        True while the cooldown is running.

        Once an earlier trip has expired, resets the failure count and
        clears open_until before returning False.
        """
        now = self.clock()
        if self.open_until > now:
            log.warning("circuit_breaker_open", open_until=self.open_until, remaining_s=round(self.open_until - now, 1))
            return True
        if self.open_until > 0:
            log.info("circuit_breaker_reset", failure_count=self.failure_count)
            self.failure_count = 0
            self.open_until = 0.0
        return False

    def record_failure(self) -> None:
        self.failure_count += 1
        log.warning("circuit_breaker_failure", failure_count=self.failure_count, threshold=self.threshold)
        if self.failure_count >= self.threshold and self.open_until <= self.clock():
            self.open_until = self.clock() + self.cooldown
            log.error(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
                cooldown_s=self.cooldown,
                open_until=self.open_until,
            )

    def record_success(self) -> None:
        self.failure_count = 0
