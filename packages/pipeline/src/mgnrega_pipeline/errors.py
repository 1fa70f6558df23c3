"""
errors.py — Exception hierarchy for the ETL run.

  PipelineError
  ├── FetchError                 ends the fetch loop for this run
  │   ├── CircuitOpenError       breaker open, upstream not contacted
  │   └── UpstreamError          retries exhausted (cause chained)
  ├── RateLimited                429 from upstream, retried internally
  ├── ReconcileError             one record failed to store, counted and skipped
  └── StorageUnavailableError    storage unreachable at startup, fatal
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class FetchError(PipelineError):
    """A page fetch failed in a way that stops pagination."""


class CircuitOpenError(FetchError):
    def __init__(self, open_until: float) -> None:
        super().__init__(f"Circuit breaker is open until {open_until:.0f}; API calls suspended.")
        self.open_until = open_until


class UpstreamError(FetchError):
    def __init__(self, offset: int, attempts: int, reason: str) -> None:
        super().__init__(f"Fetch at offset {offset} failed after {attempts} attempt(s): {reason}")
        self.offset = offset
        self.attempts = attempts


class RateLimited(PipelineError):
    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limited by upstream; retry after {retry_after:g}s")
        self.retry_after = retry_after


class ReconcileError(PipelineError):
    def __init__(self, record_id: str | None, reason: str) -> None:
        super().__init__(f"Failed to store record {record_id or '<unkeyed>'}: {reason}")
        self.record_id = record_id


class StorageUnavailableError(PipelineError):
    """The metrics store could not be reached."""
