"""
sources/mgnrega.py — data.gov.in client for the MGNREGA district feed.

Pages through the state-filtered resource with offset/limit:

  fetch_page(offset)  one page, retried with exponential backoff (2 s, 4 s,
                      8 s), 429-aware, gated by the run's CircuitBreaker
  fetch_all()         pages from offset 0 until an empty page; any fetch
                      failure ends pagination and returns what was collected

Usage:
    source = MgnregaSource(state_name="Uttar Pradesh")
    records = await source.run()         # fetch_all() + transform()
    page = await source.fetch_page(2000) # a single page
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from mgnrega_shared.config import settings
from mgnrega_pipeline.errors import CircuitOpenError, FetchError, RateLimited, UpstreamError
from mgnrega_pipeline.sources.base import BaseSource, Record
from mgnrega_pipeline.utils.circuit_breaker import CircuitBreaker
from mgnrega_pipeline.utils.retry import (
    log_before_sleep,
    parse_retry_after,
    sleep,
    wait_backoff,
    wait_retry_after,
)

Sleeper = Callable[[float], Awaitable[None]]


class MgnregaSource(BaseSource):
    """Paginated, retrying client for the data.gov.in MGNREGA resource."""

    name = "data.gov.in"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        state_name: str | None = None,
        data_format: str | None = None,
        limit: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
        page_pause: float | None = None,
        rate_limit_default: float | None = None,
        breaker: CircuitBreaker | None = None,
        sleeper: Sleeper = sleep,
    ) -> None:
        super().__init__()
        self.base_url = base_url or settings.data_source_url
        self.api_key = api_key if api_key is not None else settings.data_api_key
        self.state_name = (state_name or settings.state_name).strip().upper()
        self.data_format = data_format or settings.data_format
        self.limit = limit if limit is not None else settings.fetch_limit
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.retry_delay_s
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self.page_pause = page_pause if page_pause is not None else settings.page_pause_s
        self.rate_limit_default = (
            rate_limit_default if rate_limit_default is not None else settings.rate_limit_default_s
        )
        self.breaker = breaker or CircuitBreaker(
            threshold=settings.circuit_breaker_threshold,
            cooldown=settings.circuit_breaker_timeout_s,
        )
        self._sleep = sleeper

        if self.limit <= 0:
            raise ValueError(f"limit must be > 0, got {self.limit}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

        self._log = self._log.bind(state_name=self.state_name)

    # ------------------------------------------------------------------
    # Single request
    # ------------------------------------------------------------------

    async def _request_page(self, offset: int, limit: int) -> list[Record]:
        """One GET, no retries. Raises RateLimited on 429, httpx errors otherwise."""
        params: dict[str, Any] = {
            "api-key": self.api_key,
            "format": self.data_format,
            "limit": limit,
            "offset": offset,
            "filters[state_name]": self.state_name,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.base_url, params=params)

        if response.status_code == 429:
            raise RateLimited(
                parse_retry_after(response.headers.get("retry-after"), self.rate_limit_default)
            )
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"Expected a JSON object, got {type(body).__name__}")
        records = body.get("records") or []
        if not isinstance(records, list):
            raise ValueError(f"Expected 'records' to be a list, got {type(records).__name__}")
        return records

    # ------------------------------------------------------------------
    # Paginated fetcher
    # ------------------------------------------------------------------

    async def fetch_page(self, offset: int, limit: int | None = None) -> list[Record]:
        """
        Fetch one page, retrying transient failures.

        An empty list means the collection is exhausted.

        Raises:
            ValueError:       offset < 0 or limit <= 0.
            CircuitOpenError: breaker is open; nothing was sent upstream.
            UpstreamError:    every attempt failed; chained to the last error.
        """
        limit = self.limit if limit is None else limit
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")

        if self.breaker.is_open():
            raise CircuitOpenError(self.breaker.open_until)

        page_log = self._log.bind(offset=offset, limit=limit)
        max_attempts = self.max_retries + 1
        attempts = 0
        records: list[Record] = []

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_backoff(self.retry_delay) + wait_retry_after(),
                retry=retry_if_exception_type(Exception),
                sleep=self._sleep,
                before_sleep=log_before_sleep(page_log, max_attempts),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    page_log.debug("fetch_page_start", attempt=attempts)
                    records = await self._request_page(offset, limit)
        except Exception as exc:
            self.breaker.record_failure()
            page_log.error(
                "fetch_page_failed",
                attempts=attempts,
                error=str(exc),
                failure_count=self.breaker.failure_count,
            )
            raise UpstreamError(offset, attempts, str(exc)) from exc

        self.breaker.record_success()
        page_log.info("fetch_page_complete", records=len(records), attempts=attempts)
        return records

    # ------------------------------------------------------------------
    # Full-collection loop
    # ------------------------------------------------------------------

    async def fetch_all(self) -> list[Record]:
        """
        Page through the whole collection in increasing offset order.

        Never raises for fetch failures: the first page that cannot be
        fetched ends the loop and the records gathered so far are returned.
        """
        offset = 0
        all_records: list[Record] = []
        self._log.info("fetch_all_start", page_size=self.limit)

        while True:
            try:
                records = await self.fetch_page(offset)
            except FetchError as exc:
                event = (
                    "fetch_stopped_circuit_open"
                    if self.breaker.state == "open"
                    else "fetch_stopped_on_error"
                )
                self._log.error(event, offset=offset, collected=len(all_records), error=str(exc))
                break

            if not records:
                self._log.info("fetch_exhausted", offset=offset, collected=len(all_records))
                break

            all_records.extend(records)
            offset += self.limit
            await self._sleep(self.page_pause)

        return all_records

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(self, **kwargs: Any) -> list[Record]:
        return await self.fetch_all()

    def transform(self, raw: list[Record]) -> list[Record]:
        """Records are stored verbatim; validation happens per record in the loader."""
        return list(raw)

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "base_url": self.base_url,
            "state_name": self.state_name,
            "page_size": self.limit,
            "circuit_state": self.breaker.state,
            "failure_count": self.breaker.failure_count,
        }
