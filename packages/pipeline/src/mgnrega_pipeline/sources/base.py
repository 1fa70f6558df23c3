"""
sources/base.py — Abstract base class for record-oriented source adapters.

Each concrete source must implement:
  extract()      — fetch raw records (list of dicts, upstream field names kept)
  transform()    — shape raw records for the loader
  get_metadata() — return dict with source info for pipeline_runs.metadata

The run() method orchestrates extract → transform and handles
timing/logging. Pipelines call run() rather than the individual methods.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

import structlog

log = structlog.get_logger(__name__)

Record = dict[str, Any]


class BaseSource(ABC):
    """Abstract base for ETL data source adapters."""

    # Override in subclass — used for logging and pipeline_runs.source_name
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> list[Record]:
        """
        Fetch raw records from the external source.

        Implementations decide their own failure policy; a source that
        prefers partial data returns what it collected instead of raising.
        """
        ...

    @abstractmethod
    def transform(self, raw: list[Record]) -> list[Record]:
        """Shape raw records for loading. May drop rows, never reorders them."""
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """Source-level metadata for logging and pipeline_runs.metadata."""
        ...

    # ------------------------------------------------------------------
    # Orchestration — pipelines call this
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> list[Record]:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(**{k: str(v) for k, v in kwargs.items()})
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            result = self.transform(raw)
            run_log.info(
                "source_run_complete",
                total_duration_ms=int((time.monotonic() - t0) * 1000),
                output_rows=len(result),
                dropped_rows=len(raw) - len(result),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
                exc_info=True,
            )
            raise
