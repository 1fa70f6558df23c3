"""
loaders/supabase_loader.py — Natural-key upserts into monthly_metrics.

Every fetched record is reconciled on its own, in input order:
  - derive the row id (district_name-fin_year[-month]) and validate
  - point lookup by id
  - update the existing row (metrics replaced wholesale) or insert a new one
  - on any failure count an error and move on; one bad record never
    aborts the batch

Running store() twice on the same records leaves the table in the same
state; only the inserted/updated split differs.

Also records pipeline_runs rows for observability and serves the small
read helpers the CLI uses (health, per-district lookup, recent runs).

Usage:
    from mgnrega_pipeline.loaders.supabase_loader import SupabaseLoader

    loader = SupabaseLoader()
    loader.ping()
    result = await loader.store(records)
    print(result.inserted, result.updated, result.errors)
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

import structlog

from mgnrega_shared.config import settings
from mgnrega_shared.db import get_supabase_client
from mgnrega_shared.models import MonthlyMetric
from mgnrega_pipeline.errors import ReconcileError, StorageUnavailableError
from mgnrega_pipeline.transforms.normalize import period_sort_key

log = structlog.get_logger(__name__)

PROGRESS_EVERY = 100      # log progress every N stored records
MAX_ERROR_MESSAGES = 50   # keep the summary bounded on a bad run

Outcome = Literal["inserted", "updated"]


@dataclass
class ReconcileResult:
    """Summary of one store() call."""

    table: str
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.errors

    @property
    def records_loaded(self) -> int:
        return self.inserted + self.updated

    @property
    def status(self) -> str:
        if self.errors == 0:
            return "success"
        if self.records_loaded > 0:
            return "partial_failure"
        return "failure"


class SupabaseLoader:
    """
    Handles all writes to Supabase from the pipeline.

    Uses the service role key so RLS is bypassed for ETL writes.
    """

    def __init__(self, *, client: Any | None = None, table: str | None = None) -> None:
        self._client = client if client is not None else get_supabase_client()
        self._table = table or settings.metrics_table

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def ping(self) -> None:
        """
        Cheap round-trip against the metrics table.

        Raises:
            StorageUnavailableError: the table cannot be queried.
        """
        try:
            self._client.table(self._table).select("id").limit(1).execute()
        except Exception as exc:
            log.error("storage_unreachable", table=self._table, error=str(exc))
            raise StorageUnavailableError(f"Cannot reach table {self._table!r}: {exc}") from exc
        log.info("storage_connected", table=self._table)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _reconcile_one(self, record: Any) -> Outcome:
        record_id: str | None = None
        try:
            row = MonthlyMetric.from_raw(record)
            record_id = row.id
            existing = (
                self._client.table(self._table).select("id").eq("id", row.id).limit(1).execute()
            )
            now = datetime.now(timezone.utc)
            if existing.data:
                self._client.table(self._table).update(row.to_update_dict(now)).eq(
                    "id", row.id
                ).execute()
                return "updated"
            self._client.table(self._table).insert(row.to_insert_dict(now)).execute()
            return "inserted"
        except Exception as exc:
            raise ReconcileError(record_id, str(exc)) from exc

    async def store(self, records: Iterable[Any]) -> ReconcileResult:
        """
        Upsert each record by natural key, sequentially and in order.

        Returns:
            ReconcileResult with inserted / updated / errors counts.
        """
        result = ReconcileResult(table=self._table)
        batch = list(records)
        t0 = time.monotonic()

        store_log = log.bind(table=self._table, total_rows=len(batch))
        store_log.info("store_start")

        for index, record in enumerate(batch):
            try:
                outcome = self._reconcile_one(record)
            except ReconcileError as exc:
                result.errors += 1
                if len(result.error_messages) < MAX_ERROR_MESSAGES:
                    result.error_messages.append(str(exc))
                store_log.error(
                    "record_store_failed",
                    index=index,
                    record_id=exc.record_id,
                    error=str(exc.__cause__ or exc),
                )
                continue

            if outcome == "inserted":
                result.inserted += 1
            else:
                result.updated += 1

            if result.records_loaded % PROGRESS_EVERY == 0:
                store_log.info("store_progress", processed=result.records_loaded)

        result.duration_ms = int((time.monotonic() - t0) * 1000)
        store_log.info(
            "store_complete",
            inserted=result.inserted,
            updated=result.updated,
            errors=result.errors,
            duration_ms=result.duration_ms,
            status=result.status,
        )
        return result

    # ------------------------------------------------------------------
    # Pipeline run tracking
    # ------------------------------------------------------------------

    async def start_pipeline_run(
        self,
        pipeline_name: str,
        source_name: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Insert a 'running' pipeline_runs row and return its UUID."""
        run_id = str(uuid.uuid4())
        self._client.table(settings.runs_table).insert(
            {
                "id": run_id,
                "pipeline_name": pipeline_name,
                "source_name": source_name,
                "status": "running",
                "started_at": datetime.now(timezone.utc).isoformat(),
                "metadata": metadata or {},
            }
        ).execute()
        log.info("pipeline_run_started", run_id=run_id, pipeline=pipeline_name)
        return run_id

    async def finish_pipeline_run(
        self,
        run_id: str,
        result: ReconcileResult,
        *,
        records_extracted: int | None = None,
        status: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Update a pipeline_runs row with the reconcile outcome."""
        run_status = status or result.status
        update: dict[str, Any] = {
            "status": run_status,
            "records_loaded": result.records_loaded,
            "records_rejected": result.errors,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }
        if records_extracted is not None:
            update["records_extracted"] = records_extracted
        if metadata:
            update["metadata"] = metadata

        self._client.table(settings.runs_table).update(update).eq("id", run_id).execute()
        log.info("pipeline_run_finished", run_id=run_id, status=run_status)

    async def fail_pipeline_run(self, run_id: str, error_message: str) -> None:
        """Mark a pipeline run as failed with an error message."""
        self._client.table(settings.runs_table).update(
            {
                "status": "failure",
                "error_message": error_message[:2000],  # DB column limit
                "completed_at": datetime.now(timezone.utc).isoformat(),
            }
        ).eq("id", run_id).execute()
        log.error("pipeline_run_failed", run_id=run_id, error=error_message[:200])

    # ------------------------------------------------------------------
    # Read helpers (CLI)
    # ------------------------------------------------------------------

    def recent_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        result = (
            self._client.table(settings.runs_table)
            .select("pipeline_name,status,started_at,records_loaded,records_rejected")
            .order("started_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data or []

    def health(self) -> dict[str, Any]:
        """Record count, distinct state/district counts and most recent updated_at."""
        count_result = self._client.table(self._table).select("id", count="exact").limit(1).execute()
        # PostgREST has no DISTINCT; dedupe the two key columns client-side
        names = self._client.table(self._table).select("state_name,district_name").execute()
        rows = names.data or []
        last = (
            self._client.table(self._table)
            .select("updated_at")
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        return {
            "table": self._table,
            "record_count": count_result.count or 0,
            "states_count": len({r.get("state_name") for r in rows if r.get("state_name")}),
            "districts_count": len({r.get("district_name") for r in rows if r.get("district_name")}),
            "last_updated": last.data[0]["updated_at"] if last.data else None,
        }

    def latest_for_district(self, district_name: str, limit: int = 12) -> list[MonthlyMetric]:
        """Stored periods for a district, newest first (fiscal year desc, month desc)."""
        result = (
            self._client.table(self._table)
            .select("*")
            .eq("district_name", district_name)
            .execute()
        )
        rows = [MonthlyMetric.from_db_row(row) for row in (result.data or [])]
        rows.sort(key=lambda r: period_sort_key(r.fin_year, r.month), reverse=True)
        return rows[:limit]
