"""
pipelines/mgnrega.py — MGNREGA district metrics ETL.

Fetches every page of the state-filtered data.gov.in resource, then
reconciles each record into monthly_metrics by natural key.

Failure policy:
  - storage unreachable at startup   → StorageUnavailableError (fatal)
  - upstream fails / breaker opens   → pagination stops, partial data stored
  - a single record fails to store   → counted in errors, run continues

Usage:
    from mgnrega_pipeline.pipelines.mgnrega import run
    result = await run(state_name="Uttar Pradesh")
    print(result.reconcile.inserted, result.reconcile.updated, result.reconcile.errors)

    # Fetch only, no storage access
    result = await run(dry_run=True)
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from mgnrega_shared.config import settings
from mgnrega_pipeline.errors import StorageUnavailableError
from mgnrega_pipeline.loaders.supabase_loader import ReconcileResult, SupabaseLoader
from mgnrega_pipeline.sources.mgnrega import MgnregaSource
from mgnrega_pipeline.utils.logging import (
    bind_run_context,
    clear_run_context,
    ensure_logging,
    get_logger,
)

PIPELINE_NAME = "mgnrega_monthly_metrics"

log = get_logger(__name__, pipeline="mgnrega")


@dataclass
class PipelineResult:
    """Outcome of one ETL run, printed by the CLI as the run summary."""

    state_name: str
    fetched: int
    reconcile: ReconcileResult
    duration_s: float
    circuit_state: str
    dry_run: bool = False
    run_id: str | None = None


def _connect_loader() -> SupabaseLoader:
    try:
        loader = SupabaseLoader()
    except RuntimeError as exc:
        raise StorageUnavailableError(str(exc)) from exc
    loader.ping()
    return loader


async def run(
    *,
    state_name: str | None = None,
    dry_run: bool = False,
    track_run: bool = True,
    source: MgnregaSource | None = None,
    loader: SupabaseLoader | None = None,
) -> PipelineResult:
    """
    Run the ETL once.

    Args:
        state_name: Upstream state filter (default: settings.state_name).
        dry_run:    Fetch only; storage is never touched.
        track_run:  Record the run in pipeline_runs.
        source:     Pre-built source (tests, custom breaker).
        loader:     Pre-built loader; ping() is still called.

    Raises:
        StorageUnavailableError: storage cannot be reached before fetching.
    """
    ensure_logging()
    t0 = time.monotonic()
    source = source or MgnregaSource(state_name=state_name)
    bind_run_context(pipeline=PIPELINE_NAME, state_name=source.state_name)
    log.info("etl_start", base_url=source.base_url, dry_run=dry_run)

    try:
        if dry_run:
            loader = None
        else:
            if loader is None:
                loader = _connect_loader()
            else:
                loader.ping()

        run_id: str | None = None
        if loader is not None and track_run:
            try:
                run_id = await loader.start_pipeline_run(
                    PIPELINE_NAME, source.name, metadata=await source.get_metadata()
                )
            except Exception as exc:
                log.warning("pipeline_run_tracking_unavailable", error=str(exc))

        try:
            records = await source.run()
            if not records:
                log.warning("no_records_fetched")
            if records and loader is not None:
                reconcile = await loader.store(records)
            else:
                reconcile = ReconcileResult(table=settings.metrics_table)
        except Exception as exc:
            if loader is not None and run_id:
                try:
                    await loader.fail_pipeline_run(run_id, str(exc))
                except Exception as track_exc:
                    log.warning("pipeline_run_tracking_failed", error=str(track_exc))
            raise

        result = PipelineResult(
            state_name=source.state_name,
            fetched=len(records),
            reconcile=reconcile,
            duration_s=round(time.monotonic() - t0, 2),
            circuit_state=source.breaker.state,
            dry_run=dry_run,
            run_id=run_id,
        )
        log.info(
            "etl_summary",
            fetched=result.fetched,
            inserted=reconcile.inserted,
            updated=reconcile.updated,
            errors=reconcile.errors,
            total=reconcile.total,
            duration_s=result.duration_s,
            circuit_state=result.circuit_state,
        )

        if loader is not None and run_id:
            try:
                await loader.finish_pipeline_run(
                    run_id,
                    reconcile,
                    records_extracted=result.fetched,
                    metadata=await source.get_metadata(),
                )
            except Exception as exc:
                log.warning("pipeline_run_tracking_failed", error=str(exc))

        return result
    finally:
        clear_run_context()
