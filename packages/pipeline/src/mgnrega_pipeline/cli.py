"""
cli.py — Click CLI entrypoint for the ETL worker.

Usage:
    mgnrega-pipeline run
    mgnrega-pipeline run --state "Bihar" --dry-run
    mgnrega-pipeline status
    mgnrega-pipeline health
    mgnrega-pipeline inspect Agra --limit 6

Exit codes: 0 when the run completes (including "no new records"),
1 on an unrecoverable failure such as storage being unreachable.
"""

from __future__ import annotations

import asyncio
import sys

import click
import structlog

from mgnrega_shared.config import settings
from mgnrega_pipeline.errors import StorageUnavailableError
from mgnrega_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

RULE = "═" * 55


def _loader():
    from mgnrega_pipeline.loaders.supabase_loader import SupabaseLoader

    try:
        return SupabaseLoader()
    except RuntimeError as exc:
        raise StorageUnavailableError(str(exc)) from exc


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log renderer",
)
def main(log_level: str, log_format: str) -> None:
    """MGNREGA district metrics ETL."""
    configure_logging(log_level=log_level, log_format=log_format)


@main.command()
@click.option("--state", "state_name", default=None, help="State to fetch (default: STATE_NAME).")
@click.option("--dry-run", is_flag=True, help="Fetch only; do not touch storage.")
@click.option("--no-track", is_flag=True, help="Do not record the run in pipeline_runs.")
def run(state_name: str | None, dry_run: bool, no_track: bool) -> None:
    """Fetch all pages for the state and upsert them into monthly_metrics."""
    from mgnrega_pipeline.pipelines.mgnrega import run as run_pipeline

    click.echo(RULE)
    click.echo("MGNREGA ETL pipeline")
    click.echo(f"  State: {(state_name or settings.state_name).upper()}")
    click.echo(f"  Source: {settings.data_source_url}")
    click.echo(RULE)

    try:
        result = asyncio.run(
            run_pipeline(state_name=state_name, dry_run=dry_run, track_run=not no_track)
        )
    except StorageUnavailableError as exc:
        click.echo(f"ETL failed: storage unavailable: {exc}", err=True)
        sys.exit(1)
    except Exception as exc:
        log.error("etl_failed", error=str(exc), exc_info=True)
        click.echo(f"ETL failed: {exc}", err=True)
        sys.exit(1)

    rec = result.reconcile
    click.echo("")
    click.echo("ETL summary:")
    click.echo(f"  Fetched:   {result.fetched}")
    if result.dry_run:
        click.echo("  (dry run, nothing stored)")
    else:
        click.echo(f"  Inserted:  {rec.inserted}")
        click.echo(f"  Updated:   {rec.updated}")
        click.echo(f"  Errors:    {rec.errors}")
        click.echo(f"  Total processed: {rec.total}/{result.fetched}")
    click.echo(f"  Circuit breaker: {result.circuit_state}")
    click.echo(f"  Duration: {result.duration_s:.2f} seconds")
    click.echo(RULE)


@main.command()
@click.option("--limit", default=20, show_default=True, help="Number of runs to show.")
def status(limit: int) -> None:
    """Show the most recent pipeline runs."""
    click.echo("Pipeline status:")
    try:
        rows = _loader().recent_runs(limit=limit)
    except Exception as exc:
        click.echo(f"  Error fetching status: {exc}", err=True)
        sys.exit(1)

    if not rows:
        click.echo("  No pipeline runs found.")
        return
    for row in rows:
        marker = {"success": "✓", "failure": "✗", "running": "⟳", "partial_failure": "⚠"}.get(
            row.get("status"), "?"
        )
        click.echo(
            f"  {marker} {row.get('pipeline_name', ''):30s} "
            f"{row.get('status', ''):16s} "
            f"{row.get('records_loaded', '?')} rows  "
            f"{(row.get('started_at') or '')[:19]}"
        )


@main.command()
def health() -> None:
    """Check storage connectivity and report record, state and district counts."""
    try:
        loader = _loader()
        loader.ping()
        info = loader.health()
    except Exception as exc:
        click.echo(f"status: error ({exc})", err=True)
        sys.exit(1)

    click.echo("status: ok")
    click.echo(f"  table:        {info['table']}")
    click.echo(f"  records:      {info['record_count']}")
    click.echo(f"  states:       {info['states_count']}")
    click.echo(f"  districts:    {info['districts_count']}")
    click.echo(f"  last_updated: {info['last_updated'] or '-'}")


@main.command()
@click.argument("district")
@click.option("--limit", default=12, show_default=True, help="Number of periods to show.")
def inspect(district: str, limit: int) -> None:
    """
    Show the latest stored periods for DISTRICT with normalized metrics.

    Each value is followed by its change from the previous stored period;
    "n/a" when the previous value is zero.
    """
    from mgnrega_pipeline.transforms.normalize import normalize_metrics, percentage_diff

    try:
        rows = _loader().latest_for_district(district, limit=limit)
    except Exception as exc:
        click.echo(f"Error reading {district}: {exc}", err=True)
        sys.exit(1)

    if not rows:
        click.echo(f"No data for district: {district}")
        return

    # rows are newest first, so each row's previous period is the next one
    normalized = [normalize_metrics(row.metrics) for row in rows]
    for index, (row, values) in enumerate(zip(rows, normalized)):
        previous = normalized[index + 1] if index + 1 < len(normalized) else None
        click.echo(f"{row.id}  ({row.state_name})")
        for name, value in values.items():
            line = f"    {name:22s} {value:,.2f}"
            if previous is not None:
                change = percentage_diff(value, previous[name])
                line += "  (n/a)" if change is None else f"  ({change:+.1f}%)"
            click.echo(line)


if __name__ == "__main__":
    main()
