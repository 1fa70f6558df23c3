"""
mgnrega_pipeline — ETL worker for the MGNREGA district metrics feed.

Architecture:
  sources/     — data.gov.in client: paginated fetcher + full-collection loop
  loaders/     — idempotent natural-key upserts into monthly_metrics
  transforms/  — canonical metric lookup and numeric normalization
  pipelines/   — orchestrator wiring source -> loader with run tracking
  utils/       — structlog configuration, backoff helpers, circuit breaker

Quick start:
    from mgnrega_pipeline.pipelines.mgnrega import run
    import asyncio
    result = asyncio.run(run(dry_run=True))

CLI:
    mgnrega-pipeline run --state "Uttar Pradesh"
    mgnrega-pipeline status
"""

__version__ = "0.1.0"
