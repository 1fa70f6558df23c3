"""
utils/logging.py — structlog configuration for the ETL worker.

JSON output for scheduled/cron runs, coloured console output for local
runs, selected by settings.log_format. The CLI calls configure_logging()
once at startup; pipelines.mgnrega.run() falls back to ensure_logging()
when imported as a library.

Usage:
    from mgnrega_pipeline.utils.logging import configure_logging, bind_run_context, get_logger

    configure_logging()
    bind_run_context(run_id=run_id, state_name="UTTAR PRADESH")
    log = get_logger(__name__)
    log.info("fetch_page_start", offset=0, limit=1000)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from mgnrega_shared.config import settings


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog for the ETL process. Idempotent.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: Any) -> None:
    """Attach run-wide fields (run_id, state_name, …) to every later log line."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """Return a structlog logger, pre-bound with *initial_values* if given."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]


def ensure_logging() -> None:
    """Configure with settings defaults unless the process already did (e.g. the CLI)."""
    if not structlog.is_configured():
        configure_logging()
