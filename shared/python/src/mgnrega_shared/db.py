"""
db.py — Supabase client singleton.

The ETL writes with the service role key so row-level security does not
apply to pipeline upserts.

Usage:
    from mgnrega_shared.db import get_supabase_client

    supabase = get_supabase_client()
    supabase.table(settings.metrics_table).select("id").limit(1).execute()
"""

from __future__ import annotations

import threading
from typing import Optional

import structlog
from supabase import Client, create_client

from mgnrega_shared.config import settings

logger = structlog.get_logger(__name__)

_supabase_lock = threading.Lock()
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the process-wide Supabase client, creating it on first use.

    Raises:
        RuntimeError: SUPABASE_SERVICE_KEY is not configured.
    """
    global _supabase_client

    with _supabase_lock:
        if _supabase_client is None:
            if not settings.supabase_service_key:
                raise RuntimeError(
                    "SUPABASE_SERVICE_KEY is not set. Set it in .env before running the ETL."
                )
            _supabase_client = create_client(
                settings.supabase_url,
                settings.supabase_service_key,
            )
            logger.info("supabase_client_created", url=settings.supabase_url)
        return _supabase_client


def reset_supabase_client() -> None:
    """Drop the cached client (useful in tests)."""
    global _supabase_client
    with _supabase_lock:
        _supabase_client = None
