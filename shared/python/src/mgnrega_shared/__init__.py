"""
mgnrega_shared — shared configuration, storage client, and models for the
MGNREGA data platform.

Usage:
    from mgnrega_shared.config import settings
    from mgnrega_shared.db import get_supabase_client
    from mgnrega_shared.models import MonthlyMetric, natural_key
    from mgnrega_shared.constants import METRIC_FIELDS
"""

__version__ = "0.1.0"
