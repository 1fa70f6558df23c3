"""
mgnrega_shared.models — Pydantic models matching each database table.

All models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from mgnrega_shared.models.metrics import MonthlyMetric, natural_key

__all__ = [
    "MonthlyMetric",
    "natural_key",
]
