"""
models/metrics.py — Pydantic model for the monthly_metrics table.

One row per district per reporting period. The row id is a natural key
derived from the district, fiscal year and (when present) month, so
re-ingesting a period updates the existing row instead of adding another.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


def natural_key(district_name: str, fin_year: str, month: str | None = None) -> str:
    """
    Build the row id for a district/period.

    >>> natural_key("Agra", "2023-2024", "April")
    'Agra-2023-2024-April'
    >>> natural_key("Agra", "2023-2024")
    'Agra-2023-2024'
    """
    key = f"{district_name}-{fin_year}"
    if month:
        key = f"{key}-{month}"
    return key


class MonthlyMetric(BaseModel):
    """
    Matches the monthly_metrics table row.

    `metrics` holds the upstream record verbatim; its keys follow the
    upstream naming (see constants.METRIC_FIELDS for canonical lookups).
    """

    id: str
    district_name: str = Field(min_length=1)
    state_name: str = Field(min_length=1)
    fin_year: str = Field(min_length=1)
    month: str | None = None
    metrics: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("month", mode="before")
    @classmethod
    def blank_month_is_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="before")
    @classmethod
    def derive_id(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("id"):
            return data
        district, fin_year = data.get("district_name"), data.get("fin_year")
        if isinstance(district, str) and isinstance(fin_year, str) and district and fin_year:
            month = data.get("month")
            if not isinstance(month, str) or not month.strip():
                month = None
            data = {**data, "id": natural_key(district, fin_year, month)}
        return data

    @classmethod
    def from_raw(cls, record: Mapping[str, Any]) -> "MonthlyMetric":
        """
        Project an upstream record onto a row, keeping the whole record as metrics.

        Raises:
            pydantic.ValidationError: district_name or fin_year missing/invalid.
            TypeError: record is not a mapping.
        """
        if not isinstance(record, Mapping):
            raise TypeError(f"Expected a mapping, got {type(record).__name__}")
        return cls(
            district_name=record.get("district_name"),
            state_name=record.get("state_name"),
            fin_year=record.get("fin_year"),
            month=record.get("month"),
            metrics=dict(record),
        )

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "MonthlyMetric":
        return cls(**row)

    def to_insert_dict(self, now: datetime | None = None) -> dict[str, Any]:
        ts = (now or datetime.now(timezone.utc)).isoformat()
        row = self.model_dump(mode="json", exclude={"created_at", "updated_at"}, exclude_none=True)
        row["created_at"] = ts
        row["updated_at"] = ts
        return row

    def to_update_dict(self, now: datetime | None = None) -> dict[str, Any]:
        """Columns overwritten when the row already exists (id and created_at kept)."""
        return {
            "district_name": self.district_name,
            "state_name": self.state_name,
            "fin_year": self.fin_year,
            "month": self.month,
            "metrics": self.metrics,
            "updated_at": (now or datetime.now(timezone.utc)).isoformat(),
        }
