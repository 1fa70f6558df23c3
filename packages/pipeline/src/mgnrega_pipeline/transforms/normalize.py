"""
transforms/normalize.py — Canonical metric lookup over raw upstream records.

Stored rows keep the upstream record verbatim in `metrics`. Anything that
needs a number out of it goes through these helpers, which resolve the
canonical name via mgnrega_shared.constants.METRIC_FIELDS and default
missing or unparseable values to 0.

Usage:
    from mgnrega_pipeline.transforms.normalize import metric_value, normalize_metrics

    wages = metric_value(row.metrics, "wages_paid")
    flat = normalize_metrics(row.metrics)   # {"households_worked": 1520.0, ...}
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from mgnrega_shared.constants import FISCAL_MONTH_ORDER, METRIC_FIELDS


def to_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce an upstream value to float.

    Handles ints/floats, numeric strings with thousands separators
    ("1,234.5"), and treats None, "", "NA" and NaN/inf as missing.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return default
        try:
            number = float(cleaned)
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def _lookup(metrics: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        if key in metrics:
            return metrics[key]
    # Fall back to a case-insensitive match on the known spellings
    lowered = {a.lower() for a in aliases}
    for key, value in metrics.items():
        if isinstance(key, str) and key.lower() in lowered:
            return value
    return None


def metric_value(metrics: Mapping[str, Any], field: str, default: float = 0.0) -> float:
    """
    Numeric value of a canonical metric.

    Unknown canonical names are looked up as raw keys, so callers can ask
    for upstream fields that have no canonical name yet.
    """
    aliases = METRIC_FIELDS.get(field, (field,))
    return to_number(_lookup(metrics, aliases), default)


def normalize_metrics(metrics: Mapping[str, Any]) -> dict[str, float]:
    """Every canonical metric as a float (0.0 when absent)."""
    return {name: metric_value(metrics, name) for name in METRIC_FIELDS}


def percentage_diff(current: float, baseline: float) -> float | None:
    """
    Percentage change from *baseline* to *current*.

    Returns None when the baseline is zero: the change is undefined.
    """
    if baseline == 0:
        return None
    return (current - baseline) / baseline * 100


def period_sort_key(fin_year: str, month: str | None) -> tuple[int, int, str]:
    """
    Sort key ordering periods chronologically within the Apr–Mar fiscal year.

    "2023-2024"/"April" sorts before "2023-2024"/"Jan". A row without a
    month sorts before the months of its year; unparseable fiscal years
    sort before everything else.
    """
    try:
        start_year = int(fin_year.split("-", 1)[0])
    except (ValueError, AttributeError):
        start_year = -1
    month_index = FISCAL_MONTH_ORDER.get((month or "").strip()[:3].lower(), 0)
    return (start_year, month_index, fin_year or "")
