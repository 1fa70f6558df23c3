"""
constants.py — shared constants used by the pipeline and read-side consumers.

METRIC_FIELDS is the single place that maps a canonical metric name to the
upstream (data.gov.in) key spellings. Anything reading `metrics` off a
MonthlyMetric row should resolve fields through this map rather than
hard-coding raw key names.
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Canonical metric -> upstream key aliases, most recent spelling first.
# Only add aliases seen in real upstream payloads.
# ---------------------------------------------------------------------------
METRIC_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "households_worked": ("Total_Households_Worked",),
    "individuals_worked": ("Total_Individuals_Worked",),
    "total_expenditure": ("Total_Exp",),
    "wages_paid": ("Wages",),
    "avg_wage_rate": ("Average_Wage_rate_per_day_per_person",),
    "avg_days_employment": ("Average_days_of_employment_provided_per_Household",),
    "completed_works": ("Number_of_Completed_Works",),
    "ongoing_works": ("Number_of_Ongoing_Works",),
    "persondays": ("Persondays_of_Central_Liability_so_far",),
    "women_persondays": ("Women_Persondays",),
    "sc_persondays": ("SC_persondays",),
    "st_persondays": ("ST_persondays",),
    "active_job_cards": ("Total_No_of_Active_Job_Cards",),
    "active_workers": ("Total_No_of_Active_Workers",),
}

# ---------------------------------------------------------------------------
# Indian government fiscal year runs April -> March.
# Keyed by the lower-cased three-letter prefix so "April" and "Apr" match.
# ---------------------------------------------------------------------------
FISCAL_MONTH_ORDER: Final[dict[str, int]] = {
    "apr": 1,
    "may": 2,
    "jun": 3,
    "jul": 4,
    "aug": 5,
    "sep": 6,
    "oct": 7,
    "nov": 8,
    "dec": 9,
    "jan": 10,
    "feb": 11,
    "mar": 12,
}
