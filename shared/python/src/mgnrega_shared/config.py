"""
config.py — pydantic-settings Settings class.

All environment variables for the MGNREGA platform are declared here.
The pipeline (and any read-side collaborator) imports `settings` from
this module.

Usage:
    from mgnrega_shared.config import settings
    print(settings.data_source_url, settings.state_name)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Upstream data source (data.gov.in)
    # -------------------------------------------------------------------------
    data_source_url: str = Field(
        default="https://api.data.gov.in/resource/ee03643a-ee4c-48c2-ac30-9f2ff26ab722"
    )
    data_api_key: str = Field(default="")
    state_name: str = Field(default="UTTAR PRADESH")
    data_format: str = Field(default="json")

    # -------------------------------------------------------------------------
    # Pagination, retry, circuit breaker
    # -------------------------------------------------------------------------
    fetch_limit: int = Field(default=1000, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=2000, ge=0)
    request_timeout_s: float = Field(default=30.0, gt=0)
    page_pause_ms: int = Field(default=500, ge=0)
    rate_limit_default_s: float = Field(default=60.0, ge=0)
    circuit_breaker_threshold: int = Field(default=3, gt=0)
    circuit_breaker_timeout_ms: int = Field(default=3_600_000, ge=0)

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_key: str = Field(default="")
    metrics_table: str = Field(default="monthly_metrics")
    runs_table: str = Field(default="pipeline_runs")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def page_pause_s(self) -> float:
        return self.page_pause_ms / 1000

    @property
    def circuit_breaker_timeout_s(self) -> float:
        return self.circuit_breaker_timeout_ms / 1000

    @field_validator("state_name", mode="before")
    @classmethod
    def upper_state_name(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("supabase_url", "data_source_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton — import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
