"""
tests/test_config.py — Environment-driven settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mgnrega_shared.config import Settings


def test_defaults(monkeypatch):
    for name in ("STATE_NAME", "FETCH_LIMIT", "MAX_RETRIES", "RETRY_DELAY_MS", "METRICS_TABLE"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)

    assert s.state_name == "UTTAR PRADESH"
    assert s.fetch_limit == 1000
    assert s.max_retries == 3
    assert s.retry_delay_s == 2.0
    assert s.page_pause_s == 0.5
    assert s.circuit_breaker_timeout_s == 3600.0
    assert s.metrics_table == "monthly_metrics"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STATE_NAME", " bihar ")
    monkeypatch.setenv("RETRY_DELAY_MS", "500")
    monkeypatch.setenv("DATA_SOURCE_URL", "https://api.example.test/resource/x/")

    s = Settings(_env_file=None)

    assert s.state_name == "BIHAR"
    assert s.retry_delay_s == 0.5
    assert s.data_source_url == "https://api.example.test/resource/x"


def test_rejects_non_positive_page_size(monkeypatch):
    monkeypatch.setenv("FETCH_LIMIT", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
