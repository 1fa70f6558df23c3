"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fake_supabase        — in-memory stand-in for the supabase.Client query chain
  mock_supabase_client — MagicMock of the Supabase client (call inspection)
  loader               — SupabaseLoader wired to fake_supabase
  sleeper              — records requested delays instead of sleeping
  clock                — manually advanced clock for CircuitBreaker
  make_source          — MgnregaSource factory pointed at API_URL
  mock_http            — respx router for faking httpx responses
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
import respx

from mgnrega_pipeline.loaders.supabase_loader import SupabaseLoader
from mgnrega_pipeline.sources.mgnrega import MgnregaSource
from mgnrega_pipeline.utils.circuit_breaker import CircuitBreaker

API_URL = "https://api.example.test/resource/mgnrega"


# ---------------------------------------------------------------------------
# In-memory Supabase
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, data: list[dict[str, Any]], count: int | None = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Implements the subset of the PostgREST builder the loader uses."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: dict[str, Any] = {}
        self._filters: list[tuple[str, Any]] = []
        self._limit: int | None = None
        self._order: tuple[str, bool] | None = None
        self._count: str | None = None

    def select(self, columns: str = "*", count: str | None = None) -> "FakeQuery":
        self._op, self._count = "select", count
        return self

    def insert(self, payload: dict[str, Any]) -> "FakeQuery":
        self._op, self._payload = "insert", payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self._op, self._payload = "update", payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self._limit = n
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def execute(self) -> FakeResult:
        self._db.executed.append((self._table, self._op))
        if self._table in self._db.unavailable_tables:
            raise ConnectionError(f"table {self._table} unavailable")
        key = self._payload.get("id") or dict(self._filters).get("id")
        if key in self._db.failing_ids:
            raise ConnectionError(f"write failed for {key}")

        rows = self._db.tables.setdefault(self._table, [])
        matched = [r for r in rows if all(r.get(c) == v for c, v in self._filters)]

        if self._op == "insert":
            if any(r.get("id") == self._payload.get("id") for r in rows):
                raise ValueError(f"duplicate key {self._payload.get('id')}")
            rows.append(dict(self._payload))
            return FakeResult([dict(self._payload)])

        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return FakeResult([dict(r) for r in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        total = len(matched)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResult([dict(r) for r in matched], count=total if self._count else None)


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failing_ids: set[str] = set()
        self.unavailable_tables: set[str] = set()
        self.executed: list[tuple[str, str]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str = "monthly_metrics") -> list[dict[str, Any]]:
        return self.tables.get(name, [])


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def loader(fake_supabase: FakeSupabase) -> SupabaseLoader:
    return SupabaseLoader(client=fake_supabase, table="monthly_metrics")


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    Every .execute() returns empty data by default.
    """
    client = MagicMock()

    default_result = MagicMock()
    default_result.data = []
    default_result.count = 0

    client.table.return_value.select.return_value.limit.return_value.execute.return_value = default_result
    client.table.return_value.insert.return_value.execute.return_value = default_result
    client.table.return_value.update.return_value.eq.return_value.execute.return_value = default_result

    return client


# ---------------------------------------------------------------------------
# Time control
# ---------------------------------------------------------------------------

class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Source factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_source(sleeper: SleepRecorder, clock: FakeClock):
    """
    Build an MgnregaSource with production defaults except that sleeps
    are recorded and the breaker runs on the fake clock.
    """

    def _make(**overrides: Any) -> MgnregaSource:
        kwargs: dict[str, Any] = {
            "base_url": API_URL,
            "api_key": "test-key",
            "state_name": "Uttar Pradesh",
            "data_format": "json",
            "limit": 1000,
            "max_retries": 3,
            "retry_delay": 2.0,
            "timeout": 30.0,
            "page_pause": 0.5,
            "rate_limit_default": 60.0,
            "breaker": CircuitBreaker(threshold=3, cooldown=3600.0, clock=clock),
            "sleeper": sleeper,
        }
        kwargs.update(overrides)
        return MgnregaSource(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get(url__regex=r".*resource.*").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


def make_records(n: int, *, start: int = 0, month: str = "April") -> list[dict[str, Any]]:
    """n distinct upstream records (one per district) for the same period."""
    return [
        {
            "state_name": "UTTAR PRADESH",
            "district_name": f"District {i}",
            "fin_year": "2023-2024",
            "month": month,
            "Total_Households_Worked": str(100 + i),
        }
        for i in range(start, start + n)
    ]


@pytest.fixture
def records_factory():
    return make_records
