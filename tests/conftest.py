"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from weekscore.db import get_session
from weekscore.main import app
from weekscore.scoring.models import Record, Tactic


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession.

    Each execute() pops the next queued row list (or returns no rows);
    statements and params are kept for assertions.
    """

    def __init__(self, results: list[list[dict[str, Any]]] | None = None):
        self._results = list(results or [])
        self.executed: list[tuple[str, dict[str, Any] | None]] = []
        self.commits = 0

    async def execute(self, stmt, params=None):
        self.executed.append((str(stmt), params))
        rows = self._results.pop(0) if self._results else []
        return FakeResult(rows)

    async def commit(self):
        self.commits += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (queue results in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependency so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": "user-1"},
    ) as ac:
        yield ac


def make_tactic(
    tactic_id: str,
    type: str = "daily_check",
    target_value: float | None = None,
    target_direction: str | None = "gte",
    **overrides: Any,
) -> Tactic:
    """Helper to build a Tactic owned by user-1."""
    data: dict[str, Any] = {
        "id": tactic_id,
        "user_id": "user-1",
        "name": f"Tactic {tactic_id}",
        "type": type,
        "target_value": target_value,
        "target_direction": target_direction,
        "active": True,
    }
    data.update(overrides)
    return Tactic.model_validate(data)


def make_record(
    tactic_id: str,
    day: date,
    value: float = 1.0,
    updated_at: datetime | None = None,
) -> Record:
    """Helper to build a Record; updated_at defaults to noon UTC on `day`."""
    if updated_at is None:
        updated_at = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)
    return Record(tactic_id=tactic_id, date=day, value=value, updated_at=updated_at)
