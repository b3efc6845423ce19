"""Database connector — async access to tactics, records, week_tactic_selections, quarters.

Every query is scoped by user_id, directly or through a join on tactics.
Lookups return None / [] when nothing is found; they never raise for
missing rows. Writers commit their own transaction.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.scoring.models import Quarter, Record, Tactic

logger = logging.getLogger(__name__)

_TACTIC_COLUMNS = (
    "id, user_id, name, type, target_value, target_direction, unit, category, "
    "quarter_id, sort_order, active"
)
_QUARTER_COLUMNS = "id, user_id, name, start_date, end_date, goals, review_notes, status"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _rows(result) -> list[dict[str, Any]]:
    columns = result.keys()
    return [dict(zip(columns, r)) for r in result.fetchall()]


def _first(result) -> dict[str, Any] | None:
    rows = _rows(result)
    return rows[0] if rows else None


def _quarter_from_row(row: dict[str, Any]) -> Quarter:
    goals = row.get("goals")
    return Quarter.model_validate({**row, "goals": json.loads(goals) if goals else None})


# ---------------------------------------------------------------------------
# Tactics
# ---------------------------------------------------------------------------


async def fetch_tactics(
    session: AsyncSession,
    user_id: str,
    active_only: bool = False,
) -> list[Tactic]:
    query = f"SELECT {_TACTIC_COLUMNS} FROM tactics WHERE user_id = :user_id"
    if active_only:
        query += " AND active = true"
    query += " ORDER BY sort_order, name"
    result = await session.execute(text(query), {"user_id": user_id})
    return [Tactic.model_validate(r) for r in _rows(result)]


async def fetch_tactic(session: AsyncSession, user_id: str, tactic_id: str) -> Tactic | None:
    result = await session.execute(
        text(f"SELECT {_TACTIC_COLUMNS} FROM tactics WHERE id = :id AND user_id = :user_id"),
        {"id": tactic_id, "user_id": user_id},
    )
    row = _first(result)
    return Tactic.model_validate(row) if row else None


async def insert_tactic(session: AsyncSession, user_id: str, values: dict[str, Any]) -> Tactic:
    now = _now()
    params = {
        "id": _new_id(),
        "user_id": user_id,
        "name": values["name"],
        "type": values["type"],
        "target_value": values.get("target_value"),
        "target_direction": values.get("target_direction") or "gte",
        "unit": values.get("unit"),
        "category": values.get("category"),
        "quarter_id": values.get("quarter_id"),
        "sort_order": values.get("sort_order") or 0,
        "active": True,
        "now": now,
    }
    await session.execute(
        text(
            "INSERT INTO tactics (id, user_id, name, type, target_value, target_direction, "
            "unit, category, quarter_id, sort_order, active, created_at, updated_at) "
            "VALUES (:id, :user_id, :name, :type, :target_value, :target_direction, "
            ":unit, :category, :quarter_id, :sort_order, :active, :now, :now)"
        ),
        params,
    )
    await session.commit()
    return Tactic.model_validate(params)


_TACTIC_MUTABLE = (
    "name", "type", "target_value", "target_direction", "unit",
    "category", "quarter_id", "sort_order", "active",
)


async def update_tactic(
    session: AsyncSession,
    user_id: str,
    tactic_id: str,
    changes: dict[str, Any],
) -> Tactic | None:
    """Apply only the keys present in `changes`; an explicit None clears the column."""
    sets = [f"{col} = :{col}" for col in _TACTIC_MUTABLE if col in changes]
    params: dict[str, Any] = {col: changes[col] for col in _TACTIC_MUTABLE if col in changes}
    sets.append("updated_at = :now")
    params.update({"id": tactic_id, "user_id": user_id, "now": _now()})
    await session.execute(
        text(f"UPDATE tactics SET {', '.join(sets)} WHERE id = :id AND user_id = :user_id"),
        params,
    )
    await session.commit()
    return await fetch_tactic(session, user_id, tactic_id)


async def delete_tactic(session: AsyncSession, user_id: str, tactic_id: str) -> None:
    await session.execute(
        text("DELETE FROM records WHERE tactic_id = :id"), {"id": tactic_id}
    )
    await session.execute(
        text("DELETE FROM tactics WHERE id = :id AND user_id = :user_id"),
        {"id": tactic_id, "user_id": user_id},
    )
    await session.commit()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


async def fetch_records(
    session: AsyncSession,
    user_id: str,
    start: date | None = None,
    end: date | None = None,
    tactic_id: str | None = None,
) -> list[Record]:
    """Records of the user's tactics, optionally bounded to [start, end] and one tactic."""
    query = (
        "SELECT r.id, r.tactic_id, r.date, r.value, r.updated_at "
        "FROM records r JOIN tactics t ON r.tactic_id = t.id "
        "WHERE t.user_id = :user_id"
    )
    params: dict[str, Any] = {"user_id": user_id}
    if start is not None:
        query += " AND r.date >= :start"
        params["start"] = start
    if end is not None:
        query += " AND r.date <= :end"
        params["end"] = end
    if tactic_id is not None:
        query += " AND r.tactic_id = :tactic_id"
        params["tactic_id"] = tactic_id
    query += " ORDER BY r.date, r.updated_at"

    result = await session.execute(text(query), params)
    return [Record.model_validate(r) for r in _rows(result)]


async def fetch_records_for_tactics(
    session: AsyncSession,
    tactic_ids: Sequence[str],
    start: date,
    end: date,
) -> list[Record]:
    """Records of the given tactics with date in [start, end]. Empty id list → []."""
    if not tactic_ids:
        return []
    stmt = text(
        "SELECT id, tactic_id, date, value, updated_at FROM records "
        "WHERE date >= :start AND date <= :end AND tactic_id IN :ids "
        "ORDER BY date, updated_at"
    ).bindparams(bindparam("ids", expanding=True))
    result = await session.execute(stmt, {"start": start, "end": end, "ids": list(tactic_ids)})
    return [Record.model_validate(r) for r in _rows(result)]


async def upsert_record(
    session: AsyncSession,
    tactic_id: str,
    day: date,
    value: float,
) -> tuple[Record, bool]:
    """Insert or overwrite the single record for (tactic_id, day).

    Returns (record, created). `xmax = 0` marks a row this statement
    inserted rather than updated.
    """
    now = _now()
    result = await session.execute(
        text(
            "INSERT INTO records (id, tactic_id, date, value, created_at, updated_at) "
            "VALUES (:id, :tactic_id, :date, :value, :now, :now) "
            "ON CONFLICT (tactic_id, date) DO UPDATE "
            "SET value = excluded.value, updated_at = excluded.updated_at "
            "RETURNING id, tactic_id, date, value, updated_at, (xmax = 0) AS inserted"
        ),
        {"id": _new_id(), "tactic_id": tactic_id, "date": day, "value": value, "now": now},
    )
    row = _first(result)
    created = bool(row.pop("inserted"))
    await session.commit()
    logger.info("Upserted record tactic=%s date=%s created=%s", tactic_id, day, created)
    return Record.model_validate(row), created


async def fetch_owned_record(session: AsyncSession, user_id: str, record_id: str) -> Record | None:
    result = await session.execute(
        text(
            "SELECT r.id, r.tactic_id, r.date, r.value, r.updated_at "
            "FROM records r JOIN tactics t ON r.tactic_id = t.id "
            "WHERE r.id = :id AND t.user_id = :user_id"
        ),
        {"id": record_id, "user_id": user_id},
    )
    row = _first(result)
    return Record.model_validate(row) if row else None


async def delete_record(session: AsyncSession, record_id: str) -> None:
    await session.execute(text("DELETE FROM records WHERE id = :id"), {"id": record_id})
    await session.commit()


# ---------------------------------------------------------------------------
# Week selections
# ---------------------------------------------------------------------------


async def fetch_week_selection(
    session: AsyncSession,
    user_id: str,
    week_start: date,
) -> list[str] | None:
    """Tactic ids stored for exactly this week, or None when the week has no row.

    An empty list is a real selection ("count nothing this week"); None is not.
    """
    result = await session.execute(
        text(
            "SELECT tactic_ids FROM week_tactic_selections "
            "WHERE user_id = :user_id AND week_start = :week_start"
        ),
        {"user_id": user_id, "week_start": week_start},
    )
    row = _first(result)
    if row is None:
        return None
    return list(json.loads(row["tactic_ids"]))


async def upsert_week_selection(
    session: AsyncSession,
    user_id: str,
    week_start: date,
    tactic_ids: list[str],
) -> None:
    now = _now()
    await session.execute(
        text(
            "INSERT INTO week_tactic_selections "
            "(id, user_id, week_start, tactic_ids, created_at, updated_at) "
            "VALUES (:id, :user_id, :week_start, :tactic_ids, :now, :now) "
            "ON CONFLICT (user_id, week_start) DO UPDATE "
            "SET tactic_ids = excluded.tactic_ids, updated_at = excluded.updated_at"
        ),
        {
            "id": _new_id(),
            "user_id": user_id,
            "week_start": week_start,
            "tactic_ids": json.dumps(tactic_ids),
            "now": now,
        },
    )
    await session.commit()


async def delete_week_selection(session: AsyncSession, user_id: str, week_start: date) -> None:
    await session.execute(
        text(
            "DELETE FROM week_tactic_selections "
            "WHERE user_id = :user_id AND week_start = :week_start"
        ),
        {"user_id": user_id, "week_start": week_start},
    )
    await session.commit()


# ---------------------------------------------------------------------------
# Quarters
# ---------------------------------------------------------------------------


async def fetch_quarters(session: AsyncSession, user_id: str) -> list[Quarter]:
    """All quarters of the user, newest start date first."""
    result = await session.execute(
        text(
            f"SELECT {_QUARTER_COLUMNS} FROM quarters "
            "WHERE user_id = :user_id ORDER BY start_date DESC"
        ),
        {"user_id": user_id},
    )
    return [_quarter_from_row(r) for r in _rows(result)]


async def fetch_quarter(session: AsyncSession, user_id: str, quarter_id: str) -> Quarter | None:
    result = await session.execute(
        text(f"SELECT {_QUARTER_COLUMNS} FROM quarters WHERE id = :id AND user_id = :user_id"),
        {"id": quarter_id, "user_id": user_id},
    )
    row = _first(result)
    return _quarter_from_row(row) if row else None


async def fetch_quarter_tactics(session: AsyncSession, user_id: str, quarter_id: str) -> list[Tactic]:
    result = await session.execute(
        text(
            f"SELECT {_TACTIC_COLUMNS} FROM tactics "
            "WHERE quarter_id = :quarter_id AND user_id = :user_id ORDER BY sort_order"
        ),
        {"quarter_id": quarter_id, "user_id": user_id},
    )
    return [Tactic.model_validate(r) for r in _rows(result)]


async def count_linked_tactics(session: AsyncSession, quarter_id: str) -> int:
    result = await session.execute(
        text("SELECT COUNT(*) AS n FROM tactics WHERE quarter_id = :quarter_id"),
        {"quarter_id": quarter_id},
    )
    row = _first(result)
    return int(row["n"]) if row else 0


async def insert_quarter(
    session: AsyncSession,
    user_id: str,
    name: str,
    start_date: date,
    end_date: date,
    goals: list[dict[str, Any]] | None,
) -> Quarter:
    now = _now()
    params = {
        "id": _new_id(),
        "user_id": user_id,
        "name": name,
        "start_date": start_date,
        "end_date": end_date,
        "goals": json.dumps(goals) if goals is not None else None,
        "status": "planning",
        "now": now,
    }
    await session.execute(
        text(
            "INSERT INTO quarters (id, user_id, name, start_date, end_date, goals, status, "
            "created_at, updated_at) "
            "VALUES (:id, :user_id, :name, :start_date, :end_date, :goals, :status, :now, :now)"
        ),
        params,
    )
    await session.commit()
    return _quarter_from_row({**params, "review_notes": None})


_QUARTER_MUTABLE = ("name", "start_date", "end_date", "goals", "review_notes", "status")


async def update_quarter(
    session: AsyncSession,
    user_id: str,
    quarter_id: str,
    changes: dict[str, Any],
) -> Quarter | None:
    params: dict[str, Any] = {col: changes[col] for col in _QUARTER_MUTABLE if col in changes}
    if "goals" in params and params["goals"] is not None:
        params["goals"] = json.dumps(params["goals"])
    sets = [f"{col} = :{col}" for col in params]
    sets.append("updated_at = :now")
    params.update({"id": quarter_id, "user_id": user_id, "now": _now()})
    await session.execute(
        text(f"UPDATE quarters SET {', '.join(sets)} WHERE id = :id AND user_id = :user_id"),
        params,
    )
    await session.commit()
    return await fetch_quarter(session, user_id, quarter_id)


async def delete_quarter(session: AsyncSession, user_id: str, quarter_id: str) -> None:
    await session.execute(
        text("DELETE FROM quarters WHERE id = :id AND user_id = :user_id"),
        {"id": quarter_id, "user_id": user_id},
    )
    await session.commit()
