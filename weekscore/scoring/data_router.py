"""Data endpoints — tactic catalog and daily records."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.auth import current_user_id
from weekscore.db import get_session
from weekscore.scoring import connector
from weekscore.scoring.models import Record, RecordUpsert, Tactic, TacticCreate, TacticUpdate
from weekscore.scoring.router import parse_date_param

router = APIRouter(prefix="/api", tags=["data"])


# ---------------------------------------------------------------------------
# /api/tactics
# ---------------------------------------------------------------------------


@router.get("/tactics")
async def list_tactics(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, list[Tactic]]:
    return {"tactics": await connector.fetch_tactics(session, user_id)}


@router.post("/tactics", status_code=201)
async def create_tactic(
    body: TacticCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, Tactic]:
    tactic = await connector.insert_tactic(session, user_id, body.model_dump(mode="json"))
    return {"tactic": tactic}


@router.put("/tactics/{tactic_id}")
async def update_tactic(
    tactic_id: str,
    body: TacticUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, Tactic]:
    if await connector.fetch_tactic(session, user_id, tactic_id) is None:
        raise HTTPException(status_code=404, detail="Tactic not found")

    changes = body.model_dump(mode="json", exclude_unset=True)
    for key in ("name", "type", "sort_order", "active"):
        # NOT NULL columns: an explicit null means "leave as is"
        if key in changes and changes[key] is None:
            del changes[key]
    updated = await connector.update_tactic(session, user_id, tactic_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Tactic not found")
    return {"tactic": updated}


@router.delete("/tactics/{tactic_id}")
async def delete_tactic(
    tactic_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, bool]:
    if await connector.fetch_tactic(session, user_id, tactic_id) is None:
        raise HTTPException(status_code=404, detail="Tactic not found")
    await connector.delete_tactic(session, user_id, tactic_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# /api/records
# ---------------------------------------------------------------------------


@router.get("/records")
async def list_records(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    tactic_id: str | None = Query(default=None, alias="tacticId"),
) -> dict[str, list[Record]]:
    start = parse_date_param(start_date, "startDate") if start_date else None
    end = parse_date_param(end_date, "endDate") if end_date else None
    records = await connector.fetch_records(session, user_id, start, end, tactic_id)
    return {"records": records}


@router.post("/records")
async def upsert_record(
    body: RecordUpsert,
    response: Response,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, Record]:
    """Create or overwrite the one record for (tacticId, date). 201 on create, 200 on update."""
    day = parse_date_param(body.date, "date", status_code=400)

    if await connector.fetch_tactic(session, user_id, body.tactic_id) is None:
        raise HTTPException(status_code=404, detail="Tactic not found")

    record, created = await connector.upsert_record(session, body.tactic_id, day, body.value)
    response.status_code = 201 if created else 200
    return {"record": record}


@router.delete("/records/{record_id}")
async def delete_record(
    record_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, bool]:
    if await connector.fetch_owned_record(session, user_id, record_id) is None:
        raise HTTPException(status_code=404, detail="Record not found")
    await connector.delete_record(session, record_id)
    return {"success": True}
