"""Quarter planning endpoints — 12-week spans, active-quarter lookup."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.auth import current_user_id
from weekscore.config import settings
from weekscore.db import get_session
from weekscore.scoring import builders, connector, dates
from weekscore.scoring.models import (
    ActiveQuarterView,
    Quarter,
    QuarterCreate,
    QuarterDetail,
    QuarterUpdate,
)
from weekscore.scoring.router import parse_date_param

router = APIRouter(prefix="/api/quarters", tags=["quarters"])


def _today() -> date:
    return datetime.now(ZoneInfo(settings.default_tz)).date()


def _quarter_end(start: date) -> date:
    return dates.quarter_end(start, settings.quarter_length_days)


@router.get("")
async def list_quarters(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, list[Quarter]]:
    return {"quarters": await connector.fetch_quarters(session, user_id)}


@router.get("/active", response_model=ActiveQuarterView)
async def active_quarter(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> ActiveQuarterView:
    quarters = await connector.fetch_quarters(session, user_id)
    return builders.build_active_quarter(quarters, _today())


@router.get("/{quarter_id}", response_model=QuarterDetail)
async def quarter_detail(
    quarter_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> QuarterDetail:
    quarter = await connector.fetch_quarter(session, user_id, quarter_id)
    if quarter is None:
        raise HTTPException(status_code=404, detail="Quarter not found")
    tactics = await connector.fetch_quarter_tactics(session, user_id, quarter_id)
    return QuarterDetail(quarter=quarter, tactics=tactics)


@router.post("", status_code=201)
async def create_quarter(
    body: QuarterCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, Quarter]:
    start = parse_date_param(body.start_date, "startDate", status_code=400)
    goals = [g.model_dump() for g in body.goals] if body.goals is not None else None
    quarter = await connector.insert_quarter(
        session, user_id, body.name, start, _quarter_end(start), goals
    )
    return {"quarter": quarter}


@router.put("/{quarter_id}")
async def update_quarter(
    quarter_id: str,
    body: QuarterUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, Quarter]:
    if await connector.fetch_quarter(session, user_id, quarter_id) is None:
        raise HTTPException(status_code=404, detail="Quarter not found")

    changes = body.model_dump(exclude_unset=True)
    for key in ("name", "start_date", "status"):
        # NOT NULL columns: an explicit null means "leave as is"
        if key in changes and changes[key] is None:
            del changes[key]
    if "status" in changes:
        changes["status"] = changes["status"].value
    if "start_date" in changes:
        start = parse_date_param(changes["start_date"], "startDate", status_code=400)
        # Moving the start moves the end with it
        changes["start_date"] = start
        changes["end_date"] = _quarter_end(start)

    updated = await connector.update_quarter(session, user_id, quarter_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Quarter not found")
    return {"quarter": updated}


@router.delete("/{quarter_id}")
async def delete_quarter(
    quarter_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict[str, bool]:
    if await connector.fetch_quarter(session, user_id, quarter_id) is None:
        raise HTTPException(status_code=404, detail="Quarter not found")
    if await connector.count_linked_tactics(session, quarter_id) > 0:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete quarter with linked tactics. Remove tactics first.",
        )
    await connector.delete_quarter(session, user_id, quarter_id)
    return {"success": True}
