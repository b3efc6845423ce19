"""Score HTTP router — weekly score & week selections."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.auth import current_user_id
from weekscore.db import get_session
from weekscore.scoring import builders, connector, dates
from weekscore.scoring.errors import DataIntegrityError, InvalidPeriodError
from weekscore.scoring.models import ScoreResult, WeekSelectionUpdate, WeekSelectionView

router = APIRouter(prefix="/api", tags=["score"])


def parse_date_param(value: str, name: str, status_code: int = 422) -> date:
    try:
        return dates.parse_date(value)
    except ValueError:
        raise HTTPException(status_code=status_code, detail=f"Invalid date for '{name}': {value}")


# ---------------------------------------------------------------------------
# /api/records/score
# ---------------------------------------------------------------------------


@router.get("/records/score", response_model=ScoreResult)
async def get_score(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    start_date: str = Query(..., alias="startDate", description="Start date (YYYY-MM-DD)"),
    end_date: str = Query(..., alias="endDate", description="End date (YYYY-MM-DD)"),
    tactic_id: str | None = Query(default=None, alias="tacticId", description="Score a single tactic"),
) -> ScoreResult:
    start = parse_date_param(start_date, "startDate")
    end = parse_date_param(end_date, "endDate")

    try:
        return await builders.build_score(session, user_id, start, end, tactic_id)
    except InvalidPeriodError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except DataIntegrityError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


# ---------------------------------------------------------------------------
# /api/week-selections
# ---------------------------------------------------------------------------


@router.get("/week-selections", response_model=WeekSelectionView)
async def get_week_selection(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    week_start: str = Query(..., alias="weekStart", description="Any day of the week (YYYY-MM-DD)"),
) -> WeekSelectionView:
    monday = dates.week_start(parse_date_param(week_start, "weekStart"))
    return await builders.build_week_selection(session, user_id, monday)


@router.put("/week-selections", response_model=WeekSelectionView)
async def put_week_selection(
    body: WeekSelectionUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> WeekSelectionView:
    monday = dates.week_start(parse_date_param(body.week_start, "weekStart", status_code=400))

    if body.tactic_ids:
        owned = {t.id for t in await connector.fetch_tactics(session, user_id)}
        invalid = [tid for tid in body.tactic_ids if tid not in owned]
        if invalid:
            raise HTTPException(
                status_code=400,
                detail={"error": "Invalid tacticIds", "invalidIds": invalid},
            )

    await connector.upsert_week_selection(session, user_id, monday, body.tactic_ids)
    return WeekSelectionView(week_start=monday, tactic_ids=body.tactic_ids, is_custom=True)


@router.delete("/week-selections")
async def delete_week_selection(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    week_start: str = Query(..., alias="weekStart"),
) -> dict[str, bool]:
    monday = dates.week_start(parse_date_param(week_start, "weekStart"))
    await connector.delete_week_selection(session, user_id, monday)
    return {"success": True}
