"""Response builders: glue between the connector, resolver and engine.

Routers call these; they fetch what the pure functions need and hand it
over. The score for a window uses the week-selection of the week that
contains its start date.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.scoring import connector, dates, engine, resolver
from weekscore.scoring.models import ActiveQuarterView, Quarter, ScoreResult, WeekSelectionView

logger = logging.getLogger(__name__)


async def build_score(
    session: AsyncSession,
    user_id: str,
    start: date,
    end: date,
    tactic_id: str | None = None,
) -> ScoreResult:
    # Fail before touching storage on a reversed window
    engine.make_period(start, end)

    tactics = await resolver.resolve_tactics(session, user_id, dates.week_start(start), tactic_id)
    if not tactics:
        return ScoreResult(score=0, details=[])

    records = await connector.fetch_records_for_tactics(session, [t.id for t in tactics], start, end)
    result = engine.compute_score(tactics, records, start, end)
    logger.debug(
        "Scored user=%s %s..%s tactics=%d score=%d", user_id, start, end, len(tactics), result.score
    )
    return result


async def build_week_selection(
    session: AsyncSession,
    user_id: str,
    week_start: date,
) -> WeekSelectionView:
    tactic_ids, is_custom = await resolver.resolve_tactic_ids(session, user_id, week_start)
    return WeekSelectionView(week_start=week_start, tactic_ids=tactic_ids, is_custom=is_custom)


def find_active_quarter(quarters: list[Quarter], today: date) -> Quarter | None:
    """Most recently started quarter whose [start, end] contains `today`."""
    for q in sorted(quarters, key=lambda q: q.start_date, reverse=True):
        if dates.contains(q.start_date, q.end_date, today):
            return q
    return None


def build_active_quarter(quarters: list[Quarter], today: date) -> ActiveQuarterView:
    quarter = find_active_quarter(quarters, today)
    if quarter is None:
        return ActiveQuarterView()
    return ActiveQuarterView(
        quarter=quarter,
        week_number=dates.quarter_week_number(quarter.start_date, today),
        days_remaining=dates.quarter_days_remaining(quarter.end_date, today),
    )
