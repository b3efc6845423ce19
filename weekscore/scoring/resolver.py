"""Week-selection resolver: which tactics count toward a given week.

A week without its own selection row inherits the nearest earlier one,
looking back at most `lookback_weeks` weeks (the requested week included).
Beyond that the user's active tactics are used. Nothing is cached: every
call reads the store as it is now.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from weekscore.config import settings
from weekscore.scoring import connector, dates
from weekscore.scoring.models import Tactic

logger = logging.getLogger(__name__)


async def find_selection(
    session: AsyncSession,
    user_id: str,
    week_start: date,
    lookback_weeks: int | None = None,
) -> tuple[list[str], int] | None:
    """Nearest stored selection at or before `week_start`.

    Returns (tactic_ids, offset) where offset is the number of weeks walked
    back (0 = the requested week itself), or None if no row exists within
    the lookback window.
    """
    weeks = settings.selection_lookback_weeks if lookback_weeks is None else lookback_weeks
    current = week_start
    for offset in range(weeks):
        tactic_ids = await connector.fetch_week_selection(session, user_id, current)
        if tactic_ids is not None:
            return tactic_ids, offset
        current = dates.prev_week_start(current)
    return None


async def resolve_tactic_ids(
    session: AsyncSession,
    user_id: str,
    week_start: date,
    lookback_weeks: int | None = None,
) -> tuple[list[str], bool]:
    """Effective tactic ids for the week and whether the week has its own override."""
    found = await find_selection(session, user_id, week_start, lookback_weeks)
    if found is not None:
        tactic_ids, offset = found
        return tactic_ids, offset == 0

    logger.info("No week selection for user=%s at or before %s; using active tactics", user_id, week_start)
    active = await connector.fetch_tactics(session, user_id, active_only=True)
    return [t.id for t in active], False


async def resolve_tactics(
    session: AsyncSession,
    user_id: str,
    week_start: date,
    tactic_id: str | None = None,
    lookback_weeks: int | None = None,
) -> list[Tactic]:
    """Active tactics that count toward the week, optionally narrowed to one id.

    Selected ids that no longer match an active tactic (deleted or
    deactivated since) drop out silently.
    """
    found = await find_selection(session, user_id, week_start, lookback_weeks)
    active = await connector.fetch_tactics(session, user_id, active_only=True)

    if found is not None:
        selected = set(found[0])
        tactics = [t for t in active if t.id in selected]
    else:
        tactics = active

    if tactic_id is not None:
        tactics = [t for t in tactics if t.id == tactic_id]
    return tactics
