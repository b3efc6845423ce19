"""Weekly score engine.

Takes the resolved tactic set, the records in [start, end] and produces
per-tactic detail plus a 0–100 aggregate. Pure computation: no I/O, no
partial results. Either every tactic is scored or a ScoringError is raised.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterable

from weekscore.scoring import dates
from weekscore.scoring.errors import DataIntegrityError, InvalidPeriodError
from weekscore.scoring.models import (
    Record,
    ScoreDetail,
    ScoreResult,
    Tactic,
    TacticType,
    TargetDirection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Period:
    start: date
    end: date
    days: int
    weeks: int
    all_dates: tuple[date, ...]


@dataclass(frozen=True, slots=True)
class Aggregate:
    target: float
    current: float
    achieved: bool
    daily_status: list[bool] | None = None
    daily_values: list[float] | None = None


def make_period(start: date, end: date) -> Period:
    if end < start:
        raise InvalidPeriodError(f"end date {end} precedes start date {start}")
    return Period(
        start=start,
        end=end,
        days=dates.days_in_period(start, end),
        weeks=dates.weeks_in_period(start, end),
        all_dates=tuple(dates.iter_days(start, end)),
    )


def meets_target(value: float, target_value: float, direction: TargetDirection | str | None) -> bool:
    """`lte` means "no more than"; anything else (incl. None) means "at least"."""
    if direction == TargetDirection.lte:
        return value <= target_value
    return value >= target_value


# ---------------------------------------------------------------------------
# Record preparation
# ---------------------------------------------------------------------------

_NEVER = datetime.min


def index_records(
    records: Iterable[Record],
    tactic_ids: set[str],
    period: Period,
) -> dict[str, dict[date, Record]]:
    """Group in-window records by tactic then day, one record per (tactic, day).

    Duplicates should be impossible at the storage level; if one slips
    through, the most recently updated row wins (later position breaks ties)
    and a warning is logged. Non-finite values raise DataIntegrityError.
    """
    indexed: dict[str, dict[date, Record]] = {tid: {} for tid in tactic_ids}
    for rec in records:
        if rec.tactic_id not in indexed or not (period.start <= rec.date <= period.end):
            continue
        if not math.isfinite(rec.value):
            raise DataIntegrityError(
                f"non-finite value {rec.value!r} for tactic {rec.tactic_id} on {rec.date}"
            )
        by_day = indexed[rec.tactic_id]
        existing = by_day.get(rec.date)
        if existing is not None:
            logger.warning(
                "Duplicate record for tactic=%s date=%s; keeping most recently updated",
                rec.tactic_id,
                rec.date,
            )
            if _updated_key(existing) > _updated_key(rec):
                continue
        by_day[rec.date] = rec
    return indexed


def _updated_key(rec: Record) -> datetime:
    ts = rec.updated_at
    if ts is None:
        return _NEVER
    if ts.tzinfo is not None:
        # naive UTC, so aware and naive stamps compare
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


# ---------------------------------------------------------------------------
# Per-type aggregation
# ---------------------------------------------------------------------------


def _is_checked(rec: Record | None) -> bool:
    return rec is not None and rec.value == 1


def _daily_check(tactic: Tactic, by_day: dict[date, Record], period: Period) -> Aggregate:
    target = period.days
    current = sum(1 for r in by_day.values() if r.value == 1)
    return Aggregate(
        target=target,
        current=current,
        achieved=current >= target,
        daily_status=[_is_checked(by_day.get(d)) for d in period.all_dates],
    )


def _daily_measure(tactic: Tactic, by_day: dict[date, Record], period: Period) -> Aggregate:
    """daily_number / daily_time: every day must meet the per-day threshold."""
    threshold = tactic.target_value if tactic.target_value is not None else 0.0
    direction = tactic.target_direction

    def _ok(rec: Record | None) -> bool:
        return rec is not None and meets_target(rec.value, threshold, direction)

    target = period.days
    current = sum(1 for r in by_day.values() if _ok(r))
    return Aggregate(
        target=target,
        current=current,
        achieved=current >= target,
        daily_status=[_ok(by_day.get(d)) for d in period.all_dates],
    )


def _weekly_target(tactic: Tactic, period: Period) -> float:
    per_week = tactic.target_value if tactic.target_value is not None else 1.0
    return per_week * period.weeks


def _weekly_count(tactic: Tactic, by_day: dict[date, Record], period: Period) -> Aggregate:
    target = _weekly_target(tactic, period)
    current = sum(1 for r in by_day.values() if r.value == 1)
    return Aggregate(
        target=target,
        current=current,
        achieved=meets_target(current, target, tactic.target_direction),
    )


def _weekly_number(tactic: Tactic, by_day: dict[date, Record], period: Period) -> Aggregate:
    target = _weekly_target(tactic, period)
    current = sum(r.value for r in by_day.values())
    return Aggregate(
        target=target,
        current=current,
        achieved=meets_target(current, target, tactic.target_direction),
        daily_values=[by_day[d].value if d in by_day else 0.0 for d in period.all_dates],
    )


AGGREGATORS: dict[TacticType, Callable[[Tactic, dict[date, Record], Period], Aggregate]] = {
    TacticType.daily_check: _daily_check,
    TacticType.daily_number: _daily_measure,
    TacticType.daily_time: _daily_measure,
    TacticType.weekly_count: _weekly_count,
    TacticType.weekly_number: _weekly_number,
}


def score_tactic(tactic: Tactic, by_day: dict[date, Record], period: Period) -> ScoreDetail:
    if tactic.target_value is not None and not math.isfinite(tactic.target_value):
        raise DataIntegrityError(f"non-finite target {tactic.target_value!r} for tactic {tactic.id}")
    agg =AGGREGATORS[tactic.type](tactic, by_day, period)
    return ScoreDetail(
        tactic_id=tactic.id,
        tactic_name=tactic.name,
        type=tactic.type,
        category=tactic.category,
        target=agg.target,
        current=agg.current,
        achieved=agg.achieved,
        unit=tactic.unit,
        daily_status=agg.daily_status,
        daily_values=agg.daily_values,
    )


# ---------------------------------------------------------------------------
# Aggregate score
# ---------------------------------------------------------------------------


def aggregate_score(details: list[ScoreDetail]) -> int:
    """Mean of capped per-tactic progress, as an integer percentage.

    Each tactic contributes at most 100%, so over-achievement on one tactic
    never compensates for another. Empty input scores 0.
    """
    if not details:
        return 0
    total = sum(d.progress for d in details)
    return dates.round_half_up(total / len(details) * 100)


def compute_score(
    tactics: list[Tactic],
    records: Iterable[Record],
    start: date,
    end: date,
) -> ScoreResult:
    """Score `tactics` over [start, end] inclusive.

    `tactics` is the already-resolved set for one user; `records` may contain
    extra rows (other tactics, out-of-window dates) which are ignored.
    Raises InvalidPeriodError if end < start, DataIntegrityError on
    non-finite record values or tactic targets.
    """
    period = make_period(start, end)
    if not tactics:
        return ScoreResult(score=0, details=[])

    indexed = index_records(records, {t.id for t in tactics}, period)
    details = [score_tactic(t, indexed[t.id], period) for t in tactics]
    return ScoreResult(score=aggregate_score(details), details=details)
