"""Pure calendar arithmetic: date-only values, never timestamps.

Everything here works on ``datetime.date`` so week and quarter boundaries
stay stable across DST transitions.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Iterator

QUARTER_LENGTH_DAYS = 84


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` key. Raises ValueError otherwise."""
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise ValueError(f"Invalid date format, expected YYYY-MM-DD: {value!r}")
    return date.fromisoformat(value)


def format_date(d: date) -> str:
    return d.isoformat()


def add_days(d: date, n: int) -> date:
    return d + timedelta(days=n)


def week_start(d: date) -> date:
    """Monday of the week containing `d` (Sunday belongs to the preceding week)."""
    return d - timedelta(days=d.weekday())


def week_end(d: date) -> date:
    return add_days(week_start(d), 6)


def prev_week_start(d: date) -> date:
    return add_days(d, -7)


def quarter_end(start: date, length_days: int = QUARTER_LENGTH_DAYS) -> date:
    """Last day of a quarter beginning on `start` (12 weeks - 1 day by default)."""
    return add_days(start, length_days - 1)


def days_in_period(start: date, end: date) -> int:
    """Inclusive day count of [start, end]."""
    return (end - start).days + 1


def round_half_up(x: float) -> int:
    """Round .5 toward +inf, so 3.5 -> 4 and 0.5 -> 1 (banker's rounding would give 4 and 0)."""
    return math.floor(x + 0.5)


def weeks_in_period(start: date, end: date) -> int:
    # round, not floor: a 10-day window counts as 1 week
    return round_half_up(days_in_period(start, end) / 7)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in [start, end], ascending. Empty if end < start."""
    for i in range(days_in_period(start, end)):
        yield start + timedelta(days=i)


# ---------------------------------------------------------------------------
# Quarter progress
# ---------------------------------------------------------------------------

def quarter_week_number(start: date, today: date) -> int:
    """1-based week index of `today` within a quarter starting on `start`."""
    return (today - start).days // 7 + 1


def quarter_days_remaining(end: date, today: date) -> int:
    return (end - today).days


def contains(start: date, end: date, d: date) -> bool:
    return start <= d <= end
