"""Tests for the weekly score engine."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from weekscore.scoring.engine import (
    AGGREGATORS,
    aggregate_score,
    compute_score,
    make_period,
    meets_target,
)
from weekscore.scoring.errors import DataIntegrityError, InvalidPeriodError, ScoringError
from weekscore.scoring.models import TacticType

from tests.conftest import make_record, make_tactic

MON = date(2026, 3, 9)
SUN = date(2026, 3, 15)


def _week(start: date = MON) -> list[date]:
    return [start + timedelta(days=i) for i in range(7)]


# ---------------------------------------------------------------------------
# Target predicate
# ---------------------------------------------------------------------------

class TestMeetsTarget:
    def test_gte(self):
        assert meets_target(5, 5, "gte") is True
        assert meets_target(4.9, 5, "gte") is False

    def test_lte(self):
        assert meets_target(5, 5, "lte") is True
        assert meets_target(5.1, 5, "lte") is False

    def test_missing_direction_means_gte(self):
        assert meets_target(6, 5, None) is True
        assert meets_target(4, 5, None) is False


class TestPeriod:
    def test_reversed_range_raises(self):
        with pytest.raises(InvalidPeriodError):
            make_period(SUN, MON)

    def test_invalid_period_is_a_scoring_error(self):
        assert issubclass(InvalidPeriodError, ScoringError)
        assert issubclass(ScoringError, ValueError)

    def test_week(self):
        p = make_period(MON, SUN)
        assert p.days == 7
        assert p.weeks == 1
        assert p.all_dates[0] == MON
        assert p.all_dates[-1] == SUN


class TestDispatchTable:
    def test_every_type_has_an_aggregator(self):
        assert set(AGGREGATORS) == set(TacticType)


# ---------------------------------------------------------------------------
# daily_check
# ---------------------------------------------------------------------------

class TestDailyCheck:
    def test_no_records(self):
        result = compute_score([make_tactic("a")], [], MON, SUN)
        d = result.details[0]
        assert d.target == 7
        assert d.current == 0
        assert d.achieved is False
        assert d.daily_status == [False] * 7
        assert d.daily_values is None
        assert result.score == 0

    def test_no_records_fortnight(self):
        result = compute_score([make_tactic("a")], [], MON, MON + timedelta(days=13))
        d = result.details[0]
        assert d.target == 14
        assert d.current == 0
        assert d.achieved is False

    def test_five_of_seven(self):
        days = _week()
        records = [make_record("a", day) for day in days[:5]]
        result = compute_score([make_tactic("a")], records, MON, SUN)
        d = result.details[0]
        assert d.current == 5
        assert d.achieved is False
        assert d.daily_status == [True] * 5 + [False] * 2
        assert abs(d.progress - 5 / 7) < 1e-9

    def test_zero_value_is_not_checked(self):
        records = [make_record("a", MON, 0)]
        d = compute_score([make_tactic("a")], records, MON, SUN).details[0]
        assert d.current == 0
        assert d.daily_status[0] is False

    def test_all_days_achieved(self):
        records = [make_record("a", day) for day in _week()]
        result = compute_score([make_tactic("a")], records, MON, SUN)
        assert result.details[0].achieved is True
        assert result.score == 100


# ---------------------------------------------------------------------------
# daily_number / daily_time
# ---------------------------------------------------------------------------

class TestDailyMeasure:
    def test_daily_time_lte(self):
        tactic = make_tactic("sleep", "daily_time", target_value=1.0, target_direction="lte")
        records = [make_record("sleep", MON, 0.5), make_record("sleep", MON + timedelta(days=1), 1.5)]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.daily_status[0] is True
        assert d.daily_status[1] is False
        assert d.current == 1
        assert d.target == 7

    def test_daily_number_gte(self):
        tactic = make_tactic("read", "daily_number", target_value=30)
        records = [
            make_record("read", MON, 45),
            make_record("read", MON + timedelta(days=1), 29),
            make_record("read", MON + timedelta(days=2), 30),
        ]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.current == 2
        assert d.daily_status[:3] == [True, False, True]
        assert d.daily_status[3:] == [False] * 4

    def test_missing_target_compares_against_zero(self):
        tactic = make_tactic("x", "daily_number", target_value=None)
        records = [make_record("x", MON, 0)]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.current == 1

    def test_null_direction_defaults_to_gte(self):
        tactic = make_tactic("x", "daily_number", target_value=10, target_direction=None)
        records = [make_record("x", MON, 11)]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.daily_status[0] is True

    def test_missing_day_is_not_met_even_for_lte(self):
        tactic = make_tactic("x", "daily_number", target_value=5, target_direction="lte")
        d = compute_score([tactic], [], MON, SUN).details[0]
        assert d.daily_status == [False] * 7
        assert d.current == 0


# ---------------------------------------------------------------------------
# weekly_count / weekly_number
# ---------------------------------------------------------------------------

class TestWeeklyCount:
    def test_target_scales_with_weeks(self):
        tactic = make_tactic("gym", "weekly_count", target_value=3)
        records = [make_record("gym", MON + timedelta(days=i)) for i in (0, 2, 4, 7, 9)]
        d = compute_score([tactic], records, MON, MON + timedelta(days=13)).details[0]
        assert d.target == 6
        assert d.current == 5
        assert d.achieved is False
        assert d.daily_status is None
        assert d.daily_values is None

    def test_default_target_is_one_per_week(self):
        tactic = make_tactic("gym", "weekly_count", target_value=None)
        d = compute_score([tactic], [make_record("gym", MON)], MON, SUN).details[0]
        assert d.target == 1
        assert d.achieved is True

    def test_lte_direction(self):
        tactic = make_tactic("takeout", "weekly_count", target_value=2, target_direction="lte")
        records = [make_record("takeout", MON), make_record("takeout", SUN)]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.achieved is True

    def test_ten_day_window_uses_one_week_target(self):
        tactic = make_tactic("gym", "weekly_count", target_value=3)
        d = compute_score([tactic], [], MON, MON + timedelta(days=9)).details[0]
        assert d.target == 3


class TestWeeklyNumber:
    def test_fortnight_over_target(self):
        tactic = make_tactic("run", "weekly_number", target_value=10, unit="km")
        start, end = MON, MON + timedelta(days=13)
        records = [
            make_record("run", MON, 8),
            make_record("run", MON + timedelta(days=3), 7),
            make_record("run", MON + timedelta(days=10), 10),
        ]
        result = compute_score([tactic], records, start, end)
        d = result.details[0]
        assert d.target == 20
        assert d.current == 25
        assert d.achieved is True
        assert d.progress == 1.0
        assert d.unit == "km"
        assert result.score == 100

    def test_daily_values(self):
        tactic = make_tactic("run", "weekly_number", target_value=10)
        records = [make_record("run", MON, 3.5), make_record("run", SUN, 2)]
        d = compute_score([tactic], records, MON, SUN).details[0]
        assert d.daily_values == [3.5, 0, 0, 0, 0, 0, 2]
        assert d.daily_status is None
        assert d.current == 5.5

    def test_zero_week_window_has_zero_target(self):
        tactic = make_tactic("run", "weekly_number", target_value=10)
        result = compute_score([tactic], [make_record("run", MON, 4)], MON, MON + timedelta(days=2))
        d = result.details[0]
        assert d.target == 0
        assert d.progress == 0.0
        assert result.score == 0


# ---------------------------------------------------------------------------
# Aggregate score
# ---------------------------------------------------------------------------

class TestAggregateScore:
    def test_empty_tactics(self):
        result = compute_score([], [make_record("a", MON)], MON, SUN)
        assert result.score == 0
        assert result.details == []

    def test_empty_details(self):
        assert aggregate_score([]) == 0

    def test_mixed_five_of_seven_and_perfect(self):
        tactics = [make_tactic("a"), make_tactic("b", "weekly_count", target_value=1)]
        records = [make_record("a", day) for day in _week()[:5]] + [make_record("b", MON)]
        result = compute_score(tactics, records, MON, SUN)
        assert result.score == 86

    def test_over_achievement_is_capped(self):
        tactics = [
            make_tactic("a", "weekly_number", target_value=1),
            make_tactic("b", "daily_check"),
        ]
        records = [make_record("a", MON, 1000)]
        result = compute_score(tactics, records, MON, SUN)
        assert result.score == 50

    @pytest.mark.parametrize("value", [0, 1, 5, 1e6])
    def test_score_in_range(self, value):
        tactics = [make_tactic("a", "weekly_number", target_value=2), make_tactic("b")]
        records = [make_record("a", day, value) for day in _week()]
        score = compute_score(tactics, records, MON, SUN).score
        assert 0 <= score <= 100

    def test_details_follow_tactic_order(self):
        tactics = [make_tactic("z"), make_tactic("a"), make_tactic("m")]
        result = compute_score(tactics, [], MON, SUN)
        assert [d.tactic_id for d in result.details] == ["z", "a", "m"]

    def test_detail_carries_tactic_metadata(self):
        tactic = make_tactic("a", category="Health", name="Walk")
        d = compute_score([tactic], [], MON, SUN).details[0]
        assert d.tactic_name == "Walk"
        assert d.category == "Health"
        assert d.type == TacticType.daily_check


# ---------------------------------------------------------------------------
# Input hygiene
# ---------------------------------------------------------------------------

class TestRecordFiltering:
    def test_ignores_other_tactics(self):
        records = [make_record("other", day) for day in _week()]
        d = compute_score([make_tactic("a")], records, MON, SUN).details[0]
        assert d.current == 0

    def test_ignores_out_of_window_records(self):
        records = [make_record("a", MON - timedelta(days=1)), make_record("a", SUN + timedelta(days=1))]
        d = compute_score([make_tactic("a")], records, MON, SUN).details[0]
        assert d.current == 0

    def test_reversed_range_fails_even_without_tactics(self):
        with pytest.raises(InvalidPeriodError):
            compute_score([], [], SUN, MON)

    def test_nan_value_raises(self):
        tactic = make_tactic("a", "weekly_number")
        with pytest.raises(DataIntegrityError):
            compute_score([tactic], [make_record("a", MON, float("nan"))], MON, SUN)

    def test_infinite_value_raises(self):
        tactic = make_tactic("a", "weekly_number")
        with pytest.raises(DataIntegrityError):
            compute_score([tactic], [make_record("a", MON, float("inf"))], MON, SUN)

    def test_nan_target_raises(self):
        tactic = make_tactic("a", "weekly_count", target_value=float("nan"))
        with pytest.raises(DataIntegrityError):
            compute_score([tactic], [make_record("a", MON)], MON, SUN)

    def test_infinite_target_raises(self):
        tactic = make_tactic("a", "daily_number", target_value=float("-inf"))
        with pytest.raises(DataIntegrityError):
            compute_score([tactic], [], MON, SUN)


class TestDuplicateRecords:
    def test_same_record_twice_scores_like_once(self):
        tactic = make_tactic("a", "weekly_number", target_value=10)
        once = compute_score([tactic], [make_record("a", MON, 4)], MON, SUN)
        twice = compute_score([tactic], [make_record("a", MON, 4), make_record("a", MON, 4)], MON, SUN)
        assert once == twice
        assert twice.details[0].current == 4

    def test_most_recently_updated_wins(self, caplog):
        tactic = make_tactic("a", "weekly_number", target_value=10)
        newer = make_record("a", MON, 9, updated_at=datetime(2026, 3, 9, 20, tzinfo=timezone.utc))
        older = make_record("a", MON, 2, updated_at=datetime(2026, 3, 9, 8, tzinfo=timezone.utc))
        with caplog.at_level(logging.WARNING, logger="weekscore.scoring.engine"):
            result = compute_score([tactic], [newer, older], MON, SUN)
        assert result.details[0].current == 9
        assert any("Duplicate record" in r.message for r in caplog.records)

    def test_later_position_breaks_timestamp_ties(self):
        tactic = make_tactic("a", "weekly_number", target_value=10)
        ts = datetime(2026, 3, 9, 12, tzinfo=timezone.utc)
        records = [make_record("a", MON, 1, updated_at=ts), make_record("a", MON, 3, updated_at=ts)]
        assert compute_score([tactic], records, MON, SUN).details[0].current == 3
