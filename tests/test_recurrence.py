from __future__ import annotations

from datetime import datetime, timezone

import pytest

from family_plan.todos.recurrence import (
    DEFAULT_TIME,
    most_recent_occurrence,
    parse_time,
    refresh_recurring_todos,
    sanitize_timezone,
)
from family_plan.todos.todo_models import RecurrenceFrequency, TodoStatus
from tests.fakes import FakeTodoRepo, make_rule, make_todo

UTC = timezone.utc


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestOccurrenceBoundary:
    def test_daily_before_scheduled_time_uses_yesterday(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 12, 7, 0))
        assert boundary == _utc(2024, 3, 11, 9, 0)

    def test_daily_after_scheduled_time_uses_today(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="07:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 12, 9, 0))
        assert boundary == _utc(2024, 3, 12, 7, 0)

    def test_daily_exactly_at_scheduled_time(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 12, 9, 0))
        assert boundary == _utc(2024, 3, 12, 9, 0)

    def test_weekly_picks_latest_listed_day(self):
        rule = make_rule(RecurrenceFrequency.WEEKLY, days=["MON", "THU"], time_of_day="18:00")
        # Wednesday
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 13, 10, 0))
        assert boundary == _utc(2024, 3, 11, 18, 0)

    def test_weekly_same_day_before_time_falls_back_a_week(self):
        rule = make_rule(RecurrenceFrequency.WEEKLY, days=["MON"], time_of_day="18:00")
        # Monday morning
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 11, 9, 0))
        assert boundary == _utc(2024, 3, 4, 18, 0)

    def test_weekly_without_days_uses_today(self):
        rule = make_rule(RecurrenceFrequency.WEEKLY, days=[], time_of_day="08:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 13, 10, 0))
        assert boundary == _utc(2024, 3, 13, 8, 0)

    @pytest.mark.parametrize(
        "now,expected",
        [
            (_utc(2024, 4, 30, 10, 0), _utc(2024, 4, 30, 9, 0)),
            (_utc(2024, 4, 15, 10, 0), _utc(2024, 3, 30, 9, 0)),
            (_utc(2024, 3, 15, 10, 0), _utc(2024, 2, 29, 9, 0)),
            (_utc(2024, 5, 31, 9, 30), _utc(2024, 5, 31, 9, 0)),
        ],
    )
    def test_monthly_clamps_to_month_length(self, now, expected):
        rule = make_rule(RecurrenceFrequency.MONTHLY, day_of_month=31, time_of_day="09:00")
        assert most_recent_occurrence(rule, "UTC", now) == expected

    def test_monthly_rolls_back_over_new_year(self):
        rule = make_rule(RecurrenceFrequency.MONTHLY, day_of_month=20, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 1, 15, 12, 0))
        assert boundary == _utc(2023, 12, 20, 9, 0)

    def test_monthly_without_day_uses_today(self):
        rule = make_rule(RecurrenceFrequency.MONTHLY, day_of_month=None, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 12, 10, 0))
        assert boundary == _utc(2024, 3, 12, 9, 0)

    def test_custom_behaves_like_daily(self):
        rule = make_rule(RecurrenceFrequency.CUSTOM, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", _utc(2024, 3, 12, 7, 0))
        assert boundary == _utc(2024, 3, 11, 9, 0)

    def test_boundary_in_rule_timezone(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="07:30")
        # 07:00 PDT on the 12th, two days after the spring-forward switch
        boundary = most_recent_occurrence(rule, "America/Los_Angeles", _utc(2024, 3, 12, 14, 0))
        assert boundary.timestamp() == _utc(2024, 3, 11, 14, 30).timestamp()
        assert (boundary.hour, boundary.minute) == (7, 30)

    def test_boundary_across_dst_switch(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="07:30")
        # 07:00 PDT on the 10th; the previous 07:30 was still PST
        boundary = most_recent_occurrence(rule, "America/Los_Angeles", _utc(2024, 3, 10, 14, 0))
        assert boundary.timestamp() == _utc(2024, 3, 9, 15, 30).timestamp()

    def test_fallback_time_and_default(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day=None)
        now = _utc(2024, 3, 12, 12, 0)
        assert most_recent_occurrence(rule, "UTC", now, fallback_time="10:15") == _utc(2024, 3, 12, 10, 15)
        assert most_recent_occurrence(rule, "UTC", now) == _utc(2024, 3, 12, 8, 0)

    def test_naive_now_is_utc(self):
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="09:00")
        boundary = most_recent_occurrence(rule, "UTC", datetime(2024, 3, 12, 10, 0))
        assert boundary == _utc(2024, 3, 12, 9, 0)


class TestHelpers:
    def test_sanitize_timezone(self):
        assert sanitize_timezone(None) is UTC
        assert sanitize_timezone("") is UTC
        assert sanitize_timezone("Mars/Olympus_Mons") is UTC
        assert str(sanitize_timezone("Europe/Berlin")) == "Europe/Berlin"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("07:30", (7, 30)),
            ("7:05", (7, 5)),
            ("25:70", (23, 59)),
            ("noon", DEFAULT_TIME),
            ("", DEFAULT_TIME),
            (None, DEFAULT_TIME),
        ],
    )
    def test_parse_time(self, raw, expected):
        assert parse_time(raw) == expected


class TestReactivationSweep:
    def _repo(self, completed_at: datetime, **todo_kwargs) -> FakeTodoRepo:
        todo = make_todo(1, completed_at=completed_at.timestamp(), cleared_at=completed_at.timestamp(), **todo_kwargs)
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="09:00")
        return FakeTodoRepo([todo], [rule])

    def test_completed_after_boundary_stays_done(self):
        repo = self._repo(_utc(2024, 3, 12, 8, 30))
        result = refresh_recurring_todos(repo, _utc(2024, 3, 12, 8, 45))

        assert result.reactivated == 0
        assert repo.todos[1].status == TodoStatus.DONE

    def test_completed_before_boundary_is_reopened(self):
        repo = self._repo(_utc(2024, 3, 12, 8, 30))
        result = refresh_recurring_todos(repo, _utc(2024, 3, 12, 9, 30))

        assert result.reactivated == 1
        todo = repo.todos[1]
        assert todo.status == TodoStatus.PENDING
        assert todo.completed_at is None
        assert todo.cleared_at is None

    def test_completed_exactly_at_boundary_stays_done(self):
        repo = self._repo(_utc(2024, 3, 12, 9, 0))
        assert refresh_recurring_todos(repo, _utc(2024, 3, 12, 9, 30)).reactivated == 0

    def test_sweep_is_idempotent(self):
        repo = self._repo(_utc(2024, 3, 12, 8, 30))
        now = _utc(2024, 3, 12, 9, 30)

        assert refresh_recurring_todos(repo, now).reactivated == 1
        assert refresh_recurring_todos(repo, now).reactivated == 0
        assert repo.transactions == 2

    def test_todo_timezone_used_when_rule_has_none(self):
        todo = make_todo(1, completed_at=_utc(2024, 3, 12, 8, 0).timestamp(), timezone="America/Los_Angeles")
        rule = make_rule(RecurrenceFrequency.DAILY, time_of_day="09:00", timezone=None)
        repo = FakeTodoRepo([todo], [rule])

        # 05:00 in Los Angeles, today's 09:00 has not happened yet
        assert refresh_recurring_todos(repo, _utc(2024, 3, 12, 12, 0)).reactivated == 0
        assert refresh_recurring_todos(repo, _utc(2024, 3, 13, 16, 30)).reactivated == 1

    def test_todos_without_rule_are_ignored(self):
        todo = make_todo(1, completed_at=_utc(2024, 1, 1).timestamp(), rule_id=None)
        repo = FakeTodoRepo([todo], [])
        assert refresh_recurring_todos(repo, _utc(2024, 3, 12)).reactivated == 0
        assert repo.todos[1].status == TodoStatus.DONE
