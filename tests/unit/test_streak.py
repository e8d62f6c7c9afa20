"""Tests for daily learning streak arithmetic."""

from datetime import datetime, timedelta, timezone

from shikhi.users.streak import next_streak

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


class TestIncrement:
    def test_first_activity_starts_at_one(self):
        assert next_streak(0, None, "increment", NOW) == 1

    def test_active_yesterday_extends(self):
        assert next_streak(4, NOW - timedelta(days=1), "increment", NOW) == 5

    def test_yesterday_late_evening_still_counts(self):
        last = datetime(2026, 10, 18, 23, 59, tzinfo=timezone.utc)
        assert next_streak(2, last, "increment", NOW) == 3

    def test_same_day_is_unchanged(self):
        assert next_streak(4, NOW - timedelta(hours=2), "increment", NOW) == 4

    def test_gap_restarts(self):
        assert next_streak(9, NOW - timedelta(days=3), "increment", NOW) == 1

    def test_naive_stored_timestamp(self):
        assert next_streak(1, datetime(2026, 10, 18, 8, 0), "increment", NOW) == 2


class TestReset:
    def test_reset_zeroes(self):
        assert next_streak(12, NOW, "reset", NOW) == 0

    def test_reset_without_history(self):
        assert next_streak(0, None, "reset") == 0
