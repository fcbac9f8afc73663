"""Tests for recurrence pattern utilities."""

from datetime import UTC, datetime

import pytest

from src.core.recurrence import latest_tick, pattern_to_cron


@pytest.mark.unit
class TestPatternToCron:
    """Tests for pattern_to_cron."""

    def test_known_patterns(self):
        assert pattern_to_cron("daily") == "0 0 * * *"
        assert pattern_to_cron("Weekly") == "0 0 * * 1"
        assert pattern_to_cron(" monthly ") == "0 0 1 * *"

    def test_unknown_pattern(self):
        with pytest.raises(ValueError, match="Invalid recurrence pattern"):
            pattern_to_cron("hourly")


@pytest.mark.unit
class TestTicks:
    """Tests for latest_tick."""

    def test_latest_tick_collapses_missed_ticks(self):
        after = datetime(2024, 5, 10, 12, 0, tzinfo=UTC)
        now = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)
        assert latest_tick("daily", after=after, now=now) == datetime(2024, 5, 15, tzinfo=UTC)

    def test_latest_tick_includes_now(self):
        now = datetime(2024, 5, 15, tzinfo=UTC)
        after = datetime(2024, 5, 14, 12, 0, tzinfo=UTC)
        assert latest_tick("daily", after=after, now=now) == now

    def test_no_tick_since_anchor(self):
        after = datetime(2024, 5, 15, 0, 15, tzinfo=UTC)
        now = datetime(2024, 5, 15, 23, 0, tzinfo=UTC)
        assert latest_tick("daily", after=after, now=now) is None

    def test_weekly_tick_is_monday(self):
        # 2024-05-15 is a Wednesday
        after = datetime(2024, 5, 1, tzinfo=UTC)
        now = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)
        assert latest_tick("weekly", after=after, now=now) == datetime(2024, 5, 13, tzinfo=UTC)

    def test_monthly_tick_is_first_of_month(self):
        after = datetime(2024, 3, 20, tzinfo=UTC)
        now = datetime(2024, 5, 15, tzinfo=UTC)
        assert latest_tick("monthly", after=after, now=now) == datetime(2024, 5, 1, tzinfo=UTC)
