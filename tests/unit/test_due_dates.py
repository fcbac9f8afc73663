"""Tests for the due-date policy."""

from datetime import UTC, datetime

import pytest

from src.domain.task import DeadlineUnit
from src.modules.tasks.due_dates import compute_due_date


REFERENCE = datetime(2024, 3, 10, 9, 30, tzinfo=UTC)


@pytest.mark.unit
class TestComputeDueDate:
    """Tests for compute_due_date."""

    def test_days(self):
        assert compute_due_date("days", "3", REFERENCE) == datetime(2024, 3, 13, 9, 30, tzinfo=UTC)

    def test_weeks(self):
        assert compute_due_date(DeadlineUnit.WEEKS, "2", REFERENCE) == datetime(2024, 3, 24, 9, 30, tzinfo=UTC)

    def test_months(self):
        assert compute_due_date("months", "1", REFERENCE) == datetime(2024, 4, 10, 9, 30, tzinfo=UTC)

    def test_month_end_clamps_to_last_day_of_february(self):
        jan_31 = datetime(2024, 1, 31, tzinfo=UTC)
        assert compute_due_date("months", "1", jan_31) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_month_end_clamps_in_non_leap_year(self):
        jan_31 = datetime(2023, 1, 31, tzinfo=UTC)
        assert compute_due_date("months", 1, jan_31) == datetime(2023, 2, 28, tzinfo=UTC)

    def test_integer_magnitude_accepted(self):
        assert compute_due_date("days", 5, REFERENCE) == datetime(2024, 3, 15, 9, 30, tzinfo=UTC)

    def test_zero_magnitude_is_reference(self):
        assert compute_due_date("days", "0", REFERENCE) == REFERENCE

    def test_negative_magnitude_moves_backwards(self):
        assert compute_due_date("days", "-1", REFERENCE) == datetime(2024, 3, 9, 9, 30, tzinfo=UTC)

    def test_deterministic(self):
        first = compute_due_date("weeks", "4", REFERENCE)
        second = compute_due_date("weeks", "4", REFERENCE)
        assert first == second

    @pytest.mark.parametrize(
        ("unit", "magnitude"),
        [
            ("days", "abc"),
            (None, "3"),
            ("days", ""),
            ("days", None),
            ("", "3"),
            ("fortnights", "1"),
            ("days", "1.5"),
        ],
    )
    def test_returns_none_for_unusable_input(self, unit, magnitude):
        assert compute_due_date(unit, magnitude, REFERENCE) is None
