"""Tests for recurrence date arithmetic."""

import pytest
from datetime import date

from finance_tracker.models.transaction import RecurringFrequency
from finance_tracker.recurring import advance


class TestAdvance:
    """Tests for stepping a date forward by a frequency."""

    @pytest.mark.parametrize("frequency, expected", [
        (RecurringFrequency.DAILY, date(2024, 3, 16)),
        (RecurringFrequency.WEEKLY, date(2024, 3, 22)),
        (RecurringFrequency.MONTHLY, date(2024, 4, 15)),
        (RecurringFrequency.YEARLY, date(2025, 3, 15)),
    ])
    def test_each_frequency(self, frequency, expected):
        assert advance(date(2024, 3, 15), frequency) == expected

    def test_month_end_clamps_in_leap_year(self):
        """Test that Jan 31 + 1 month is the last day of February."""
        assert advance(date(2024, 1, 31), RecurringFrequency.MONTHLY) == date(2024, 2, 29)

    def test_month_end_clamps_in_common_year(self):
        assert advance(date(2023, 1, 31), RecurringFrequency.MONTHLY) == date(2023, 2, 28)

    def test_month_end_into_thirty_day_month(self):
        """Test that Mar 31 + 1 month is Apr 30, not May 1."""
        assert advance(date(2024, 3, 31), RecurringFrequency.MONTHLY) == date(2024, 4, 30)

    def test_leap_day_yearly(self):
        """Test that Feb 29 + 1 year lands on Feb 28."""
        assert advance(date(2024, 2, 29), RecurringFrequency.YEARLY) == date(2025, 2, 28)

    def test_daily_crosses_year_boundary(self):
        assert advance(date(2023, 12, 31), RecurringFrequency.DAILY) == date(2024, 1, 1)

    def test_string_frequency(self):
        """Test that stored string values are accepted."""
        assert advance(date(2024, 3, 15), "Weekly") == date(2024, 3, 22)

    @pytest.mark.parametrize("frequency", [None, "", "Fortnightly"])
    def test_unknown_frequency_uses_monthly(self, frequency):
        assert advance(date(2024, 3, 15), frequency) == date(2024, 4, 15)
