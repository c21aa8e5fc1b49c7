"""
Tests for goal progress and countdown metrics
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from finsight.domain.goal import days_remaining, progress_percentage


class TestProgressPercentage:
    @pytest.mark.parametrize("current, target, expected", [
        ("250", "1000", 25),
        ("0", "1000", 0),
        ("1000", "1000", 100),
        ("1500", "1000", 150),
        ("1", "3", 33),
        ("2", "3", 67),
    ])
    def test_rounded_ratio(self, current, target, expected):
        assert progress_percentage(Decimal(current), Decimal(target)) == expected

    def test_half_rounds_away_from_zero(self):
        """12.5% -> 13, not banker's 12"""
        assert progress_percentage(Decimal("125"), Decimal("1000")) == 13

    def test_zero_target_is_zero(self):
        assert progress_percentage(Decimal("500"), Decimal("0")) == 0


class TestDaysRemaining:
    def test_no_target_date(self):
        assert days_remaining(None, datetime(2026, 1, 1, 12, 0)) is None

    def test_partial_day_rounds_up(self):
        now = datetime(2026, 1, 1, 12, 0)
        assert days_remaining(date(2026, 1, 11), now) == 10

    def test_exact_midnight(self):
        now = datetime(2026, 1, 1, 0, 0)
        assert days_remaining(date(2026, 1, 11), now) == 10

    def test_past_date_is_negative(self):
        now = datetime(2026, 1, 10, 0, 0)
        assert days_remaining(date(2026, 1, 5), now) == -5
