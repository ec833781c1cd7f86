"""
Test suite for date math and input parsing helpers
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from loan_schedule.utils import (
    add_months,
    days_between,
    days_between_inclusive,
    format_currency,
    format_percent,
    is_edge_day,
    last_day_after_adding_months,
    last_day_of_month,
    one_day_after,
    parse_date,
    parse_percent,
    parse_yes_no,
    to_decimal,
)


class TestDateMath:
    """Day counts and month arithmetic"""

    def test_days_between_ignores_time_of_day(self):
        assert days_between(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 1)) == 1

    def test_inclusive_days(self):
        assert days_between_inclusive(date(2024, 1, 1), date(2024, 1, 31)) == 31
        assert days_between_inclusive(date(2024, 1, 5), date(2024, 1, 5)) == 1

    def test_non_dates_give_zero_days(self):
        assert days_between(None, date(2024, 1, 1)) == 0
        assert days_between_inclusive("", date(2024, 1, 1)) == 0

    def test_last_day_of_month_handles_leap_year(self):
        assert last_day_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
        assert last_day_of_month(date(2023, 2, 10)) == date(2023, 2, 28)

    def test_last_day_after_adding_months_rolls_year(self):
        assert last_day_after_adding_months(date(2024, 3, 14), 1) == date(2024, 4, 30)
        assert last_day_after_adding_months(date(2024, 11, 3), 2) == date(2025, 1, 31)
        assert last_day_after_adding_months(date(2024, 1, 3), -1) == date(2023, 12, 31)

    def test_add_months_clamps_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)

    def test_one_day_after(self):
        assert one_day_after(date(2024, 2, 29)) == date(2024, 3, 1)

    def test_edge_days(self):
        assert is_edge_day(date(2024, 1, 1))
        assert is_edge_day(date(2024, 1, 29))
        assert not is_edge_day(date(2024, 1, 28))
        assert not is_edge_day(date(2024, 1, 15))


class TestParsing:
    """Conversion of user input"""

    def test_percent_forms(self):
        assert parse_percent("5") == Decimal("0.05")
        assert parse_percent("5%") == Decimal("0.05")
        assert parse_percent("0.05") == Decimal("0.05")
        assert parse_percent("0.5%") == Decimal("0.005")

    def test_percent_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_percent("five")

    def test_date_formats(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)
        assert parse_date("03/15/2024") == date(2024, 3, 15)
        with pytest.raises(ValueError, match="Invalid date"):
            parse_date("15.03.2024")

    def test_yes_no(self):
        assert parse_yes_no("Yes") is True
        assert parse_yes_no("no") is False
        assert parse_yes_no("") is False
        with pytest.raises(ValueError):
            parse_yes_no("maybe")

    def test_to_decimal_is_lenient(self):
        assert to_decimal("1,234.50") == Decimal("1234.50")
        assert to_decimal("") == Decimal("0")
        assert to_decimal("n/a") == Decimal("0")
        assert to_decimal(0.1) == Decimal("0.1")


class TestFormatting:
    def test_currency(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"

    def test_percent_strips_trailing_zeros(self):
        assert format_percent(Decimal("0.05")) == "5%"
        assert format_percent(Decimal("0.025")) == "2.5%"
