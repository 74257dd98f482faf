"""Unit tests for record value helpers."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from retailpivot.shared.records import is_missing, to_date, to_number


class TestIsMissing:
    """Tests for is_missing()."""

    @pytest.mark.parametrize(("value", "expected"), [(None, True), ("", True), (0, False)])
    def test_is_missing(self, value, expected):
        """Only None and the empty string are missing."""
        assert is_missing(value) is expected


class TestToNumber:
    """Tests for to_number()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(12, 12.0), (" 4.5 ", 4.5), (True, 1.0), (Decimal("2.25"), 2.25), ("-3", -3.0)],
    )
    def test_numeric_values(self, value, expected):
        """Numbers, numeric strings, decimals, and bools parse."""
        assert to_number(value) == expected

    @pytest.mark.parametrize(
        "value",
        ["n/a", None, "", [], "nan", float("nan"), "inf", "-inf", "1e999", float("inf"), 10**400],
    )
    def test_non_finite_and_non_numeric_are_rejected(self, value):
        """Anything that is not a finite number returns None."""
        assert to_number(value) is None


class TestToDate:
    """Tests for to_date()."""

    def test_to_date(self):
        """Dates, datetimes, and ISO strings give the calendar day."""
        assert to_date(date(2024, 3, 5)) == date(2024, 3, 5)
        assert to_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)
        assert to_date("2024-03-05T10:00:00+02:00") == date(2024, 3, 5)
        assert to_date("not a date") is None
        assert to_date(None) is None
