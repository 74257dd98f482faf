"""Unit tests for aggregate formatting."""

import pytest

from retailpivot.features.dimensions.schemas import AggregationSpec, DisplayFormat, Reducer
from retailpivot.features.pivot.formatting import (
    format_aggregates,
    format_currency,
    format_number,
    format_percent,
    format_value,
)


class TestCurrency:
    """Tests for currency formatting."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1234.5, "$1,234.50"),
            (150, "$150.00"),
            (0, "$0.00"),
            (-12, "-$12.00"),
            (-0.001, "$0.00"),
            (1234567.891, "$1,234,567.89"),
        ],
    )
    def test_format_currency(self, value, expected):
        """Symbol prefix, grouped thousands, two decimals."""
        assert format_currency(value) == expected

    def test_custom_symbol(self):
        """The symbol is configurable."""
        assert format_currency(5, symbol="€") == "€5.00"


class TestPercent:
    """Tests for percent formatting."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.125, "12.5%"), (1, "100.0%"), (0, "0.0%"), (-0.05, "-5.0%"), (0.33333, "33.3%")],
    )
    def test_format_percent(self, value, expected):
        """Ratios render times 100 with one decimal."""
        assert format_percent(value) == expected


class TestNumber:
    """Tests for plain number formatting."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1234, "1,234"), (2.0, "2"), (1234.6, "1,235"), (0, "0"), (-9876, "-9,876")],
    )
    def test_format_number(self, value, expected):
        """Grouped integers."""
        assert format_number(value) == expected


class TestFormatAggregates:
    """Tests for format_value() and format_aggregates()."""

    def test_dispatches_on_display_format(self):
        """Each display format has its own renderer."""
        assert format_value(0.5, DisplayFormat.PERCENT) == "50.0%"
        assert format_value(0.5, DisplayFormat.CURRENCY) == "$0.50"
        assert format_value(3.0, DisplayFormat.NUMBER) == "3"

    def test_format_aggregates(self):
        """Aggregates are formatted by label; missing labels are skipped."""
        specs = [
            AggregationSpec(
                source_field="total",
                reducer=Reducer.SUM,
                label="Total Sales",
                display_format=DisplayFormat.CURRENCY,
            ),
            AggregationSpec(source_field="total", reducer=Reducer.COUNT, label="Order Count"),
            AggregationSpec(source_field="x", reducer=Reducer.MAX, label="Missing"),
        ]

        assert format_aggregates({"Total Sales": 150.0, "Order Count": 2.0}, specs) == {
            "Total Sales": "$150.00",
            "Order Count": "2",
        }
