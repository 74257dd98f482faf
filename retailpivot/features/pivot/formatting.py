"""Display formatting of aggregate values.

Exact output strings are part of the presentation contract:

- currency: ``$1,234.50``, negatives ``-$12.00``
- percent: ratios scaled by 100 with one decimal, ``12.5%``
- number: grouped integer, ``1,234``
"""

import math
from collections.abc import Mapping, Sequence

from retailpivot.features.dimensions.schemas import AggregationSpec, DisplayFormat


def _signed(text: str, value: float, zero: str) -> str:
    """Prefix a minus sign unless the value rounds to zero."""
    return f"-{text}" if value < 0 and text != zero else text


def format_currency(value: float, symbol: str = "$") -> str:
    """Format a currency amount with two decimals and grouped thousands."""
    if not math.isfinite(value):
        return str(value)
    amount = f"{abs(value):,.2f}"
    return _signed(f"{symbol}{amount}", value, f"{symbol}0.00")


def format_percent(value: float) -> str:
    """Format a ratio as a percentage with one decimal."""
    if not math.isfinite(value):
        return str(value)
    return _signed(f"{abs(value) * 100:.1f}%", value, "0.0%")


def format_number(value: float) -> str:
    """Format a number as a grouped integer."""
    if not math.isfinite(value):
        return str(value)
    return f"{round(value):,}"


def format_value(
    value: float,
    display_format: DisplayFormat,
    currency_symbol: str = "$",
) -> str:
    """Format one aggregate value according to its display format."""
    match display_format:
        case DisplayFormat.CURRENCY:
            return format_currency(value, currency_symbol)
        case DisplayFormat.PERCENT:
            return format_percent(value)
        case _:
            return format_number(value)


def format_aggregates(
    aggregates: Mapping[str, float],
    aggregations: Sequence[AggregationSpec],
    currency_symbol: str = "$",
) -> dict[str, str]:
    """Format a node's aggregates, keyed by aggregation label.

    Args:
        aggregates: Raw aggregate values by label.
        aggregations: Specs supplying each label's display format.
        currency_symbol: Symbol prefixed to currency values.

    Returns:
        Formatted values for every spec whose label is present.
    """
    return {
        spec.label: format_value(aggregates[spec.label], spec.display_format, currency_symbol)
        for spec in aggregations
        if spec.label in aggregates
    }
