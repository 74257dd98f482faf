"""Record value helpers shared by filters, metrics, and the pivot builder.

A record is an opaque mapping from field name to scalar. These helpers give
every component the same answer to "is this value missing?", "what number
is this?" and "what day is this?".
"""

import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeAlias

Record: TypeAlias = Mapping[str, Any]


def is_missing(value: Any) -> bool:
    """Return True for None and the empty string."""
    return value is None or value == ""


def to_number(value: Any) -> float | None:
    """Interpret a record value as a number.

    Booleans count as 1/0 so that flag fields can be summed. Numeric strings
    are parsed. NaN, infinities, and anything unparseable return None.

    Args:
        value: Raw record value.

    Returns:
        The value as float, or None when it is not numeric.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, Decimal):
        try:
            number = float(value)
        except (InvalidOperation, ValueError):
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_date(value: Any) -> date | None:
    """Interpret a record value as a calendar day, discarding time of day.

    Accepts date, datetime, and ISO 8601 strings (with or without a time
    part or UTC offset). The day is taken as written; no timezone
    conversion is applied.

    Args:
        value: Raw record value.

    Returns:
        The calendar day, or None when the value is not a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None
