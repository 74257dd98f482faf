"""Shared utilities used across 3+ features."""

from retailpivot.shared.records import Record, is_missing, to_date, to_number

__all__ = [
    "Record",
    "is_missing",
    "to_date",
    "to_number",
]
