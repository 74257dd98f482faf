"""CSV export of flattened pivot rows.

Layout:
- Header: one column per grouping dimension, then the detail columns (only
  when exactly one dimension is grouped by), then one column per aggregation.
- Group row: its value under its own dimension column, raw aggregates.
- Detail row: what the record contributes to its group. Dimension columns
  hold its grouping value, with the unknown label for missing values, and
  aggregation columns hold 1 for counts and its numeric input otherwise, 0
  when that input is missing or non-numeric. Detail columns hold the raw
  record value, blank when missing.

Every field is double-quoted with embedded quotes doubled.
"""

import csv
import io
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from retailpivot.features.dimensions.schemas import AggregationSpec, Dimension, Reducer
from retailpivot.features.pivot.schemas import DetailRow, DisplayRow, GroupRow
from retailpivot.shared.records import is_missing, to_number

# (record key, column label) pairs written for detail rows of the sales pivot.
SALES_DETAIL_COLUMNS: tuple[tuple[str, str], ...] = (
    ("order_number", "Order #"),
    ("customer_name", "Customer"),
    ("status", "Status"),
)


def csv_value(value: Any) -> str:
    """Render one cell; integral floats lose their fraction."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def export_csv(
    rows: Sequence[DisplayRow],
    dimensions: Sequence[Dimension],
    aggregations: Sequence[AggregationSpec],
    detail_columns: Sequence[tuple[str, str]] = (),
    unknown_label: str = "Unknown",
) -> str:
    """Serialize display rows to CSV text.

    Args:
        rows: Flattened rows, one CSV row each.
        dimensions: Active grouping dimensions, outermost first.
        aggregations: Active aggregations.
        detail_columns: (record key, label) pairs for detail rows. Written
            only when exactly one dimension is active.
        unknown_label: Dimension value written for missing record values.

    Returns:
        CSV text with ``\\n`` line endings.
    """
    details = list(detail_columns) if len(dimensions) == 1 else []

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(
        [d.label for d in dimensions]
        + [label for _, label in details]
        + [a.label for a in aggregations]
    )

    for row in rows:
        if isinstance(row, GroupRow):
            writer.writerow(_group_cells(row, dimensions, aggregations, len(details)))
        elif isinstance(row, DetailRow):
            writer.writerow(
                _detail_cells(row.record, dimensions, aggregations, details, unknown_label)
            )

    return output.getvalue()


def _group_cells(
    row: GroupRow,
    dimensions: Sequence[Dimension],
    aggregations: Sequence[AggregationSpec],
    detail_count: int,
) -> list[str]:
    cells = ["" for _ in dimensions]
    if row.level < len(cells):
        cells[row.level] = row.grouping_value
    cells.extend("" for _ in range(detail_count))
    cells.extend(csv_value(row.aggregates.get(a.label)) for a in aggregations)
    return cells


def _detail_cells(
    record: Mapping[str, Any],
    dimensions: Sequence[Dimension],
    aggregations: Sequence[AggregationSpec],
    details: Sequence[tuple[str, str]],
    unknown_label: str,
) -> list[str]:
    cells: list[str] = []
    for dimension in dimensions:
        value = dimension.read(record)
        cells.append(unknown_label if is_missing(value) else csv_value(value))
    cells.extend(csv_value(record.get(key)) for key, _ in details)
    for spec in aggregations:
        if spec.reducer == Reducer.COUNT:
            cells.append("1")
        else:
            cells.append(csv_value(to_number(spec.read(record)) or 0.0))
    return cells
