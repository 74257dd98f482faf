"""MetricsDeriver: compute dependent per-record fields before grouping.

Derived fields are merged into a copy of each record, so grouping and
filtering treat them like source fields. Metrics run in order and may read
fields produced by earlier metrics.

Division never fails: a zero or missing denominator yields 0. Non-numeric
inputs count as 0.
"""

import math
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

from retailpivot.core.config import get_settings
from retailpivot.core.logging import get_logger
from retailpivot.features.metrics.schemas import (
    AgeMetric,
    BucketMetric,
    DatePartMetric,
    FlagMetric,
    MetricSpec,
    PaymentStatusMetric,
    RateMetric,
    ShareMetric,
    TotalMetric,
)
from retailpivot.shared.records import to_date, to_number

logger = get_logger(__name__)


def safe_number(value: Any) -> float:
    """Coerce a record value to a float, treating anything non-numeric as 0."""
    number = to_number(value)
    return 0.0 if number is None else number


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0 for a zero denominator."""
    return 0.0 if denominator == 0 else numerator / denominator


class MetricsDeriver:
    """Applies an ordered list of metric configs to records.

    Example:
        >>> deriver = MetricsDeriver([ShareMetric(name="paid_pct", part="paid", whole="total")])
        >>> deriver.derive({"paid": 25, "total": 100})["paid_pct"]
        0.25
    """

    def __init__(
        self,
        metrics: Sequence[MetricSpec],
        now: date | datetime | None = None,
    ) -> None:
        """Initialize the deriver.

        Args:
            metrics: Metric configs, applied in order.
            now: Reference "now" for age metrics. Defaults to today.
        """
        self.metrics = list(metrics)
        self.today = to_date(now) or date.today()
        self._handlers: dict[str, Callable[[Any, Mapping[str, Any]], Any]] = {
            "rate": self._rate,
            "share": self._share,
            "age": self._age,
            "total": self._total,
            "date_part": self._date_part,
            "bucket": self._bucket,
            "flag": self._flag,
            "payment_status": self._payment_status,
        }

    def derive(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """Return a new record with every derived field added.

        Args:
            record: Source record; never mutated.

        Returns:
            Copy of the record with derived fields merged in.
        """
        derived = dict(record)
        for metric in self.metrics:
            derived[metric.name] = self._handlers[metric.kind](metric, derived)
        return derived

    def derive_all(self, records: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Derive every record, preserving order."""
        derived = [self.derive(record) for record in records]
        logger.debug(
            "metrics.derived",
            record_count=len(derived),
            metric_count=len(self.metrics),
        )
        return derived

    # -------------------------------------------------------------------------
    # Metric kinds
    # -------------------------------------------------------------------------

    @staticmethod
    def _rate(metric: RateMetric, record: Mapping[str, Any]) -> float:
        numerator = sum(safe_number(record.get(f)) for f in metric.numerator)
        denominator = sum(safe_number(record.get(f)) for f in metric.denominator)
        denominator -= sum(safe_number(record.get(f)) for f in metric.denominator_minus)
        return safe_divide(numerator, denominator)

    @staticmethod
    def _share(metric: ShareMetric, record: Mapping[str, Any]) -> float:
        part = safe_number(record.get(metric.part))
        return safe_divide(part, safe_number(record.get(metric.whole)))

    def _age(self, metric: AgeMetric, record: Mapping[str, Any]) -> int:
        if metric.gate_field is not None:
            if safe_number(record.get(metric.gate_field)) <= metric.gate_threshold:
                return 0
        reference = to_date(record.get(metric.date_field))
        if reference is None:
            return 0
        return (self.today - reference).days

    @staticmethod
    def _total(metric: TotalMetric, record: Mapping[str, Any]) -> float:
        return sum((safe_number(record.get(f)) for f in metric.source_fields), 0.0)

    @staticmethod
    def _date_part(metric: DatePartMetric, record: Mapping[str, Any]) -> str:
        day = to_date(record.get(metric.date_field))
        if day is None:
            return metric.unknown_label
        match metric.part:
            case "day":
                return day.isoformat()
            case "month":
                return f"{day.year:04d}-{day.month:02d}"
            case "year":
                return f"{day.year:04d}"
            case "quarter":
                return f"{day.year:04d}-Q{(day.month - 1) // 3 + 1}"
            case "week":
                return f"{day.year:04d}-W{math.ceil(day.day / 7)}"

    @staticmethod
    def _bucket(metric: BucketMetric, record: Mapping[str, Any]) -> str:
        value = safe_number(record.get(metric.source_field))
        for bound, label in zip(metric.bounds, metric.labels, strict=False):
            if value < bound or (metric.inclusive and value == bound):
                return label
        return metric.labels[-1]

    @staticmethod
    def _flag(metric: FlagMetric, record: Mapping[str, Any]) -> bool:
        return safe_number(record.get(metric.source_field)) > metric.threshold

    @staticmethod
    def _payment_status(metric: PaymentStatusMetric, record: Mapping[str, Any]) -> str:
        if safe_number(record.get(metric.balance_field)) <= metric.tolerance:
            return "paid"
        if safe_number(record.get(metric.paid_field)) > 0:
            return "partial"
        return "unpaid"


# =============================================================================
# Sales order metrics
# =============================================================================

BALANCE_TOLERANCE = 0.005


def default_sales_metrics(unknown_label: str | None = None) -> list[MetricSpec]:
    """Derived fields of the sales-order screens.

    Args:
        unknown_label: Label for orders without a usable order date.
            Defaults to the ``pivot_unknown_label`` setting.

    Returns:
        Metric configs in dependency order.
    """
    unknown = unknown_label or get_settings().pivot_unknown_label
    return [
        RateMetric(
            name="effective_tax_rate",
            numerator=("tax_total",),
            denominator=("total_amount",),
            denominator_minus=("tax_total",),
        ),
        RateMetric(
            name="avg_item_price",
            numerator=("products_total", "services_total"),
            denominator=("items_count",),
        ),
        ShareMetric(name="warranty_share", part="warranty_amount", whole="total_amount"),
        ShareMetric(name="savings_pct", part="savings_vs_msrp", whole="msrp_total"),
        ShareMetric(name="paid_pct", part="paid_total", whole="total_amount"),
        TotalMetric(
            name="fees_total",
            source_fields=("accessory_fee", "delivery_fee", "other_fee"),
        ),
        AgeMetric(
            name="age_days",
            date_field="order_date",
            gate_field="balance_amount",
            gate_threshold=BALANCE_TOLERANCE,
        ),
        PaymentStatusMetric(
            name="payment_status",
            balance_field="balance_amount",
            paid_field="paid_total",
            tolerance=BALANCE_TOLERANCE,
        ),
        FlagMetric(name="has_warranty", source_field="warranty_amount"),
        DatePartMetric(
            name="order_month", date_field="order_date", part="month", unknown_label=unknown
        ),
        DatePartMetric(
            name="order_year", date_field="order_date", part="year", unknown_label=unknown
        ),
        DatePartMetric(
            name="order_quarter", date_field="order_date", part="quarter", unknown_label=unknown
        ),
        DatePartMetric(
            name="order_week", date_field="order_date", part="week", unknown_label=unknown
        ),
        BucketMetric(
            name="total_amount_range",
            source_field="total_amount",
            bounds=(100, 500, 1000, 5000, 10000),
            labels=(
                "$0 - $99",
                "$100 - $499",
                "$500 - $999",
                "$1,000 - $4,999",
                "$5,000 - $9,999",
                "$10,000+",
            ),
        ),
        BucketMetric(
            name="gross_profit_range",
            source_field="gross_profit",
            bounds=(0, 50, 200, 500, 1000),
            labels=(
                "Loss",
                "$0 - $49",
                "$50 - $199",
                "$200 - $499",
                "$500 - $999",
                "$1,000+",
            ),
        ),
        BucketMetric(
            name="items_count_range",
            source_field="items_count",
            bounds=(0, 1, 3, 5, 10),
            labels=(
                "0 items",
                "1 item",
                "2-3 items",
                "4-5 items",
                "6-10 items",
                "11+ items",
            ),
            inclusive=True,
        ),
    ]
