"""Derived per-record metrics (rates, shares, ages, labels) computed before grouping."""

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
from retailpivot.features.metrics.service import MetricsDeriver, default_sales_metrics

__all__ = [
    "AgeMetric",
    "BucketMetric",
    "DatePartMetric",
    "FlagMetric",
    "MetricSpec",
    "MetricsDeriver",
    "PaymentStatusMetric",
    "RateMetric",
    "ShareMetric",
    "TotalMetric",
    "default_sales_metrics",
]
