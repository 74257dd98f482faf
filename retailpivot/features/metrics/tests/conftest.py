"""Test fixtures for metrics module."""

from datetime import date

import pytest

from retailpivot.features.metrics.service import MetricsDeriver, default_sales_metrics


@pytest.fixture
def today() -> date:
    """Fixed reference date for age metrics."""
    return date(2024, 3, 31)


@pytest.fixture
def sales_deriver(today) -> MetricsDeriver:
    """Deriver with the sales-order metrics and a fixed "now"."""
    return MetricsDeriver(default_sales_metrics(unknown_label="Unknown"), now=today)


@pytest.fixture
def open_order() -> dict:
    """Sales order with an outstanding balance."""
    return {
        "order_number": "SO-2001",
        "order_date": "2024-03-01T16:45:00",
        "total_amount": 110.0,
        "tax_total": 10.0,
        "products_total": 80.0,
        "services_total": 20.0,
        "items_count": 4,
        "warranty_amount": 11.0,
        "msrp_total": 125.0,
        "savings_vs_msrp": 25.0,
        "paid_total": 55.0,
        "balance_amount": 55.0,
        "accessory_fee": 5.0,
        "delivery_fee": "12.50",
        "other_fee": None,
        "gross_profit": 42.0,
    }
