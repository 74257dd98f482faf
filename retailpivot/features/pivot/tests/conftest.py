"""Test fixtures for pivot module."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from retailpivot.features.dimensions.schemas import (
    AggregationSpec,
    Dimension,
    DisplayFormat,
    Reducer,
    ValueType,
)
from retailpivot.features.dimensions.service import DimensionCatalog
from retailpivot.features.pivot.builder import PivotTreeBuilder
from retailpivot.main import app


@pytest.fixture
def scenario_records() -> list[dict]:
    """Three orders: two completed, one cancelled."""
    return [
        {"status": "completed", "total": 100},
        {"status": "completed", "total": 50},
        {"status": "cancelled", "total": 20},
    ]


@pytest.fixture
def regional_records() -> list[dict]:
    """Orders across two regions and three statuses, including gaps."""
    return [
        {"order_number": "SO-1", "region": "North", "status": "completed", "total": 120.0},
        {"order_number": "SO-2", "region": "South", "status": "completed", "total": 80.0},
        {"order_number": "SO-3", "region": "North", "status": "pending", "total": 40.0},
        {"order_number": "SO-4", "region": "North", "status": "completed", "total": 10.0},
        {"order_number": "SO-5", "region": "South", "status": None, "total": 55.5},
        {"order_number": "SO-6", "region": "", "status": "cancelled", "total": 7.25},
    ]


@pytest.fixture
def status_dimension() -> Dimension:
    """Order status, grouped exactly."""
    return Dimension(key="status", label="Status", value_type=ValueType.ENUMERATED)


@pytest.fixture
def region_dimension() -> Dimension:
    """Store region."""
    return Dimension(key="region", label="Region")


@pytest.fixture
def total_sum() -> AggregationSpec:
    """Sum of order totals."""
    return AggregationSpec(
        source_field="total",
        reducer=Reducer.SUM,
        label="Total Sales",
        display_format=DisplayFormat.CURRENCY,
    )


@pytest.fixture
def order_count() -> AggregationSpec:
    """Record count; the source field is nominal."""
    return AggregationSpec(
        source_field="total",
        reducer=Reducer.COUNT,
        label="Order Count",
        display_format=DisplayFormat.NUMBER,
    )


@pytest.fixture
def total_average() -> AggregationSpec:
    """Average order total."""
    return AggregationSpec(
        source_field="total",
        reducer=Reducer.AVERAGE,
        label="Average Order Value",
        display_format=DisplayFormat.CURRENCY,
    )


@pytest.fixture
def builder() -> PivotTreeBuilder:
    """Lenient builder with a generous node cap."""
    return PivotTreeBuilder(strict=False, max_nodes=1000, unknown_label="Unknown")


@pytest.fixture
def status_catalog(
    status_dimension, region_dimension, total_sum, order_count, total_average
) -> DimensionCatalog:
    """Catalog grouping by status with total sales and order count active."""
    catalog = DimensionCatalog(
        dimensions=[status_dimension, region_dimension],
        aggregations=[total_sum, order_count, total_average],
    )
    catalog.set_group_by(["status"])
    catalog.set_measures([("total", "sum"), ("total", "count")])
    return catalog


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
