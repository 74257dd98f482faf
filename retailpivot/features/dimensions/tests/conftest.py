"""Test fixtures for dimensions module."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from retailpivot.features.dimensions.schemas import (
    AggregationSpec,
    Dimension,
    DimensionCategory,
    DisplayFormat,
    Reducer,
    ValueType,
)
from retailpivot.features.dimensions.service import DimensionCatalog
from retailpivot.main import app


@pytest.fixture
def status_dimension() -> Dimension:
    """Enumerated order status dimension."""
    return Dimension(
        key="status",
        label="Order Status",
        value_type=ValueType.ENUMERATED,
        category=DimensionCategory.BASIC,
    )


@pytest.fixture
def region_dimension() -> Dimension:
    """Plain text region dimension."""
    return Dimension(key="region", label="Region")


@pytest.fixture
def total_sum() -> AggregationSpec:
    """Sum of order totals formatted as currency."""
    return AggregationSpec(
        source_field="total",
        reducer=Reducer.SUM,
        label="Total Sales",
        display_format=DisplayFormat.CURRENCY,
    )


@pytest.fixture
def catalog(status_dimension, region_dimension, total_sum) -> DimensionCatalog:
    """Small catalog with two dimensions and one aggregation."""
    return DimensionCatalog(
        dimensions=[status_dimension, region_dimension],
        aggregations=[total_sum],
    )


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
