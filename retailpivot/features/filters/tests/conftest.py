"""Test fixtures for filters module."""

from collections.abc import AsyncGenerator
from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient

from retailpivot.features.filters.service import FilterEngine
from retailpivot.main import app


@pytest.fixture
def engine() -> FilterEngine:
    """Lenient filter engine."""
    return FilterEngine(strict=False)


@pytest.fixture
def strict_engine() -> FilterEngine:
    """Strict filter engine."""
    return FilterEngine(strict=True)


@pytest.fixture
def orders() -> list[dict]:
    """Small order list covering every value type and a few gaps."""
    return [
        {
            "order_number": "SO-1001",
            "customer_name": "Ada Lovelace",
            "status": "completed",
            "total_amount": 120.5,
            "order_date": "2024-03-05T14:30:00",
            "extended_warranty": True,
        },
        {
            "order_number": "SO-1002",
            "customer_name": "Grace Hopper",
            "status": "pending",
            "total_amount": "80",
            "order_date": date(2024, 3, 6),
            "extended_warranty": False,
        },
        {
            "order_number": "SO-1003",
            "customer_name": "",
            "status": "completed",
            "total_amount": None,
            "order_date": datetime(2024, 3, 4, 9, 0),
            "extended_warranty": "true",
        },
        {
            "order_number": "SO-1004",
            "status": "cancelled",
            "total_amount": 15,
        },
    ]


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
