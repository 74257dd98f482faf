"""Test fixtures for core module."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from retailpivot.core.config import get_settings
from retailpivot.main import app


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def fresh_settings():
    """Clear the settings cache before and after a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
