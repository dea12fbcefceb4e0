"""
Pytest configuration and fixtures for page API tests.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("ENVIRONMENT", "test")

import httpx  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.main import app  # noqa: E402
from builder.kernel.storage import MemoryStorage  # noqa: E402


@pytest_asyncio.fixture(loop_scope="session")
async def page_storage():
    """Fresh in-memory page storage wired into the app."""
    storage = MemoryStorage()
    app.state.page_storage = storage
    yield storage
    app.state.page_storage = None


@pytest_asyncio.fixture(loop_scope="session")
async def async_client(page_storage):
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
