"""Pytest configuration and fixtures."""
import os

# Settings are read at import time
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.database import get_database
from app.main import app
from tests.fakes import FakeDatabase


@pytest.fixture
def fake_db():
    """Empty in-memory database."""
    return FakeDatabase()


@pytest_asyncio.fixture
async def app_client(fake_db):
    """
    Create a test client backed by the in-memory database.

    This fixture:
    - Overrides the database dependency with ``fake_db``
    - Yields an async HTTP client for testing
    - Removes the override afterwards
    """
    app.dependency_overrides[get_database] = lambda: fake_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_headers(app_client):
    """Register a user, log in and return bearer headers."""
    register_data = {
        "email": "planner@example.com",
        "password": "password123",
        "name": "Test Planner",
    }
    await app_client.post("/auth/register", json=register_data)

    login_data = {"email": "planner@example.com", "password": "password123"}
    login_response = await app_client.post("/auth/login", json=login_data)
    token = login_response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
