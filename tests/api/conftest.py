"""Fixtures for in-process API tests"""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from personalfit.api.middleware import limiter
from personalfit.api.routes import get_services
from personalfit.api.server import create_api_application

USER_KEY = "test_api_key_12345"
ADMIN_KEY = "test_admin_key_67890"


@pytest.fixture
def services():
    """Service container with every service mocked"""
    return SimpleNamespace(
        gamification_service=AsyncMock(),
        accountability_service=AsyncMock(),
        missed_workout_service=AsyncMock(),
        personal_record_service=AsyncMock(),
    )


@pytest.fixture
def app(services, monkeypatch):
    monkeypatch.setenv("API_KEYS", USER_KEY)
    monkeypatch.setenv("ADMIN_API_KEYS", ADMIN_KEY)
    monkeypatch.setattr(limiter, "enabled", False)

    application = create_api_application()
    application.dependency_overrides[get_services] = lambda: services
    return application


@pytest_asyncio.fixture
async def client(app):
    """Client that talks to the app in-process (lifespan is not run)"""
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {USER_KEY}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_KEY}"}
