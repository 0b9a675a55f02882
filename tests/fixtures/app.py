# tests/fixtures/app.py

"""
🧩 App Fixture:
- Builds the real application (`create_app`) per test
- Injects the test DB session
- Returns HTTP client fixtures for integration tests
"""

from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.main import create_app
from tests.fixtures.db import get_override_get_db


@pytest.fixture()
async def app(db_session: AsyncSession) -> FastAPI:
    """
    🧪 Full middleware stack + routers, wired to the per-test session.
    """
    app = create_app()
    app.dependency_overrides[get_async_db] = get_override_get_db(db_session)
    return app


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    🌐 HTTP client bound to the ASGI app (no network).
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture()
async def lenient_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Like `async_client`, but unhandled errors come back as HTTP 500 responses."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
