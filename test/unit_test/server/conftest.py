from typing import AsyncGenerator, Callable, Dict
from unittest.mock import patch

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.entities import User
from campaign_hub.server.core.security import create_access_token


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from campaign_hub.core.database import get_session
    from campaign_hub.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("campaign_hub.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def user(seed) -> User:
    return await seed.user(email="owner@example.com", username="owner")


@pytest_asyncio.fixture
async def auth_headers_for() -> Callable[[User], Dict[str, str]]:
    def build(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return build


@pytest_asyncio.fixture
async def auth_headers(user: User, auth_headers_for) -> Dict[str, str]:
    return auth_headers_for(user)
