"""API tests for VideoStreamPro and Google sign-in and the current user."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from campaign_hub.core.errors import UpstreamAuthError
from campaign_hub.server.core.security import decode_access_token
from campaign_hub.server.services.auth import ExternalUser, GoogleUser

pytestmark = pytest.mark.asyncio

VERIFY = "campaign_hub.server.services.auth.VideoStreamProClient.verify_user_token"
VERIFY_GOOGLE = "campaign_hub.server.services.auth.GoogleAuthClient.verify_access_token"


class TestSSO:
    async def test_sso_creates_user_and_issues_token(self, client: AsyncClient):
        external = ExternalUser(external_id="vsp-1", email="creator@example.com", username="creator")

        with patch(VERIFY, AsyncMock(return_value=external)) as mock_verify:
            response = await client.post("/api/v1/auth/sso", json={"token": "vsp-token"})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "creator@example.com"
        assert data["user"]["auth_provider"] == "videostreampro"
        assert decode_access_token(data["access_token"]) == data["user"]["id"]
        mock_verify.assert_awaited_once_with("vsp-token")

    async def test_sso_rejected_token(self, client: AsyncClient):
        with patch(VERIFY, AsyncMock(side_effect=UpstreamAuthError("Invalid VideoStreamPro token"))):
            response = await client.post("/api/v1/auth/sso", json={"token": "bad"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid VideoStreamPro token"}

    async def test_sso_requires_token(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/sso", json={"token": ""})

        assert response.status_code == 422


class TestGoogle:
    async def test_google_creates_user_and_issues_token(self, client: AsyncClient):
        google_user = GoogleUser(email="viewer@gmail.com", name="viewer", picture="p.png")

        with patch(VERIFY_GOOGLE, AsyncMock(return_value=google_user)) as mock_verify:
            response = await client.post("/api/v1/auth/google", json={"access_token": "ya29.token"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "viewer@gmail.com"
        assert data["user"]["auth_provider"] == "google"
        assert data["user"]["is_verified"] is True
        assert decode_access_token(data["access_token"]) == data["user"]["id"]
        mock_verify.assert_awaited_once_with("ya29.token")

    async def test_google_signs_existing_user_in(self, client: AsyncClient, user):
        with patch(VERIFY_GOOGLE, AsyncMock(return_value=GoogleUser(email=user.email))):
            response = await client.post("/api/v1/auth/google", json={"access_token": "ya29.token"})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user.id

    async def test_google_rejected_token(self, client: AsyncClient):
        with patch(VERIFY_GOOGLE, AsyncMock(side_effect=UpstreamAuthError("Invalid access token"))):
            response = await client.post("/api/v1/auth/google", json={"access_token": "bad"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid access token"}

    @pytest.mark.parametrize("payload", [{}, {"access_token": ""}])
    async def test_google_requires_access_token(self, client: AsyncClient, payload):
        response = await client.post("/api/v1/auth/google", json=payload)

        assert response.status_code == 422


class TestSession:
    async def test_me(self, client: AsyncClient, user, auth_headers):
        response = await client.get("/api/v1/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["id"] == user.id
        assert response.json()["username"] == "owner"

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}])
    async def test_me_unauthenticated(self, client: AsyncClient, headers):
        response = await client.get("/api/v1/auth/me", headers=headers)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_logout(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/auth/logout", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
