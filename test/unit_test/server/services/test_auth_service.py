"""Unit tests for VideoStreamPro and Google sign-in."""

import json

import httpx
import pytest

from campaign_hub.core.errors import UpstreamAuthError
from campaign_hub.server.core.config import GoogleAuthConfig, VideoStreamProConfig
from campaign_hub.server.core.security import decode_access_token
from campaign_hub.server.services.auth import (
    AuthService,
    ExternalUser,
    GoogleAuthClient,
    GoogleUser,
    VideoStreamProClient,
)

pytestmark = pytest.mark.asyncio

CONFIG = VideoStreamProConfig(auth_url="http://mock/api/auth", api_key="vsp-key", timeout_seconds=1.0)


def verified(user: dict) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "verified": True, "user": user})


def client_with(handler) -> VideoStreamProClient:
    return VideoStreamProClient(config=CONFIG, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestVideoStreamProClient:
    """Test token verification against VideoStreamPro."""

    async def test_verifies_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return verified({"_id": "vsp-1", "email": " Creator@Example.com", "username": "creator", "avatar": "a.png"})

        external = await client_with(handler).verify_user_token("vsp-token")

        assert external == ExternalUser(external_id="vsp-1", email="creator@example.com", username="creator", avatar="a.png")
        assert seen["url"] == "http://mock/api/auth/verify-token"
        assert seen["body"] == {"token": "vsp-token", "apiKey": "vsp-key"}

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(401, json={"success": False, "message": "Invalid token"}),
            httpx.Response(200, json={"success": True, "verified": False}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"success": True, "verified": True, "user": {"id": "vsp-1"}}),
        ],
    )
    async def test_rejected_tokens(self, response):
        with pytest.raises(UpstreamAuthError):
            await client_with(lambda request: response).verify_user_token("bad")

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(UpstreamAuthError):
            await client_with(handler).verify_user_token("vsp-token")

    async def test_not_configured(self):
        with pytest.raises(UpstreamAuthError):
            await VideoStreamProClient(config=VideoStreamProConfig()).verify_user_token("vsp-token")

    def test_username_defaults_to_email_local_part(self):
        assert ExternalUser.from_payload({"id": 5, "email": "jo@example.com"}).username == "jo"


class StaticClient(VideoStreamProClient):
    def __init__(self, external: ExternalUser) -> None:
        self.external = external

    async def verify_user_token(self, token: str) -> ExternalUser:
        return self.external


class TestAuthService:
    """Test linking VideoStreamPro identities to local users."""

    async def test_sign_in_creates_user(self, session):
        external = ExternalUser(external_id="vsp-1", email="creator@example.com", username="creator")

        user, token = await AuthService(session, StaticClient(external)).sign_in("vsp-token")

        assert user.id is not None
        assert user.username == "creator"
        assert user.videostreampro_id == "vsp-1"
        assert user.is_verified is True
        assert decode_access_token(token) == user.id

    async def test_links_existing_user_by_email(self, session, seed):
        existing = await seed.user(email="creator@example.com", username="old-name")
        external = ExternalUser(external_id="vsp-9", email="creator@example.com", username="creator", avatar="a.png")

        user = await AuthService(session, StaticClient(external)).upsert_user(external)

        assert user.id == existing.id
        assert user.username == "old-name"
        assert user.videostreampro_id == "vsp-9"
        assert user.avatar == "a.png"

    async def test_finds_user_by_external_id_first(self, session, seed):
        linked = await seed.user(email="old@example.com")
        linked.videostreampro_id = "vsp-1"
        await session.commit()
        external = ExternalUser(external_id="vsp-1", email="new@example.com", username="creator")

        user = await AuthService(session, StaticClient(external)).upsert_user(external)

        assert user.id == linked.id
        assert user.email == "old@example.com"

    async def test_unique_username(self, session, seed):
        await seed.user(username="creator")
        await seed.user(username="creator1")
        service = AuthService(session, StaticClient(None))

        assert await service.unique_username("creator") == "creator2"
        assert await service.unique_username("jo") == "jouser"
        assert await service.unique_username("!!") == "user"


GOOGLE_CONFIG = GoogleAuthConfig(userinfo_url="http://mock/oauth2/v2/userinfo", timeout_seconds=1.0)


def google_with(handler) -> GoogleAuthClient:
    return GoogleAuthClient(config=GOOGLE_CONFIG, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestGoogleAuthClient:
    """Test access token verification against Google's userinfo endpoint."""

    async def test_verifies_access_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                json={"email": "Viewer@Gmail.com", "verified_email": True, "name": "Jo Viewer", "picture": "p.png"},
            )

        google_user = await google_with(handler).verify_access_token("ya29.token")

        assert google_user == GoogleUser(email="viewer@gmail.com", name="Jo Viewer", picture="p.png")
        assert seen["url"] == "http://mock/oauth2/v2/userinfo"
        assert seen["authorization"] == "Bearer ya29.token"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(401, json={"error": "invalid_token"}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"name": "No Email"}),
            httpx.Response(200, json={"email": "jo@gmail.com", "verified_email": False}),
            httpx.Response(200, json={"email": "jo@gmail.com", "email_verified": False}),
        ],
        ids=["rejected", "not-json", "no-email", "unverified-v2", "unverified-v3"],
    )
    async def test_rejected_tokens(self, response):
        with pytest.raises(UpstreamAuthError):
            await google_with(lambda request: response).verify_access_token("bad")

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamAuthError):
            await google_with(handler).verify_access_token("ya29.token")


class StaticGoogle(GoogleAuthClient):
    def __init__(self, google_user: GoogleUser) -> None:
        self.google_user = google_user

    async def verify_access_token(self, access_token: str) -> GoogleUser:
        return self.google_user


class TestGoogleSignIn:
    """Test matching Google accounts to local users by e-mail."""

    async def test_creates_verified_user(self, session, seed):
        await seed.user(username="JoViewer")
        google = StaticGoogle(GoogleUser(email="viewer@gmail.com", name="Jo Viewer", picture="p.png"))

        user, token = await AuthService(session, google=google).google_sign_in("ya29.token")

        assert user.id is not None
        assert user.email == "viewer@gmail.com"
        assert user.username == "JoViewer1"
        assert user.avatar == "p.png"
        assert user.is_verified is True
        assert user.auth_provider == "google"
        assert decode_access_token(token) == user.id

    async def test_default_avatar_and_username(self, session):
        google = StaticGoogle(GoogleUser(email="viewer@gmail.com"))

        user, _ = await AuthService(session, google=google).google_sign_in("ya29.token")

        assert user.username == "viewer"
        assert user.avatar == "https://api.dicebear.com/7.x/avataaars/svg?seed=viewer@gmail.com"

    async def test_existing_account_signs_in(self, session, seed):
        existing = await seed.user(email="viewer@gmail.com", username="old-name")
        google = StaticGoogle(GoogleUser(email="viewer@gmail.com", name="Jo Viewer"))

        user, token = await AuthService(session, google=google).google_sign_in("ya29.token")

        assert user.id == existing.id
        assert user.username == "old-name"
        assert user.auth_provider == existing.auth_provider
        assert decode_access_token(token) == existing.id
