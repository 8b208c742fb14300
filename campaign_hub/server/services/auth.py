"""
Authentication Service.

Users sign in with a verification token issued by VideoStreamPro. The token
is checked against the VideoStreamPro auth API, the local user is created or
linked, and a CampaignHub access token is issued.

Google sign-in works the same way with a Google OAuth access token, checked
against Google's userinfo endpoint; accounts are matched by e-mail.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import User
from campaign_hub.core.database.repositories import UserRepository
from campaign_hub.core.errors import UpstreamAuthError
from campaign_hub.core.logging_config import get_logger
from campaign_hub.server.core.config import GoogleAuthConfig, VideoStreamProConfig, settings
from campaign_hub.server.core.security import create_access_token

logger = get_logger(__name__)

AUTH_PROVIDER = "videostreampro"
GOOGLE_PROVIDER = "google"
DEFAULT_AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"
VERIFY_TOKEN_PATH = "/verify-token"
_USERNAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True)
class ExternalUser:
    """Identity confirmed by VideoStreamPro."""

    external_id: str
    email: str
    username: str
    avatar: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ExternalUser":
        external_id = payload.get("id") or payload.get("_id")
        email = payload.get("email")
        if not external_id or not email:
            raise UpstreamAuthError("VideoStreamPro returned an incomplete user")
        username = payload.get("username") or str(email).split("@")[0]
        return cls(
            external_id=str(external_id),
            email=str(email).strip().lower(),
            username=str(username),
            avatar=payload.get("avatar"),
        )


class VideoStreamProClient:
    """Client for the VideoStreamPro token verification API."""

    def __init__(
        self,
        config: Optional[VideoStreamProConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or settings.videostreampro
        self._client = client

    async def verify_user_token(self, token: str) -> ExternalUser:
        """
        Verify a VideoStreamPro user token.

        Args:
            token: Verification token presented by the user

        Returns:
            The verified identity

        Raises:
            UpstreamAuthError: The API is unreachable, not configured or rejects the token
        """
        if not self.config.auth_url:
            raise UpstreamAuthError("VideoStreamPro authentication is not configured")
        url = f"{self.config.auth_url.rstrip('/')}{VERIFY_TOKEN_PATH}"
        payload = {"token": token, "apiKey": self.config.api_key}

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self.config.timeout_seconds)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"VideoStreamPro token verification failed: {e}")
            raise UpstreamAuthError("Unable to reach VideoStreamPro") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400 or not isinstance(body, dict):
            raise UpstreamAuthError("Invalid VideoStreamPro token")
        if not (body.get("success") and body.get("verified") and body.get("user")):
            raise UpstreamAuthError(body.get("message") or "Invalid VideoStreamPro token")
        return ExternalUser.from_payload(body["user"])


@dataclass(frozen=True)
class GoogleUser:
    """Identity returned by Google's userinfo endpoint."""

    email: str
    name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GoogleUser":
        email = payload.get("email")
        if not email:
            raise UpstreamAuthError("Google returned no e-mail address")
        # v2 reports verified_email, v3 email_verified
        if payload.get("verified_email", payload.get("email_verified")) is False:
            raise UpstreamAuthError("Google e-mail address is not verified")
        return cls(email=str(email).strip().lower(), name=payload.get("name"), picture=payload.get("picture"))


class GoogleAuthClient:
    """Client for Google's OAuth userinfo endpoint."""

    def __init__(
        self,
        config: Optional[GoogleAuthConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or settings.google
        self._client = client

    async def verify_access_token(self, access_token: str) -> GoogleUser:
        """
        Resolve a Google OAuth access token to the account it was issued for.

        Raises:
            UpstreamAuthError: Google is unreachable or rejects the token
        """
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            if self._client is not None:
                response = await self._client.get(
                    self.config.userinfo_url, headers=headers, timeout=self.config.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    response = await client.get(self.config.userinfo_url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Google token verification failed: {e}")
            raise UpstreamAuthError("Unable to reach Google") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400 or not isinstance(body, dict):
            raise UpstreamAuthError("Invalid access token")
        return GoogleUser.from_payload(body)


class AuthService:
    """Signs VideoStreamPro and Google users in."""

    def __init__(
        self,
        session: AsyncSession,
        client: Optional[VideoStreamProClient] = None,
        google: Optional[GoogleAuthClient] = None,
    ) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.client = client or VideoStreamProClient()
        self.google = google or GoogleAuthClient()

    async def sign_in(self, token: str) -> Tuple[User, str]:
        """
        Exchange a VideoStreamPro token for a CampaignHub access token.

        Returns:
            The signed-in user and an access token
        """
        external = await self.client.verify_user_token(token)
        user = await self.upsert_user(external)
        await self.session.commit()
        logger.info(f"User {user.id} signed in via {AUTH_PROVIDER}")
        return user, create_access_token(user.id)

    async def google_sign_in(self, access_token: str) -> Tuple[User, str]:
        """
        Exchange a Google OAuth access token for a CampaignHub access token.

        The account with the Google e-mail signs in; a new verified account is
        created when none exists.

        Returns:
            The signed-in user and an access token
        """
        google_user = await self.google.verify_access_token(access_token)
        user = await self.users.get_by_email(google_user.email)
        if user is None:
            user = User(
                email=google_user.email,
                username=await self.unique_username(google_user.name or google_user.email.split("@")[0]),
                avatar=google_user.picture or DEFAULT_AVATAR_URL.format(seed=google_user.email),
                is_verified=True,
                auth_provider=GOOGLE_PROVIDER,
            )
            self.session.add(user)
            await self.session.flush()
            logger.info(f"Created user {user.id} from Google sign-in")
        await self.session.commit()
        logger.info(f"User {user.id} signed in via {GOOGLE_PROVIDER}")
        return user, create_access_token(user.id)

    async def upsert_user(self, external: ExternalUser) -> User:
        """Find the user by external ID, then by e-mail, or create it."""
        user = await self.users.get_by_videostreampro_id(external.external_id)
        if user is None:
            user = await self.users.get_by_email(external.email)
        if user is None:
            user = User(
                email=external.email,
                username=await self.unique_username(external.username),
                avatar=external.avatar,
            )

        user.videostreampro_id = external.external_id
        user.auth_provider = AUTH_PROVIDER
        user.is_verified = True
        if external.avatar and not user.avatar:
            user.avatar = external.avatar
        user.updated_at = utc_now()
        self.session.add(user)
        await self.session.flush()
        return user

    async def unique_username(self, wanted: str) -> str:
        base = _USERNAME_CHARS.sub("", wanted)[:56] or "user"
        if len(base) < 3:
            base = f"{base}user"
        candidate, suffix = base, 1
        while await self.users.get_by_username(candidate) is not None:
            candidate = f"{base}{suffix}"
            suffix += 1
        return candidate
