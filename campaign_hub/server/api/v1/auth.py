"""
Authentication Endpoints.

Single sign-on with VideoStreamPro or Google: a player or dashboard exchanges the
provider token for a CampaignHub bearer token.
"""

from fastapi import APIRouter, status

from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.io.auth import (
    AuthTokenResponse,
    GoogleLoginRequest,
    LogoutResponse,
    SSOLoginRequest,
    UserRead,
)
from campaign_hub.server.services.auth import AuthService
from campaign_hub.server.services.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/sso",
    response_model=AuthTokenResponse,
    summary="Sign In with VideoStreamPro",
    description="Verify a VideoStreamPro token, create or link the local user and issue an access token.",
    response_description="Bearer token and the signed-in user.",
    responses={
        200: {"description": "Signed in"},
        401: {"description": "VideoStreamPro rejected the token"},
    },
)
async def sso_login(body: SSOLoginRequest, session: SessionDep) -> AuthTokenResponse:
    """
    Exchange a VideoStreamPro verification token for a session.

    The user is matched by VideoStreamPro ID first, then by e-mail; a new
    account is created otherwise. A clashing username gets a numeric suffix.
    """
    user, token = await AuthService(session).sign_in(body.token)
    return AuthTokenResponse(access_token=token, user=UserRead.model_validate(user))


@router.post(
    "/google",
    response_model=AuthTokenResponse,
    summary="Sign In with Google",
    description="Verify a Google OAuth access token, find or create the user by e-mail and issue an access token.",
    response_description="Bearer token and the signed-in user.",
    responses={
        200: {"description": "Signed in"},
        401: {"description": "Google rejected the access token"},
    },
)
async def google_login(body: GoogleLoginRequest, session: SessionDep) -> AuthTokenResponse:
    user, token = await AuthService(session).google_sign_in(body.access_token)
    return AuthTokenResponse(access_token=token, user=UserRead.model_validate(user))


@router.get(
    "/me",
    response_model=UserRead,
    summary="Current User",
    description="Return the user behind the bearer token.",
    responses={401: {"description": "Missing or invalid token"}},
)
async def me(user: CurrentUser) -> UserRead:
    return UserRead.model_validate(user)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Log Out",
    description="Sessions are stateless; the client discards its token.",
)
async def logout(user: CurrentUser) -> LogoutResponse:
    logger.info(f"User {user.id} logged out")
    return LogoutResponse()
