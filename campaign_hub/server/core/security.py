"""
Session token handling.

CampaignHub issues its own HS256 access tokens once a VideoStreamPro
verification token has been exchanged. Sessions are stateless: logging out
is the client discarding its token.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from campaign_hub.core.logging_config import get_logger

from .config import settings

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: ID of the authenticated user (stored as ``sub``)
        expires_delta: Custom lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    auth = settings.auth
    now = datetime.now(tz=timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=auth.access_token_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_access_token(token: str) -> Optional[int]:
    """
    Decode an access token.

    Args:
        token: Encoded JWT

    Returns:
        The user ID, or None when the token is invalid, expired or not an access token
    """
    auth = settings.auth
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.PyJWTError as e:
        logger.debug(f"Invalid access token: {e}")
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
