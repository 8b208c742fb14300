"""
Impression tokens.

An impression token is an HS256 JWT that names the reserved impression and
its expiry. The token proves the impression was issued by this server; the
authoritative expiry check is made against the stored impression so that a
late confirmation is reported as expired rather than as a forged token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt

from campaign_hub.core.logging_config import get_logger
from campaign_hub.server.core.config import settings

logger = get_logger(__name__)

IMPRESSION_TOKEN_TYPE = "impression"


@dataclass(frozen=True)
class ImpressionTokenData:
    impression_id: int
    expires_at: datetime


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_impression_token(impression_id: int, expires_at: datetime, secret: Optional[str] = None) -> str:
    """Sign a token for a reserved impression.

    Args:
        impression_id: ID of the reserved impression
        expires_at: Reservation expiry (naive values are taken as UTC)
        secret: Signing secret, defaults to ``JWT_SECRET``

    Returns:
        Encoded JWT
    """
    expiry = _as_utc(expires_at)
    payload = {
        "impressionId": impression_id,
        "expiresAt": expiry.isoformat(),
        "type": IMPRESSION_TOKEN_TYPE,
        "exp": int(expiry.timestamp()),
    }
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_impression_token(
    token: str, secret: Optional[str] = None, verify_exp: bool = False
) -> Optional[ImpressionTokenData]:
    """Verify and decode an impression token.

    Args:
        token: Encoded JWT
        secret: Signing secret, defaults to ``JWT_SECRET``
        verify_exp: Also reject tokens past their ``exp`` claim

    Returns:
        Decoded token data, or None when the token is forged, malformed or of another type
    """
    try:
        decoded = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected impression token: {e}")
        return None

    if decoded.get("type") != IMPRESSION_TOKEN_TYPE:
        return None
    try:
        return ImpressionTokenData(
            impression_id=int(decoded["impressionId"]),
            expires_at=datetime.fromisoformat(decoded["expiresAt"]),
        )
    except (KeyError, TypeError, ValueError):
        return None
