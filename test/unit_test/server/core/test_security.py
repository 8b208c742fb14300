"""Unit tests for access token creation and decoding."""

from datetime import timedelta

import jwt
import pytest

from campaign_hub.server.core.config import settings
from campaign_hub.server.core.security import (
    ACCESS_TOKEN_TYPE,
    create_access_token,
    decode_access_token,
)


def encode(payload: dict, secret: str | None = None) -> str:
    return jwt.encode(payload, secret or settings.auth.jwt_secret, algorithm=settings.auth.jwt_algorithm)


class TestAccessTokens:
    """Test the HS256 session tokens."""

    def test_round_trip_user_id(self):
        token = create_access_token(42)

        assert decode_access_token(token) == 42

    def test_claims(self):
        payload = jwt.decode(
            create_access_token(7, expires_delta=timedelta(minutes=5)),
            settings.auth.jwt_secret,
            algorithms=[settings.auth.jwt_algorithm],
        )

        assert payload["sub"] == "7"
        assert payload["type"] == ACCESS_TOKEN_TYPE
        assert payload["exp"] - payload["iat"] == 300

    def test_expired_token(self):
        token = create_access_token(1, expires_delta=timedelta(seconds=-10))

        assert decode_access_token(token) is None

    @pytest.mark.parametrize(
        "token",
        [
            "not-a-jwt",
            encode({"sub": "1", "type": ACCESS_TOKEN_TYPE}, secret="a-different-secret-of-sufficient-length"),
            encode({"sub": "1", "type": "refresh"}),
            encode({"type": ACCESS_TOKEN_TYPE}),
            encode({"sub": "abc", "type": ACCESS_TOKEN_TYPE}),
        ],
        ids=["garbage", "wrong-secret", "wrong-type", "no-subject", "non-numeric-subject"],
    )
    def test_rejected_tokens(self, token):
        assert decode_access_token(token) is None
