"""
User entity models.

Users authenticate through VideoStreamPro SSO; the local row keeps the
profile fields CampaignHub lets users edit (username, avatar, bio).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import UTC_TIMESTAMP, Base, utc_now


class User(Base, table=True):
    """Entity for platform users.

    Table: users
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    username: str = Field(max_length=64, unique=True, index=True)
    avatar: Optional[str] = Field(default=None, max_length=1024)
    bio: Optional[str] = Field(default=None, max_length=2000)
    is_verified: bool = Field(default=False)
    role: str = Field(default="user", max_length=16)

    # External identity
    videostreampro_id: Optional[str] = Field(default=None, max_length=64, unique=True, index=True)
    auth_provider: str = Field(default="videostreampro", max_length=32)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username})"
