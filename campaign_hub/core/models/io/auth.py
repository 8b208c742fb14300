"""
Authentication and user I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SSOLoginRequest(BaseModel):
    """Schema for exchanging a VideoStreamPro verification token for a session."""

    token: str = Field(min_length=1, description="Verification token issued by VideoStreamPro")


class GoogleLoginRequest(BaseModel):
    """Schema for exchanging a Google OAuth access token for a session."""

    access_token: str = Field(min_length=1, description="OAuth access token issued by Google")


class UserRead(BaseModel):
    """Schema for reading the authenticated user."""

    id: int
    email: str
    username: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    is_verified: bool
    role: str
    auth_provider: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuthTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class UserProfileUpdate(BaseModel):
    """Schema for updating the caller's profile."""

    username: Optional[str] = Field(default=None, min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    avatar: Optional[str] = Field(default=None, max_length=1024)
    bio: Optional[str] = Field(default=None, max_length=2000)


class PublicProfileRead(BaseModel):
    """Public view of a user profile."""

    id: int
    username: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
