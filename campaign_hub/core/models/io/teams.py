"""
Team and membership I/O models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from campaign_hub.core.models.domain import Permission, TeamRole


class InviteRole(str, Enum):
    """Roles that can be granted through an invitation (ownership is never granted)."""

    admin = TeamRole.admin.value
    member = TeamRole.member.value
    viewer = TeamRole.viewer.value


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=1024)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=1024)


class TeamRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    avatar: Optional[str] = None
    owner_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserTeamRead(TeamRead):
    """A team as seen by one of its members."""

    role: TeamRole
    permissions: List[Permission]
    member_count: int


class TeamStatsRead(BaseModel):
    total_teams: int
    owned_teams: int
    member_teams: int
    max_teams: int


class MemberInvite(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: InviteRole = InviteRole.member
    permissions: Optional[List[Permission]] = Field(
        default=None, description="Explicit permissions; role defaults apply when omitted"
    )


class MemberUpdate(BaseModel):
    role: Optional[InviteRole] = None
    permissions: Optional[List[Permission]] = None


class TeamMemberRead(BaseModel):
    user_id: int
    username: str
    email: str
    avatar: Optional[str] = None
    role: TeamRole
    permissions: List[Permission] = Field(description="Effective permissions")
    joined_at: datetime


class PermissionCheckRead(BaseModel):
    team_id: int
    user_id: int
    role: TeamRole
    permissions: List[Permission]
    has_permission: Optional[bool] = Field(default=None, description="Set when a permission was queried")


class WalletBalanceRead(BaseModel):
    balance_cents: int
    currency: str
