"""
Team entity models.

A team owns campaigns. Membership rows carry a role and an explicit
permission list; effective permissions are resolved by the team service.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from ..base import UTC_TIMESTAMP, Base, utc_now


class Team(Base, table=True):
    """Entity for teams.

    Table: teams
    """

    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=1024)
    owner_id: int = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"Team(id={self.id}, name={self.name}, owner_id={self.owner_id})"


class TeamMember(Base, table=True):
    """Entity for team memberships.

    Table: team_members
    """

    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    role: str = Field(default="member", max_length=16)
    permissions: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    joined_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"TeamMember(team_id={self.team_id}, user_id={self.user_id}, role={self.role})"
