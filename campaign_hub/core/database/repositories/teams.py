"""
Team and membership repositories.

Provides the membership queries the permission checks and the team
limits are built on.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.teams import Team, TeamMember
from ..entities.users import User
from .base import AsyncBaseRepository


class TeamRepository(AsyncBaseRepository[Team]):
    """Repository for team data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Team)

    async def list_for_user(self, user_id: int) -> List[Tuple[Team, TeamMember]]:
        """List the teams a user belongs to together with the user's membership row.

        Args:
            user_id: Member user ID

        Returns:
            ``(team, membership)`` pairs ordered by join date
        """
        stmt = (
            select(Team, TeamMember)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == user_id)
            .order_by(TeamMember.joined_at, Team.id)
        )
        result = await self.session.execute(stmt)
        return [(team, member) for team, member in result.all()]


class TeamMemberRepository(AsyncBaseRepository[TeamMember]):
    """Repository for team membership data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TeamMember)

    async def get_membership(self, team_id: int, user_id: int) -> Optional[TeamMember]:
        stmt = select(TeamMember).where((TeamMember.team_id == team_id) & (TeamMember.user_id == user_id))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_with_users(self, team_id: int) -> List[Tuple[TeamMember, User]]:
        """List the members of a team with their user rows, owner first."""
        stmt = (
            select(TeamMember, User)
            .join(User, User.id == TeamMember.user_id)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at, TeamMember.id)
        )
        result = await self.session.execute(stmt)
        return [(member, user) for member, user in result.all()]

    async def count_for_team(self, team_id: int) -> int:
        stmt = select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def count_for_user(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(TeamMember).where(TeamMember.user_id == user_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def delete_for_team(self, team_id: int) -> None:
        await self.session.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
