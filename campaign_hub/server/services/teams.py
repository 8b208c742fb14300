"""
Team Service.

Team lifecycle, membership management and permission resolution.

Effective permissions of a member:

- owner: every permission
- admin: the stored permissions plus ``manage_team``
- member, viewer: the stored permissions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Team, TeamMember, User
from campaign_hub.core.database.repositories import (
    CampaignRepository,
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)
from campaign_hub.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import Permission, TeamRole
from campaign_hub.core.models.io.teams import (
    MemberInvite,
    MemberUpdate,
    TeamCreate,
    TeamMemberRead,
    TeamStatsRead,
    TeamUpdate,
)
from campaign_hub.server.core.config import settings

logger = get_logger(__name__)

ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

DEFAULT_ROLE_PERMISSIONS = {
    TeamRole.admin: (
        Permission.view_campaign,
        Permission.create_campaign,
        Permission.edit_campaign,
        Permission.view_ad,
        Permission.create_ad,
        Permission.edit_ad,
        Permission.view_analytics,
    ),
    TeamRole.member: (
        Permission.view_campaign,
        Permission.view_ad,
        Permission.create_ad,
        Permission.edit_ad,
    ),
    TeamRole.viewer: (
        Permission.view_campaign,
        Permission.view_ad,
        Permission.view_analytics,
    ),
}


def effective_permissions(role: str, stored: Iterable[str]) -> FrozenSet[Permission]:
    """Resolve the permissions a member actually holds."""
    role = TeamRole(role)
    if role is TeamRole.owner:
        return ALL_PERMISSIONS
    granted = {Permission(p) for p in stored if p in Permission._value2member_map_}
    if role is TeamRole.admin:
        granted.add(Permission.manage_team)
    return frozenset(granted)


def sorted_permissions(permissions: Iterable[Permission]) -> List[Permission]:
    order = list(Permission)
    return sorted(permissions, key=order.index)


@dataclass(frozen=True)
class TeamContext:
    """A team as accessed by one of its members."""

    team: Team
    membership: TeamMember
    permissions: FrozenSet[Permission]

    @property
    def role(self) -> TeamRole:
        return TeamRole(self.membership.role)

    @property
    def is_owner(self) -> bool:
        return self.role is TeamRole.owner

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    def require(self, permission: Permission) -> None:
        if permission not in self.permissions:
            raise PermissionDeniedError("Insufficient permissions", {"required_permission": permission.value})


class TeamService:
    """Teams, memberships and permission checks."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.teams = TeamRepository(session)
        self.members = TeamMemberRepository(session)
        self.users = UserRepository(session)
        self.campaigns = CampaignRepository(session)
        limits = settings.team_limits
        self.max_teams_per_user = limits.max_teams_per_user
        self.max_members_per_team = limits.max_members_per_team

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    async def get_context(self, team_id: int, user_id: int) -> TeamContext:
        """
        Resolve a user's access to a team.

        Raises:
            NotFoundError: The team does not exist
            PermissionDeniedError: The user is not a member
        """
        team = await self.teams.get_by_id(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        membership = await self.members.get_membership(team_id, user_id)
        if membership is None:
            raise PermissionDeniedError("You are not a member of this team")
        return TeamContext(
            team=team,
            membership=membership,
            permissions=effective_permissions(membership.role, membership.permissions),
        )

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def create_team(self, owner: User, data: TeamCreate) -> Team:
        """Create a team and make its creator the owner."""
        await self._ensure_can_join(owner.id)
        team = await self.teams.create(
            Team(name=data.name, description=data.description, avatar=data.avatar, owner_id=owner.id)
        )
        await self.members.create(TeamMember(team_id=team.id, user_id=owner.id, role=TeamRole.owner.value, permissions=[]))
        await self.session.commit()
        logger.info(f"User {owner.id} created team {team.id}")
        return team

    async def list_user_teams(self, user_id: int) -> List[Tuple[Team, TeamMember, int]]:
        """The user's teams with the user's membership and each team's member count."""
        rows = await self.teams.list_for_user(user_id)
        return [(team, member, await self.members.count_for_team(team.id)) for team, member in rows]

    async def stats(self, user_id: int) -> TeamStatsRead:
        rows = await self.teams.list_for_user(user_id)
        owned = sum(1 for _, member in rows if member.role == TeamRole.owner.value)
        return TeamStatsRead(
            total_teams=len(rows),
            owned_teams=owned,
            member_teams=len(rows) - owned,
            max_teams=self.max_teams_per_user,
        )

    async def update_team(self, context: TeamContext, data: TeamUpdate) -> Team:
        context.require(Permission.manage_team)
        team = context.team
        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "name" and value is None:
                continue
            setattr(team, key, value)
        team.updated_at = utc_now()
        await self.teams.update(team)
        await self.session.commit()
        return team

    async def delete_team(self, context: TeamContext, campaign_service) -> int:
        """
        Delete a team, refunding each campaign's unspent budget to its creator.

        Args:
            context: Caller's access to the team (must be the owner)
            campaign_service: CampaignService bound to the same session

        Returns:
            Total cents refunded
        """
        if not context.is_owner:
            raise PermissionDeniedError("Only the team owner can delete the team")
        refunded = 0
        for campaign in await self.campaigns.list_for_team(context.team.id):
            refunded += await campaign_service.remove_campaign(campaign)
        await self.members.delete_for_team(context.team.id)
        await self.session.delete(context.team)
        await self.session.commit()
        logger.info(f"Team {context.team.id} deleted, refunded {refunded} cents")
        return refunded

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def list_members(self, context: TeamContext) -> List[TeamMemberRead]:
        return [self._member_read(member, user) for member, user in await self.members.list_with_users(context.team.id)]

    async def invite_member(self, context: TeamContext, data: MemberInvite) -> TeamMemberRead:
        """
        Add an existing user to the team by e-mail.

        Raises:
            NotFoundError: No user has that e-mail
            ConflictError: The user is already a member
            ValidationFailedError: The team is full or the user reached the team limit
        """
        context.require(Permission.manage_team)
        user = await self.users.get_by_email(data.email.strip())
        if user is None:
            raise NotFoundError("User not found")
        if await self.members.get_membership(context.team.id, user.id) is not None:
            raise ConflictError("User is already a member of this team")
        if await self.members.count_for_team(context.team.id) >= self.max_members_per_team:
            raise ValidationFailedError(f"Team has reached the maximum of {self.max_members_per_team} members")
        await self._ensure_can_join(user.id)

        role = TeamRole(data.role.value)
        permissions = data.permissions if data.permissions is not None else DEFAULT_ROLE_PERMISSIONS[role]
        member = await self.members.create(
            TeamMember(
                team_id=context.team.id,
                user_id=user.id,
                role=role.value,
                permissions=[p.value for p in sorted_permissions(set(permissions))],
            )
        )
        await self.session.commit()
        logger.info(f"User {user.id} added to team {context.team.id} as {role.value}")
        return self._member_read(member, user)

    async def update_member(self, context: TeamContext, user_id: int, data: MemberUpdate) -> TeamMemberRead:
        context.require(Permission.manage_team)
        member, user = await self._get_member(context.team.id, user_id)
        if member.role == TeamRole.owner.value:
            raise PermissionDeniedError("Cannot modify the team owner")
        if data.role is not None:
            member.role = data.role.value
        if data.permissions is not None:
            member.permissions = [p.value for p in sorted_permissions(set(data.permissions))]
        await self.members.update(member)
        await self.session.commit()
        return self._member_read(member, user)

    async def remove_member(self, context: TeamContext, user_id: int) -> None:
        context.require(Permission.manage_team)
        member, _ = await self._get_member(context.team.id, user_id)
        if member.role == TeamRole.owner.value:
            raise PermissionDeniedError("Cannot remove the team owner")
        await self.session.delete(member)
        await self.session.commit()
        logger.info(f"User {user_id} removed from team {context.team.id}")

    async def leave_team(self, context: TeamContext) -> None:
        if context.is_owner:
            raise ValidationFailedError("The team owner cannot leave the team; delete it instead")
        await self.session.delete(context.membership)
        await self.session.commit()

    async def member_permissions(self, context: TeamContext, user_id: int) -> Tuple[TeamMember, FrozenSet[Permission]]:
        member, _ = await self._get_member(context.team.id, user_id)
        return member, effective_permissions(member.role, member.permissions)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_can_join(self, user_id: int) -> None:
        if await self.members.count_for_user(user_id) >= self.max_teams_per_user:
            raise ValidationFailedError(f"User has reached the maximum of {self.max_teams_per_user} teams")

    async def _get_member(self, team_id: int, user_id: int) -> Tuple[TeamMember, User]:
        member = await self.members.get_membership(team_id, user_id)
        user: Optional[User] = await self.users.get_by_id(user_id) if member is not None else None
        if member is None or user is None:
            raise NotFoundError("Team member not found")
        return member, user

    @staticmethod
    def _member_read(member: TeamMember, user: User) -> TeamMemberRead:
        return TeamMemberRead(
            user_id=user.id,
            username=user.username,
            email=user.email,
            avatar=user.avatar,
            role=TeamRole(member.role),
            permissions=sorted_permissions(effective_permissions(member.role, member.permissions)),
            joined_at=member.joined_at,
        )
