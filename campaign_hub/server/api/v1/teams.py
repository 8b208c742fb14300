"""
Team Endpoints.

Teams group users around shared campaigns. Every team endpoint except
creation, listing and stats requires the caller to be a member; management
operations additionally require ``manage_team`` and deleting the team is
reserved to its owner.
"""

from typing import List, Optional

from fastapi import APIRouter, status

from campaign_hub.core.models.domain import Permission
from campaign_hub.core.models.io.teams import (
    MemberInvite,
    MemberUpdate,
    PermissionCheckRead,
    TeamCreate,
    TeamMemberRead,
    TeamRead,
    TeamStatsRead,
    TeamUpdate,
    UserTeamRead,
    WalletBalanceRead,
)
from campaign_hub.server.services.campaigns import CampaignService
from campaign_hub.server.services.deps import CurrentUser, SessionDep, TeamContextDep
from campaign_hub.server.services.teams import TeamService, effective_permissions, sorted_permissions
from campaign_hub.server.services.wallet import WalletService

router = APIRouter(tags=["teams"])


@router.post(
    "",
    response_model=TeamRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Team",
    description="Create a team owned by the caller.",
    responses={400: {"description": "The caller already belongs to the maximum number of teams"}},
)
async def create_team(body: TeamCreate, user: CurrentUser, session: SessionDep) -> TeamRead:
    return TeamRead.model_validate(await TeamService(session).create_team(user, body))


@router.get(
    "/user-teams",
    response_model=List[UserTeamRead],
    summary="List My Teams",
    description="Teams the caller belongs to, with the caller's role, effective permissions and member count.",
)
async def list_user_teams(user: CurrentUser, session: SessionDep) -> List[UserTeamRead]:
    rows = await TeamService(session).list_user_teams(user.id)
    return [
        UserTeamRead(
            **TeamRead.model_validate(team).model_dump(),
            role=member.role,
            permissions=sorted_permissions(effective_permissions(member.role, member.permissions)),
            member_count=count,
        )
        for team, member, count in rows
    ]


@router.get("/stats", response_model=TeamStatsRead, summary="Team Stats")
async def team_stats(user: CurrentUser, session: SessionDep) -> TeamStatsRead:
    return await TeamService(session).stats(user.id)


@router.get(
    "/{team_id}",
    response_model=TeamRead,
    summary="Get Team",
    responses={403: {"description": "Not a member"}, 404: {"description": "Team not found"}},
)
async def get_team(context: TeamContextDep) -> TeamRead:
    return TeamRead.model_validate(context.team)


@router.put(
    "/{team_id}",
    response_model=TeamRead,
    summary="Update Team",
    responses={403: {"description": "Missing manage_team"}},
)
async def update_team(body: TeamUpdate, context: TeamContextDep, session: SessionDep) -> TeamRead:
    return TeamRead.model_validate(await TeamService(session).update_team(context, body))


@router.delete(
    "/{team_id}",
    summary="Delete Team",
    description="Delete the team and all of its campaigns, refunding unspent budgets to their creators.",
    responses={403: {"description": "Only the owner can delete a team"}},
)
async def delete_team(context: TeamContextDep, session: SessionDep):
    refunded = await TeamService(session).delete_team(context, CampaignService(session))
    return {"success": True, "refunded_cents": refunded}


@router.get(
    "/{team_id}/members",
    response_model=List[TeamMemberRead],
    summary="List Members",
)
async def list_members(context: TeamContextDep, session: SessionDep) -> List[TeamMemberRead]:
    return await TeamService(session).list_members(context)


@router.post(
    "/{team_id}/members",
    response_model=TeamMemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Invite Member",
    description="Add an existing user by e-mail. Role defaults grant permissions when none are given.",
    responses={
        400: {"description": "Team full or the user reached the team limit"},
        403: {"description": "Missing manage_team"},
        404: {"description": "No user with that e-mail"},
        409: {"description": "Already a member"},
    },
)
async def invite_member(body: MemberInvite, context: TeamContextDep, session: SessionDep) -> TeamMemberRead:
    return await TeamService(session).invite_member(context, body)


@router.put(
    "/{team_id}/members/{user_id}",
    response_model=TeamMemberRead,
    summary="Update Member",
    responses={403: {"description": "Missing manage_team or target is the owner"}},
)
async def update_member(
    user_id: int, body: MemberUpdate, context: TeamContextDep, session: SessionDep
) -> TeamMemberRead:
    return await TeamService(session).update_member(context, user_id, body)


@router.delete(
    "/{team_id}/members/{user_id}",
    summary="Remove Member",
    responses={403: {"description": "Missing manage_team or target is the owner"}},
)
async def remove_member(user_id: int, context: TeamContextDep, session: SessionDep):
    await TeamService(session).remove_member(context, user_id)
    return {"success": True, "message": "Member removed"}


@router.delete(
    "/{team_id}/leave",
    summary="Leave Team",
    responses={400: {"description": "The owner cannot leave"}},
)
async def leave_team(context: TeamContextDep, session: SessionDep):
    await TeamService(session).leave_team(context)
    return {"success": True, "message": "Left team"}


@router.get(
    "/{team_id}/permissions/{user_id}",
    response_model=PermissionCheckRead,
    summary="Check Permissions",
    description="Effective permissions of a member, optionally checking one permission.",
)
async def check_permissions(
    user_id: int,
    context: TeamContextDep,
    session: SessionDep,
    permission: Optional[Permission] = None,
) -> PermissionCheckRead:
    member, permissions = await TeamService(session).member_permissions(context, user_id)
    return PermissionCheckRead(
        team_id=context.team.id,
        user_id=user_id,
        role=member.role,
        permissions=sorted_permissions(permissions),
        has_permission=(permission in permissions) if permission is not None else None,
    )


@router.get(
    "/{team_id}/wallet-balance",
    response_model=WalletBalanceRead,
    summary="Team Wallet Balance",
    description="Balance of the team owner's wallet, which funds the team's campaigns.",
)
async def team_wallet_balance(context: TeamContextDep, session: SessionDep) -> WalletBalanceRead:
    wallet = await WalletService(session).get_or_create(context.team.owner_id)
    await session.commit()
    return WalletBalanceRead(balance_cents=wallet.balance_cents, currency=wallet.currency)
