"""
Campaign Endpoints.

Campaigns belong to a team and are funded from the creating user's wallet.
All amounts are integer cents.
"""

from typing import List, Optional

from fastapi import APIRouter, status

from campaign_hub.core.models.domain import CampaignStatus
from campaign_hub.core.models.io.campaigns import (
    CampaignCreate,
    CampaignDeleteResult,
    CampaignRead,
    CampaignUpdate,
)
from campaign_hub.server.services.campaigns import CampaignService
from campaign_hub.server.services.deps import CurrentUser, SessionDep, TeamContextDep

router = APIRouter(tags=["campaigns"])


@router.post(
    "/{team_id}/campaigns",
    response_model=CampaignRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Campaign",
    description="Create a campaign and debit its budget from the caller's wallet.",
    responses={
        201: {"description": "Campaign created and funded"},
        400: {"description": "Insufficient funds or invalid dates"},
        403: {"description": "Missing create_campaign"},
    },
)
async def create_campaign(
    body: CampaignCreate, context: TeamContextDep, user: CurrentUser, session: SessionDep
) -> CampaignRead:
    """
    Create a campaign.

    - **budget_cents**: Debited from the caller's wallet in the same transaction.
    - **start_date**: Optional, not before today (UTC).
    - **end_date**: Optional, after the start date (or after now).
    """
    service = CampaignService(session)
    campaign = await service.create(context, user.id, body)
    return await service.to_read(campaign)


@router.get(
    "/{team_id}/campaigns",
    response_model=List[CampaignRead],
    summary="List Campaigns",
    description="Campaigns of the team with their budget summary, optionally filtered by status.",
)
async def list_campaigns(
    context: TeamContextDep, session: SessionDep, status: Optional[CampaignStatus] = None
) -> List[CampaignRead]:
    service = CampaignService(session)
    return [await service.to_read(c) for c in await service.list(context, status)]


@router.get(
    "/{team_id}/campaigns/{campaign_id}",
    response_model=CampaignRead,
    summary="Get Campaign",
    responses={404: {"description": "Campaign not found in this team"}},
)
async def get_campaign(campaign_id: int, context: TeamContextDep, session: SessionDep) -> CampaignRead:
    return await CampaignService(session).read(context, campaign_id)


@router.put(
    "/{team_id}/campaigns/{campaign_id}",
    response_model=CampaignRead,
    summary="Update Campaign",
    description="Update a campaign. Budget changes are settled with the creator's wallet.",
    responses={
        400: {"description": "Budget below the committed amount, terminal status or invalid dates"},
        403: {"description": "Missing edit_campaign"},
        404: {"description": "Campaign not found in this team"},
    },
)
async def update_campaign(
    campaign_id: int, body: CampaignUpdate, context: TeamContextDep, session: SessionDep
) -> CampaignRead:
    """
    Update a campaign.

    The budget cannot go below what is committed: the budgets of ads with their
    own budget plus what pool ads already spent. Raising it debits the
    difference from the creator's wallet; lowering it credits it back.
    """
    service = CampaignService(session)
    return await service.to_read(await service.update(context, campaign_id, body))


@router.delete(
    "/{team_id}/campaigns/{campaign_id}",
    response_model=CampaignDeleteResult,
    summary="Delete Campaign",
    description="Delete a campaign with its ads and impressions, refunding the unspent budget.",
    responses={403: {"description": "Missing delete_campaign"}, 404: {"description": "Campaign not found"}},
)
async def delete_campaign(campaign_id: int, context: TeamContextDep, session: SessionDep) -> CampaignDeleteResult:
    refunded = await CampaignService(session).delete(context, campaign_id)
    return CampaignDeleteResult(refunded_cents=refunded)
