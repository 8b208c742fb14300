"""
Ad Endpoints.

Ads are managed inside a campaign; ``GET /{team_id}/ads`` lists every ad of
the team. An ad without ``budget_cents`` spends from the campaign's pool.
"""

from typing import List, Optional

from fastapi import APIRouter, status

from campaign_hub.core.models.domain import AdStatus
from campaign_hub.core.models.io.ads import AdBudgetInfo, AdCreate, AdDeleteResult, AdRead, AdUpdate
from campaign_hub.server.services.ads import AdService
from campaign_hub.server.services.deps import CurrentUser, SessionDep, TeamContextDep

router = APIRouter(tags=["ads"])


@router.get(
    "/{team_id}/ads",
    response_model=List[AdRead],
    summary="List Team Ads",
    description="Every ad in the team's campaigns, optionally filtered by status.",
)
async def list_team_ads(
    context: TeamContextDep, session: SessionDep, status: Optional[AdStatus] = None
) -> List[AdRead]:
    return [AdRead.model_validate(ad) for ad in await AdService(session).list_team_ads(context, status)]


@router.get(
    "/{team_id}/campaigns/{campaign_id}/ads/budget-info",
    response_model=AdBudgetInfo,
    summary="Ad Budget Info",
    description="How much of the campaign budget is still available for new ad budgets.",
)
async def ad_budget_info(campaign_id: int, context: TeamContextDep, session: SessionDep) -> AdBudgetInfo:
    return await AdService(session).budget_info(context, campaign_id)


@router.post(
    "/{team_id}/campaigns/{campaign_id}/ads",
    response_model=AdRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Ad",
    responses={
        400: {"description": "Budget exceeds what the campaign has available; body carries budget_info"},
        403: {"description": "Missing create_ad"},
        404: {"description": "Campaign not found in this team"},
    },
)
async def create_ad(
    campaign_id: int, body: AdCreate, context: TeamContextDep, user: CurrentUser, session: SessionDep
) -> AdRead:
    """
    Create an ad.

    - **categories**: At least one category, used for matching against videos.
    - **budget_cents**: Optional; omit it to spend from the campaign pool.
    """
    return AdRead.model_validate(await AdService(session).create(context, user.id, campaign_id, body))


@router.get(
    "/{team_id}/campaigns/{campaign_id}/ads",
    response_model=List[AdRead],
    summary="List Campaign Ads",
)
async def list_campaign_ads(
    campaign_id: int, context: TeamContextDep, session: SessionDep, status: Optional[AdStatus] = None
) -> List[AdRead]:
    ads = await AdService(session).list_campaign_ads(context, campaign_id, status)
    return [AdRead.model_validate(ad) for ad in ads]


@router.get(
    "/{team_id}/campaigns/{campaign_id}/ads/{ad_id}",
    response_model=AdRead,
    summary="Get Ad",
    responses={404: {"description": "Ad not found in this campaign"}},
)
async def get_ad(campaign_id: int, ad_id: int, context: TeamContextDep, session: SessionDep) -> AdRead:
    return AdRead.model_validate(await AdService(session).get(context, campaign_id, ad_id))


@router.put(
    "/{team_id}/campaigns/{campaign_id}/ads/{ad_id}",
    response_model=AdRead,
    summary="Update Ad",
    description="Update an ad. Send ``budget_cents: null`` to move it to the campaign pool.",
    responses={400: {"description": "Budget does not fit the campaign"}},
)
async def update_ad(
    campaign_id: int, ad_id: int, body: AdUpdate, context: TeamContextDep, session: SessionDep
) -> AdRead:
    return AdRead.model_validate(await AdService(session).update(context, campaign_id, ad_id, body))


@router.delete(
    "/{team_id}/campaigns/{campaign_id}/ads/{ad_id}",
    response_model=AdDeleteResult,
    summary="Delete Ad",
    description="Delete an ad and its impressions; its unspent budget returns to the campaign pool.",
)
async def delete_ad(campaign_id: int, ad_id: int, context: TeamContextDep, session: SessionDep) -> AdDeleteResult:
    released = await AdService(session).delete(context, campaign_id, ad_id)
    return AdDeleteResult(released_budget_cents=released)
