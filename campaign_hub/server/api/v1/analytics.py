"""
Analytics Endpoints.

Reports over confirmed impressions. Every endpoint requires ``view_analytics``.
"""

from fastapi import APIRouter, Depends

from campaign_hub.core.models.domain import Permission
from campaign_hub.core.models.io.analytics import AdAnalytics, CampaignAnalytics, TeamAnalytics
from campaign_hub.server.services.analytics import AnalyticsService
from campaign_hub.server.services.deps import SessionDep, TeamContextDep, require_team_permission

router = APIRouter(tags=["analytics"], dependencies=[Depends(require_team_permission(Permission.view_analytics))])


@router.get(
    "/{team_id}/analytics",
    response_model=TeamAnalytics,
    summary="Team Analytics",
    description="Campaign totals, top campaigns and ads, and confirmed impressions per day for the last 30 days.",
)
async def team_analytics(context: TeamContextDep, session: SessionDep) -> TeamAnalytics:
    return await AnalyticsService(session).team(context)


@router.get(
    "/{team_id}/campaigns/{campaign_id}/analytics",
    response_model=CampaignAnalytics,
    summary="Campaign Analytics",
)
async def campaign_analytics(campaign_id: int, context: TeamContextDep, session: SessionDep) -> CampaignAnalytics:
    return await AnalyticsService(session).campaign(context, campaign_id)


@router.get(
    "/{team_id}/campaigns/{campaign_id}/ads/{ad_id}/analytics",
    response_model=AdAnalytics,
    summary="Ad Analytics",
)
async def ad_analytics(campaign_id: int, ad_id: int, context: TeamContextDep, session: SessionDep) -> AdAnalytics:
    return await AnalyticsService(session).ad(context, campaign_id, ad_id)
