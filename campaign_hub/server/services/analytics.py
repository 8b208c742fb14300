"""
Analytics Service.

Reporting over confirmed impressions for a team, one campaign or one ad.
Per-day series cover the last ``ANALYTICS_DAYS`` days (UTC), oldest first,
with zero-filled days.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Ad, Campaign
from campaign_hub.core.database.repositories import (
    AdRepository,
    CampaignRepository,
    ImpressionRepository,
    WalletRepository,
)
from campaign_hub.core.errors import NotFoundError
from campaign_hub.core.models.domain import CampaignStatus, Permission
from campaign_hub.core.models.io.analytics import (
    AdAnalytics,
    AdSummary,
    CampaignAnalytics,
    CampaignSummary,
    DailyImpressions,
    TeamAnalytics,
)
from campaign_hub.serving.constants import BUDGET_THRESHOLDS

from .teams import TeamContext

ANALYTICS_DAYS = 30
TEAM_TOP_LIMIT = 3
CAMPAIGN_TOP_ADS_LIMIT = 5


def daily_series(
    timestamps: Iterable[datetime], days: int = ANALYTICS_DAYS, today: Optional[date] = None
) -> List[DailyImpressions]:
    today = today or utc_now().date()
    counts = Counter(ts.date() for ts in timestamps)
    days_covered = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    return [DailyImpressions(date=day, impressions=counts.get(day, 0)) for day in days_covered]


def is_low_budget(budget_cents: int, remaining_cents: int) -> bool:
    if budget_cents <= 0:
        return False
    return remaining_cents / budget_cents < BUDGET_THRESHOLDS["LOW_BUDGET_PERCENT"]


class AnalyticsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.campaigns = CampaignRepository(session)
        self.ads = AdRepository(session)
        self.impressions = ImpressionRepository(session)
        self.wallets = WalletRepository(session)

    def _since(self) -> datetime:
        today = utc_now().date()
        return datetime.combine(today - timedelta(days=ANALYTICS_DAYS - 1), datetime.min.time())

    async def _ad_summaries(self, ranked: Sequence[tuple]) -> List[AdSummary]:
        summaries = []
        for ad_id, count in ranked:
            ad: Optional[Ad] = await self.ads.get_by_id(ad_id)
            if ad is not None:
                summaries.append(
                    AdSummary(
                        id=ad.id,
                        title=ad.title,
                        campaign_id=ad.campaign_id,
                        impressions=count,
                        spent_cents=ad.spent_cents,
                    )
                )
        return summaries

    async def team(self, context: TeamContext) -> TeamAnalytics:
        context.require(Permission.view_analytics)
        campaigns = await self.campaigns.list_for_team(context.team.id)
        by_id: Dict[int, Campaign] = {c.id: c for c in campaigns}
        campaign_ids = list(by_id)

        total_impressions, _ = await self.impressions.count_confirmed(campaign_ids=campaign_ids)
        top_campaigns = [
            CampaignSummary(
                id=cid,
                name=by_id[cid].name,
                status=by_id[cid].status,
                impressions=count,
                spent_cents=by_id[cid].spent_cents,
            )
            for cid, count in await self.impressions.top_campaigns(campaign_ids, TEAM_TOP_LIMIT)
        ]
        wallet = await self.wallets.get_by_user(context.team.owner_id)

        return TeamAnalytics(
            team_id=context.team.id,
            total_campaigns=len(campaigns),
            active_campaigns=sum(1 for c in campaigns if c.status == CampaignStatus.active.value),
            total_budget_cents=sum(c.budget_cents for c in campaigns),
            total_spent_cents=sum(c.spent_cents for c in campaigns),
            available_budget_cents=wallet.balance_cents if wallet else 0,
            total_impressions=total_impressions,
            top_campaigns=top_campaigns,
            top_ads=await self._ad_summaries(await self.impressions.top_ads(campaign_ids, TEAM_TOP_LIMIT)),
            impressions_by_day=daily_series(
                await self.impressions.confirmed_since(self._since(), campaign_ids=campaign_ids)
            ),
        )

    async def campaign(self, context: TeamContext, campaign_id: int) -> CampaignAnalytics:
        context.require(Permission.view_analytics)
        campaign = await self.campaigns.get_for_team(context.team.id, campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")

        remaining = max(0, campaign.budget_cents - campaign.spent_cents)
        totals = await self.ads.budget_totals(campaign.id)
        total_impressions, _ = await self.impressions.count_confirmed(campaign_ids=[campaign.id])
        return CampaignAnalytics(
            campaign_id=campaign.id,
            name=campaign.name,
            status=campaign.status,
            budget_cents=campaign.budget_cents,
            spent_cents=campaign.spent_cents,
            remaining_cents=remaining,
            is_low_budget=is_low_budget(campaign.budget_cents, remaining),
            total_ads=totals.ad_count,
            total_impressions=total_impressions,
            top_ads=await self._ad_summaries(await self.impressions.top_ads([campaign.id], CAMPAIGN_TOP_ADS_LIMIT)),
            impressions_by_day=daily_series(
                await self.impressions.confirmed_since(self._since(), campaign_ids=[campaign.id])
            ),
        )

    async def ad(self, context: TeamContext, campaign_id: int, ad_id: int) -> AdAnalytics:
        context.require(Permission.view_analytics)
        campaign = await self.campaigns.get_for_team(context.team.id, campaign_id)
        ad = await self.ads.get_in_campaign(campaign_id, ad_id) if campaign is not None else None
        if ad is None:
            raise NotFoundError("Ad not found")

        total_impressions, total_cost = await self.impressions.count_confirmed(ad_id=ad.id)
        return AdAnalytics(
            ad_id=ad.id,
            campaign_id=ad.campaign_id,
            title=ad.title,
            total_impressions=total_impressions,
            total_cost_cents=total_cost,
            by_action=await self.impressions.count_by("action", ad.id),
            by_device=await self.impressions.count_by("device_type", ad.id),
            impressions_by_day=daily_series(await self.impressions.confirmed_since(self._since(), ad_id=ad.id)),
        )
