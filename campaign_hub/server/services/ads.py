"""
Ad Service.

Ads live inside a campaign. An ad either carries its own budget, carved out
of the campaign's unallocated pool, or leaves ``budget_cents`` unset and
spends from the pool directly.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Ad, Campaign
from campaign_hub.core.database.repositories import AdRepository, CampaignRepository, ImpressionRepository
from campaign_hub.core.errors import BudgetExceededError, NotFoundError
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import AdStatus, Permission
from campaign_hub.core.models.io.ads import AdBudgetInfo, AdCreate, AdUpdate
from campaign_hub.serving.budget import AdBudget, CampaignLedger, validate_ad_budget

from .teams import TeamContext

logger = get_logger(__name__)


class AdService:
    """Team-scoped ad management."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.campaigns = CampaignRepository(session)
        self.ads = AdRepository(session)
        self.impressions = ImpressionRepository(session)

    async def _campaign(self, context: TeamContext, campaign_id: int, for_update: bool = False) -> Campaign:
        campaign = await self.campaigns.get_for_team(context.team.id, campaign_id, for_update=for_update)
        if campaign is None:
            raise NotFoundError("Campaign not found")
        return campaign

    async def _ad(self, campaign_id: int, ad_id: int, for_update: bool = False) -> Ad:
        ad = await self.ads.get_in_campaign(campaign_id, ad_id)
        if ad is not None and for_update:
            ad = await self.ads.get_by_id(ad_id, for_update=True)
        if ad is None:
            raise NotFoundError("Ad not found")
        return ad

    @staticmethod
    def _check_budget(ledger: CampaignLedger, requested: Optional[int], current: Optional[AdBudget] = None) -> None:
        check = validate_ad_budget(ledger, requested, current)
        if not check.is_valid:
            raise BudgetExceededError(check.error, {"budget_info": check.as_dict(requested)})

    async def list_team_ads(self, context: TeamContext, status: Optional[AdStatus] = None) -> List[Ad]:
        context.require(Permission.view_ad)
        return await self.ads.list_for_team(context.team.id, status.value if status else None)

    async def list_campaign_ads(
        self, context: TeamContext, campaign_id: int, status: Optional[AdStatus] = None
    ) -> List[Ad]:
        context.require(Permission.view_ad)
        campaign = await self._campaign(context, campaign_id)
        return await self.ads.list_for_campaign(campaign.id, status.value if status else None)

    async def get(self, context: TeamContext, campaign_id: int, ad_id: int) -> Ad:
        context.require(Permission.view_ad)
        campaign = await self._campaign(context, campaign_id)
        return await self._ad(campaign.id, ad_id)

    async def budget_info(self, context: TeamContext, campaign_id: int) -> AdBudgetInfo:
        """Budget headroom of a campaign for new ad budgets."""
        context.require(Permission.view_campaign)
        campaign = await self._campaign(context, campaign_id)
        ledger = await self.ads.ledger_for(campaign)
        return AdBudgetInfo(
            campaign_budget_cents=ledger.budget_cents,
            allocated_cents=ledger.allocated_cents,
            spent_cents=ledger.spent_cents,
            available_cents=max(0, ledger.pool_available_cents),
        )

    async def create(self, context: TeamContext, user_id: int, campaign_id: int, data: AdCreate) -> Ad:
        """
        Create an ad in a campaign.

        Raises:
            BudgetExceededError: ``budget_cents`` exceeds the campaign's available pool
        """
        context.require(Permission.create_ad)
        campaign = await self._campaign(context, campaign_id, for_update=True)
        self._check_budget(await self.ads.ledger_for(campaign), data.budget_cents)

        ad = await self.ads.create(
            Ad(
                title=data.title,
                description=data.description,
                categories=list(data.categories),
                tags=list(data.tags),
                cta_link=data.cta_link,
                video_url=data.video_url,
                thumbnail_url=data.thumbnail_url,
                status=data.status.value,
                budget_cents=data.budget_cents,
                campaign_id=campaign.id,
                created_by=user_id,
            )
        )
        await self.session.commit()
        logger.info(
            f"Ad {ad.id} created in campaign {campaign.id} "
            f"({'pool' if ad.uses_campaign_pool else f'{ad.budget_cents} cents'})"
        )
        return ad

    async def update(self, context: TeamContext, campaign_id: int, ad_id: int, data: AdUpdate) -> Ad:
        """Update an ad; an explicit ``budget_cents`` (including null) is re-validated."""
        context.require(Permission.edit_ad)
        campaign = await self._campaign(context, campaign_id, for_update=True)
        ad = await self._ad(campaign.id, ad_id, for_update=True)
        changes = data.model_dump(exclude_unset=True)

        if "budget_cents" in changes and changes["budget_cents"] != ad.budget_cents:
            current = AdBudget(budget_cents=ad.budget_cents, spent_cents=ad.spent_cents)
            self._check_budget(await self.ads.ledger_for(campaign), changes["budget_cents"], current)
            ad.budget_cents = changes["budget_cents"]

        for key in ("title", "categories", "video_url", "thumbnail_url"):
            if changes.get(key) is not None:
                setattr(ad, key, changes[key])
        for key in ("description", "cta_link"):
            if key in changes:
                setattr(ad, key, changes[key])
        if changes.get("tags") is not None:
            ad.tags = list(changes["tags"])
        if changes.get("status") is not None:
            ad.status = changes["status"].value

        ad.updated_at = utc_now()
        await self.ads.update(ad)
        await self.session.commit()
        return ad

    async def delete(self, context: TeamContext, campaign_id: int, ad_id: int) -> int:
        """Delete an ad and its impressions; returns the budget released back to the pool."""
        context.require(Permission.delete_ad)
        campaign = await self._campaign(context, campaign_id, for_update=True)
        ad = await self._ad(campaign.id, ad_id, for_update=True)
        released = 0 if ad.uses_campaign_pool else max(0, ad.budget_cents - ad.spent_cents)
        await self.impressions.delete_for_ads([ad.id])
        await self.session.delete(ad)
        await self.session.commit()
        logger.info(f"Ad {ad_id} deleted from campaign {campaign.id}, released {released} cents")
        return released
