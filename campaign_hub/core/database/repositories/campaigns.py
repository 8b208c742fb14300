"""
Campaign and ad repositories.

Besides CRUD scoped to a team, this module provides the two queries the
serving path depends on: the eligible candidate pool and the per-campaign
budget ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import case, delete, func, literal, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from campaign_hub.core.models.domain import AdStatus, CampaignStatus
from campaign_hub.serving.budget import CampaignLedger

from ..entities.campaigns import Ad, Campaign
from .base import AsyncBaseRepository, QueryBuilder


@dataclass(frozen=True)
class BudgetTotals:
    """Aggregates over the ads of one campaign that carry their own budget."""

    allocated_cents: int
    budgeted_spent_cents: int
    ad_count: int


def _ledger(campaign: Campaign, totals: BudgetTotals) -> CampaignLedger:
    return CampaignLedger(
        budget_cents=campaign.budget_cents,
        spent_cents=campaign.spent_cents,
        allocated_cents=totals.allocated_cents,
        budgeted_spent_cents=totals.budgeted_spent_cents,
    )


def _json_array_contains_any(column, values: Sequence[str], dialect: str):
    """``EXISTS`` test for a JSON string array holding any of ``values``, ignoring case."""
    lowered = [value.strip().lower() for value in values]
    if dialect == "postgresql":
        element = func.json_array_elements_text(column).column_valued("element")
        return select(literal(1)).where(func.lower(func.trim(element)).in_(lowered)).exists()
    elements = func.json_each(column).table_valued("value")
    matched = func.lower(func.trim(elements.c.value)).in_(lowered)
    return select(literal(1)).select_from(elements).where(matched).exists()


class CampaignRepository(AsyncBaseRepository[Campaign]):
    """Repository for campaign data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Campaign)

    async def get_for_team(self, team_id: int, campaign_id: int, for_update: bool = False) -> Optional[Campaign]:
        """Get a campaign only if it belongs to the given team."""
        campaign = await self.get_by_id(campaign_id, for_update=for_update)
        if campaign is None or campaign.team_id != team_id:
            return None
        return campaign

    async def list_for_team(self, team_id: int, status: Optional[str] = None) -> List[Campaign]:
        stmt = select(Campaign).where(Campaign.team_id == team_id)
        if status is not None:
            stmt = stmt.where(Campaign.status == status)
        result = await self.session.execute(stmt.order_by(Campaign.created_at.desc(), Campaign.id.desc()))
        return list(result.scalars().all())


class AdRepository(AsyncBaseRepository[Ad]):
    """Repository for ad data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Ad)

    async def get_in_campaign(self, campaign_id: int, ad_id: int) -> Optional[Ad]:
        ad = await self.get_by_id(ad_id)
        if ad is None or ad.campaign_id != campaign_id:
            return None
        return ad

    async def list_for_campaign(self, campaign_id: int, status: Optional[str] = None) -> List[Ad]:
        stmt = select(Ad).where(Ad.campaign_id == campaign_id)
        if status is not None:
            stmt = stmt.where(Ad.status == status)
        result = await self.session.execute(stmt.order_by(Ad.created_at.desc(), Ad.id.desc()))
        return list(result.scalars().all())

    async def list_for_team(self, team_id: int, status: Optional[str] = None) -> List[Ad]:
        stmt = select(Ad).join(Campaign, Campaign.id == Ad.campaign_id).where(Campaign.team_id == team_id)
        if status is not None:
            stmt = stmt.where(Ad.status == status)
        result = await self.session.execute(stmt.order_by(Ad.created_at.desc(), Ad.id.desc()))
        return list(result.scalars().all())

    async def budget_totals(self, campaign_id: int) -> BudgetTotals:
        """Sum the budgets and spend of the campaign's ads that carry their own budget.

        Args:
            campaign_id: Campaign to aggregate

        Returns:
            Allocated budget, spend of budgeted ads and the total number of ads
        """
        budgeted = Ad.budget_cents.is_not(None)
        stmt = select(
            func.coalesce(func.sum(case((budgeted, Ad.budget_cents), else_=0)), 0),
            func.coalesce(func.sum(case((budgeted, Ad.spent_cents), else_=0)), 0),
            func.count(Ad.id),
        ).where(Ad.campaign_id == campaign_id)
        allocated, spent, count = (await self.session.execute(stmt)).one()
        return BudgetTotals(allocated_cents=int(allocated), budgeted_spent_cents=int(spent), ad_count=int(count))

    async def budget_totals_by_campaign(self, campaign_ids: Sequence[int]) -> Dict[int, BudgetTotals]:
        """Batch form of :meth:`budget_totals`, one grouped query for many campaigns."""
        if not campaign_ids:
            return {}
        budgeted = Ad.budget_cents.is_not(None)
        stmt = (
            select(
                Ad.campaign_id,
                func.coalesce(func.sum(case((budgeted, Ad.budget_cents), else_=0)), 0),
                func.coalesce(func.sum(case((budgeted, Ad.spent_cents), else_=0)), 0),
                func.count(Ad.id),
            )
            .where(Ad.campaign_id.in_(list(campaign_ids)))
            .group_by(Ad.campaign_id)
        )
        totals = {
            int(cid): BudgetTotals(allocated_cents=int(allocated), budgeted_spent_cents=int(spent), ad_count=int(n))
            for cid, allocated, spent, n in (await self.session.execute(stmt)).all()
        }
        empty = BudgetTotals(allocated_cents=0, budgeted_spent_cents=0, ad_count=0)
        return {cid: totals.get(cid, empty) for cid in campaign_ids}

    async def ledger_for(self, campaign: Campaign) -> CampaignLedger:
        """Build the budget ledger of a campaign from its current ads."""
        return _ledger(campaign, await self.budget_totals(campaign.id))

    async def ledgers_for(self, campaigns: Iterable[Campaign]) -> Dict[int, CampaignLedger]:
        """Ledgers keyed by campaign ID, built from one aggregate query."""
        by_id = {campaign.id: campaign for campaign in campaigns}
        totals = await self.budget_totals_by_campaign(list(by_id))
        return {cid: _ledger(campaign, totals[cid]) for cid, campaign in by_id.items()}

    async def eligible_for_serving(
        self,
        now: datetime,
        category: Optional[str] = None,
        tags: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Tuple[Ad, Campaign]]:
        """Load servable ads with their campaigns, in random order.

        An ad is servable when it is active, its campaign is active and the
        campaign's flight dates (when set) contain ``now``. When a category or
        tags are given, only ads sharing the category or one of the tags
        (case-insensitive) are returned.

        Args:
            now: Reference time (naive UTC)
            category: Video category to match against the ad categories
            tags: Video tags to match against the ad tags
            limit: Maximum number of rows

        Returns:
            ``(ad, campaign)`` pairs
        """
        stmt = (
            select(Ad, Campaign)
            .join(Campaign, Campaign.id == Ad.campaign_id)
            .where(
                (Ad.status == AdStatus.active.value)
                & (Campaign.status == CampaignStatus.active.value)
                & or_(Campaign.start_date.is_(None), Campaign.start_date <= now)
                & or_(Campaign.end_date.is_(None), Campaign.end_date >= now)
            )
        )
        dialect = self.session.get_bind().dialect.name
        context = []
        if category and category.strip():
            context.append(_json_array_contains_any(Ad.categories, [category], dialect))
        lowered_tags = sorted({tag.strip().lower() for tag in tags if tag and tag.strip()})
        if lowered_tags:
            context.append(_json_array_contains_any(Ad.tags, lowered_tags, dialect))
        if context:
            stmt = stmt.where(or_(*context))
        stmt = QueryBuilder.apply_pagination(stmt.order_by(func.random()), limit, None)
        result = await self.session.execute(stmt)
        return [(ad, campaign) for ad, campaign in result.all()]

    async def delete_for_campaign(self, campaign_id: int) -> None:
        await self.session.execute(delete(Ad).where(Ad.campaign_id == campaign_id))
