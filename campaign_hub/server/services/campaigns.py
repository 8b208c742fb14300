"""
Campaign Service.

A campaign's budget is held out of its creator's wallet: creating a campaign
debits the full budget, raising or lowering it debits or credits the
difference, and deleting it refunds whatever was not spent.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import to_naive_utc, utc_now
from campaign_hub.core.database.entities import Campaign
from campaign_hub.core.database.repositories import AdRepository, CampaignRepository, ImpressionRepository
from campaign_hub.core.errors import InsufficientFundsError, NotFoundError, ValidationFailedError
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import CampaignStatus, Permission
from campaign_hub.core.models.io.campaigns import CampaignCreate, CampaignRead, CampaignUpdate

from .teams import TeamContext
from .wallet import WalletService

logger = get_logger(__name__)

TERMINAL_STATUSES = frozenset({CampaignStatus.completed.value, CampaignStatus.cancelled.value})


def validate_schedule(
    start_date: Optional[datetime], end_date: Optional[datetime], now: Optional[datetime] = None
) -> None:
    """
    Check a campaign's flight dates.

    Raises:
        ValidationFailedError: The start is before today (UTC) or the end is not after the start
    """
    now = to_naive_utc(now) or utc_now()
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date is not None and start_date.date() < now.date():
        raise ValidationFailedError("start_date cannot be in the past")
    if end_date is not None and end_date <= (start_date or now):
        raise ValidationFailedError("end_date must be after start_date")


class CampaignService:
    """Team-scoped campaign management."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.campaigns = CampaignRepository(session)
        self.ads = AdRepository(session)
        self.impressions = ImpressionRepository(session)
        self.wallets = WalletService(session)

    async def to_read(self, campaign: Campaign) -> CampaignRead:
        """Project a campaign with its budget summary."""
        totals = await self.ads.budget_totals(campaign.id)
        ledger = await self.ads.ledger_for(campaign)
        return CampaignRead(
            id=campaign.id,
            name=campaign.name,
            description=campaign.description,
            status=CampaignStatus(campaign.status),
            budget_cents=campaign.budget_cents,
            spent_cents=campaign.spent_cents,
            remaining_cents=ledger.remaining_cents,
            allocated_cents=ledger.allocated_cents,
            pool_available_cents=max(0, ledger.pool_available_cents),
            ad_count=totals.ad_count,
            start_date=campaign.start_date,
            end_date=campaign.end_date,
            team_id=campaign.team_id,
            created_by=campaign.created_by,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
        )

    async def get(self, context: TeamContext, campaign_id: int, for_update: bool = False) -> Campaign:
        campaign = await self.campaigns.get_for_team(context.team.id, campaign_id, for_update=for_update)
        if campaign is None:
            raise NotFoundError("Campaign not found")
        return campaign

    async def read(self, context: TeamContext, campaign_id: int) -> CampaignRead:
        context.require(Permission.view_campaign)
        return await self.to_read(await self.get(context, campaign_id))

    async def list(self, context: TeamContext, status: Optional[CampaignStatus] = None) -> List[Campaign]:
        context.require(Permission.view_campaign)
        return await self.campaigns.list_for_team(context.team.id, status.value if status else None)

    async def create(self, context: TeamContext, user_id: int, data: CampaignCreate) -> Campaign:
        """
        Create a campaign and debit its budget from the creator's wallet in one transaction.

        Raises:
            InsufficientFundsError: The creator's balance does not cover the budget
            ValidationFailedError: Invalid flight dates
        """
        context.require(Permission.create_campaign)
        start_date = to_naive_utc(data.start_date)
        end_date = to_naive_utc(data.end_date)
        validate_schedule(start_date, end_date)

        wallet = await self.wallets.get_or_create(user_id, for_update=True)
        if wallet.balance_cents < data.budget_cents:
            raise InsufficientFundsError(
                "Insufficient wallet balance for the campaign budget",
                {"balance_cents": wallet.balance_cents, "required_cents": data.budget_cents},
            )

        campaign = await self.campaigns.create(
            Campaign(
                name=data.name,
                description=data.description,
                status=data.status.value,
                budget_cents=data.budget_cents,
                start_date=start_date,
                end_date=end_date,
                team_id=context.team.id,
                created_by=user_id,
            )
        )
        await self.wallets.debit(
            user_id,
            data.budget_cents,
            f"Budget for campaign '{campaign.name}'",
            campaign_id=campaign.id,
            details={"team_id": context.team.id},
        )
        await self.session.commit()
        logger.info(f"Campaign {campaign.id} created in team {context.team.id} with {data.budget_cents} cents")
        return campaign

    async def update(self, context: TeamContext, campaign_id: int, data: CampaignUpdate) -> Campaign:
        """
        Update a campaign, settling any budget change with the creator's wallet.

        Raises:
            ValidationFailedError: Terminal status change, budget below the committed
                amount or invalid dates
            InsufficientFundsError: A budget increase the creator cannot cover
        """
        context.require(Permission.edit_campaign)
        campaign = await self.get(context, campaign_id, for_update=True)
        changes = data.model_dump(exclude_unset=True)

        new_status = changes.get("status")
        if new_status is not None and campaign.status in TERMINAL_STATUSES and new_status.value != campaign.status:
            raise ValidationFailedError(f"Cannot change the status of a {campaign.status} campaign")

        if "start_date" in changes or "end_date" in changes:
            start_date = to_naive_utc(changes["start_date"]) if "start_date" in changes else campaign.start_date
            end_date = to_naive_utc(changes["end_date"]) if "end_date" in changes else campaign.end_date
            if "start_date" in changes:
                validate_schedule(start_date, end_date)
            elif end_date is not None and end_date <= (start_date or utc_now()):
                raise ValidationFailedError("end_date must be after start_date")
            campaign.start_date = start_date
            campaign.end_date = end_date

        new_budget = changes.get("budget_cents")
        if new_budget is not None and new_budget != campaign.budget_cents:
            ledger = await self.ads.ledger_for(campaign)
            if new_budget < ledger.committed_cents:
                raise ValidationFailedError(
                    f"Budget cannot be lower than the committed amount ({ledger.committed_cents} cents)",
                    {"committed_cents": ledger.committed_cents},
                )
            difference = new_budget - campaign.budget_cents
            if difference > 0:
                await self.wallets.debit(
                    campaign.created_by,
                    difference,
                    f"Budget increase for campaign '{campaign.name}'",
                    campaign_id=campaign.id,
                )
            else:
                await self.wallets.credit(
                    campaign.created_by,
                    -difference,
                    f"Budget decrease for campaign '{campaign.name}'",
                    campaign_id=campaign.id,
                )
            campaign.budget_cents = new_budget

        for key in ("name", "description"):
            if key in changes and (changes[key] is not None or key == "description"):
                setattr(campaign, key, changes[key])
        if new_status is not None:
            campaign.status = new_status.value

        campaign.updated_at = utc_now()
        await self.campaigns.update(campaign)
        await self.session.commit()
        return campaign

    async def delete(self, context: TeamContext, campaign_id: int) -> int:
        """Delete a campaign and refund its unspent budget; returns the refund in cents."""
        context.require(Permission.delete_campaign)
        campaign = await self.get(context, campaign_id, for_update=True)
        refunded = await self.remove_campaign(campaign)
        await self.session.commit()
        return refunded

    async def remove_campaign(self, campaign: Campaign) -> int:
        """Refund, then delete a campaign with its ads and impressions. Does not commit."""
        refund = max(0, campaign.budget_cents - campaign.spent_cents)
        if refund > 0:
            await self.wallets.credit(
                campaign.created_by,
                refund,
                f"Refund for deleted campaign '{campaign.name}'",
                campaign_id=campaign.id,
            )
        await self.impressions.delete_for_campaign(campaign.id)
        await self.ads.delete_for_campaign(campaign.id)
        await self.session.delete(campaign)
        await self.session.flush()
        logger.info(f"Campaign {campaign.id} deleted, refunded {refund} cents")
        return refund
