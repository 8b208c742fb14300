"""
Impression Service.

An impression is reserved when an ad is served and billed when the player
reports the ``served`` event with the impression token. Other events
(clicked, completed, skipped) only record the viewer's last action.

Status transitions:

    reserved --served--> confirmed       (billed)
    reserved --served--> cancelled       (budget exhausted since reservation)
    reserved --sweep/late confirm--> expired
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Ad, AdImpression, Campaign
from campaign_hub.core.database.repositories import AdRepository, CampaignRepository, ImpressionRepository
from campaign_hub.core.errors import (
    ConflictError,
    GoneError,
    NotFoundError,
    PaymentRequiredError,
    ValidationFailedError,
)
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import EVENT_ACTIONS, ImpressionEvent, ImpressionStatus
from campaign_hub.core.models.io.serving import (
    BillingDetails,
    ConfirmImpressionRequest,
    ConfirmImpressionResponse,
    ImpressionRead,
)
from campaign_hub.core.monitoring import log_impression_billed
from campaign_hub.serving.budget import AdBudget, ad_remaining, has_sufficient_budget
from campaign_hub.serving.client_info import parse_user_agent
from campaign_hub.serving.selector import ClientContext
from campaign_hub.serving.tokens import verify_impression_token

from .monetization import AdConfirmation

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfirmationOutcome:
    response: ConfirmImpressionResponse
    notification: Optional[AdConfirmation] = None


class ImpressionService:
    """Confirmation, lookup and expiry of reserved impressions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.impressions = ImpressionRepository(session)
        self.ads = AdRepository(session)
        self.campaigns = CampaignRepository(session)

    async def _load(self, token: str) -> AdImpression:
        """
        Resolve an impression from its token.

        Raises:
            ValidationFailedError: The token is forged, malformed or names another impression
            NotFoundError: No impression carries the token
        """
        data = verify_impression_token(token)
        if data is None:
            raise ValidationFailedError("Invalid impression token")
        impression = await self.impressions.get_by_token(token)
        if impression is None:
            raise NotFoundError("Impression not found")
        if impression.id != data.impression_id:
            raise ValidationFailedError("Impression token does not match the impression")
        return impression

    async def _lock(self, impression: AdImpression) -> AdImpression:
        locked = await self.impressions.get_by_id(impression.id, for_update=True)
        if locked is None:
            raise NotFoundError("Impression not found")
        return locked

    async def get_view(self, token: str) -> ImpressionRead:
        return ImpressionRead.model_validate(await self._load(token))

    async def confirm(
        self, request: ConfirmImpressionRequest, client: Optional[ClientContext] = None
    ) -> ConfirmationOutcome:
        """
        Apply a player event to an impression.

        Args:
            request: Token, event and optional playback metadata
            client: Client fingerprint of the confirming request, used when the
                metadata does not carry one

        Returns:
            The response body and, for a billed impression, the monetization
            notification to send

        Raises:
            ValidationFailedError: Invalid token
            NotFoundError: Unknown impression
            ConflictError: The impression was already confirmed
            GoneError: The reservation expired or was cancelled
            PaymentRequiredError: The ad ran out of budget since it was served
        """
        impression = await self._load(request.token)
        now = utc_now()
        if request.event is not ImpressionEvent.served:
            return await self._track(await self._lock(impression), request, now)

        # Campaign, then ad, then impression: the order every budget change locks in.
        campaign = await self.campaigns.get_by_id(impression.campaign_id, for_update=True)
        ad = await self.ads.get_by_id(impression.ad_id, for_update=True)
        impression = await self._lock(impression)
        return await self._bill(impression, ad, campaign, request, client or ClientContext(), now)

    async def _bill(
        self,
        impression: AdImpression,
        ad: Optional[Ad],
        campaign: Optional[Campaign],
        request: ConfirmImpressionRequest,
        client: ClientContext,
        now: datetime,
    ) -> ConfirmationOutcome:
        if impression.status == ImpressionStatus.confirmed.value:
            raise ConflictError("Impression already confirmed")
        if impression.status != ImpressionStatus.reserved.value or impression.expires_at < now:
            if impression.status == ImpressionStatus.cancelled.value:
                raise GoneError("Impression was cancelled")
            await self._mark(impression, ImpressionStatus.expired, now)
            raise GoneError("Impression has expired")

        if ad is None or campaign is None:
            await self._mark(impression, ImpressionStatus.cancelled, now)
            raise NotFoundError("Ad no longer exists")

        ledger = await self.ads.ledger_for(campaign)
        budget = AdBudget(budget_cents=ad.budget_cents, spent_cents=ad.spent_cents)
        if not has_sufficient_budget(budget, ledger, impression.cost_cents):
            await self._mark(impression, ImpressionStatus.cancelled, now)
            logger.warning(f"Impression {impression.id} cancelled: ad {ad.id} is out of budget")
            raise PaymentRequiredError(
                "Insufficient budget to bill this impression",
                {"remaining_budget_cents": max(0, ad_remaining(budget, ledger))},
            )

        ad.spent_cents += impression.cost_cents
        ad.updated_at = now
        campaign.spent_cents += impression.cost_cents
        campaign.updated_at = now

        metadata = request.metadata
        user_agent = (metadata.user_agent if metadata else None) or client.user_agent or impression.user_agent
        ip_address = (metadata.ip_address if metadata else None) or client.ip_address or impression.ip_address
        os_type, device_type = parse_user_agent(user_agent)
        impression.user_agent = user_agent
        impression.ip_address = ip_address
        impression.os_type = os_type.value
        impression.device_type = device_type.value
        if metadata is not None:
            self._apply_playback(impression, request)
        impression.status = ImpressionStatus.confirmed.value
        impression.action = EVENT_ACTIONS[ImpressionEvent.served].value
        impression.served_at = now
        impression.confirmed_at = now
        impression.updated_at = now
        self.session.add_all([ad, campaign, impression])

        # Remaining budget after this charge, pool or own.
        ledger = await self.ads.ledger_for(campaign)
        remaining = max(0, ad_remaining(AdBudget(ad.budget_cents, ad.spent_cents), ledger))
        await self.session.commit()

        log_impression_billed(impression.id, ad.id, campaign.id, impression.cost_cents)
        logger.info(f"Impression {impression.id} confirmed, billed {impression.cost_cents} cents to ad {ad.id}")
        return ConfirmationOutcome(
            response=ConfirmImpressionResponse(
                success=True,
                message="Impression confirmed",
                billing_details=BillingDetails(cost_cents=impression.cost_cents, remaining_budget_cents=remaining),
            ),
            notification=AdConfirmation(
                video_id=impression.video_id,
                viewer_id=request.user_id or request.anon_id or impression.viewer_id,
                ad_id=ad.id,
                cost_cents=impression.cost_cents,
            ),
        )

    async def _track(
        self, impression: AdImpression, request: ConfirmImpressionRequest, now: datetime
    ) -> ConfirmationOutcome:
        if impression.status in (ImpressionStatus.expired.value, ImpressionStatus.cancelled.value):
            raise GoneError(f"Impression was {impression.status}")
        if impression.status == ImpressionStatus.reserved.value and impression.expires_at < now:
            await self._mark(impression, ImpressionStatus.expired, now)
            raise GoneError("Impression has expired")

        impression.action = EVENT_ACTIONS[request.event].value
        self._apply_playback(impression, request)
        impression.updated_at = now
        self.session.add(impression)
        await self.session.commit()
        return ConfirmationOutcome(
            response=ConfirmImpressionResponse(success=True, message=f"Impression {request.event.value} recorded")
        )

    @staticmethod
    def _apply_playback(impression: AdImpression, request: ConfirmImpressionRequest) -> None:
        metadata = request.metadata
        if metadata is None:
            return
        if metadata.view_duration is not None:
            impression.view_duration = metadata.view_duration
        if metadata.video_progress is not None:
            impression.video_progress = metadata.video_progress

    async def _mark(self, impression: AdImpression, status: ImpressionStatus, now: datetime) -> None:
        impression.status = status.value
        impression.updated_at = now
        self.session.add(impression)
        await self.session.commit()

    async def expire_stale(self, now: Optional[datetime] = None) -> int:
        """Expire every reserved impression past its reservation; returns the count."""
        count = await self.impressions.expire_stale(now or utc_now())
        await self.session.commit()
        if count:
            logger.info(f"Expired {count} stale impression(s)")
        return count


async def expire_stale_impressions(session: AsyncSession, now: Optional[datetime] = None) -> int:
    return await ImpressionService(session).expire_stale(now)
