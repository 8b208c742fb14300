"""
Ad selection and impression reservation.

Serving an ad runs in four steps:

1. fetch the servable ads (active ad, active campaign inside its flight
   dates) in random order, preferring ads that share the video category or
   a tag and falling back to every servable ad when none do
2. drop the ads that cannot afford one view
3. score the rest and pick the best
4. re-check the winner under a row lock and reserve an impression for it,
   signing the impression token with the new impression's ID
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Ad, AdImpression
from campaign_hub.core.database.repositories import AdRepository, CampaignRepository, ImpressionRepository
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import (
    AdStatus,
    CampaignStatus,
    DeviceType,
    ImpressionAction,
    ImpressionStatus,
    OsType,
)
from campaign_hub.core.models.io.serving import AdMetadata, ServeAdRequest, ServeAdResponse
from campaign_hub.core.monitoring import log_ad_served
from campaign_hub.server.core.config import settings

from .budget import AdBudget, ad_remaining, has_sufficient_budget
from .constants import AD_SERVING_LIMITS, SCORING_WEIGHTS
from .scoring import Candidate, ScoringResult, score_ad, select_best
from .tokens import generate_impression_token

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClientContext:
    """Client fingerprint captured from the serving request."""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    os_type: OsType = OsType.unknown
    device_type: DeviceType = DeviceType.unknown


@dataclass(frozen=True)
class ServedAd:
    response: ServeAdResponse
    impression_id: int
    score: float


def ad_metadata(ad: Ad) -> AdMetadata:
    return AdMetadata(
        id=ad.id,
        title=ad.title,
        description=ad.description,
        video_url=ad.video_url,
        thumbnail_url=ad.thumbnail_url,
        categories=list(ad.categories or []),
        tags=list(ad.tags or []),
        cta_link=ad.cta_link,
    )


class AdSelector:
    """Selects ads for a video context and reserves impressions for them."""

    def __init__(
        self,
        session: AsyncSession,
        cost_per_view_cents: Optional[int] = None,
        impression_ttl_minutes: Optional[int] = None,
        max_candidates: int = AD_SERVING_LIMITS["MAX_CANDIDATES"],
        min_score: float = AD_SERVING_LIMITS["MIN_SCORE"],
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session
        self.ads = AdRepository(session)
        self.campaigns = CampaignRepository(session)
        self.impressions = ImpressionRepository(session)
        self.cost_per_view_cents = (
            cost_per_view_cents if cost_per_view_cents is not None else settings.serving.cost_per_view_cents
        )
        self.impression_ttl_minutes = (
            impression_ttl_minutes if impression_ttl_minutes is not None else settings.serving.impression_ttl_minutes
        )
        self.max_candidates = max_candidates
        self.min_score = min_score
        self.rng = rng

    async def fetch_candidates(
        self, category: Optional[str], tags: Sequence[str], now: Optional[datetime] = None
    ) -> List[Candidate]:
        """Fetch the servable ads for a video context.

        Args:
            category: Video category
            tags: Video tags
            now: Reference time (naive UTC), defaults to now

        Returns:
            At most ``max_candidates`` candidates, matching ones only when any match
        """
        now = now or utc_now()
        rows = await self.ads.eligible_for_serving(now, category, tags, limit=self.max_candidates)
        if not rows and (category or tags):
            logger.debug("No ads match the video context, scoring all servable ads")
            rows = await self.ads.eligible_for_serving(now, limit=self.max_candidates)

        ledgers = await self.ads.ledgers_for(campaign for _, campaign in rows)
        return [
            Candidate(
                ad_id=ad.id,
                campaign_id=campaign.id,
                categories=list(ad.categories or []),
                tags=list(ad.tags or []),
                budget=AdBudget(budget_cents=ad.budget_cents, spent_cents=ad.spent_cents),
                ledger=ledgers[campaign.id],
                payload=ad,
            )
            for ad, campaign in rows
        ]

    async def score_candidates(self, request: ServeAdRequest) -> List[Tuple[Candidate, ScoringResult]]:
        """Fetch, budget-filter and score the candidates for a request."""
        candidates = await self.fetch_candidates(request.category, request.tags)
        affordable = [
            c for c in candidates if has_sufficient_budget(c.budget, c.ledger, self.cost_per_view_cents)
        ]
        return [(c, score_ad(c, request.category, request.tags, SCORING_WEIGHTS)) for c in affordable]

    async def debug_scoring(self, request: ServeAdRequest) -> List[Tuple[Candidate, ScoringResult]]:
        """Score every budget-eligible candidate, best first."""
        scored = await self.score_candidates(request)
        return sorted(scored, key=lambda pair: pair[1].score, reverse=True)

    async def serve_ad(self, request: ServeAdRequest, client: Optional[ClientContext] = None) -> Optional[ServedAd]:
        """Select an ad for the request and reserve an impression for it.

        Args:
            request: Video context and viewer identity
            client: Client fingerprint stored on the impression

        Returns:
            The served ad, or None when no ad is eligible
        """
        scored = await self.score_candidates(request)
        if not scored:
            logger.info(f"No eligible ads for video {request.video_id}")
            return None

        best = select_best([result for _, result in scored], self.min_score, self.rng)
        if best is None:
            logger.info(f"No candidate reached the minimum score for video {request.video_id}")
            return None

        candidate = next(c for c, result in scored if result.ad_id == best.ad_id)
        impression = await self._reserve(candidate, request, client or ClientContext())
        if impression is None:
            return None

        log_ad_served(
            ad_id=candidate.ad_id,
            impression_id=impression.id,
            video_id=request.video_id,
            score=best.score,
            candidates=len(scored),
        )
        return ServedAd(
            response=ServeAdResponse(
                ad=ad_metadata(candidate.payload),
                impression_token=impression.token,
                cost_cents=impression.cost_cents,
                expires_at=impression.expires_at,
            ),
            impression_id=impression.id,
            score=best.score,
        )

    async def _reserve(
        self, candidate: Candidate, request: ServeAdRequest, client: ClientContext
    ) -> Optional[AdImpression]:
        """Lock the campaign and its ad, re-check eligibility and insert a reserved impression.

        Rows are locked campaign first, then ad, the same order every budget
        change takes.
        """
        campaign = await self.campaigns.get_by_id(candidate.campaign_id, for_update=True)
        ad: Optional[Ad] = None
        if campaign is not None:
            ad = await self.ads.get_by_id(candidate.ad_id, for_update=True)

        if (
            ad is None
            or campaign is None
            or ad.campaign_id != campaign.id
            or ad.status != AdStatus.active.value
            or campaign.status != CampaignStatus.active.value
        ):
            logger.warning(f"Ad {candidate.ad_id} became ineligible before reservation")
            await self.session.rollback()
            return None

        ledger = await self.ads.ledger_for(campaign)
        budget = AdBudget(budget_cents=ad.budget_cents, spent_cents=ad.spent_cents)
        if not has_sufficient_budget(budget, ledger, self.cost_per_view_cents):
            logger.warning(
                f"Ad {ad.id} has insufficient budget at reservation "
                f"(remaining={ad_remaining(budget, ledger)}, cost={self.cost_per_view_cents})"
            )
            await self.session.rollback()
            return None

        now = utc_now()
        impression = AdImpression(
            ad_id=ad.id,
            campaign_id=campaign.id,
            status=ImpressionStatus.reserved.value,
            expires_at=now + timedelta(minutes=self.impression_ttl_minutes),
            cost_cents=self.cost_per_view_cents,
            viewer_id=request.viewer_id,
            session_id=request.session_id,
            video_id=request.video_id,
            category=request.category,
            tags=list(request.tags),
            user_agent=client.user_agent,
            ip_address=client.ip_address,
            device_type=client.device_type.value,
            os_type=client.os_type.value,
            action=ImpressionAction.view.value,
            created_at=now,
            updated_at=now,
        )
        await self.impressions.create(impression)
        impression.token = generate_impression_token(impression.id, impression.expires_at)
        await self.session.commit()
        logger.debug(f"Reserved impression {impression.id} for ad {ad.id}")
        return impression
