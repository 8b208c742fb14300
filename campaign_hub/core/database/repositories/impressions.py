"""
Ad impression repository.

Token lookups for the confirmation flow, the stale-reservation sweep and the
aggregations behind the analytics endpoints. Analytics only count
``confirmed`` impressions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from campaign_hub.core.models.domain import ImpressionStatus

from ..entities.impressions import AdImpression
from .base import AsyncBaseRepository

_CONFIRMED = ImpressionStatus.confirmed.value


class ImpressionRepository(AsyncBaseRepository[AdImpression]):
    """Repository for ad impression data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, AdImpression)

    async def get_by_token(self, token: str) -> Optional[AdImpression]:
        result = await self.session.execute(select(AdImpression).where(AdImpression.token == token))
        return result.scalars().first()

    async def expire_stale(self, now: datetime) -> int:
        """Mark reserved impressions whose reservation has lapsed as expired.

        Args:
            now: Reference time (naive UTC)

        Returns:
            Number of impressions expired
        """
        stmt = (
            update(AdImpression)
            .where((AdImpression.status == ImpressionStatus.reserved.value) & (AdImpression.expires_at < now))
            .values(status=ImpressionStatus.expired.value, updated_at=now)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def delete_for_ads(self, ad_ids: Sequence[int]) -> None:
        if ad_ids:
            await self.session.execute(delete(AdImpression).where(AdImpression.ad_id.in_(list(ad_ids))))

    async def delete_for_campaign(self, campaign_id: int) -> None:
        await self.session.execute(delete(AdImpression).where(AdImpression.campaign_id == campaign_id))

    # ------------------------------------------------------------------
    # Analytics aggregations (confirmed impressions only)
    # ------------------------------------------------------------------

    async def count_confirmed(
        self,
        campaign_ids: Optional[Sequence[int]] = None,
        ad_id: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Count confirmed impressions and sum their cost.

        Args:
            campaign_ids: Restrict to these campaigns
            ad_id: Restrict to one ad

        Returns:
            ``(count, total_cost_cents)``
        """
        stmt = select(func.count(AdImpression.id), func.coalesce(func.sum(AdImpression.cost_cents), 0)).where(
            AdImpression.status == _CONFIRMED
        )
        stmt = self._scope(stmt, campaign_ids, ad_id)
        count, cost = (await self.session.execute(stmt)).one()
        return int(count), int(cost)

    async def top_campaigns(self, campaign_ids: Sequence[int], limit: int) -> List[Tuple[int, int]]:
        """Campaign IDs ordered by confirmed impressions: ``[(campaign_id, count)]``."""
        if not campaign_ids:
            return []
        count = func.count(AdImpression.id).label("impressions")
        stmt = (
            select(AdImpression.campaign_id, count)
            .where((AdImpression.status == _CONFIRMED) & AdImpression.campaign_id.in_(list(campaign_ids)))
            .group_by(AdImpression.campaign_id)
            .order_by(count.desc(), AdImpression.campaign_id)
            .limit(limit)
        )
        return [(int(cid), int(n)) for cid, n in (await self.session.execute(stmt)).all()]

    async def top_ads(self, campaign_ids: Sequence[int], limit: int) -> List[Tuple[int, int]]:
        """Ad IDs ordered by confirmed impressions: ``[(ad_id, count)]``."""
        if not campaign_ids:
            return []
        count = func.count(AdImpression.id).label("impressions")
        stmt = (
            select(AdImpression.ad_id, count)
            .where((AdImpression.status == _CONFIRMED) & AdImpression.campaign_id.in_(list(campaign_ids)))
            .group_by(AdImpression.ad_id)
            .order_by(count.desc(), AdImpression.ad_id)
            .limit(limit)
        )
        return [(int(aid), int(n)) for aid, n in (await self.session.execute(stmt)).all()]

    async def count_by(self, column_name: str, ad_id: int) -> Dict[str, int]:
        """Group an ad's confirmed impressions by ``action`` or ``device_type``."""
        column = getattr(AdImpression, column_name)
        stmt = (
            select(column, func.count(AdImpression.id))
            .where((AdImpression.status == _CONFIRMED) & (AdImpression.ad_id == ad_id))
            .group_by(column)
        )
        return {str(key): int(n) for key, n in (await self.session.execute(stmt)).all()}

    async def confirmed_since(
        self,
        since: datetime,
        campaign_ids: Optional[Sequence[int]] = None,
        ad_id: Optional[int] = None,
    ) -> List[datetime]:
        """Confirmation timestamps since ``since``, used for per-day series."""
        stmt = select(AdImpression.confirmed_at).where(
            (AdImpression.status == _CONFIRMED) & (AdImpression.confirmed_at >= since)
        )
        stmt = self._scope(stmt, campaign_ids, ad_id)
        return [row for row in (await self.session.execute(stmt)).scalars().all() if row is not None]

    @staticmethod
    def _scope(stmt, campaign_ids: Optional[Sequence[int]], ad_id: Optional[int]):
        if campaign_ids is not None:
            stmt = stmt.where(AdImpression.campaign_id.in_(list(campaign_ids)))
        if ad_id is not None:
            stmt = stmt.where(AdImpression.ad_id == ad_id)
        return stmt
