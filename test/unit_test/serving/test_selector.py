"""
Unit tests for ad selection and impression reservation.

Runs against an in-memory SQLite database seeded per test.
"""

import random
from datetime import timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import AdImpression
from campaign_hub.core.models.domain import DeviceType, OsType
from campaign_hub.core.models.io.serving import ServeAdRequest
from campaign_hub.serving.selector import AdSelector, ClientContext
from campaign_hub.serving.tokens import verify_impression_token

pytestmark = pytest.mark.asyncio


def serve_request(category="gaming", tags=("fps",), **kwargs) -> ServeAdRequest:
    return ServeAdRequest(video_id="video-1", category=category, tags=list(tags), anon_id="anon-1", **kwargs)


@pytest_asyncio.fixture
async def owner(seed):
    return await seed.user()


@pytest_asyncio.fixture
async def campaign(seed, owner):
    team = await seed.team(owner)
    return await seed.campaign(team, owner, budget_cents=10_000)


@pytest.fixture
def selector(session):
    return AdSelector(session, cost_per_view_cents=10, impression_ttl_minutes=30, rng=random.Random(3))


class TestServeAd:
    """Test serving an ad and reserving its impression."""

    async def test_reserves_impression_for_matching_ad(self, selector, seed, campaign, session):
        ad = await seed.ad(campaign, budget_cents=1_000)
        client = ClientContext(
            user_agent="UA", ip_address="203.0.113.9", os_type=OsType.linux, device_type=DeviceType.desktop
        )

        served = await selector.serve_ad(serve_request(), client)

        assert served is not None
        assert served.response.ad.id == ad.id
        assert served.response.cost_cents == 10
        impression = await session.get(AdImpression, served.impression_id)
        assert impression.status == "reserved"
        assert impression.token == served.response.impression_token
        assert impression.viewer_id == "anon-1"
        assert impression.ip_address == "203.0.113.9"
        assert impression.os_type == "linux"
        assert verify_impression_token(impression.token).impression_id == impression.id
        remaining = impression.expires_at - utc_now()
        assert timedelta(minutes=29) < remaining <= timedelta(minutes=30)

    async def test_serving_does_not_bill(self, selector, seed, campaign, session):
        ad = await seed.ad(campaign, budget_cents=1_000)

        await selector.serve_ad(serve_request())

        await session.refresh(ad)
        await session.refresh(campaign)
        assert ad.spent_cents == 0
        assert campaign.spent_cents == 0

    async def test_no_ads(self, selector):
        assert await selector.serve_ad(serve_request()) is None

    async def test_prefers_matching_ads(self, selector, seed, campaign):
        await seed.ad(campaign, categories=["cooking"], tags=["pasta"], title="Pans")
        match = await seed.ad(campaign, categories=["gaming"], tags=["fps"], title="Mouse")

        for _ in range(5):
            served = await selector.serve_ad(serve_request())
            assert served.response.ad.id == match.id

    async def test_falls_back_to_every_servable_ad(self, selector, seed, campaign):
        ad = await seed.ad(campaign, categories=["cooking"], tags=["pasta"])

        candidates = await selector.fetch_candidates("travel", ["beach"])
        served = await selector.serve_ad(serve_request(category="travel", tags=["beach"]))

        assert [c.ad_id for c in candidates] == [ad.id]
        assert served.response.ad.id == ad.id

    async def test_candidates_are_capped(self, session, seed, campaign):
        for index in range(3):
            await seed.ad(campaign, categories=["gaming"], title=f"match {index}")
        await seed.ad(campaign, categories=["cooking"], tags=["pasta"], title="other")
        selector = AdSelector(session, cost_per_view_cents=10, max_candidates=2)

        with patch.object(selector.ads, "ledgers_for", wraps=selector.ads.ledgers_for) as ledgers_for:
            candidates = await selector.fetch_candidates("gaming", [])

        assert len(candidates) == 2
        assert all(c.payload.title.startswith("match") for c in candidates)
        assert all(c.ledger.budget_cents == 10_000 for c in candidates)
        ledgers_for.assert_awaited_once()

    async def test_fallback_is_capped(self, session, seed, campaign):
        for index in range(3):
            await seed.ad(campaign, categories=["cooking"], tags=["pasta"], title=f"ad {index}")
        selector = AdSelector(session, cost_per_view_cents=10, max_candidates=2)

        candidates = await selector.fetch_candidates("travel", ["beach"])

        assert len(candidates) == 2

    async def test_skips_ads_that_cannot_afford_a_view(self, selector, seed, campaign):
        await seed.ad(campaign, budget_cents=100, spent_cents=95)

        assert await selector.serve_ad(serve_request()) is None

    async def test_pool_ad_limited_by_campaign_pool(self, selector, seed, owner):
        team = await seed.team(owner, name="Pool")
        exhausted = await seed.campaign(team, owner, budget_cents=1_000, spent_cents=995)
        await seed.ad(exhausted, budget_cents=None, spent_cents=995)

        assert await selector.serve_ad(serve_request()) is None

    @pytest.mark.parametrize(
        "campaign_kwargs,ad_status",
        [
            ({"status": "paused"}, "active"),
            ({"status": "active"}, "draft"),
            ({"end_date": utc_now() - timedelta(days=1)}, "active"),
            ({"start_date": utc_now() + timedelta(days=2)}, "active"),
        ],
    )
    async def test_ineligible_ads_are_never_served(self, selector, seed, owner, campaign_kwargs, ad_status):
        team = await seed.team(owner, name="Ineligible")
        campaign = await seed.campaign(team, owner, **campaign_kwargs)
        await seed.ad(campaign, status=ad_status)

        assert await selector.serve_ad(serve_request()) is None


class TestDebugScoring:
    """Test the scoring breakdown."""

    async def test_sorted_best_first_without_reserving(self, selector, seed, campaign, session):
        weak = await seed.ad(campaign, categories=["gaming"], tags=["racing"], title="Wheel")
        strong = await seed.ad(campaign, categories=["gaming"], tags=["fps"], title="Mouse")

        scored = await selector.debug_scoring(serve_request())

        assert [c.ad_id for c, _ in scored] == [strong.id, weak.id]
        assert scored[0][1].score > scored[1][1].score
        assert await session.get(AdImpression, 1) is None


def recording(calls, name, method):
    async def wrapper(*args, **kwargs):
        calls.append((name, kwargs.get("for_update", False)))
        return await method(*args, **kwargs)

    return wrapper


class TestReservationLocks:
    """Test the row locks taken while reserving an impression."""

    async def test_campaign_is_locked_before_ad(self, selector, seed, campaign):
        await seed.ad(campaign, budget_cents=1_000)
        calls = []

        with patch.object(
            selector.campaigns, "get_by_id", new=recording(calls, "campaign", selector.campaigns.get_by_id)
        ), patch.object(selector.ads, "get_by_id", new=recording(calls, "ad", selector.ads.get_by_id)):
            served = await selector.serve_ad(serve_request())

        assert served is not None
        assert calls == [("campaign", True), ("ad", True)]

    async def test_ad_moved_to_another_campaign_is_not_reserved(self, selector, seed, owner, campaign, session):
        ad = await seed.ad(campaign, budget_cents=1_000)
        candidates = await selector.fetch_candidates("gaming", ["fps"])
        other = await seed.campaign(await seed.team(owner, name="Elsewhere"), owner)
        ad.campaign_id = other.id
        await session.commit()

        assert await selector._reserve(candidates[0], serve_request(), ClientContext()) is None
