"""Unit tests for the repository layer against in-memory SQLite."""

from datetime import timedelta

import pytest

from campaign_hub.core.database import utc_now
from campaign_hub.core.database.entities import Campaign
from campaign_hub.core.database.repositories import (
    AdRepository,
    CampaignRepository,
    ImpressionRepository,
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)
from campaign_hub.core.models.domain import CampaignStatus, TeamRole

pytestmark = pytest.mark.asyncio


class TestBaseRepository:
    """Test the generic CRUD operations."""

    async def test_list_and_count_with_enum_filter(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        await seed.campaign(team, owner, name="A")
        await seed.campaign(team, owner, name="B", status="paused")
        await seed.campaign(team, owner, name="C")

        repo = CampaignRepository(session)
        active = await repo.list(filters={"status": CampaignStatus.active, "unknown": 1})

        assert [c.name for c in active] == ["A", "C"]
        assert await repo.count(filters={"status": "paused"}) == 1
        assert [c.name for c in await repo.list(limit=1, offset=1)] == ["B"]

    async def test_delete(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        campaign = await seed.campaign(team, owner)

        repo = CampaignRepository(session)

        assert await repo.delete(campaign.id) is True
        assert await repo.delete(campaign.id) is False
        assert await session.get(Campaign, campaign.id) is None

    async def test_create_flushes_id(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)

        campaign = await CampaignRepository(session).create(
            Campaign(name="New", budget_cents=100, team_id=team.id, created_by=owner.id)
        )

        assert campaign.id is not None


class TestCampaignAndAdRepositories:
    """Test the team scoping and budget queries."""

    async def test_get_for_team_checks_ownership(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        other = await seed.team(owner, name="Other")
        campaign = await seed.campaign(team, owner)

        repo = CampaignRepository(session)

        assert (await repo.get_for_team(team.id, campaign.id)).id == campaign.id
        assert await repo.get_for_team(other.id, campaign.id) is None

    async def test_budget_totals_and_ledger(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        campaign = await seed.campaign(team, owner, budget_cents=1_000, spent_cents=50)
        await seed.ad(campaign, budget_cents=None, spent_cents=30)
        await seed.ad(campaign, budget_cents=300, spent_cents=20)
        await seed.ad(campaign, budget_cents=200)

        repo = AdRepository(session)
        totals = await repo.budget_totals(campaign.id)
        ledger = await repo.ledger_for(campaign)

        assert (totals.allocated_cents, totals.budgeted_spent_cents, totals.ad_count) == (500, 20, 3)
        assert ledger.pool_spent_cents == 30
        assert ledger.pool_available_cents == 470
        assert ledger.committed_cents == 530

    async def test_budget_totals_without_ads(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        campaign = await seed.campaign(team, owner)

        totals = await AdRepository(session).budget_totals(campaign.id)

        assert (totals.allocated_cents, totals.budgeted_spent_cents, totals.ad_count) == (0, 0, 0)

    async def test_eligible_for_serving(self, session, seed):
        now = utc_now()
        owner = await seed.user()
        team = await seed.team(owner)
        running = await seed.campaign(team, owner, start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))
        servable = await seed.ad(running, title="servable")
        await seed.ad(running, status="paused", title="paused ad")
        paused = await seed.campaign(team, owner, status="paused")
        await seed.ad(paused, title="paused campaign")
        upcoming = await seed.campaign(team, owner, start_date=now + timedelta(days=1))
        await seed.ad(upcoming, title="not started")
        ended = await seed.campaign(team, owner, end_date=now - timedelta(days=1))
        await seed.ad(ended, title="ended")

        pairs = await AdRepository(session).eligible_for_serving(now)

        assert [(ad.id, campaign.id) for ad, campaign in pairs] == [(servable.id, running.id)]

    @pytest.mark.parametrize(
        "category,tags,expected",
        [
            ("gaming", [], ["gear"]),
            ("GAMING ", [], ["gear"]),
            (None, ["beach"], ["trip"]),
            ("cooking", ["FPS"], ["gear", "pans"]),
            (None, ["fps", "Beach"], ["gear", "trip"]),
            ("music", ["jazz"], []),
        ],
    )
    async def test_eligible_for_serving_matches_context_in_query(self, session, seed, category, tags, expected):
        owner = await seed.user()
        campaign = await seed.campaign(await seed.team(owner), owner)
        await seed.ad(campaign, title="gear", categories=["Gaming"], tags=["fps"])
        await seed.ad(campaign, title="pans", categories=["cooking"], tags=["pasta"])
        await seed.ad(campaign, title="trip", categories=["travel"], tags=[" Beach "])

        pairs = await AdRepository(session).eligible_for_serving(utc_now(), category, tags)

        assert sorted(ad.title for ad, _ in pairs) == expected

    async def test_eligible_for_serving_limit(self, session, seed):
        owner = await seed.user()
        campaign = await seed.campaign(await seed.team(owner), owner)
        for index in range(4):
            await seed.ad(campaign, title=f"ad {index}", categories=["gaming"])

        repo = AdRepository(session)

        assert len(await repo.eligible_for_serving(utc_now(), "gaming", limit=3)) == 3
        assert len(await repo.eligible_for_serving(utc_now())) == 4

    async def test_ledgers_for_many_campaigns(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        funded = await seed.campaign(team, owner, budget_cents=1_000, spent_cents=120)
        await seed.ad(funded, budget_cents=400, spent_cents=100)
        await seed.ad(funded, budget_cents=None, spent_cents=20)
        empty = await seed.campaign(team, owner, budget_cents=500)

        repo = AdRepository(session)
        ledgers = await repo.ledgers_for([funded, empty, funded])

        assert set(ledgers) == {funded.id, empty.id}
        assert ledgers[funded.id] == await repo.ledger_for(funded)
        assert ledgers[funded.id].allocated_cents == 400
        assert ledgers[empty.id].allocated_cents == 0
        assert ledgers[empty.id].remaining_cents == 500
        assert await repo.ledgers_for([]) == {}

    async def test_list_for_team_joins_campaigns(self, session, seed):
        owner = await seed.user()
        team = await seed.team(owner)
        other = await seed.team(owner, name="Other")
        mine = await seed.ad(await seed.campaign(team, owner))
        await seed.ad(await seed.campaign(other, owner))

        ads = await AdRepository(session).list_for_team(team.id)

        assert [ad.id for ad in ads] == [mine.id]


class TestImpressionRepository:
    """Test token lookups, the stale sweep and the aggregations."""

    async def test_get_by_token(self, session, seed):
        owner = await seed.user()
        ad = await seed.ad(await seed.campaign(await seed.team(owner), owner))
        impression = await seed.impression(ad)

        repo = ImpressionRepository(session)

        assert (await repo.get_by_token(impression.token)).id == impression.id
        assert await repo.get_by_token("missing") is None

    async def test_expire_stale_only_touches_lapsed_reservations(self, session, seed):
        owner = await seed.user()
        ad = await seed.ad(await seed.campaign(await seed.team(owner), owner))
        lapsed = await seed.impression(ad, expires_in=timedelta(minutes=-5))
        live = await seed.impression(ad)
        billed = await seed.impression(ad, status="confirmed", expires_in=timedelta(minutes=-5))

        repo = ImpressionRepository(session)
        expired = await repo.expire_stale(utc_now())
        await session.commit()

        assert expired == 1
        for impression, status in ((lapsed, "expired"), (live, "reserved"), (billed, "confirmed")):
            await session.refresh(impression)
            assert impression.status == status

    async def test_aggregations_count_confirmed_only(self, session, seed):
        now = utc_now()
        owner = await seed.user()
        campaign = await seed.campaign(await seed.team(owner), owner)
        popular = await seed.ad(campaign)
        quiet = await seed.ad(campaign)
        for action in ("view", "view", "click"):
            await seed.impression(popular, status="confirmed", confirmed_at=now, action=action)
        await seed.impression(quiet, status="confirmed", confirmed_at=now - timedelta(days=3), device_type="mobile")
        await seed.impression(quiet, status="reserved")

        repo = ImpressionRepository(session)

        assert await repo.count_confirmed([campaign.id]) == (4, 40)
        assert await repo.count_confirmed(ad_id=quiet.id) == (1, 10)
        assert await repo.top_ads([campaign.id], limit=5) == [(popular.id, 3), (quiet.id, 1)]
        assert await repo.top_campaigns([campaign.id], limit=5) == [(campaign.id, 4)]
        assert await repo.top_ads([], limit=5) == []
        assert await repo.count_by("action", popular.id) == {"view": 2, "click": 1}
        assert await repo.count_by("device_type", quiet.id) == {"mobile": 1}
        assert len(await repo.confirmed_since(now - timedelta(days=1), campaign_ids=[campaign.id])) == 3


class TestTeamAndUserRepositories:
    """Test membership and identity lookups."""

    async def test_memberships(self, session, seed):
        owner = await seed.user()
        member = await seed.user()
        team = await seed.team(owner)
        await seed.member(team, member, role=TeamRole.admin)

        members = TeamMemberRepository(session)
        listed = await members.list_with_users(team.id)

        assert [user.id for _, user in listed] == [owner.id, member.id]
        assert await members.count_for_team(team.id) == 2
        assert await members.count_for_user(member.id) == 1
        assert (await members.get_membership(team.id, member.id)).role == TeamRole.admin.value
        assert [t.id for t, _ in await TeamRepository(session).list_for_user(member.id)] == [team.id]

    async def test_user_lookups(self, session, seed):
        user = await seed.user(email="jo@example.com", username="jo")
        user.videostreampro_id = "vsp-1"
        await session.commit()

        repo = UserRepository(session)

        assert (await repo.get_by_email("JO@example.com")).id == user.id
        assert (await repo.get_by_username("jo")).id == user.id
        assert (await repo.get_by_videostreampro_id("vsp-1")).id == user.id
        assert await repo.get_by_username("nobody") is None
