"""API tests for campaigns and their wallet settlement."""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.models.domain import Permission, TeamRole

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def team(seed, user):
    await seed.wallet(user, 10_000)
    return await seed.team(user)


async def balance(client: AsyncClient, headers) -> int:
    return (await client.get("/api/v1/wallet/balance", headers=headers)).json()["balance_cents"]


class TestCreateCampaign:
    async def test_create_debits_wallet(self, client: AsyncClient, team, auth_headers):
        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns",
            json={"name": "Spring", "budget_cents": 3_000, "status": "active"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["budget_cents"] == 3_000
        assert data["remaining_cents"] == 3_000
        assert data["pool_available_cents"] == 3_000
        assert data["ad_count"] == 0
        assert await balance(client, auth_headers) == 7_000

    async def test_insufficient_funds(self, client: AsyncClient, team, auth_headers):
        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns", json={"name": "Big", "budget_cents": 10_001}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["balance_cents"] == 10_000
        assert response.json()["required_cents"] == 10_001

    async def test_start_date_in_the_past(self, client: AsyncClient, team, auth_headers):
        start = (utc_now() - timedelta(days=3)).isoformat()

        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns",
            json={"name": "Late", "budget_cents": 100, "start_date": start},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "end_hour,expected_status",
        [(9, 201), (7, 422)],
        ids=["end-after-start-in-utc", "end-before-start-in-utc"],
    )
    async def test_mixed_offset_dates(self, client: AsyncClient, team, auth_headers, end_hour, expected_status):
        day = (utc_now() + timedelta(days=2)).date().isoformat()

        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns",
            # 10:00+02:00 is 08:00 UTC; the end date carries no offset and is read as UTC.
            json={
                "name": "Zones",
                "budget_cents": 100,
                "start_date": f"{day}T10:00:00+02:00",
                "end_date": f"{day}T{end_hour:02d}:00:00",
            },
            headers=auth_headers,
        )

        assert response.status_code == expected_status
        if expected_status == 201:
            assert response.json()["start_date"] == f"{day}T08:00:00"
            assert response.json()["end_date"] == f"{day}T09:00:00"

    async def test_update_with_aware_end_date(self, client: AsyncClient, seed, team, user, auth_headers):
        campaign = await seed.campaign(team, user, start_date=utc_now() + timedelta(days=1))
        end = (campaign.start_date + timedelta(days=3)).isoformat() + "Z"

        response = await client.put(
            f"/api/v1/teams/{team.id}/campaigns/{campaign.id}", json={"end_date": end}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["end_date"] == (campaign.start_date + timedelta(days=3)).isoformat()

    @pytest.mark.parametrize("budget", [0, -1])
    async def test_budget_must_be_positive(self, client: AsyncClient, team, auth_headers, budget):
        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns", json={"name": "Zero", "budget_cents": budget}, headers=auth_headers
        )

        assert response.status_code == 422

    async def test_viewer_cannot_create(self, client: AsyncClient, seed, team, auth_headers_for):
        viewer = await seed.user()
        await seed.member(team, viewer, TeamRole.viewer, [Permission.view_campaign])

        response = await client.post(
            f"/api/v1/teams/{team.id}/campaigns",
            json={"name": "Nope", "budget_cents": 100},
            headers=auth_headers_for(viewer),
        )

        assert response.status_code == 403
        assert response.json() == {"detail": "Insufficient permissions", "required_permission": "create_campaign"}


class TestManageCampaign:
    async def test_list_get_update_delete(self, client: AsyncClient, seed, user, team, auth_headers):
        campaign = await seed.campaign(team, user, budget_cents=2_000, spent_cents=500)
        await seed.ad(campaign, budget_cents=1_000)
        base = f"/api/v1/teams/{team.id}/campaigns"

        listed = await client.get(base, params={"status": "active"}, headers=auth_headers)
        assert [c["id"] for c in listed.json()] == [campaign.id]

        fetched = await client.get(f"{base}/{campaign.id}", headers=auth_headers)
        assert fetched.json()["allocated_cents"] == 1_000
        assert fetched.json()["ad_count"] == 1

        raised = await client.put(f"{base}/{campaign.id}", json={"budget_cents": 2_500}, headers=auth_headers)
        assert raised.status_code == 200
        assert raised.json()["budget_cents"] == 2_500
        assert await balance(client, auth_headers) == 9_500

        deleted = await client.delete(f"{base}/{campaign.id}", headers=auth_headers)
        assert deleted.json() == {"success": True, "refunded_cents": 2_000}
        assert await balance(client, auth_headers) == 11_500

        missing = await client.get(f"{base}/{campaign.id}", headers=auth_headers)
        assert missing.status_code == 404

    async def test_budget_below_committed(self, client: AsyncClient, seed, user, team, auth_headers):
        campaign = await seed.campaign(team, user, budget_cents=2_000)
        await seed.ad(campaign, budget_cents=1_500)

        response = await client.put(
            f"/api/v1/teams/{team.id}/campaigns/{campaign.id}", json={"budget_cents": 1_000}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["committed_cents"] == 1_500

    async def test_campaign_of_another_team(self, client: AsyncClient, seed, team, auth_headers):
        stranger = await seed.user()
        foreign = await seed.campaign(await seed.team(stranger, name="Other"), stranger)

        response = await client.get(f"/api/v1/teams/{team.id}/campaigns/{foreign.id}", headers=auth_headers)

        assert response.status_code == 404
