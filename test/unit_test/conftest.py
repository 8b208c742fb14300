"""Test configuration shared by the unit tests.

Provides an in-memory SQLite database with the full CampaignHub schema and a
``seed`` helper that inserts users, teams, campaigns, ads and impressions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import AsyncGenerator, Iterable, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel.pool import StaticPool

from campaign_hub.core.database import create_all, create_sessionmaker, utc_now
from campaign_hub.core.database.entities import Ad, AdImpression, Campaign, Team, TeamMember, User, Wallet
from campaign_hub.core.models.domain import TeamRole
from campaign_hub.serving.tokens import generate_impression_token

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class Seeder:
    """Inserts committed rows for tests."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._counter = 0

    async def _save(self, entity):
        self.session.add(entity)
        await self.session.commit()
        return entity

    async def user(self, email: Optional[str] = None, username: Optional[str] = None) -> User:
        self._counter += 1
        return await self._save(
            User(
                email=email or f"user{self._counter}@example.com",
                username=username or f"user{self._counter}",
                is_verified=True,
            )
        )

    async def wallet(self, user: User, balance_cents: int = 0) -> Wallet:
        return await self._save(Wallet(user_id=user.id, balance_cents=balance_cents))

    async def team(self, owner: User, name: str = "Growth") -> Team:
        team = await self._save(Team(name=name, owner_id=owner.id))
        await self._save(TeamMember(team_id=team.id, user_id=owner.id, role=TeamRole.owner.value, permissions=[]))
        return team

    async def member(
        self,
        team: Team,
        user: User,
        role: TeamRole = TeamRole.member,
        permissions: Iterable[str] = (),
    ) -> TeamMember:
        stored = [getattr(p, "value", p) for p in permissions]
        return await self._save(TeamMember(team_id=team.id, user_id=user.id, role=role.value, permissions=stored))

    async def campaign(
        self,
        team: Team,
        creator: User,
        budget_cents: int = 10_000,
        spent_cents: int = 0,
        status: str = "active",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        name: str = "Launch",
    ) -> Campaign:
        return await self._save(
            Campaign(
                name=name,
                status=status,
                budget_cents=budget_cents,
                spent_cents=spent_cents,
                start_date=start_date,
                end_date=end_date,
                team_id=team.id,
                created_by=creator.id,
            )
        )

    async def ad(
        self,
        campaign: Campaign,
        budget_cents: Optional[int] = None,
        spent_cents: int = 0,
        categories: Iterable[str] = ("gaming",),
        tags: Iterable[str] = ("fps", "esports"),
        status: str = "active",
        title: str = "Headset",
    ) -> Ad:
        return await self._save(
            Ad(
                title=title,
                categories=list(categories),
                tags=list(tags),
                video_url="https://cdn.example.com/ad.mp4",
                thumbnail_url="https://cdn.example.com/ad.jpg",
                status=status,
                budget_cents=budget_cents,
                spent_cents=spent_cents,
                campaign_id=campaign.id,
                created_by=campaign.created_by,
            )
        )

    async def impression(
        self,
        ad: Ad,
        status: str = "reserved",
        expires_in: timedelta = timedelta(minutes=30),
        cost_cents: int = 10,
        confirmed_at: Optional[datetime] = None,
        action: str = "view",
        device_type: str = "desktop",
        video_id: str = "video-1",
    ) -> AdImpression:
        now = utc_now()
        impression = AdImpression(
            ad_id=ad.id,
            campaign_id=ad.campaign_id,
            status=status,
            expires_at=now + expires_in,
            cost_cents=cost_cents,
            viewer_id="anon-1",
            video_id=video_id,
            category="gaming",
            tags=["fps"],
            device_type=device_type,
            action=action,
            confirmed_at=confirmed_at,
        )
        self.session.add(impression)
        await self.session.flush()
        impression.token = generate_impression_token(impression.id, impression.expires_at)
        return await self._save(impression)


@pytest_asyncio.fixture
async def engine():
    """Create an in-memory SQLite engine with every table."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async with create_sessionmaker(engine)() as session:
        yield session


@pytest_asyncio.fixture
async def seed(session: AsyncSession) -> Seeder:
    return Seeder(session)
