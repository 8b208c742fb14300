"""
Campaign and ad entity models.

Money columns are integer cents. ``Ad.budget_cents`` is nullable: an ad
without its own budget draws from the campaign's unallocated pool.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from ..base import UTC_TIMESTAMP, Base, utc_now


class Campaign(Base, table=True):
    """Entity for advertising campaigns.

    ``spent_cents`` accumulates every billed impression of every ad in the campaign.

    Table: campaigns
    """

    __tablename__ = "campaigns"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(default="draft", max_length=16, index=True)

    budget_cents: int = Field(default=0)
    spent_cents: int = Field(default=0)

    start_date: Optional[datetime] = Field(default=None, sa_type=UTC_TIMESTAMP)
    end_date: Optional[datetime] = Field(default=None, sa_type=UTC_TIMESTAMP)

    team_id: int = Field(foreign_key="teams.id", index=True)
    created_by: int = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"Campaign(id={self.id}, name={self.name}, status={self.status})"


class Ad(Base, table=True):
    """Entity for video ads.

    Table: ads
    """

    __tablename__ = "ads"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    categories: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    cta_link: Optional[str] = Field(default=None, max_length=2048)
    video_url: str = Field(max_length=2048)
    thumbnail_url: str = Field(default="", max_length=2048)
    status: str = Field(default="draft", max_length=16, index=True)

    budget_cents: Optional[int] = Field(default=None)
    spent_cents: int = Field(default=0)

    campaign_id: int = Field(foreign_key="campaigns.id", index=True)
    created_by: int = Field(foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    @property
    def uses_campaign_pool(self) -> bool:
        return self.budget_cents is None

    def __repr__(self) -> str:
        return f"Ad(id={self.id}, title={self.title}, campaign_id={self.campaign_id})"
