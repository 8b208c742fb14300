"""
Ad impression entity models.

An impression is reserved when an ad is selected for a video and carries a
signed token. The player confirms it with that token, which bills the ad.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, Text
from sqlmodel import Field

from ..base import UTC_TIMESTAMP, Base, utc_now


class AdImpression(Base, table=True):
    """Entity for ad impressions.

    Table: ad_impressions
    """

    __tablename__ = "ad_impressions"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_id: int = Field(foreign_key="ads.id", index=True)
    campaign_id: int = Field(foreign_key="campaigns.id", index=True)

    # Reservation
    token: Optional[str] = Field(default=None, max_length=1024, unique=True, index=True)
    status: str = Field(default="reserved", max_length=16, index=True)
    expires_at: datetime = Field(index=True, sa_type=UTC_TIMESTAMP)
    cost_cents: int = Field(default=0)

    # Serving context, copied from the request and its headers without a length cap
    viewer_id: Optional[str] = Field(default=None, sa_type=Text)
    session_id: Optional[str] = Field(default=None, sa_type=Text)
    video_id: str = Field(sa_type=Text)
    category: Optional[str] = Field(default=None, sa_type=Text)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Client fingerprint
    user_agent: Optional[str] = Field(default=None, sa_type=Text)
    ip_address: Optional[str] = Field(default=None, sa_type=Text)
    device_type: str = Field(default="unknown", max_length=16)
    os_type: str = Field(default="unknown", max_length=16)

    # Playback
    action: str = Field(default="view", max_length=16)
    view_duration: Optional[float] = Field(default=None)
    video_progress: Optional[float] = Field(default=None)

    served_at: Optional[datetime] = Field(default=None, sa_type=UTC_TIMESTAMP)
    confirmed_at: Optional[datetime] = Field(default=None, sa_type=UTC_TIMESTAMP)
    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"AdImpression(id={self.id}, ad_id={self.ad_id}, status={self.status})"
