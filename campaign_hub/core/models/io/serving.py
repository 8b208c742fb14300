"""
Ad serving and impression I/O models.

These schemas define the public contract used by video players: requesting
an ad for a video and reporting impression events back with the token.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from campaign_hub.core.models.domain import ImpressionEvent


class ServeAdRequest(BaseModel):
    """Schema for requesting an ad for a video."""

    video_id: str = Field(min_length=1, description="Video the ad will play against")
    category: Optional[str] = Field(default=None, description="Video category")
    tags: List[str] = Field(default_factory=list, description="Video tags")
    user_id: Optional[str] = Field(default=None, description="Authenticated viewer ID")
    anon_id: Optional[str] = Field(default=None, description="Anonymous viewer ID")
    session_id: Optional[str] = Field(default=None, description="Player session ID")

    @model_validator(mode="after")
    def _check_identity_and_context(self) -> "ServeAdRequest":
        if not self.user_id and not self.anon_id:
            raise ValueError("Either user_id (for authenticated users) or anon_id (for anonymous users) must be provided")
        if not (self.category and self.category.strip()) and not any(t.strip() for t in self.tags):
            raise ValueError("Either category or at least one tag must be provided")
        return self

    @property
    def viewer_id(self) -> Optional[str]:
        return self.user_id or self.anon_id


class AdMetadata(BaseModel):
    """Ad creative returned to the player."""

    id: int
    title: str
    description: Optional[str] = None
    video_url: str
    thumbnail_url: str
    categories: List[str]
    tags: List[str]
    cta_link: Optional[str] = None

    class Config:
        from_attributes = True


class ServeAdResponse(BaseModel):
    """Schema for a served ad and its reserved impression."""

    ad: AdMetadata
    impression_token: str = Field(description="Signed token to confirm the impression with")
    cost_cents: int = Field(description="Amount billed once the impression is confirmed")
    expires_at: datetime = Field(description="Time (UTC) after which the impression can no longer be confirmed")


class ImpressionMetadata(BaseModel):
    """Optional playback details reported with an impression event."""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    view_duration: Optional[float] = Field(default=None, ge=0, description="Seconds watched")
    video_progress: Optional[float] = Field(default=None, ge=0, le=100, description="Percentage watched")


class ConfirmImpressionRequest(BaseModel):
    """Schema for reporting an impression event."""

    token: str = Field(min_length=1, description="Impression token returned by /ad/serve")
    event: ImpressionEvent
    user_id: Optional[str] = None
    anon_id: Optional[str] = None
    metadata: Optional[ImpressionMetadata] = None


class BillingDetails(BaseModel):
    cost_cents: int
    remaining_budget_cents: int


class ConfirmImpressionResponse(BaseModel):
    success: bool
    message: str
    billing_details: Optional[BillingDetails] = None


class ImpressionRead(BaseModel):
    """Safe projection of an impression (no viewer or client data)."""

    id: int
    ad_id: int
    campaign_id: int
    status: str
    action: str
    cost_cents: int
    expires_at: datetime
    served_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScoringFactorsRead(BaseModel):
    tag_overlap: float
    category_match: float
    budget_factor: float
    bid_amount: float


class ScoringDebugEntry(BaseModel):
    """One budget-eligible candidate with its score breakdown."""

    ad: AdMetadata
    campaign_id: int
    remaining_budget_cents: int
    score: float
    factors: ScoringFactorsRead


class ScoringWeightsRead(BaseModel):
    weights: Dict[str, float]
    max_candidates: int
    min_score: float
    cost_per_view_cents: int
    impression_ttl_minutes: int
