"""
Ad I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from campaign_hub.core.models.domain import AdStatus


class AdCreate(BaseModel):
    """Schema for creating an ad; omit ``budget_cents`` to draw from the campaign pool."""

    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    categories: List[str] = Field(min_length=1, description="At least one category")
    tags: List[str] = Field(default_factory=list)
    cta_link: Optional[str] = Field(default=None, max_length=2048)
    video_url: str = Field(min_length=1, max_length=2048)
    thumbnail_url: str = Field(default="", max_length=2048)
    status: AdStatus = AdStatus.draft
    budget_cents: Optional[int] = Field(default=None, ge=0)


class AdUpdate(BaseModel):
    """Schema for updating an ad; an explicit ``budget_cents: null`` moves it to the campaign pool."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    categories: Optional[List[str]] = Field(default=None, min_length=1)
    tags: Optional[List[str]] = None
    cta_link: Optional[str] = Field(default=None, max_length=2048)
    video_url: Optional[str] = Field(default=None, min_length=1, max_length=2048)
    thumbnail_url: Optional[str] = Field(default=None, max_length=2048)
    status: Optional[AdStatus] = None
    budget_cents: Optional[int] = Field(default=None, ge=0)


class AdRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    categories: List[str]
    tags: List[str]
    cta_link: Optional[str] = None
    video_url: str
    thumbnail_url: str
    status: AdStatus
    budget_cents: Optional[int] = Field(default=None, description="None when the ad uses the campaign pool")
    spent_cents: int
    campaign_id: int
    created_by: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdBudgetInfo(BaseModel):
    campaign_budget_cents: int
    allocated_cents: int
    spent_cents: int
    available_cents: int


class AdDeleteResult(BaseModel):
    success: bool = True
    released_budget_cents: int
