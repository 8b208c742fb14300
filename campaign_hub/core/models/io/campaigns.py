"""
Campaign I/O models.

Flight dates are normalized to naive UTC on input, so offset and
offset-free timestamps can be mixed in one request.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from campaign_hub.core.database.base import to_naive_utc
from campaign_hub.core.models.domain import CampaignStatus


class CampaignCreate(BaseModel):
    """Schema for creating a campaign; the budget is debited from the creator's wallet."""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    budget_cents: int = Field(gt=0, description="Campaign budget in cents")
    status: CampaignStatus = CampaignStatus.draft
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _check_dates(self) -> "CampaignCreate":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    budget_cents: Optional[int] = Field(default=None, gt=0)
    status: Optional[CampaignStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class CampaignRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    status: CampaignStatus
    budget_cents: int
    spent_cents: int
    remaining_cents: int = Field(description="Budget not yet spent")
    allocated_cents: int = Field(description="Budget assigned to ads with their own budget")
    pool_available_cents: int = Field(description="Budget available to new ad budgets and pool ads")
    ad_count: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    team_id: int
    created_by: int
    created_at: datetime
    updated_at: datetime


class CampaignDeleteResult(BaseModel):
    success: bool = True
    refunded_cents: int
