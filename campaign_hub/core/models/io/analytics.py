"""
Analytics I/O models. Impression counts only include confirmed impressions.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, List

from pydantic import BaseModel


class DailyImpressions(BaseModel):
    date: dt.date
    impressions: int


class CampaignSummary(BaseModel):
    id: int
    name: str
    status: str
    impressions: int
    spent_cents: int


class AdSummary(BaseModel):
    id: int
    title: str
    campaign_id: int
    impressions: int
    spent_cents: int


class TeamAnalytics(BaseModel):
    team_id: int
    total_campaigns: int
    active_campaigns: int
    total_budget_cents: int
    total_spent_cents: int
    available_budget_cents: int
    total_impressions: int
    top_campaigns: List[CampaignSummary]
    top_ads: List[AdSummary]
    impressions_by_day: List[DailyImpressions]


class CampaignAnalytics(BaseModel):
    campaign_id: int
    name: str
    status: str
    budget_cents: int
    spent_cents: int
    remaining_cents: int
    is_low_budget: bool
    total_ads: int
    total_impressions: int
    top_ads: List[AdSummary]
    impressions_by_day: List[DailyImpressions]


class AdAnalytics(BaseModel):
    ad_id: int
    campaign_id: int
    title: str
    total_impressions: int
    total_cost_cents: int
    by_action: Dict[str, int]
    by_device: Dict[str, int]
    impressions_by_day: List[DailyImpressions]
