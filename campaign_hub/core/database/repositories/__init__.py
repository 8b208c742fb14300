"""
Repositories for the CampaignHub database layer.

Each repository wraps an ``AsyncSession`` and never commits; services own
the unit of work.
"""

from .base import AsyncBaseRepository, QueryBuilder
from .campaigns import AdRepository, BudgetTotals, CampaignRepository
from .impressions import ImpressionRepository
from .teams import TeamMemberRepository, TeamRepository
from .users import UserRepository
from .wallets import TransactionRepository, WalletRepository

__all__ = [
    "AdRepository",
    "AsyncBaseRepository",
    "BudgetTotals",
    "CampaignRepository",
    "ImpressionRepository",
    "QueryBuilder",
    "TeamMemberRepository",
    "TeamRepository",
    "TransactionRepository",
    "UserRepository",
    "WalletRepository",
]
