"""
Database entities for CampaignHub.

Importing this package registers every table on ``Base.metadata``.
"""

from .campaigns import Ad, Campaign
from .impressions import AdImpression
from .teams import Team, TeamMember
from .users import User
from .wallets import Transaction, Wallet

__all__ = [
    "Ad",
    "AdImpression",
    "Campaign",
    "Team",
    "TeamMember",
    "Transaction",
    "User",
    "Wallet",
]
