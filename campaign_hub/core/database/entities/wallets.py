"""
Wallet and transaction entity models.

Each user owns at most one wallet. Transactions form the ledger of every
balance change: funds added, campaign budget allocations and refunds.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from ..base import UTC_TIMESTAMP, Base, utc_now


class Wallet(Base, table=True):
    """Entity for user wallets.

    Table: wallets
    """

    __tablename__ = "wallets"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    balance_cents: int = Field(default=0)
    currency: str = Field(default="USD", max_length=3)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"Wallet(id={self.id}, user_id={self.user_id}, balance_cents={self.balance_cents})"


class Transaction(Base, table=True):
    """Entity for wallet transactions.

    The ``metadata`` column is exposed as ``details`` because ``metadata``
    is reserved on declarative models.

    Table: transactions
    """

    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_id: int = Field(foreign_key="wallets.id", index=True)
    type: str = Field(max_length=16)
    amount_cents: int = Field()
    description: Optional[str] = Field(default=None, max_length=500)
    reference_id: Optional[str] = Field(default=None, max_length=255)
    payment_method: Optional[str] = Field(default=None, max_length=32)
    status: str = Field(default="pending", max_length=16)

    campaign_id: Optional[int] = Field(default=None, index=True)
    ad_id: Optional[int] = Field(default=None)
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON, nullable=True))

    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTC_TIMESTAMP)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTC_TIMESTAMP)

    def __repr__(self) -> str:
        return f"Transaction(id={self.id}, type={self.type}, amount_cents={self.amount_cents})"
