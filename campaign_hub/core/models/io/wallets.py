"""
Wallet and transaction I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from campaign_hub.core.models.domain import PaymentMethod, TransactionStatus, TransactionType

MAX_TOP_UP_CENTS = 1_000_000


class WalletRead(BaseModel):
    id: int
    user_id: int
    balance_cents: int
    currency: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionRead(BaseModel):
    id: int
    wallet_id: int
    type: TransactionType
    amount_cents: int
    description: Optional[str] = None
    reference_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    status: TransactionStatus
    campaign_id: Optional[int] = None
    ad_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AddFundsRequest(BaseModel):
    amount_cents: int = Field(gt=0, le=MAX_TOP_UP_CENTS)
    payment_method: PaymentMethod = PaymentMethod.manual
    description: Optional[str] = Field(default=None, max_length=500)
    reference_id: Optional[str] = Field(default=None, max_length=255)


class AddFundsResponse(BaseModel):
    wallet: WalletRead
    transaction: TransactionRead


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class TransactionPage(BaseModel):
    transactions: List[TransactionRead]
    pagination: Pagination
