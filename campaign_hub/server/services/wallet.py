"""
Wallet Service.

Owns every balance change. ``debit`` and ``credit`` only stage the change in
the caller's session so that a campaign and the funds it takes are committed
together; ``add_funds`` is a complete unit of work.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import Transaction, Wallet
from campaign_hub.core.database.repositories import TransactionRepository, WalletRepository
from campaign_hub.core.errors import InsufficientFundsError, NotFoundError, ValidationFailedError
from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.domain import (
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)
from campaign_hub.core.models.io.wallets import (
    AddFundsRequest,
    Pagination,
    TransactionPage,
    TransactionRead,
)

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class WalletService:
    """Wallet balances and the transaction ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.wallets = WalletRepository(session)
        self.transactions = TransactionRepository(session)

    async def get_or_create(self, user_id: int, for_update: bool = False) -> Wallet:
        """
        Get a user's wallet, creating an empty one on first access.

        Args:
            user_id: Wallet owner
            for_update: Lock the wallet row for a balance change

        Returns:
            The user's wallet
        """
        wallet = await self.wallets.get_by_user(user_id, for_update=for_update)
        if wallet is None:
            wallet = await self.wallets.create(Wallet(user_id=user_id))
            logger.info(f"Created wallet {wallet.id} for user {user_id}")
        return wallet

    async def debit(
        self,
        user_id: int,
        amount_cents: int,
        description: str,
        campaign_id: Optional[int] = None,
        ad_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """
        Stage a debit against a user's wallet.

        Raises:
            InsufficientFundsError: The balance does not cover ``amount_cents``
        """
        if amount_cents <= 0:
            raise ValidationFailedError("Debit amount must be positive")
        wallet = await self.get_or_create(user_id, for_update=True)
        if not wallet.is_active:
            raise ValidationFailedError("Wallet is inactive")
        if wallet.balance_cents < amount_cents:
            raise InsufficientFundsError(
                "Insufficient wallet balance",
                {"balance_cents": wallet.balance_cents, "required_cents": amount_cents},
            )
        wallet.balance_cents -= amount_cents
        wallet.updated_at = utc_now()
        return await self._record(
            wallet,
            TransactionType.debit,
            amount_cents,
            description,
            payment_method=PaymentMethod.wallet,
            campaign_id=campaign_id,
            ad_id=ad_id,
            details=details,
        )

    async def credit(
        self,
        user_id: int,
        amount_cents: int,
        description: str,
        payment_method: PaymentMethod = PaymentMethod.wallet,
        reference_id: Optional[str] = None,
        campaign_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Stage a credit to a user's wallet."""
        if amount_cents <= 0:
            raise ValidationFailedError("Credit amount must be positive")
        wallet = await self.get_or_create(user_id, for_update=True)
        wallet.balance_cents += amount_cents
        wallet.updated_at = utc_now()
        return await self._record(
            wallet,
            TransactionType.credit,
            amount_cents,
            description,
            payment_method=payment_method,
            reference_id=reference_id,
            campaign_id=campaign_id,
            details=details,
        )

    async def add_funds(self, user_id: int, request: AddFundsRequest) -> Tuple[Wallet, Transaction]:
        """Top up a wallet and commit."""
        transaction = await self.credit(
            user_id,
            request.amount_cents,
            request.description or "Funds added to wallet",
            payment_method=request.payment_method,
            reference_id=request.reference_id,
        )
        await self.session.commit()
        wallet = await self.get_or_create(user_id)
        logger.info(f"Added {request.amount_cents} cents to wallet {wallet.id}")
        return wallet, transaction

    async def list_transactions(
        self,
        user_id: int,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
    ) -> TransactionPage:
        """Page through the caller's transactions, newest first."""
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        wallet = await self.get_or_create(user_id)
        items, total = await self.transactions.page_for_wallet(
            wallet.id,
            limit=limit,
            offset=(page - 1) * limit,
            type=type.value if type else None,
            status=status.value if status else None,
        )
        await self.session.commit()
        total_pages = math.ceil(total / limit) if total else 0
        return TransactionPage(
            transactions=[TransactionRead.model_validate(t) for t in items],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_more=page < total_pages,
            ),
        )

    async def get_transaction(self, user_id: int, transaction_id: int) -> Transaction:
        wallet = await self.get_or_create(user_id)
        transaction = await self.transactions.get_for_wallet(transaction_id, wallet.id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    async def _record(
        self,
        wallet: Wallet,
        type: TransactionType,
        amount_cents: int,
        description: str,
        payment_method: PaymentMethod,
        reference_id: Optional[str] = None,
        campaign_id: Optional[int] = None,
        ad_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        return await self.transactions.create(
            Transaction(
                wallet_id=wallet.id,
                type=type.value,
                amount_cents=amount_cents,
                description=description,
                reference_id=reference_id,
                payment_method=payment_method.value,
                status=TransactionStatus.completed.value,
                campaign_id=campaign_id,
                ad_id=ad_id,
                details=details,
            )
        )
