"""
Wallet and transaction repositories.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.wallets import Transaction, Wallet
from .base import AsyncBaseRepository, QueryBuilder


class WalletRepository(AsyncBaseRepository[Wallet]):
    """Repository for wallet data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Wallet)

    async def get_by_user(self, user_id: int, for_update: bool = False) -> Optional[Wallet]:
        """Get the wallet of a user, optionally locking the row for a balance change."""
        stmt = select(Wallet).where(Wallet.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()


class TransactionRepository(AsyncBaseRepository[Transaction]):
    """Repository for wallet transaction data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Transaction)

    async def page_for_wallet(
        self,
        wallet_id: int,
        limit: int,
        offset: int,
        type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Transaction], int]:
        """Page through a wallet's transactions, newest first.

        Args:
            wallet_id: Wallet to list
            limit: Page size
            offset: Rows to skip
            type: Optional transaction type filter
            status: Optional transaction status filter

        Returns:
            The page of transactions and the total number of matching rows
        """
        filters = {"wallet_id": wallet_id, "type": type, "status": status}
        count_stmt = QueryBuilder.apply_filters(select(func.count()).select_from(Transaction), Transaction, filters)
        total = int((await self.session.execute(count_stmt)).scalar_one())

        stmt = QueryBuilder.apply_filters(select(Transaction), Transaction, filters)
        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_for_wallet(self, transaction_id: int, wallet_id: int) -> Optional[Transaction]:
        stmt = select(Transaction).where((Transaction.id == transaction_id) & (Transaction.wallet_id == wallet_id))
        result = await self.session.execute(stmt)
        return result.scalars().first()
