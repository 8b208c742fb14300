"""
Wallet Endpoints.

Balances are held in integer cents. Campaign budgets are debited from and
refunded to the creator's wallet by the campaign endpoints; this router only
reads the ledger and tops the wallet up.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from campaign_hub.core.models.domain import TransactionStatus, TransactionType
from campaign_hub.core.models.io.teams import WalletBalanceRead
from campaign_hub.core.models.io.wallets import (
    AddFundsRequest,
    AddFundsResponse,
    TransactionPage,
    TransactionRead,
    WalletRead,
)
from campaign_hub.server.services.deps import CurrentUser, SessionDep
from campaign_hub.server.services.wallet import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, WalletService

router = APIRouter(tags=["wallet"])


@router.get(
    "",
    response_model=WalletRead,
    summary="Get Wallet",
    description="Return the caller's wallet, creating an empty one on first access.",
)
async def get_wallet(user: CurrentUser, session: SessionDep) -> WalletRead:
    service = WalletService(session)
    wallet = await service.get_or_create(user.id)
    await session.commit()
    return WalletRead.model_validate(wallet)


@router.get(
    "/balance",
    response_model=WalletBalanceRead,
    summary="Get Balance",
    description="Return the caller's balance in cents.",
)
async def get_balance(user: CurrentUser, session: SessionDep) -> WalletBalanceRead:
    wallet = await WalletService(session).get_or_create(user.id)
    await session.commit()
    return WalletBalanceRead(balance_cents=wallet.balance_cents, currency=wallet.currency)


@router.post(
    "/add-funds",
    response_model=AddFundsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Funds",
    description="Credit the caller's wallet and record a completed credit transaction.",
    responses={
        201: {"description": "Funds added"},
        422: {"description": "Amount missing, not positive or above the top-up limit"},
    },
)
async def add_funds(body: AddFundsRequest, user: CurrentUser, session: SessionDep) -> AddFundsResponse:
    wallet, transaction = await WalletService(session).add_funds(user.id, body)
    return AddFundsResponse(
        wallet=WalletRead.model_validate(wallet),
        transaction=TransactionRead.model_validate(transaction),
    )


@router.get(
    "/transactions",
    response_model=TransactionPage,
    summary="List Transactions",
    description="Page through the caller's transactions, newest first.",
)
async def list_transactions(
    user: CurrentUser,
    session: SessionDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    type: Optional[TransactionType] = None,
    status: Optional[TransactionStatus] = None,
) -> TransactionPage:
    return await WalletService(session).list_transactions(user.id, page=page, limit=limit, type=type, status=status)


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionRead,
    summary="Get Transaction",
    responses={404: {"description": "No such transaction in the caller's wallet"}},
)
async def get_transaction(transaction_id: int, user: CurrentUser, session: SessionDep) -> TransactionRead:
    return TransactionRead.model_validate(await WalletService(session).get_transaction(user.id, transaction_id))
