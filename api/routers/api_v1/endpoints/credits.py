"""
Credit Endpoints

FastAPI endpoints for issuing, buying, retiring and transferring credits.
Purchases and retirements go through the marketplace service so they land
in the account history; an unconfirmed call is answered with a pending
record rather than an error.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from api.database.repositories.transaction import TransactionRepository
from api.dependencies.ledger import get_ledger_client, get_transaction_repository
from api.schemas.credit import (
    BalanceResponse,
    LedgerTransactionResponse,
    MarketplaceTransactionResponse,
    MintCreditsRequest,
    PurchaseCreditsRequest,
    RetireCreditsRequest,
    TransferCreditsRequest,
)
from api.services.marketplace_service import MarketplaceService
from api.utils.security import require_admin_key
from ecocredit_offchain.ledger_client import CreditLedgerClient


router = APIRouter()

LedgerClient = Annotated[CreditLedgerClient, Depends(get_ledger_client)]


def get_marketplace_service(
    client: LedgerClient,
    history: Annotated[TransactionRepository, Depends(get_transaction_repository)],
) -> MarketplaceService:
    return MarketplaceService(client, history)


Marketplace = Annotated[MarketplaceService, Depends(get_marketplace_service)]


@router.post(
    "/mint",
    response_model=LedgerTransactionResponse,
    summary="Mint credits",
    description="Issue credits out of a project's available credits. Requires the admin API key.",
    dependencies=[Depends(require_admin_key)],
)
def mint_credits(request: MintCreditsRequest, client: LedgerClient) -> LedgerTransactionResponse:
    result = client.mint_credits(request.to, request.amount, request.project_id)
    return LedgerTransactionResponse.from_result(result)


@router.post(
    "/purchase",
    response_model=MarketplaceTransactionResponse,
    summary="Purchase credits",
    description="Buy credits at the project's current price. The exact cost is attached as payment.",
)
async def purchase_credits(request: PurchaseCreditsRequest, service: Marketplace) -> MarketplaceTransactionResponse:
    return await service.purchase(request.project_id, request.amount, request.account)


@router.post(
    "/retire",
    response_model=MarketplaceTransactionResponse,
    summary="Retire credits",
    description="Burn credits as an offset claim and publish the retirement to the audit topic.",
)
async def retire_credits(request: RetireCreditsRequest, service: Marketplace) -> MarketplaceTransactionResponse:
    return await service.retire(request.amount, request.reason, request.account)


@router.post(
    "/transfer",
    response_model=LedgerTransactionResponse,
    summary="Transfer credits",
)
def transfer_credits(request: TransferCreditsRequest, client: LedgerClient) -> LedgerTransactionResponse:
    result = client.transfer_credits(request.to, request.amount, account=request.account)
    return LedgerTransactionResponse.from_result(result)


@router.get(
    "/balance/{account}",
    response_model=BalanceResponse,
    summary="Get account balances",
)
def get_balance(client: LedgerClient, account: str = Path(description="Ledger account")) -> BalanceResponse:
    return BalanceResponse(
        account=account,
        balance=float(client.get_token_balance(account)),
        retired=float(client.get_retired_balance(account)),
        native_balance=float(client.get_native_balance(account)),
    )
