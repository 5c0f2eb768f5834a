from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from api.database.repositories.transaction import TransactionRepository
from api.dependencies.ledger import get_ledger_client, get_transaction_repository
from api.schemas.history import HistoryItem, HistoryResponse
from api.services.marketplace_service import MarketplaceService
from ecocredit_offchain.ledger_client import CreditLedgerClient


router = APIRouter()


@router.get(
    "/{account}",
    response_model=HistoryResponse,
    summary="Account transaction history",
    description="Most recent purchases and retirements, newest first. Pending entries are settled first.",
)
async def get_history(
    client: Annotated[CreditLedgerClient, Depends(get_ledger_client)],
    history: Annotated[TransactionRepository, Depends(get_transaction_repository)],
    account: str = Path(description="Ledger account"),
    limit: int = Query(10, ge=1, le=100, description="Entries to return"),
) -> HistoryResponse:
    session = await MarketplaceService(client, history).open_session(account)
    entries = session.history[:limit]
    return HistoryResponse(
        account=session.account,
        balance=float(session.balance),
        retired=float(session.retired),
        transactions=[HistoryItem.from_entry(entry) for entry in entries],
        total=len(session.history),
    )
