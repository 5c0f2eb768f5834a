"""
Admin Endpoints

Contract owner operations. Require the admin API key; the operator account
signs as contract owner.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.database.repositories import ValidationCursorRepository
from api.dependencies.ledger import get_ledger_client, get_validation_repository
from api.schemas.credit import LedgerTransactionResponse
from api.schemas.validation import ValidationCursorResponse, ValidationOverviewResponse
from ecocredit_offchain.ledger_client import CreditLedgerClient
from ecocredit_offchain.poller import CursorState


router = APIRouter()

LedgerClient = Annotated[CreditLedgerClient, Depends(get_ledger_client)]


@router.post(
    "/pause",
    response_model=LedgerTransactionResponse,
    summary="Pause marketplace",
    description="Stops minting, purchases, transfers and retirements until unpaused.",
)
def pause(client: LedgerClient) -> LedgerTransactionResponse:
    return LedgerTransactionResponse.from_result(client.pause())


@router.post("/unpause", response_model=LedgerTransactionResponse, summary="Unpause marketplace")
def unpause(client: LedgerClient) -> LedgerTransactionResponse:
    return LedgerTransactionResponse.from_result(client.unpause())


@router.get(
    "/validations",
    response_model=ValidationOverviewResponse,
    summary="Validation overview",
    description=(
        "Number of validation cursors per state and the cursors in the requested state. "
        "Defaults to STALLED, the polls waiting to be resumed."
    ),
)
async def validation_overview(
    repository: Annotated[ValidationCursorRepository, Depends(get_validation_repository)],
    state: CursorState = Query(CursorState.STALLED, description="Cursors to list"),
) -> ValidationOverviewResponse:
    return ValidationOverviewResponse(
        counts=await repository.count_by_state(),
        state=state,
        validations=[ValidationCursorResponse.from_cursor(cursor) for cursor in await repository.get_by_state(state)],
    )
