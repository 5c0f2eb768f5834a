from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies.ledger import get_ledger_client
from api.schemas.credit import PlatformStatsResponse
from ecocredit_offchain.ledger_client import CreditLedgerClient


router = APIRouter()


@router.get("", response_model=PlatformStatsResponse, summary="Platform statistics")
def get_platform_stats(client: Annotated[CreditLedgerClient, Depends(get_ledger_client)]) -> PlatformStatsResponse:
    return PlatformStatsResponse.from_summary(client.get_platform_stats(), paused=client.is_paused())
