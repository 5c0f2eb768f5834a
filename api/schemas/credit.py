"""
Credit Schemas

Pydantic models for minting, purchasing, retiring and transferring credits.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ecocredit_offchain.ledger_client import LedgerResult, PlatformSummary
from ecocredit_offchain.marketplace import TransactionStatus, TransactionType


# ============================================================================
# Request Schemas
# ============================================================================


class MintCreditsRequest(BaseModel):
    """Issue credits of an active project (owner only)"""

    to: str = Field(min_length=1, description="Recipient account")
    amount: Decimal = Field(gt=0, decimal_places=2, description="Credits to issue")
    project_id: str = Field(min_length=1)


class PurchaseCreditsRequest(BaseModel):
    """Buy credits at the project's current price"""

    project_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, decimal_places=2, description="Credits to buy (0.01 minimum)")
    account: str | None = Field(None, description="Buyer account (defaults to the operator)")


class RetireCreditsRequest(BaseModel):
    """Retire credits as an offset claim"""

    amount: Decimal = Field(gt=0, decimal_places=2)
    reason: str = Field(min_length=1, description="Offset claim, e.g. 'Q3 flight emissions'")
    account: str | None = Field(None, description="Holder account (defaults to the operator)")


class TransferCreditsRequest(BaseModel):
    to: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, decimal_places=2)
    account: str | None = Field(None, description="Sender account (defaults to the operator)")


# ============================================================================
# Response Schemas
# ============================================================================


class LedgerTransactionResponse(BaseModel):
    """Acknowledged state-changing ledger call"""

    success: bool
    transaction_id: str
    explorer_url: str

    @classmethod
    def from_result(cls, result: LedgerResult, **extra) -> "LedgerTransactionResponse":
        return cls(
            success=result.success,
            transaction_id=result.transaction_id,
            explorer_url=result.explorer_url,
            **extra,
        )


class MarketplaceTransactionResponse(BaseModel):
    """Purchase or retirement as recorded in the account history"""

    transaction_id: str
    type: TransactionType
    status: TransactionStatus = Field(description="pending when no receipt was observed")
    account: str
    amount: float
    project_id: str | None = None
    reason: str | None = None
    price: float = Field(0, description="Total HBAR paid")
    certificate_id: str | None = None
    explorer_url: str | None = None
    timestamp: datetime
    balance: float = Field(description="Account credit balance after the call")
    retired: float = Field(description="Account retired balance after the call")


class BalanceResponse(BaseModel):
    account: str
    balance: float
    retired: float
    native_balance: float = Field(description="HBAR")


class PlatformStatsResponse(BaseModel):
    total_supply: float
    total_retired: float
    active_projects: int
    paused: bool

    @classmethod
    def from_summary(cls, summary: PlatformSummary, paused: bool) -> "PlatformStatsResponse":
        return cls(
            total_supply=float(summary.total_supply),
            total_retired=float(summary.total_retired),
            active_projects=summary.active_projects,
            paused=paused,
        )
