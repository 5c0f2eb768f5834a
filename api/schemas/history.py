"""
History Schemas

Pydantic models for the per-account transaction history.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ecocredit_offchain.marketplace import HistoryEntry, TransactionStatus, TransactionType


class HistoryItem(BaseModel):
    """Single purchase or retirement in history"""

    transaction_id: str
    type: TransactionType
    status: TransactionStatus
    amount: float
    project_id: str | None = None
    reason: str | None = None
    price: float = Field(0, description="Total HBAR paid")
    certificate_id: str | None = None
    explorer_url: str | None = None
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryItem":
        return cls(
            transaction_id=entry.id,
            type=entry.type,
            status=entry.status,
            amount=float(entry.amount),
            project_id=entry.project_id,
            reason=entry.reason,
            price=float(entry.price),
            certificate_id=entry.certificate_id,
            explorer_url=entry.explorer_url,
            timestamp=entry.timestamp,
        )


class HistoryResponse(BaseModel):
    account: str
    balance: float
    retired: float
    transactions: list[HistoryItem]
    total: int
