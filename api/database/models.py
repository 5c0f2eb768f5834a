"""
Database Models for the EcoCredit API

SQLModel tables for client-side state. The ledger stays authoritative for
balances and projects; these tables only hold the per-account transaction
history and the validation polling cursors.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransactionRecord(SQLModel, table=True):
    """
    Purchase or retirement made through the marketplace

    Kept per account and capped to the most recent entries.
    """

    __tablename__ = "transaction_records"

    id: int | None = Field(default=None, primary_key=True)
    tx_id: str = Field(index=True, unique=True)  # Ledger transaction id, or a local pending id
    account: str = Field(index=True)
    tx_type: str  # purchase | retirement
    status: str = Field(default="confirmed", index=True)  # confirmed | pending | failed

    project_id: str | None = None
    reason: str | None = None
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    price: Decimal = Field(default=Decimal(0), max_digits=24, decimal_places=8)  # HBAR

    certificate_id: str | None = None
    explorer_url: str | None = None

    created_at: datetime = Field(default_factory=_utcnow, index=True)


class ValidationCursor(SQLModel, table=True):
    """
    Persisted polling state of a project submitted for validation

    Lets an interrupted or exhausted poll resume where it stopped.
    """

    __tablename__ = "validation_cursors"

    instance_id: str = Field(primary_key=True)

    # Submission
    project_id: str = Field(index=True)
    project_name: str
    methodology: str
    location: str
    developer: str
    price_per_credit: Decimal = Field(max_digits=24, decimal_places=8)
    estimated_credits: Decimal = Field(max_digits=20, decimal_places=2)
    issuance_credits: Decimal | None = Field(default=None, max_digits=20, decimal_places=2)

    # Polling state
    state: str = Field(default="POLLING", index=True)
    last_status: str = "SUBMITTED"
    progress: int = 0
    attempts: int = 0
    validated_credits: Decimal = Field(default=Decimal(0), max_digits=20, decimal_places=2)

    # Issuance
    registration_tx: str | None = None
    issuance_tx: str | None = None
    last_error: str | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
