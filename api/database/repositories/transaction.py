"""
Transaction Repository

Per-account marketplace history, capped to the most recent entries.
Implements the history store used by marketplace sessions.
"""

from datetime import timezone

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.database.models import TransactionRecord
from api.database.repositories.base import BaseRepository
from ecocredit_offchain.marketplace import HistoryEntry, TransactionStatus, TransactionType


def to_entry(record: TransactionRecord) -> HistoryEntry:
    return HistoryEntry(
        id=record.tx_id,
        account=record.account,
        type=TransactionType(record.tx_type),
        amount=record.amount,
        status=TransactionStatus(record.status),
        project_id=record.project_id,
        reason=record.reason,
        price=record.price,
        certificate_id=record.certificate_id,
        explorer_url=record.explorer_url,
        timestamp=record.created_at.replace(tzinfo=timezone.utc),
    )


class TransactionRepository(BaseRepository[TransactionRecord]):
    """Repository for marketplace transaction history"""

    def __init__(self, session: AsyncSession, history_limit: int = 50):
        """
        Initialize transaction repository

        Args:
            session: Async database session
            history_limit: Entries kept per account
        """
        super().__init__(TransactionRecord, session)
        self.history_limit = history_limit

    async def get_by_tx_id(self, tx_id: str) -> TransactionRecord | None:
        statement = select(TransactionRecord).where(TransactionRecord.tx_id == tx_id)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_account(self, account: str, limit: int | None = None) -> list[TransactionRecord]:
        """
        Get transactions for an account

        Args:
            account: Ledger account id
            limit: Maximum number of transactions

        Returns:
            List of transactions (most recent first)
        """
        statement = (
            select(TransactionRecord)
            .where(TransactionRecord.account == account)
            .order_by(desc(TransactionRecord.created_at), desc(TransactionRecord.id))
        )
        if limit is not None:
            statement = statement.limit(limit)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def trim_account(self, account: str) -> int:
        """
        Drop entries beyond the history limit

        Returns:
            Number of deleted records
        """
        keep = [record.id for record in await self.get_by_account(account, self.history_limit)]
        statement = delete(TransactionRecord).where(
            TransactionRecord.account == account, TransactionRecord.id.not_in(keep)
        )
        result = await self.session.execute(statement)
        await self.session.commit()
        return result.rowcount or 0

    # History store interface

    async def add(self, entry: HistoryEntry) -> HistoryEntry:
        await self.create(
            TransactionRecord(
                tx_id=entry.id,
                account=entry.account,
                tx_type=entry.type.value,
                status=entry.status.value,
                project_id=entry.project_id,
                reason=entry.reason,
                amount=entry.amount,
                price=entry.price,
                certificate_id=entry.certificate_id,
                explorer_url=entry.explorer_url,
                created_at=entry.timestamp.astimezone(timezone.utc).replace(tzinfo=None),
            )
        )
        await self.trim_account(entry.account)
        return entry

    async def list_for_account(self, account: str, limit: int | None = None) -> list[HistoryEntry]:
        return [to_entry(record) for record in await self.get_by_account(account, limit)]

    async def set_status(self, entry_id: str, status: TransactionStatus) -> HistoryEntry | None:
        record = await self.get_by_tx_id(entry_id)
        if record is None:
            return None
        record.status = status.value
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return to_entry(record)
