"""
Repository Tests

History and validation cursor persistence against an in-memory database.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from api.database.connection import DatabaseManager, DatabaseSettings
from api.database.repositories import TransactionRepository, ValidationCursorRepository
from ecocredit_offchain.guardian import ValidationStatus
from ecocredit_offchain.marketplace import HistoryEntry, TransactionStatus, TransactionType
from ecocredit_offchain.poller import CursorState, PollCursor


ACCOUNT = "0x00000000000000000000000000000000000000b1"


@pytest_asyncio.fixture
async def session():
    manager = DatabaseManager(DatabaseSettings(database_url="sqlite+aiosqlite:///:memory:"))
    await manager.create_tables()
    async with manager.get_session() as db_session:
        yield db_session
    await manager.close()


def make_entry(index: int, status: TransactionStatus = TransactionStatus.CONFIRMED) -> HistoryEntry:
    return HistoryEntry(
        id=f"0.0.1001@{1700000000 + index}.0",
        account=ACCOUNT,
        type=TransactionType.PURCHASE,
        amount=Decimal("1.25"),
        status=status,
        project_id="P1",
        price=Decimal("0.125"),
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc) + timedelta(minutes=index),
    )


def make_cursor(**overrides) -> PollCursor:
    values = dict(
        instance_id="inst-P7",
        project_id="P7",
        project_name="Amazon Cookstoves",
        methodology="VMR0006",
        location="Pará, Brazil",
        developer="0x00000000000000000000000000000000000000d1",
        price_per_credit=Decimal("0.5"),
        estimated_credits=Decimal("500"),
    )
    values.update(overrides)
    return PollCursor(**values)


@pytest.mark.asyncio
class TestTransactionRepository:
    async def test_add_and_list_newest_first(self, session):
        repository = TransactionRepository(session)
        for index in range(3):
            await repository.add(make_entry(index))

        entries = await repository.list_for_account(ACCOUNT)

        assert [entry.id for entry in entries] == [make_entry(i).id for i in (2, 1, 0)]
        assert entries[0].amount == Decimal("1.25")
        assert entries[0].price == Decimal("0.125")
        assert entries[0].timestamp == make_entry(2).timestamp
        assert await repository.list_for_account("0x00000000000000000000000000000000000000c1") == []

    async def test_history_is_capped(self, session):
        repository = TransactionRepository(session, history_limit=3)
        for index in range(5):
            await repository.add(make_entry(index))

        entries = await repository.list_for_account(ACCOUNT)

        assert len(entries) == 3
        assert entries[-1].id == make_entry(2).id
        assert await repository.count() == 3

    async def test_set_status(self, session):
        repository = TransactionRepository(session)
        await repository.add(make_entry(0, TransactionStatus.PENDING))

        updated = await repository.set_status(make_entry(0).id, TransactionStatus.CONFIRMED)

        assert updated.status == TransactionStatus.CONFIRMED
        assert (await repository.list_for_account(ACCOUNT, limit=1))[0].status == TransactionStatus.CONFIRMED
        assert await repository.set_status("unknown", TransactionStatus.FAILED) is None


@pytest.mark.asyncio
class TestValidationCursorRepository:
    async def test_save_and_load(self, session):
        repository = ValidationCursorRepository(session)
        await repository.save(make_cursor())

        cursor = await repository.load("inst-P7")

        assert cursor.state == CursorState.POLLING
        assert cursor.last_status == ValidationStatus.SUBMITTED
        assert cursor.price_per_credit == Decimal("0.5")
        assert cursor.issuance_credits is None
        assert cursor.created_at.tzinfo is not None
        assert await repository.load("missing") is None

    async def test_save_updates_existing(self, session):
        repository = ValidationCursorRepository(session)
        cursor = make_cursor()
        await repository.save(cursor)

        cursor.state = CursorState.STALLED
        cursor.attempts = 20
        cursor.last_status = ValidationStatus.UNDER_REVIEW
        await repository.save(cursor)

        loaded = await repository.load("inst-P7")
        assert loaded.state == CursorState.STALLED
        assert loaded.attempts == 20
        assert [record.instance_id for record in await repository.get_by_state(CursorState.STALLED)] == ["inst-P7"]
        assert await repository.get_by_state(CursorState.COMPLETED) == []
        assert await repository.count() == 1
        counts = await repository.count_by_state()
        assert counts[CursorState.STALLED] == 1
        assert counts[CursorState.POLLING] == 0
