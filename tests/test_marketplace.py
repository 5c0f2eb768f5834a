"""
Tests for the marketplace session view model
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from ecocredit_offchain.errors import (
    InsufficientBalanceError,
    LedgerValidationError,
    UnconfirmedTransactionError,
)
from ecocredit_offchain.ledger_client import CreditLedgerClient
from ecocredit_offchain.marketplace import (
    InMemoryHistoryStore,
    MarketplaceSession,
    TransactionStatus,
    TransactionType,
    certificate_id,
)

from accounts import BUYER, DEVELOPER, OWNER


class LostReceiptBackend:
    """Executes calls but reports them as unconfirmed, like a relay timing out after submission"""

    def __init__(self, backend):
        self.backend = backend

    def execute(self, sender, function, args=(), value=0):
        receipt = self.backend.execute(sender, function, args, value)
        raise UnconfirmedTransactionError("No receipt after 60s", receipt.transaction_id)

    def call(self, function, args=()):
        return self.backend.call(function, args)

    def get_receipt(self, transaction_id):
        return self.backend.get_receipt(transaction_id)

    def native_balance(self, account):
        return self.backend.native_balance(account)


@pytest.fixture
def market(ledger):
    ledger.register_project("P1", "VM0042", "Chocó, Colombia", 1000, Decimal("0.00000005"), developer=DEVELOPER)
    ledger.register_project("P2", "VM0015", "Madre de Dios, Peru", 100, Decimal("0.01"), developer=DEVELOPER)
    ledger.mint_credits(OWNER, 200, "P1")
    return ledger


@pytest.fixture
def history():
    return InMemoryHistoryStore(limit=12)


@pytest_asyncio.fixture
async def session(market, history):
    buyer = CreditLedgerClient(market.backend, market.chain_context, BUYER, market.retirement_logger)
    return await MarketplaceSession(BUYER, buyer, history).refresh()


@pytest.mark.asyncio
class TestMarketplaceSession:
    async def test_refresh_loads_view(self, session):
        assert set(session.projects) == {"P1", "P2"}
        assert session.projects["P1"].available_credits == Decimal("800.00")
        assert session.balance == Decimal("0.00")
        assert session.stats.total_supply == Decimal("200.00")
        assert session.history == []

    async def test_purchase_updates_view_optimistically(self, session, history):
        entry = await session.purchase("P1", 50)

        assert entry.type == TransactionType.PURCHASE
        assert entry.status == TransactionStatus.CONFIRMED
        assert entry.price == Decimal("0.0000025")
        assert entry.explorer_url.endswith(entry.id)
        assert session.balance == Decimal("50.00")
        assert session.projects["P1"].available_credits == Decimal("750.00")
        assert (await history.list_for_account(BUYER))[0].id == entry.id

        await session.refresh()
        assert session.balance == Decimal("50.00")
        assert session.projects["P1"].available_credits == Decimal("750.00")

    async def test_refresh_replaces_optimistic_state(self, session, market):
        await session.purchase("P1", 50)
        # Another buyer drains the project meanwhile
        market.mint_credits(OWNER, 700, "P1")

        assert session.projects["P1"].available_credits == Decimal("750.00")
        await session.refresh()
        assert session.projects["P1"].available_credits == Decimal("50.00")

    async def test_retire_issues_certificate(self, session, topic_sink):
        await session.purchase("P1", 50)
        entry = await session.retire(20, "Q3 flights")

        assert entry.type == TransactionType.RETIREMENT
        assert entry.certificate_id == certificate_id(entry.id)
        assert entry.certificate_id.startswith("ECCX-RETIRE-")
        assert session.balance == Decimal("30.00")
        assert session.retired == Decimal("20.00")
        assert topic_sink.entries()[-1]["reason"] == "Q3 flights"

    async def test_input_validation(self, session):
        with pytest.raises(LedgerValidationError):
            await session.purchase("P1", "0.001")
        with pytest.raises(LedgerValidationError):
            await session.purchase("nope", 1)
        with pytest.raises(InsufficientBalanceError):
            await session.purchase("P2", 101)
        with pytest.raises(LedgerValidationError):
            await session.retire(1, "")
        with pytest.raises(InsufficientBalanceError):
            await session.retire(1, "no balance yet")
        assert session.history == []

    async def test_unconfirmed_purchase_is_pending_then_reconciled(self, market, history):
        lossy = CreditLedgerClient(LostReceiptBackend(market.backend), market.chain_context, BUYER)
        session = await MarketplaceSession(BUYER, lossy, history).refresh()

        entry = await session.purchase("P1", 10)

        assert entry.status == TransactionStatus.PENDING
        # No optimistic update without a receipt
        assert session.balance == Decimal("0.00")

        await session.refresh()
        assert session.history[0].status == TransactionStatus.CONFIRMED
        assert session.balance == Decimal("10.00")

    async def test_portfolio_shows_last_ten(self, session, history):
        for _ in range(13):
            await session.purchase("P2", "0.5")

        assert len(session.portfolio) == 10
        assert len(await history.list_for_account(BUYER)) == 12
        assert session.portfolio[0].id == session.history[0].id
