"""
Marketplace Service

Business logic layer for marketplace operations.
Runs purchases and retirements through a per-account marketplace session so
history, optimistic view updates and pending reconciliation stay in one place.
"""

import logging
from decimal import Decimal

from api.database.repositories.transaction import TransactionRepository
from api.dependencies.ledger import fund_local_account
from api.schemas.credit import MarketplaceTransactionResponse
from ecocredit_contracts.util import normalize_address
from ecocredit_offchain.ledger_client import CreditLedgerClient
from ecocredit_offchain.marketplace import HistoryEntry, MarketplaceSession


logger = logging.getLogger(__name__)


class MarketplaceService:
    """
    Service for purchases, retirements and account history

    Every call starts from a refreshed session: the ledger is authoritative
    and pending history entries are settled before new work is done.
    """

    def __init__(self, client: CreditLedgerClient, history: TransactionRepository):
        """
        Initialize marketplace service

        Args:
            client: Ledger client
            history: Transaction history repository
        """
        self.client = client
        self.history = history

    async def open_session(self, account: str | None) -> MarketplaceSession:
        """Refreshed session for ``account`` (the operator when omitted)"""
        account = normalize_address(account) if account else self.client.operator
        fund_local_account(self.client, account)
        session = MarketplaceSession(account, self.client, self.history)
        return await session.refresh()

    @staticmethod
    def _response(entry: HistoryEntry, session: MarketplaceSession) -> MarketplaceTransactionResponse:
        return MarketplaceTransactionResponse(
            transaction_id=entry.id,
            type=entry.type,
            status=entry.status,
            account=entry.account,
            amount=float(entry.amount),
            project_id=entry.project_id,
            reason=entry.reason,
            price=float(entry.price),
            certificate_id=entry.certificate_id,
            explorer_url=entry.explorer_url,
            timestamp=entry.timestamp,
            balance=float(session.balance),
            retired=float(session.retired),
        )

    async def purchase(
        self, project_id: str, amount: Decimal, account: str | None = None
    ) -> MarketplaceTransactionResponse:
        session = await self.open_session(account)
        entry = await session.purchase(project_id, amount)
        logger.info(f"{session.account} bought {entry.amount} credits of {project_id} ({entry.status.value})")
        return self._response(entry, session)

    async def retire(self, amount: Decimal, reason: str, account: str | None = None) -> MarketplaceTransactionResponse:
        session = await self.open_session(account)
        entry = await session.retire(amount, reason)
        logger.info(f"{session.account} retired {entry.amount} credits ({entry.status.value})")
        return self._response(entry, session)
