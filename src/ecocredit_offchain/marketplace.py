"""
Marketplace Session

Per-account view model over the ledger: projects, balances and a capped
local transaction history. Purchases and retirements update the view
optimistically once acknowledged; ``refresh`` replaces the view with
authoritative ledger state and settles pending history entries.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Protocol

from ecocredit_contracts.util import normalize_address

from .errors import InsufficientBalanceError, LedgerValidationError, UnconfirmedTransactionError
from .ledger_client import CreditLedgerClient, PlatformSummary, ProjectInfo
from .units import Number, from_scaled, to_scaled

logger = logging.getLogger(__name__)

PORTFOLIO_SIZE = 10


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    RETIREMENT = "retirement"


class TransactionStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"


@dataclass()
class HistoryEntry:
    """Client-side record of a purchase or retirement"""

    id: str
    account: str
    type: TransactionType
    amount: Decimal
    status: TransactionStatus
    project_id: Optional[str] = None
    reason: Optional[str] = None
    price: Decimal = Decimal(0)  # total HBAR paid
    certificate_id: Optional[str] = None
    explorer_url: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class HistoryStore(Protocol):
    """Per-account history, newest first, capped by the store"""

    async def add(self, entry: HistoryEntry) -> HistoryEntry: ...

    async def list_for_account(self, account: str, limit: Optional[int] = None) -> List[HistoryEntry]: ...

    async def set_status(self, entry_id: str, status: TransactionStatus) -> Optional[HistoryEntry]: ...


class InMemoryHistoryStore:
    def __init__(self, limit: int = 50):
        self.limit = limit
        self._entries: Dict[str, List[HistoryEntry]] = defaultdict(list)

    async def add(self, entry: HistoryEntry) -> HistoryEntry:
        entries = self._entries[entry.account]
        entries.insert(0, replace(entry))
        del entries[self.limit :]
        return entry

    async def list_for_account(self, account: str, limit: Optional[int] = None) -> List[HistoryEntry]:
        entries = [replace(entry) for entry in self._entries.get(account, [])]
        return entries[:limit] if limit is not None else entries

    async def set_status(self, entry_id: str, status: TransactionStatus) -> Optional[HistoryEntry]:
        for entries in self._entries.values():
            for entry in entries:
                if entry.id == entry_id:
                    entry.status = status
                    return replace(entry)
        return None


def certificate_id(transaction_id: str) -> str:
    """Retirement certificate number derived from the transaction id"""
    return f"ECCX-RETIRE-{transaction_id[-8:].upper()}"


class MarketplaceSession:
    """View model of one account's marketplace session"""

    def __init__(self, account: str, client: CreditLedgerClient, history: HistoryStore):
        self.account = normalize_address(account)
        self.client = client
        self.history_store = history

        self.projects: Dict[str, ProjectInfo] = {}
        self.balance = Decimal("0.00")
        self.retired = Decimal("0.00")
        self.stats: Optional[PlatformSummary] = None
        self.history: List[HistoryEntry] = []

    @property
    def portfolio(self) -> List[HistoryEntry]:
        """Most recent activity shown on the dashboard"""
        return self.history[:PORTFOLIO_SIZE]

    async def _record(self, entry: HistoryEntry) -> HistoryEntry:
        await self.history_store.add(entry)
        self.history.insert(0, entry)
        return entry

    async def _reconcile_pending(self) -> None:
        for entry in await self.history_store.list_for_account(self.account):
            if entry.status != TransactionStatus.PENDING or entry.id.startswith("pending-"):
                continue
            receipt = await asyncio.to_thread(self.client.get_receipt, entry.id)
            if receipt is None:
                continue
            status = TransactionStatus.CONFIRMED if receipt.succeeded else TransactionStatus.FAILED
            await self.history_store.set_status(entry.id, status)
            logger.info(f"Pending {entry.type.value} {entry.id} settled as {status.value}")

    async def refresh(self) -> "MarketplaceSession":
        """Reload authoritative ledger state, discarding optimistic updates"""
        await self._reconcile_pending()

        projects = await asyncio.to_thread(self.client.list_projects)
        self.projects = {project.project_id: project for project in projects}
        self.balance = await asyncio.to_thread(self.client.get_token_balance, self.account)
        self.retired = await asyncio.to_thread(self.client.get_retired_balance, self.account)
        self.stats = await asyncio.to_thread(self.client.get_platform_stats)
        self.history = await self.history_store.list_for_account(self.account)
        return self

    async def purchase(self, project_id: str, amount: Number) -> HistoryEntry:
        """
        Buy credits at the project's current price.

        Raises:
            LedgerValidationError: Bad amount or unknown/inactive project
            LedgerClientError: The ledger rejected the purchase
        """
        scaled = to_scaled(amount)
        credits = from_scaled(scaled)

        project = self.projects.get(project_id)
        if project is None:
            project = await asyncio.to_thread(self.client.get_project, project_id)
            if project is None:
                raise LedgerValidationError(f"Project {project_id} is not available")
        if credits > project.available_credits:
            raise InsufficientBalanceError(
                f"Only {project.available_credits} credits available in {project_id}"
            )

        price = self.client.quote(project, credits)
        try:
            result = await asyncio.to_thread(
                self.client.purchase_credits, project_id, credits, price, self.account
            )
        except UnconfirmedTransactionError as e:
            logger.warning(f"Purchase of {credits} {project_id} unconfirmed: {e}")
            return await self._record(
                HistoryEntry(
                    id=e.transaction_id or f"pending-{uuid.uuid4().hex}",
                    account=self.account,
                    type=TransactionType.PURCHASE,
                    amount=credits,
                    status=TransactionStatus.PENDING,
                    project_id=project_id,
                    price=price,
                )
            )

        project.available_credits -= credits
        self.projects[project_id] = project
        self.balance += credits

        return await self._record(
            HistoryEntry(
                id=result.transaction_id,
                account=self.account,
                type=TransactionType.PURCHASE,
                amount=credits,
                status=TransactionStatus.CONFIRMED,
                project_id=project_id,
                price=price,
                explorer_url=result.explorer_url,
            )
        )

    async def retire(self, amount: Number, reason: str) -> HistoryEntry:
        """Retire credits from this account; the entry carries the certificate id"""
        scaled = to_scaled(amount)
        credits = from_scaled(scaled)
        if not reason or not reason.strip():
            raise LedgerValidationError("Retirement reason is required")
        if credits > self.balance:
            raise InsufficientBalanceError(f"Balance of {self.balance} credits is too low")

        try:
            result = await asyncio.to_thread(self.client.retire_credits, credits, reason, self.account)
        except UnconfirmedTransactionError as e:
            logger.warning(f"Retirement of {credits} unconfirmed: {e}")
            return await self._record(
                HistoryEntry(
                    id=e.transaction_id or f"pending-{uuid.uuid4().hex}",
                    account=self.account,
                    type=TransactionType.RETIREMENT,
                    amount=credits,
                    status=TransactionStatus.PENDING,
                    reason=reason.strip(),
                )
            )

        self.balance -= credits
        self.retired += credits

        return await self._record(
            HistoryEntry(
                id=result.transaction_id,
                account=self.account,
                type=TransactionType.RETIREMENT,
                amount=credits,
                status=TransactionStatus.CONFIRMED,
                reason=reason.strip(),
                certificate_id=certificate_id(result.transaction_id),
                explorer_url=result.explorer_url,
            )
        )
