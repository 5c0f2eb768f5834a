"""
Ledger Backends

Transport layer between the client adapter and the credit contract.
A backend submits state-changing calls and returns a transaction receipt,
and answers read-only queries.
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from ecocredit_contracts import ContractRevert, MicroCreditContract
from ecocredit_contracts.types import CallContext, LedgerEvent, ValueTransfer
from ecocredit_contracts.util import normalize_address

logger = logging.getLogger(__name__)


class ReceiptStatus(str, Enum):
    """Receipt status codes as reported by the network"""

    SUCCESS = "SUCCESS"
    CONTRACT_REVERT_EXECUTED = "CONTRACT_REVERT_EXECUTED"
    INSUFFICIENT_PAYER_BALANCE = "INSUFFICIENT_PAYER_BALANCE"


@dataclass()
class TransactionReceipt:
    transaction_id: str
    status: ReceiptStatus
    function: str
    events: List[LedgerEvent] = field(default_factory=list)
    payouts: List[ValueTransfer] = field(default_factory=list)
    revert_reason: Optional[str] = None
    timestamp: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == ReceiptStatus.SUCCESS

    def find_event(self, name: str) -> Optional[LedgerEvent]:
        for event in self.events:
            if event.name == name:
                return event
        return None


class LedgerBackend(Protocol):
    """Remote procedure interface of the credit contract"""

    def execute(
        self, sender: str, function: str, args: Sequence[Any] = (), value: int = 0
    ) -> TransactionReceipt: ...

    def call(self, function: str, args: Sequence[Any] = ()) -> Any: ...

    def get_receipt(self, transaction_id: str) -> Optional[TransactionReceipt]: ...

    def native_balance(self, account: str) -> int: ...


# Contract ABI names mapped to the reference implementation
TRANSACTIONS = {
    "registerProject": "register_project",
    "mint": "mint",
    "purchaseCredits": "purchase_credits",
    "retire": "retire",
    "transfer": "transfer",
    "updateProjectPrice": "update_project_price",
    "pause": "pause",
    "unpause": "unpause",
}

QUERIES = {
    "getProject": "get_project",
    "getProjectIds": "get_project_ids",
    "balanceOf": "balance_of",
    "getRetiredBalance": "get_retired_balance",
    "getPlatformStats": "get_platform_stats",
    "totalSupply": "total_supply",
    "paused": "paused",
    "owner": "owner",
}

CONSTANTS = {
    "name": "name",
    "symbol": "symbol",
    "decimals": "decimals",
    "MAX_SUPPLY": "max_supply",
}


class LocalLedgerBackend:
    """
    In-process ledger network running the reference contract.

    Transactions are applied one at a time under a lock, the attached value
    is moved between native accounts only when the contract call succeeds,
    and every submitted transaction gets a receipt, reverted ones included.
    """

    def __init__(self, contract: MicroCreditContract, clock: Callable[[], float] = time.time):
        self.contract = contract
        self._clock = clock
        self._lock = threading.RLock()
        self._native: Dict[str, int] = {}
        self._receipts: Dict[str, TransactionReceipt] = {}
        self._nonce = itertools.count(1)

    def fund(self, account: str, tinybars: int) -> None:
        """Credit native currency to an account (test faucet)"""
        with self._lock:
            key = normalize_address(account)
            self._native[key] = self._native.get(key, 0) + tinybars

    def native_balance(self, account: str) -> int:
        return self._native.get(normalize_address(account), 0)

    def _next_transaction_id(self, sender: str, now: float) -> str:
        return f"{sender}@{int(now)}.{next(self._nonce):09d}"

    def execute(
        self, sender: str, function: str, args: Sequence[Any] = (), value: int = 0
    ) -> TransactionReceipt:
        if function not in TRANSACTIONS:
            raise ValueError(f"Unknown contract function: {function}")
        if value < 0:
            raise ValueError("Attached value cannot be negative")

        method_name = TRANSACTIONS[function]
        sender = normalize_address(sender)

        with self._lock:
            now = self._clock()
            transaction_id = self._next_transaction_id(sender, now)
            receipt = TransactionReceipt(
                transaction_id=transaction_id,
                status=ReceiptStatus.SUCCESS,
                function=function,
                timestamp=int(now),
            )

            if value and method_name not in self.contract.PAYABLE:
                receipt.status = ReceiptStatus.CONTRACT_REVERT_EXECUTED
                receipt.revert_reason = "Function is not payable"
            elif self.native_balance(sender) < value:
                receipt.status = ReceiptStatus.INSUFFICIENT_PAYER_BALANCE
                receipt.revert_reason = ReceiptStatus.INSUFFICIENT_PAYER_BALANCE.value
            else:
                ctx = CallContext(sender=sender, value=value, timestamp=int(now))
                try:
                    result = getattr(self.contract, method_name)(ctx, *args)
                except ContractRevert as e:
                    receipt.status = ReceiptStatus.CONTRACT_REVERT_EXECUTED
                    receipt.revert_reason = e.reason
                else:
                    self._native[sender] = self.native_balance(sender) - value
                    for payout in result.payouts:
                        key = normalize_address(payout.to)
                        self._native[key] = self._native.get(key, 0) + payout.amount
                    receipt.events = result.events
                    receipt.payouts = result.payouts

            self._receipts[transaction_id] = receipt

        if receipt.succeeded:
            logger.debug(f"{function} executed: {transaction_id}")
        else:
            logger.info(f"{function} reverted ({receipt.revert_reason}): {transaction_id}")
        return receipt

    def call(self, function: str, args: Sequence[Any] = ()) -> Any:
        if function in CONSTANTS:
            return getattr(self.contract, CONSTANTS[function])
        if function not in QUERIES:
            raise ValueError(f"Unknown contract query: {function}")
        with self._lock:
            return getattr(self.contract, QUERIES[function])(*args)

    def get_receipt(self, transaction_id: str) -> Optional[TransactionReceipt]:
        return self._receipts.get(transaction_id)
