"""
Web3 Ledger Backend

Drives the deployed MicroCredit contract through the network's JSON-RPC
relay. Transactions are signed locally with the operator key, submitted
raw, and acknowledged by waiting for their receipt.
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound, Web3Exception
from web3.logs import DISCARD

from ecocredit_contracts.types import LedgerEvent, PlatformStats, Project
from ecocredit_contracts.util import normalize_address

from .abi import EVENT_NAMES, MICRO_CREDIT_ABI
from .backends import ReceiptStatus, TransactionReceipt
from .chain_context import LedgerChainContext
from .errors import LedgerNetworkError, RemoteCallError, UnconfirmedTransactionError

logger = logging.getLogger(__name__)

# JSON-RPC relays express native value in weibars (1 tinybar = 10^10 weibar)
WEIBARS_PER_TINYBAR = 10**10

_ARG_ALIASES = {"from": "sender", "value": "amount"}
_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _ARG_ALIASES.get(name) or _CAMEL.sub("_", name).lower()


def _revert_reason(error: ContractLogicError) -> str:
    message = getattr(error, "message", None) or str(error)
    return message.replace("execution reverted: ", "").strip()


class Web3LedgerBackend:
    """LedgerBackend implementation on top of web3.py"""

    def __init__(
        self,
        chain_context: LedgerChainContext,
        operator_key: str,
        contract_address: Optional[str] = None,
        gas: int = 300_000,
        receipt_timeout: float = 60.0,
        request_timeout: float = 30.0,
        web3: Optional[Web3] = None,
    ):
        """
        Initialize the backend

        Args:
            chain_context: Network configuration (JSON-RPC relay URL)
            operator_key: Hex private key of the operator account
            contract_address: EVM address of the contract (defaults to chain_context.contract_id)
            gas: Gas limit for state-changing calls
            receipt_timeout: Seconds to wait for a receipt before giving up
            request_timeout: HTTP timeout for JSON-RPC requests
            web3: Pre-built Web3 instance (tests, custom providers)
        """
        address = contract_address or chain_context.contract_id
        if not address:
            raise ValueError("Contract address required for the web3 backend")

        self.chain_context = chain_context
        self.w3 = web3 or Web3(
            Web3.HTTPProvider(chain_context.rpc_url, request_kwargs={"timeout": request_timeout})
        )
        self.account = self.w3.eth.account.from_key(operator_key)
        self.contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=MICRO_CREDIT_ABI)
        self.gas = gas
        self.receipt_timeout = receipt_timeout
        self._functions: Dict[str, str] = {}

    @property
    def operator_address(self) -> str:
        return self.account.address

    def _prepare_args(self, args: Sequence[Any]) -> list:
        """Checksum anything that looks like an EVM address"""
        prepared = []
        for arg in args:
            if isinstance(arg, str) and Web3.is_address(arg):
                prepared.append(Web3.to_checksum_address(arg))
            else:
                prepared.append(arg)
        return prepared

    def _decode_events(self, raw_receipt) -> list:
        events = []
        for name in EVENT_NAMES:
            for log in getattr(self.contract.events, name)().process_receipt(raw_receipt, errors=DISCARD):
                args = {_snake(key): value for key, value in dict(log["args"]).items()}
                events.append(LedgerEvent(name, args))
        return events

    def _to_receipt(self, transaction_id: str, function: str, raw_receipt) -> TransactionReceipt:
        if raw_receipt["status"] == 1:
            return TransactionReceipt(
                transaction_id=transaction_id,
                status=ReceiptStatus.SUCCESS,
                function=function,
                events=self._decode_events(raw_receipt),
            )
        return TransactionReceipt(
            transaction_id=transaction_id,
            status=ReceiptStatus.CONTRACT_REVERT_EXECUTED,
            function=function,
            revert_reason="Transaction reverted",
        )

    def execute(
        self, sender: str, function: str, args: Sequence[Any] = (), value: int = 0
    ) -> TransactionReceipt:
        if normalize_address(sender) != normalize_address(self.account.address):
            raise ValueError("The web3 backend only signs for its operator account")

        contract_fn = getattr(self.contract.functions, function)(*self._prepare_args(args))
        params = {"from": self.account.address, "value": value * WEIBARS_PER_TINYBAR}

        # Dry run first so reverts come back with their reason and cost no fee
        try:
            contract_fn.call(params)
            tx = contract_fn.build_transaction(
                {
                    **params,
                    "nonce": self.w3.eth.get_transaction_count(self.account.address),
                    "gas": self.gas,
                    "gasPrice": self.w3.eth.gas_price,
                    "chainId": self.w3.eth.chain_id,
                }
            )
        except ContractLogicError as e:
            return TransactionReceipt(
                transaction_id="",
                status=ReceiptStatus.CONTRACT_REVERT_EXECUTED,
                function=function,
                revert_reason=_revert_reason(e),
            )
        except (OSError, Web3Exception) as e:
            raise LedgerNetworkError(f"Could not prepare {function}: {e}")

        signed = self.account.sign_transaction(tx)
        # web3 v6 exposes rawTransaction, v7 raw_transaction
        raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
        transaction_id = Web3.to_hex(signed.hash)
        self._functions[transaction_id] = function

        try:
            self.w3.eth.send_raw_transaction(raw)
        except (OSError, Web3Exception) as e:
            raise UnconfirmedTransactionError(f"{function} submission not acknowledged: {e}", transaction_id)

        try:
            raw_receipt = self.w3.eth.wait_for_transaction_receipt(signed.hash, timeout=self.receipt_timeout)
        except TimeExhausted:
            raise UnconfirmedTransactionError(
                f"No receipt for {function} after {self.receipt_timeout:.0f}s", transaction_id
            )
        except (OSError, Web3Exception) as e:
            raise UnconfirmedTransactionError(f"Lost connection waiting for {function}: {e}", transaction_id)

        logger.info(f"{function} mined with status {raw_receipt['status']}: {transaction_id}")
        return self._to_receipt(transaction_id, function, raw_receipt)

    def call(self, function: str, args: Sequence[Any] = ()) -> Any:
        try:
            result = getattr(self.contract.functions, function)(*self._prepare_args(args)).call()
        except ContractLogicError as e:
            raise RemoteCallError(_revert_reason(e))
        except (OSError, Web3Exception) as e:
            raise LedgerNetworkError(f"Query {function} failed: {e}")

        if function == "getProject":
            values = list(result)
            values[6] = normalize_address(values[6])
            return Project(*values)
        if function == "getPlatformStats":
            return PlatformStats(*result)
        if function == "owner":
            return normalize_address(result)
        return result

    def get_receipt(self, transaction_id: str) -> Optional[TransactionReceipt]:
        try:
            raw_receipt = self.w3.eth.get_transaction_receipt(transaction_id)
        except TransactionNotFound:
            return None
        except (OSError, Web3Exception) as e:
            raise LedgerNetworkError(f"Receipt lookup failed: {e}")
        function = self._functions.get(transaction_id, "unknown")
        return self._to_receipt(transaction_id, function, raw_receipt)

    def native_balance(self, account: str) -> int:
        try:
            return self.w3.eth.get_balance(Web3.to_checksum_address(account)) // WEIBARS_PER_TINYBAR
        except (OSError, Web3Exception) as e:
            raise LedgerNetworkError(f"Balance lookup failed: {e}")
