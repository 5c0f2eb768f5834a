"""
EcoCredit ledger contract

Reference implementation of the MicroCredit credit-accounting contract:
project registry, issuance, purchase, retirement and balance tracking.
"""

from .errors import (
    ContractPaused,
    ContractRevert,
    InsufficientResource,
    InvalidInput,
    Unauthorized,
)
from .micro_credit import MicroCreditContract
from .storage import InMemoryProjectStore, ProjectStore
from .types import (
    DECIMALS,
    MAX_SUPPLY,
    SCALE,
    ZERO_ADDRESS,
    CallContext,
    ExecutionResult,
    LedgerEvent,
    PlatformStats,
    Project,
    ValueTransfer,
)


__all__ = [
    "MicroCreditContract",
    "ProjectStore",
    "InMemoryProjectStore",
    "ContractRevert",
    "ContractPaused",
    "InsufficientResource",
    "InvalidInput",
    "Unauthorized",
    "CallContext",
    "ExecutionResult",
    "LedgerEvent",
    "PlatformStats",
    "Project",
    "ValueTransfer",
    "DECIMALS",
    "SCALE",
    "MAX_SUPPLY",
    "ZERO_ADDRESS",
]
