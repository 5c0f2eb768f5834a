"""
EcoCredit off-chain client

Ledger client adapter, backends, retirement audit log, validation poller
and marketplace session.
"""

from .audit_log import (
    HttpTopicSink,
    JsonlTopicSink,
    MemoryTopicSink,
    PublishResult,
    RetirementLogEntry,
    RetirementLogger,
)
from .backends import LedgerBackend, LocalLedgerBackend, ReceiptStatus, TransactionReceipt
from .chain_context import LedgerChainContext
from .errors import (
    ContractPausedError,
    ErrorCategory,
    InsufficientBalanceError,
    LedgerClientError,
    LedgerNetworkError,
    LedgerValidationError,
    RemoteCallError,
    UnauthorizedCallError,
    UnconfirmedTransactionError,
    error_from_revert,
)
from .guardian import GuardianClient, GuardianError, ProjectSubmission, StatusReport, ValidationStatus
from .ledger_client import CreditLedgerClient, LedgerResult, PlatformSummary, ProjectInfo
from .marketplace import (
    HistoryEntry,
    HistoryStore,
    InMemoryHistoryStore,
    MarketplaceSession,
    TransactionStatus,
    TransactionType,
)
from .poller import (
    CursorState,
    CursorStore,
    InMemoryCursorStore,
    PollCursor,
    ProjectOnboarding,
    ValidationNotFound,
    ValidationPoller,
)

__all__ = [
    # Ledger access
    "CreditLedgerClient",
    "LedgerResult",
    "ProjectInfo",
    "PlatformSummary",
    "LedgerBackend",
    "LocalLedgerBackend",
    "ReceiptStatus",
    "TransactionReceipt",
    "LedgerChainContext",
    # Errors
    "ErrorCategory",
    "LedgerClientError",
    "LedgerValidationError",
    "InsufficientBalanceError",
    "RemoteCallError",
    "UnauthorizedCallError",
    "ContractPausedError",
    "LedgerNetworkError",
    "UnconfirmedTransactionError",
    "error_from_revert",
    # Audit log
    "RetirementLogEntry",
    "RetirementLogger",
    "PublishResult",
    "MemoryTopicSink",
    "JsonlTopicSink",
    "HttpTopicSink",
    # Validation workflow
    "GuardianClient",
    "GuardianError",
    "ProjectSubmission",
    "StatusReport",
    "ValidationStatus",
    "ValidationPoller",
    "ProjectOnboarding",
    "PollCursor",
    "CursorState",
    "CursorStore",
    "InMemoryCursorStore",
    "ValidationNotFound",
    # Marketplace
    "MarketplaceSession",
    "HistoryEntry",
    "HistoryStore",
    "InMemoryHistoryStore",
    "TransactionType",
    "TransactionStatus",
]
