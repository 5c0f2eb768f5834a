"""
Client-side ledger errors

Every failure surfaced by the adapter falls into one of four display
categories. Subclasses keep the finer distinctions (authorization, paused,
unconfirmed) for callers that need them.
"""

from enum import Enum
from typing import Optional

from ecocredit_contracts import errors as reasons


class ErrorCategory(str, Enum):
    """Display categories for ledger failures"""

    VALIDATION = "validation"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REMOTE_CALL = "remote_call"
    NETWORK = "network"


class LedgerClientError(Exception):
    """Base class for adapter errors"""

    category: ErrorCategory = ErrorCategory.REMOTE_CALL
    retryable = False
    title = "Ledger call failed"

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.transaction_id = transaction_id

    @property
    def display_message(self) -> str:
        """Human readable message for the presentation layer"""
        return f"{self.title}: {self.message}"


class LedgerValidationError(LedgerClientError):
    """Bad input; the user must correct it"""

    category = ErrorCategory.VALIDATION
    title = "Invalid request"


class InsufficientBalanceError(LedgerClientError):
    """Balance, available credits or payment too small"""

    category = ErrorCategory.INSUFFICIENT_FUNDS
    title = "Insufficient funds"


class RemoteCallError(LedgerClientError):
    """The contract rejected or failed the call"""

    category = ErrorCategory.REMOTE_CALL
    title = "Contract call failed"


class UnauthorizedCallError(RemoteCallError):
    """Caller is not the owner or developer required by the entry point"""

    title = "Not authorized"


class ContractPausedError(RemoteCallError):
    """Marketplace operations are paused"""

    title = "Marketplace paused"


class LedgerNetworkError(LedgerClientError):
    """Transport failure; safe to retry by the user"""

    category = ErrorCategory.NETWORK
    retryable = True
    title = "Network error"


class UnconfirmedTransactionError(LedgerNetworkError):
    """
    Submitted but no receipt observed.

    The call may still succeed or fail on the ledger; callers must re-query
    authoritative state instead of assuming it failed.
    """

    title = "Transaction not confirmed"


################################################
# Revert reason mapping
################################################

_VALIDATION_REASONS = {
    reasons.EMPTY_PROJECT_ID,
    reasons.PROJECT_EXISTS,
    reasons.INVALID_DEVELOPER,
    reasons.INVALID_RECIPIENT,
    reasons.INVALID_TOTAL_CREDITS,
    reasons.INVALID_AMOUNT,
    reasons.INVALID_PRICE,
    reasons.PROJECT_NOT_ACTIVE,
    reasons.EMPTY_REASON,
    "Function is not payable",
}

_INSUFFICIENT_REASONS = {
    reasons.INSUFFICIENT_AVAILABLE,
    reasons.INSUFFICIENT_PAYMENT,
    reasons.INSUFFICIENT_BALANCE,
    reasons.MAX_SUPPLY_EXCEEDED,
    "INSUFFICIENT_PAYER_BALANCE",
    "INSUFFICIENT_TX_FEE",
    "insufficient funds",
}

_AUTHORIZATION_REASONS = {reasons.NOT_OWNER, reasons.NOT_DEVELOPER}

_PAUSED_REASONS = {reasons.PAUSED, reasons.NOT_PAUSED}


def _matches(reason: str, known: set) -> bool:
    lowered = reason.lower()
    return any(candidate.lower() in lowered for candidate in known)


def error_from_revert(reason: Optional[str], transaction_id: Optional[str] = None) -> LedgerClientError:
    """
    Map a revert reason string to a categorised client error.

    Reasons are matched by containment so wrapped provider messages such as
    ``execution reverted: Insufficient balance`` still classify.
    """
    reason = reason or "Transaction reverted"
    if _matches(reason, _AUTHORIZATION_REASONS):
        return UnauthorizedCallError(reason, transaction_id)
    if _matches(reason, _PAUSED_REASONS):
        return ContractPausedError(reason, transaction_id)
    if _matches(reason, _INSUFFICIENT_REASONS):
        return InsufficientBalanceError(reason, transaction_id)
    if _matches(reason, _VALIDATION_REASONS):
        return LedgerValidationError(reason, transaction_id)
    return RemoteCallError(reason, transaction_id)
