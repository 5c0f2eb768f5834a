"""
Contract revert errors

Every failed entry point raises one of these with a stable revert reason.
The ledger state is left untouched whenever one is raised.
"""


class ContractRevert(Exception):
    """Base class for reverted contract calls"""

    category = "revert"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Unauthorized(ContractRevert):
    """Caller is not allowed to use a restricted entry point"""

    category = "authorization"


class InvalidInput(ContractRevert):
    """Zero/negative amounts, empty strings, unknown or inactive projects"""

    category = "validation"


class InsufficientResource(ContractRevert):
    """Balance, available credits, payment or supply cap too small"""

    category = "insufficient"


class ContractPaused(ContractRevert):
    """Global pause switch is on"""

    category = "paused"


################################################
# Revert reasons
################################################
NOT_OWNER = "Ownable: caller is not the owner"
NOT_DEVELOPER = "Only project developer can update price"
PAUSED = "Pausable: paused"
NOT_PAUSED = "Pausable: not paused"

EMPTY_PROJECT_ID = "Project ID cannot be empty"
PROJECT_EXISTS = "Project already exists"
INVALID_DEVELOPER = "Invalid developer address"
INVALID_RECIPIENT = "Invalid recipient address"
INVALID_TOTAL_CREDITS = "Total credits must be greater than 0"
INVALID_AMOUNT = "Amount must be greater than 0"
INVALID_PRICE = "Price must be greater than 0"
PROJECT_NOT_ACTIVE = "Project not active"
EMPTY_REASON = "Retirement reason required"

INSUFFICIENT_AVAILABLE = "Insufficient available credits"
INSUFFICIENT_PAYMENT = "Insufficient payment"
INSUFFICIENT_BALANCE = "Insufficient balance"
MAX_SUPPLY_EXCEEDED = "Exceeds maximum supply"
