from dataclasses import dataclass, field
from typing import Any, Dict, List

################################################
# Constants
################################################
TOKEN_NAME = "EcoCreditX Micro Carbon Credits"
TOKEN_SYMBOL = "ECCX"
DECIMALS = 2
SCALE = 10**DECIMALS  # micro-credits per whole credit
MAX_SUPPLY = 100_000_000 * SCALE
ZERO_ADDRESS = "0x" + "0" * 40

################################################
# Ledger Data Types
################################################


@dataclass()
class Project:
    project_id: str
    methodology: str
    location: str
    total_credits: int  # scaled by SCALE
    available_credits: int  # scaled by SCALE, never above total_credits
    is_active: bool
    developer: str
    price_per_credit: int  # tinybars per whole credit

    @classmethod
    def empty(cls) -> "Project":
        """Default record returned for unknown project ids"""
        return cls("", "", "", 0, 0, False, ZERO_ADDRESS, 0)

    def as_tuple(self) -> tuple:
        """Field order of the on-chain ProjectInfo struct"""
        return (
            self.project_id,
            self.methodology,
            self.location,
            self.total_credits,
            self.available_credits,
            self.is_active,
            self.developer,
            self.price_per_credit,
        )


@dataclass()
class PlatformStats:
    total_supply: int
    total_retired: int
    active_projects: int


@dataclass()
class CallContext:
    sender: str
    value: int = 0  # attached payment in tinybars
    timestamp: int = 0  # block time, POSIX seconds


@dataclass()
class LedgerEvent:
    name: str
    args: Dict[str, Any]


@dataclass()
class ValueTransfer:
    """Native value leaving the contract as part of a call"""

    to: str
    amount: int
    memo: str = ""


@dataclass()
class ExecutionResult:
    return_value: Any = None
    events: List[LedgerEvent] = field(default_factory=list)
    payouts: List[ValueTransfer] = field(default_factory=list)
