"""
Credit Ledger Client

Adapter between marketplace amounts (Decimal credits, HBAR prices) and the
contract's scaled integers. Every state-changing call must come back with a
SUCCESS receipt; anything else is raised as a categorised LedgerClientError.
State-changing calls are never retried here, reads are.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from ecocredit_contracts.types import PlatformStats, Project
from ecocredit_contracts.util import is_null_address, normalize_address, purchase_cost

from .audit_log import PublishResult, RetirementLogEntry, RetirementLogger
from .backends import LedgerBackend, TransactionReceipt
from .chain_context import LedgerChainContext
from .errors import LedgerNetworkError, LedgerValidationError, error_from_revert
from .units import Number, from_scaled, hbar_to_tinybars, tinybars_to_hbar, to_scaled

logger = logging.getLogger(__name__)


@dataclass()
class LedgerResult:
    """Outcome of an acknowledged state-changing call"""

    success: bool
    transaction_id: str
    explorer_url: str
    receipt: TransactionReceipt
    log: Optional[PublishResult] = None


@dataclass()
class ProjectInfo:
    """Project record in display units"""

    project_id: str
    methodology: str
    location: str
    total_credits: Decimal
    available_credits: Decimal
    is_active: bool
    developer: str
    price_per_credit: Decimal  # HBAR per credit
    price_per_credit_tinybars: int

    @classmethod
    def from_ledger(cls, project: Project) -> "ProjectInfo":
        return cls(
            project_id=project.project_id,
            methodology=project.methodology,
            location=project.location,
            total_credits=from_scaled(project.total_credits),
            available_credits=from_scaled(project.available_credits),
            is_active=project.is_active,
            developer=project.developer,
            price_per_credit=tinybars_to_hbar(project.price_per_credit),
            price_per_credit_tinybars=project.price_per_credit,
        )


@dataclass()
class PlatformSummary:
    total_supply: Decimal
    total_retired: Decimal
    active_projects: int

    @classmethod
    def from_ledger(cls, stats: PlatformStats) -> "PlatformSummary":
        return cls(
            total_supply=from_scaled(stats.total_supply),
            total_retired=from_scaled(stats.total_retired),
            active_projects=int(stats.active_projects),
        )


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise LedgerValidationError(f"{field} is required")
    return value.strip()


def _require_address(value: Optional[str], field: str) -> str:
    if is_null_address(value):
        raise LedgerValidationError(f"{field} is required")
    return normalize_address(value)


class CreditLedgerClient:
    """Marketplace-facing client for the MicroCredit contract"""

    def __init__(
        self,
        backend: LedgerBackend,
        chain_context: LedgerChainContext,
        operator: str,
        retirement_logger: Optional[RetirementLogger] = None,
        read_retries: int = 2,
    ):
        """
        Initialize the client

        Args:
            backend: Transport used to reach the contract
            chain_context: Network configuration, used for explorer links
            operator: Account the client acts for unless a call names another
            retirement_logger: Audit log for retirements (None disables logging)
            read_retries: Extra attempts for read-only queries on network errors
        """
        self.backend = backend
        self.chain_context = chain_context
        self.operator = _require_address(operator, "Operator account")
        self.retirement_logger = retirement_logger or RetirementLogger()
        self.read_retries = read_retries

    ################################################
    # Internals
    ################################################

    def _submit(
        self, function: str, args: Sequence[Any] = (), value: int = 0, account: Optional[str] = None
    ) -> LedgerResult:
        sender = normalize_address(account) if account else self.operator
        logger.info(f"Submitting {function} from {sender}")

        receipt = self.backend.execute(sender, function, args, value)
        if not receipt.succeeded:
            logger.warning(f"{function} failed with {receipt.status.value}: {receipt.revert_reason}")
            raise error_from_revert(receipt.revert_reason, receipt.transaction_id or None)

        return LedgerResult(
            success=True,
            transaction_id=receipt.transaction_id,
            explorer_url=self.chain_context.get_explorer_url(receipt.transaction_id),
            receipt=receipt,
        )

    def _query(self, function: str, args: Sequence[Any] = ()) -> Any:
        attempt = 0
        while True:
            try:
                return self.backend.call(function, args)
            except LedgerNetworkError as e:
                attempt += 1
                if attempt > self.read_retries:
                    raise
                logger.warning(f"Query {function} failed ({e}), retry {attempt}/{self.read_retries}")

    ################################################
    # State-changing calls
    ################################################

    def register_project(
        self,
        project_id: str,
        methodology: str,
        location: str,
        total_credits: Number,
        price_per_credit: Number,
        developer: Optional[str] = None,
    ) -> LedgerResult:
        """Register a project; price is in HBAR per credit"""
        project_id = _require_text(project_id, "Project ID")
        args = [
            project_id,
            normalize_address(developer) if developer else self.operator,
            _require_text(methodology, "Methodology"),
            _require_text(location, "Location"),
            to_scaled(total_credits, "total credits"),
            hbar_to_tinybars(price_per_credit),
        ]
        return self._submit("registerProject", args)

    def mint_credits(self, to: str, amount: Number, project_id: str) -> LedgerResult:
        args = [_require_address(to, "Recipient"), to_scaled(amount), _require_text(project_id, "Project ID")]
        return self._submit("mint", args)

    def purchase_credits(
        self,
        project_id: str,
        amount: Number,
        payment: Optional[Number] = None,
        account: Optional[str] = None,
    ) -> LedgerResult:
        """
        Buy credits from a project.

        Args:
            project_id: Project to buy from
            amount: Credits to buy (2 decimals max)
            payment: HBAR attached to the call; computed from the current
                project price when omitted
            account: Buyer (defaults to the operator)
        """
        project_id = _require_text(project_id, "Project ID")
        scaled = to_scaled(amount)

        if payment is None:
            project = self.get_project(project_id)
            if project is None:
                raise LedgerValidationError(f"Project {project_id} is not active")
            payment_tinybars = purchase_cost(scaled, project.price_per_credit_tinybars)
        else:
            payment_tinybars = hbar_to_tinybars(payment, "payment")

        return self._submit("purchaseCredits", [project_id, scaled], value=payment_tinybars, account=account)

    def retire_credits(self, amount: Number, reason: str, account: Optional[str] = None) -> LedgerResult:
        """Retire credits and publish the retirement to the audit topic"""
        reason = _require_text(reason, "Retirement reason")
        scaled = to_scaled(amount)
        result = self._submit("retire", [scaled, reason], account=account)

        event = result.receipt.find_event("CreditsRetired")
        timestamp = datetime.now(timezone.utc)
        if event is not None and event.args.get("timestamp"):
            timestamp = datetime.fromtimestamp(int(event.args["timestamp"]), tz=timezone.utc)

        entry = RetirementLogEntry(
            account=normalize_address(account) if account else self.operator,
            amount=from_scaled(scaled),
            reason=reason,
            timestamp=timestamp,
            transaction_id=result.transaction_id,
        )
        result.log = self.retirement_logger.log_retirement(entry)
        return result

    def transfer_credits(self, to: str, amount: Number, account: Optional[str] = None) -> LedgerResult:
        args = [_require_address(to, "Recipient"), to_scaled(amount)]
        return self._submit("transfer", args, account=account)

    def update_project_price(
        self, project_id: str, new_price: Number, account: Optional[str] = None
    ) -> LedgerResult:
        price = hbar_to_tinybars(new_price)
        if price <= 0:
            raise LedgerValidationError("Price must be greater than 0")
        return self._submit("updateProjectPrice", [_require_text(project_id, "Project ID"), price], account=account)

    def pause(self) -> LedgerResult:
        return self._submit("pause")

    def unpause(self) -> LedgerResult:
        return self._submit("unpause")

    ################################################
    # Reads
    ################################################

    def get_token_balance(self, account: Optional[str] = None) -> Decimal:
        return from_scaled(self._query("balanceOf", [normalize_address(account) if account else self.operator]))

    def get_retired_balance(self, account: Optional[str] = None) -> Decimal:
        target = normalize_address(account) if account else self.operator
        return from_scaled(self._query("getRetiredBalance", [target]))

    def get_project(self, project_id: str) -> Optional[ProjectInfo]:
        """Project details, or None when the id is unknown or inactive"""
        project = self._query("getProject", [project_id])
        if not project.is_active or not project.project_id:
            return None
        return ProjectInfo.from_ledger(project)

    def list_projects(self) -> List[ProjectInfo]:
        projects = []
        for project_id in self._query("getProjectIds"):
            project = self.get_project(project_id)
            if project is not None:
                projects.append(project)
        return projects

    def get_platform_stats(self) -> PlatformSummary:
        return PlatformSummary.from_ledger(self._query("getPlatformStats"))

    def is_paused(self) -> bool:
        return bool(self._query("paused"))

    def get_receipt(self, transaction_id: str) -> Optional[TransactionReceipt]:
        attempt = 0
        while True:
            try:
                return self.backend.get_receipt(transaction_id)
            except LedgerNetworkError:
                attempt += 1
                if attempt > self.read_retries:
                    raise

    def get_native_balance(self, account: Optional[str] = None) -> Decimal:
        """Account balance in HBAR"""
        return tinybars_to_hbar(self.backend.native_balance(account or self.operator))

    def quote(self, project: ProjectInfo, amount: Number) -> Decimal:
        """HBAR the contract will charge for ``amount`` credits of ``project``"""
        return tinybars_to_hbar(purchase_cost(to_scaled(amount), project.price_per_credit_tinybars))

    ################################################
    # Explorer links
    ################################################

    def get_explorer_url(self, transaction_id: str) -> str:
        return self.chain_context.get_explorer_url(transaction_id)

    def get_contract_url(self) -> Optional[str]:
        """Explorer page of the contract, None when no contract id is configured"""
        if not self.chain_context.contract_id:
            return None
        return self.chain_context.get_contract_url()


