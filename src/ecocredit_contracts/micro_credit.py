"""
MicroCredit Contract

Reference implementation of the EcoCreditX credit-accounting contract.

Business Logic:
- The owner registers projects and mints credits out of a project's
  available credits
- Anyone can buy credits from an active project by attaching payment; the
  developer is paid and any excess is refunded in the same call
- Holders retire (burn) credits with a reason; retirements are irreversible
- The owner can pause issuance, purchases, transfers and retirements

All quantities are integers with 2 implied decimals. Every mutating entry
point either applies all of its effects or reverts leaving state unchanged.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from . import errors
from .errors import ContractPaused, InsufficientResource, InvalidInput, Unauthorized
from .storage import BalanceBook, InMemoryProjectStore, ProjectStore
from .types import (
    DECIMALS,
    MAX_SUPPLY,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    CallContext,
    ExecutionResult,
    LedgerEvent,
    PlatformStats,
    Project,
    ValueTransfer,
)
from .util import is_null_address, normalize_address, purchase_cost, require


class MicroCreditContract:
    """Project registry plus ERC-20 style credit ledger"""

    name = TOKEN_NAME
    symbol = TOKEN_SYMBOL
    decimals = DECIMALS
    max_supply = MAX_SUPPLY

    # Entry points that accept attached native value
    PAYABLE = frozenset({"purchase_credits"})

    def __init__(self, owner: str, project_store: Optional[ProjectStore] = None):
        require(not is_null_address(owner), InvalidInput, "Invalid owner address")
        self._owner = normalize_address(owner)
        self.projects: ProjectStore = project_store if project_store is not None else InMemoryProjectStore()
        self.book = BalanceBook()
        self._paused = False
        self._result: Optional[ExecutionResult] = None

    ################################################
    # Internals
    ################################################

    @contextmanager
    def _transaction(self) -> Iterator[ExecutionResult]:
        """Run one entry point atomically, collecting its events and payouts"""
        projects_snapshot = self.projects.snapshot()
        book_snapshot = self.book.snapshot()
        paused = self._paused
        self._result = ExecutionResult()
        try:
            yield self._result
        except Exception:
            self.projects.restore(projects_snapshot)
            self.book = book_snapshot
            self._paused = paused
            raise
        finally:
            self._result = None

    def _emit(self, name: str, **args) -> None:
        assert self._result is not None, "Events can only be emitted inside a transaction"
        self._result.events.append(LedgerEvent(name, args))

    def _pay(self, to: str, amount: int, memo: str) -> None:
        assert self._result is not None, "Payouts can only be made inside a transaction"
        if amount > 0:
            self._result.payouts.append(ValueTransfer(to, amount, memo))

    def _only_owner(self, ctx: CallContext) -> None:
        require(normalize_address(ctx.sender) == self._owner, Unauthorized, errors.NOT_OWNER)

    def _when_not_paused(self) -> None:
        require(not self._paused, ContractPaused, errors.PAUSED)

    def _active_project(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        require(project is not None and project.is_active, InvalidInput, errors.PROJECT_NOT_ACTIVE)
        return project  # type: ignore[return-value]

    def _issue(self, to: str, amount: int, project: Project) -> None:
        """Move ``amount`` out of a project's available credits into ``to``"""
        require(project.available_credits >= amount, InsufficientResource, errors.INSUFFICIENT_AVAILABLE)
        require(
            self.book.total_minted + amount <= MAX_SUPPLY, InsufficientResource, errors.MAX_SUPPLY_EXCEEDED
        )
        project.available_credits -= amount
        self.projects.put(project)
        self.book.credit(to, amount)
        self.book.total_minted += amount
        self.book.total_supply += amount
        self._emit("Transfer", sender=None, to=to, amount=amount)

    ################################################
    # Owner operations
    ################################################

    def register_project(
        self,
        ctx: CallContext,
        project_id: str,
        developer: str,
        methodology: str,
        location: str,
        total_credits: int,
        price_per_credit: int,
    ) -> ExecutionResult:
        """Create a project whose available credits equal its total credits"""
        with self._transaction() as result:
            self._only_owner(ctx)
            require(bool(project_id and project_id.strip()), InvalidInput, errors.EMPTY_PROJECT_ID)
            existing = self.projects.get(project_id)
            require(existing is None or not existing.is_active, InvalidInput, errors.PROJECT_EXISTS)
            require(not is_null_address(developer), InvalidInput, errors.INVALID_DEVELOPER)
            require(total_credits > 0, InvalidInput, errors.INVALID_TOTAL_CREDITS)
            require(price_per_credit >= 0, InvalidInput, errors.INVALID_PRICE)

            developer = normalize_address(developer)
            self.projects.put(
                Project(
                    project_id=project_id,
                    methodology=methodology,
                    location=location,
                    total_credits=total_credits,
                    available_credits=total_credits,
                    is_active=True,
                    developer=developer,
                    price_per_credit=price_per_credit,
                )
            )
            self._emit(
                "ProjectRegistered",
                project_id=project_id,
                developer=developer,
                total_credits=total_credits,
            )
            result.return_value = True
        return result

    def mint(self, ctx: CallContext, to: str, amount: int, project_id: str) -> ExecutionResult:
        """Issue ``amount`` credits of an active project to ``to``"""
        with self._transaction() as result:
            self._only_owner(ctx)
            self._when_not_paused()
            require(amount > 0, InvalidInput, errors.INVALID_AMOUNT)
            require(not is_null_address(to), InvalidInput, errors.INVALID_RECIPIENT)
            project = self._active_project(project_id)

            to = normalize_address(to)
            self._issue(to, amount, project)
            self._emit("CreditsMinted", to=to, amount=amount, project_id=project_id)
            result.return_value = True
        return result

    def pause(self, ctx: CallContext) -> ExecutionResult:
        with self._transaction() as result:
            self._only_owner(ctx)
            self._when_not_paused()
            self._paused = True
            self._emit("Paused", account=normalize_address(ctx.sender))
        return result

    def unpause(self, ctx: CallContext) -> ExecutionResult:
        with self._transaction() as result:
            self._only_owner(ctx)
            require(self._paused, ContractPaused, errors.NOT_PAUSED)
            self._paused = False
            self._emit("Unpaused", account=normalize_address(ctx.sender))
        return result

    ################################################
    # Marketplace operations
    ################################################

    def purchase_credits(self, ctx: CallContext, project_id: str, amount: int) -> ExecutionResult:
        """
        Buy credits from a project with the value attached to the call.

        The developer receives ``amount * price // 100`` tinybars and the
        buyer is refunded whatever was attached above that.
        """
        with self._transaction() as result:
            self._when_not_paused()
            project = self._active_project(project_id)
            require(amount > 0, InvalidInput, errors.INVALID_AMOUNT)
            require(project.available_credits >= amount, InsufficientResource, errors.INSUFFICIENT_AVAILABLE)
            cost = purchase_cost(amount, project.price_per_credit)
            require(ctx.value >= cost, InsufficientResource, errors.INSUFFICIENT_PAYMENT)

            buyer = normalize_address(ctx.sender)
            self._issue(buyer, amount, project)
            self._pay(project.developer, cost, "payment")
            self._pay(buyer, ctx.value - cost, "refund")
            self._emit(
                "CreditsPurchased",
                buyer=buyer,
                project_id=project_id,
                amount=amount,
                total_price=cost,
            )
            result.return_value = True
        return result

    def retire(self, ctx: CallContext, amount: int, reason: str) -> ExecutionResult:
        """Burn credits from the caller's balance as an offset claim"""
        with self._transaction() as result:
            self._when_not_paused()
            require(amount > 0, InvalidInput, errors.INVALID_AMOUNT)
            require(bool(reason and reason.strip()), InvalidInput, errors.EMPTY_REASON)
            account = normalize_address(ctx.sender)
            require(self.book.balance_of(account) >= amount, InsufficientResource, errors.INSUFFICIENT_BALANCE)

            self.book.debit(account, amount)
            self.book.retired[account] = self.book.retired_of(account) + amount
            self.book.total_supply -= amount
            self.book.total_retired += amount
            self._emit("Transfer", sender=account, to=None, amount=amount)
            self._emit(
                "CreditsRetired",
                account=account,
                amount=amount,
                reason=reason,
                timestamp=ctx.timestamp,
            )
            result.return_value = True
        return result

    def transfer(self, ctx: CallContext, to: str, amount: int) -> ExecutionResult:
        with self._transaction() as result:
            self._when_not_paused()
            require(amount > 0, InvalidInput, errors.INVALID_AMOUNT)
            require(not is_null_address(to), InvalidInput, errors.INVALID_RECIPIENT)
            sender = normalize_address(ctx.sender)
            require(self.book.balance_of(sender) >= amount, InsufficientResource, errors.INSUFFICIENT_BALANCE)

            to = normalize_address(to)
            self.book.debit(sender, amount)
            self.book.credit(to, amount)
            self._emit("Transfer", sender=sender, to=to, amount=amount)
            result.return_value = True
        return result

    def update_project_price(self, ctx: CallContext, project_id: str, new_price: int) -> ExecutionResult:
        """Developer-only price change for an active project"""
        with self._transaction() as result:
            project = self._active_project(project_id)
            require(normalize_address(ctx.sender) == project.developer, Unauthorized, errors.NOT_DEVELOPER)
            require(new_price > 0, InvalidInput, errors.INVALID_PRICE)

            old_price = project.price_per_credit
            project.price_per_credit = new_price
            self.projects.put(project)
            self._emit("ProjectPriceUpdated", project_id=project_id, old_price=old_price, new_price=new_price)
            result.return_value = True
        return result

    ################################################
    # Read-only queries
    ################################################

    def owner(self) -> str:
        return self._owner

    def paused(self) -> bool:
        return self._paused

    def total_supply(self) -> int:
        return self.book.total_supply

    def balance_of(self, account: str) -> int:
        return self.book.balance_of(normalize_address(account))

    def get_retired_balance(self, account: str) -> int:
        return self.book.retired_of(normalize_address(account))

    def get_project(self, project_id: str) -> Project:
        """Copy of the project record, or an empty record for unknown ids"""
        project = self.projects.get(project_id)
        if project is None:
            return Project.empty()
        return Project(*project.as_tuple())

    def get_project_ids(self) -> List[str]:
        return self.projects.ids()

    def get_platform_stats(self) -> PlatformStats:
        active = 0
        for project_id in self.projects.ids():
            project = self.projects.get(project_id)
            if project is not None and project.is_active:
                active += 1
        return PlatformStats(
            total_supply=self.book.total_supply,
            total_retired=self.book.total_retired,
            active_projects=active,
        )


