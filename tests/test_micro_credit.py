"""
Tests for the MicroCredit contract

Amounts are ledger units: credits scaled by 100, prices in tinybars per
whole credit.
"""

import random

import pytest

from ecocredit_contracts import (
    MAX_SUPPLY,
    CallContext,
    ContractPaused,
    InsufficientResource,
    InvalidInput,
    MicroCreditContract,
    Project,
    Unauthorized,
)
from ecocredit_contracts import errors

from accounts import BUYER, DEVELOPER, OTHER, OWNER


def owner_ctx(**kwargs) -> CallContext:
    return CallContext(sender=OWNER, **kwargs)


def state_of(contract: MicroCreditContract) -> tuple:
    """Everything observable through the read-only queries"""
    projects = tuple(contract.get_project(pid).as_tuple() for pid in contract.get_project_ids())
    balances = tuple(contract.balance_of(a) for a in (OWNER, DEVELOPER, BUYER, OTHER))
    retired = tuple(contract.get_retired_balance(a) for a in (OWNER, DEVELOPER, BUYER, OTHER))
    return projects, balances, retired, contract.total_supply(), contract.paused()


class MockCommonLedger:
    """Common setup for contract tests"""

    def setup_method(self):
        self.contract = MicroCreditContract(owner=OWNER)

    def register(self, project_id: str = "P1", total: int = 100_000, price: int = 5, developer: str = DEVELOPER):
        return self.contract.register_project(
            owner_ctx(), project_id, developer, "VM0042", "Chocó, Colombia", total, price
        )


class TestScenario(MockCommonLedger):
    """Register, mint, purchase and retire end to end"""

    def test_full_lifecycle(self):
        self.register("P1", total=100_000, price=5)

        self.contract.mint(owner_ctx(), OWNER, 20_000, "P1")
        assert self.contract.get_project("P1").available_credits == 80_000
        assert self.contract.balance_of(OWNER) == 20_000

        result = self.contract.purchase_credits(CallContext(BUYER, value=250), "P1", 5_000)
        assert self.contract.get_project("P1").available_credits == 75_000
        assert self.contract.balance_of(BUYER) == 5_000
        assert [(p.to, p.amount) for p in result.payouts] == [(DEVELOPER, 250)]

        self.contract.retire(CallContext(BUYER, timestamp=1_700_000_000), 2_000, "Q3 flights")
        assert self.contract.balance_of(BUYER) == 3_000
        assert self.contract.get_retired_balance(BUYER) == 2_000

        stats = self.contract.get_platform_stats()
        assert stats.total_supply == 23_000
        assert stats.total_retired == 2_000
        assert stats.active_projects == 1

    def test_purchase_above_available_is_rejected_without_effect(self):
        self.register("P1", total=1_000, price=5)
        before = state_of(self.contract)

        with pytest.raises(InsufficientResource, match=errors.INSUFFICIENT_AVAILABLE):
            self.contract.purchase_credits(CallContext(BUYER, value=10**9), "P1", 1_001)

        assert state_of(self.contract) == before


class TestRegisterProject(MockCommonLedger):
    def test_register_sets_available_to_total(self):
        result = self.register("P1", total=50_000, price=7)
        project = self.contract.get_project("P1")

        assert project.total_credits == project.available_credits == 50_000
        assert project.is_active
        assert project.developer == DEVELOPER
        assert result.events[0].name == "ProjectRegistered"
        assert self.contract.get_project_ids() == ["P1"]

    def test_duplicate_registration_keeps_first(self):
        self.register("P1", total=1_000, price=5)
        first = self.contract.get_project("P1")

        with pytest.raises(InvalidInput, match=errors.PROJECT_EXISTS):
            self.register("P1", total=9_999, price=1, developer=OTHER)

        assert self.contract.get_project("P1") == first

    def test_only_owner_registers(self):
        with pytest.raises(Unauthorized, match=errors.NOT_OWNER):
            self.contract.register_project(CallContext(BUYER), "P1", DEVELOPER, "VM0042", "Peru", 1_000, 5)
        assert self.contract.get_project_ids() == []

    @pytest.mark.parametrize(
        "project_id, developer, total, price, reason",
        [
            ("", DEVELOPER, 1_000, 5, errors.EMPTY_PROJECT_ID),
            ("   ", DEVELOPER, 1_000, 5, errors.EMPTY_PROJECT_ID),
            ("P1", None, 1_000, 5, errors.INVALID_DEVELOPER),
            ("P1", DEVELOPER, 0, 5, errors.INVALID_TOTAL_CREDITS),
            ("P1", DEVELOPER, 1_000, -1, errors.INVALID_PRICE),
        ],
    )
    def test_invalid_registration(self, project_id, developer, total, price, reason):
        with pytest.raises(InvalidInput, match=reason):
            self.contract.register_project(owner_ctx(), project_id, developer, "VM0042", "Peru", total, price)
        assert self.contract.get_project_ids() == []

    def test_unknown_project_reads_as_empty(self):
        assert self.contract.get_project("nope") == Project.empty()
        assert not self.contract.get_project("nope").is_active


class TestMint(MockCommonLedger):
    def setup_method(self):
        super().setup_method()
        self.register("P1", total=10_000, price=5)

    def test_mint_emits_transfer_from_zero(self):
        result = self.contract.mint(owner_ctx(), BUYER, 500, "P1")
        names = [event.name for event in result.events]

        assert names == ["Transfer", "CreditsMinted"]
        assert result.events[0].args["sender"] is None
        assert self.contract.total_supply() == 500

    def test_mint_over_available(self):
        with pytest.raises(InsufficientResource, match=errors.INSUFFICIENT_AVAILABLE):
            self.contract.mint(owner_ctx(), BUYER, 10_001, "P1")
        assert self.contract.total_supply() == 0

    def test_mint_requires_owner(self):
        with pytest.raises(Unauthorized):
            self.contract.mint(CallContext(DEVELOPER), DEVELOPER, 1, "P1")

    def test_mint_unknown_project(self):
        with pytest.raises(InvalidInput, match=errors.PROJECT_NOT_ACTIVE):
            self.contract.mint(owner_ctx(), BUYER, 1, "P2")

    def test_mint_zero_and_null_recipient(self):
        with pytest.raises(InvalidInput, match=errors.INVALID_AMOUNT):
            self.contract.mint(owner_ctx(), BUYER, 0, "P1")
        with pytest.raises(InvalidInput, match=errors.INVALID_RECIPIENT):
            self.contract.mint(owner_ctx(), None, 1, "P1")

    def test_max_supply_cap(self):
        self.register("BIG", total=MAX_SUPPLY + 1, price=1)
        self.contract.mint(owner_ctx(), OWNER, MAX_SUPPLY - 100, "BIG")

        with pytest.raises(InsufficientResource, match=errors.MAX_SUPPLY_EXCEEDED):
            self.contract.mint(owner_ctx(), OWNER, 101, "BIG")
        assert self.contract.total_supply() == MAX_SUPPLY - 100


class TestPurchase(MockCommonLedger):
    def setup_method(self):
        super().setup_method()
        self.register("P1", total=10_000, price=300)

    def test_excess_payment_is_refunded(self):
        # 2.50 credits at 300 tinybars per credit
        result = self.contract.purchase_credits(CallContext(BUYER, value=1_000), "P1", 250)

        assert [(p.to, p.amount, p.memo) for p in result.payouts] == [
            (DEVELOPER, 750, "payment"),
            (BUYER, 250, "refund"),
        ]
        event = result.events[-1]
        assert event.name == "CreditsPurchased"
        assert event.args["total_price"] == 750

    def test_cost_rounds_down(self):
        # 0.01 credit at 150 tinybars costs 1.5 tinybars, charged as 1
        self.register("P2", total=100, price=150)
        result = self.contract.purchase_credits(CallContext(BUYER, value=1), "P2", 1)
        assert [(p.to, p.amount) for p in result.payouts] == [(DEVELOPER, 1)]

    def test_underpayment_rejected(self):
        before = state_of(self.contract)
        with pytest.raises(InsufficientResource, match=errors.INSUFFICIENT_PAYMENT):
            self.contract.purchase_credits(CallContext(BUYER, value=299), "P1", 100)
        assert state_of(self.contract) == before

    def test_purchase_zero(self):
        with pytest.raises(InvalidInput, match=errors.INVALID_AMOUNT):
            self.contract.purchase_credits(CallContext(BUYER, value=0), "P1", 0)

    def test_free_project_has_no_payouts(self):
        self.register("FREE", total=1_000, price=0)
        result = self.contract.purchase_credits(CallContext(BUYER), "FREE", 100)
        assert result.payouts == []
        assert self.contract.balance_of(BUYER) == 100


class TestRetireAndTransfer(MockCommonLedger):
    def setup_method(self):
        super().setup_method()
        self.register("P1", total=10_000, price=5)
        self.contract.mint(owner_ctx(), BUYER, 1_000, "P1")

    def test_retire_records_reason_and_timestamp(self):
        result = self.contract.retire(CallContext(BUYER, timestamp=1_234), 400, "Office energy 2024")
        retired = result.events[-1]

        assert retired.name == "CreditsRetired"
        assert retired.args == {"account": BUYER, "amount": 400, "reason": "Office energy 2024", "timestamp": 1_234}
        assert self.contract.total_supply() == 600

    def test_retire_requires_reason(self):
        with pytest.raises(InvalidInput, match=errors.EMPTY_REASON):
            self.contract.retire(CallContext(BUYER), 1, "  ")

    def test_retire_more_than_balance(self):
        with pytest.raises(InsufficientResource, match=errors.INSUFFICIENT_BALANCE):
            self.contract.retire(CallContext(BUYER), 1_001, "too much")
        assert self.contract.balance_of(BUYER) == 1_000

    def test_transfer_moves_balance(self):
        self.contract.transfer(CallContext(BUYER), OTHER, 300)
        assert self.contract.balance_of(BUYER) == 700
        assert self.contract.balance_of(OTHER) == 300
        assert self.contract.total_supply() == 1_000

    def test_transfer_checks(self):
        with pytest.raises(InsufficientResource):
            self.contract.transfer(CallContext(OTHER), BUYER, 1)
        with pytest.raises(InvalidInput, match=errors.INVALID_RECIPIENT):
            self.contract.transfer(CallContext(BUYER), None, 1)


class TestPriceAndPause(MockCommonLedger):
    def setup_method(self):
        super().setup_method()
        self.register("P1", total=10_000, price=5)

    def test_developer_updates_price(self):
        result = self.contract.update_project_price(CallContext(DEVELOPER), "P1", 9)
        assert self.contract.get_project("P1").price_per_credit == 9
        assert result.events[0].args == {"project_id": "P1", "old_price": 5, "new_price": 9}

    def test_owner_cannot_update_price(self):
        with pytest.raises(Unauthorized, match=errors.NOT_DEVELOPER):
            self.contract.update_project_price(owner_ctx(), "P1", 9)

    def test_zero_price_rejected(self):
        with pytest.raises(InvalidInput, match=errors.INVALID_PRICE):
            self.contract.update_project_price(CallContext(DEVELOPER), "P1", 0)

    def test_pause_blocks_marketplace_operations(self):
        self.contract.mint(owner_ctx(), BUYER, 100, "P1")
        self.contract.pause(owner_ctx())

        with pytest.raises(ContractPaused):
            self.contract.mint(owner_ctx(), BUYER, 1, "P1")
        with pytest.raises(ContractPaused):
            self.contract.purchase_credits(CallContext(BUYER, value=100), "P1", 1)
        with pytest.raises(ContractPaused):
            self.contract.retire(CallContext(BUYER), 1, "paused")
        with pytest.raises(ContractPaused):
            self.contract.transfer(CallContext(BUYER), OTHER, 1)

        # Price updates are not pausable
        self.contract.update_project_price(CallContext(DEVELOPER), "P1", 6)

        self.contract.unpause(owner_ctx())
        self.contract.retire(CallContext(BUYER), 1, "resumed")
        assert self.contract.get_retired_balance(BUYER) == 1

    def test_pause_is_owner_only_and_not_reentrant(self):
        with pytest.raises(Unauthorized):
            self.contract.pause(CallContext(BUYER))
        with pytest.raises(ContractPaused, match=errors.NOT_PAUSED):
            self.contract.unpause(owner_ctx())

        self.contract.pause(owner_ctx())
        with pytest.raises(ContractPaused, match=errors.PAUSED):
            self.contract.pause(owner_ctx())
        assert self.contract.paused()


class TestInvariants(MockCommonLedger):
    """Random operation sequences keep the ledger's accounting invariants"""

    accounts = (OWNER, DEVELOPER, BUYER, OTHER)

    def check_invariants(self):
        stats = self.contract.get_platform_stats()
        balances = sum(self.contract.balance_of(a) for a in self.accounts)
        retired = sum(self.contract.get_retired_balance(a) for a in self.accounts)

        assert balances == stats.total_supply
        assert retired == stats.total_retired
        assert stats.total_supply + stats.total_retired <= MAX_SUPPLY
        for project_id in self.contract.get_project_ids():
            project = self.contract.get_project(project_id)
            assert 0 <= project.available_credits <= project.total_credits

        issued = sum(
            self.contract.get_project(pid).total_credits - self.contract.get_project(pid).available_credits
            for pid in self.contract.get_project_ids()
        )
        assert issued == stats.total_supply + stats.total_retired

    @pytest.mark.parametrize("seed", range(5))
    def test_random_sequences(self, seed):
        rng = random.Random(seed)
        self.register("A", total=5_000, price=3)
        self.register("B", total=2_000, price=11, developer=OTHER)

        for _ in range(300):
            account = rng.choice(self.accounts)
            amount = rng.randint(0, 800)
            project_id = rng.choice(["A", "B", "C"])
            operation = rng.choice(["mint", "purchase", "retire", "transfer", "pause"])
            before = state_of(self.contract)
            try:
                if operation == "mint":
                    self.contract.mint(CallContext(account), rng.choice(self.accounts), amount, project_id)
                elif operation == "purchase":
                    value = rng.randint(0, 10_000)
                    self.contract.purchase_credits(CallContext(account, value=value), project_id, amount)
                elif operation == "retire":
                    self.contract.retire(CallContext(account), amount, "offset")
                elif operation == "transfer":
                    self.contract.transfer(CallContext(account), rng.choice(self.accounts), amount)
                elif self.contract.paused():
                    self.contract.unpause(CallContext(account))
                else:
                    self.contract.pause(CallContext(account))
            except (InvalidInput, InsufficientResource, Unauthorized, ContractPaused):
                # Reverted calls leave no trace
                assert state_of(self.contract) == before
            self.check_invariants()
