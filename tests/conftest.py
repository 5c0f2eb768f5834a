"""
Shared fixtures for ledger, client and workflow tests
"""

import pytest

from ecocredit_contracts import MicroCreditContract
from ecocredit_offchain.audit_log import MemoryTopicSink, RetirementLogger
from ecocredit_offchain.backends import LocalLedgerBackend
from ecocredit_offchain.chain_context import LedgerChainContext
from ecocredit_offchain.ledger_client import CreditLedgerClient

from accounts import BUYER, DEVELOPER, FUNDING, OTHER, OWNER


class FixedClock:
    """Deterministic clock for the local backend"""

    def __init__(self, start: float = 1_700_000_000):
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


@pytest.fixture
def contract():
    return MicroCreditContract(owner=OWNER)


@pytest.fixture
def backend(contract):
    backend = LocalLedgerBackend(contract, clock=FixedClock())
    for account in (OWNER, DEVELOPER, BUYER, OTHER):
        backend.fund(account, FUNDING)
    return backend


@pytest.fixture
def topic_sink():
    return MemoryTopicSink("0.0.4242")


@pytest.fixture
def chain_context():
    return LedgerChainContext("testnet", contract_id="0.0.5005")


@pytest.fixture
def ledger(backend, chain_context, topic_sink):
    """Client acting for the contract owner"""
    return CreditLedgerClient(backend, chain_context, operator=OWNER, retirement_logger=RetirementLogger(topic_sink))
