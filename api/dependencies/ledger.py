"""
Ledger Dependencies

FastAPI dependencies for the credit ledger client, the validation workflow
client and the repositories backing marketplace sessions and polling.
"""

import logging
from pathlib import Path
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.config import settings
from api.database.connection import get_session
from api.database.repositories import TransactionRepository, ValidationCursorRepository
from ecocredit_contracts import MicroCreditContract
from ecocredit_offchain.audit_log import (
    HttpTopicSink,
    JsonlTopicSink,
    MemoryTopicSink,
    RetirementLogger,
    TopicSink,
)
from ecocredit_offchain.backends import LedgerBackend, LocalLedgerBackend
from ecocredit_offchain.chain_context import LedgerChainContext
from ecocredit_offchain.guardian import GuardianClient
from ecocredit_offchain.ledger_client import CreditLedgerClient
from ecocredit_offchain.poller import ProjectOnboarding, ValidationPoller
from ecocredit_offchain.units import hbar_to_tinybars


logger = logging.getLogger(__name__)

# Global state, built on first use
_ledger_client: CreditLedgerClient | None = None
_guardian_client: GuardianClient | None = None


def build_topic_sink() -> TopicSink | None:
    """Retirement audit sink selected by settings.topic_sink"""
    if settings.topic_sink == "memory":
        return MemoryTopicSink(settings.topic_id)
    if settings.topic_sink == "jsonl":
        return JsonlTopicSink(Path(settings.topic_log_path), settings.topic_id)
    if settings.topic_sink == "http":
        if not settings.topic_relay_url:
            raise ValueError("TOPIC_RELAY_URL is required for the http topic sink")
        return HttpTopicSink(settings.topic_relay_url, settings.topic_id, api_key=settings.topic_relay_key)
    return None


def build_backend(chain_context: LedgerChainContext) -> LedgerBackend:
    """Ledger backend selected by settings.ledger_backend"""
    if settings.ledger_backend == "local":
        backend = LocalLedgerBackend(MicroCreditContract(owner=settings.operator_account))
        backend.fund(settings.operator_account, hbar_to_tinybars(settings.local_faucet_hbar, "faucet amount"))
        return backend

    if settings.ledger_backend == "web3":
        # Imported here so the local backend works without an RPC provider configured
        from ecocredit_offchain.web3_backend import Web3LedgerBackend

        if not settings.operator_key:
            raise ValueError("OPERATOR_KEY is required for the web3 backend")
        return Web3LedgerBackend(chain_context, settings.operator_key)

    raise ValueError(f"Unknown ledger backend: {settings.ledger_backend}")


def build_ledger_client() -> CreditLedgerClient:
    chain_context = LedgerChainContext(settings.network, settings.contract_id, settings.rpc_url)
    backend = build_backend(chain_context)
    # The web3 backend can only sign for the account behind OPERATOR_KEY
    operator = backend.operator_address if settings.ledger_backend == "web3" else settings.operator_account
    logger.info(f"Ledger client on {settings.network} using the {settings.ledger_backend} backend")
    return CreditLedgerClient(
        backend,
        chain_context,
        operator=operator,
        retirement_logger=RetirementLogger(build_topic_sink()),
        read_retries=settings.read_retries,
    )


def get_ledger_client() -> CreditLedgerClient:
    """
    Get or initialize the ledger client.

    Raises:
        HTTPException: If the ledger configuration is incomplete
    """
    global _ledger_client
    if _ledger_client is None:
        try:
            _ledger_client = build_ledger_client()
        except ValueError as e:
            raise HTTPException(status_code=500, detail=f"Ledger not configured: {str(e)}")
    return _ledger_client


def set_ledger_client(client: CreditLedgerClient | None) -> None:
    """Replace (or reset with None) the global ledger client"""
    global _ledger_client
    _ledger_client = client


def build_guardian_client(transport: httpx.AsyncBaseTransport | None = None) -> GuardianClient:
    return GuardianClient(
        settings.guardian_url,
        settings.guardian_policy_id,
        timeout=settings.guardian_timeout,
        transport=transport,
        username=settings.guardian_username,
        password=settings.guardian_password,
    )


def get_guardian_client() -> GuardianClient:
    """Get or initialize the validation workflow client; logs in lazily when credentials are set"""
    global _guardian_client
    if _guardian_client is None:
        _guardian_client = build_guardian_client()
    return _guardian_client


def set_guardian_client(client: GuardianClient | None) -> None:
    """Replace (or reset with None) the global validation workflow client"""
    global _guardian_client
    _guardian_client = client


def fund_local_account(client: CreditLedgerClient, account: str) -> None:
    """Faucet: give unfunded accounts native currency on the local backend"""
    backend = client.backend
    if isinstance(backend, LocalLedgerBackend) and backend.native_balance(account) == 0:
        backend.fund(account, hbar_to_tinybars(settings.local_faucet_hbar, "faucet amount"))
        logger.info(f"Funded local account {account} with {settings.local_faucet_hbar} HBAR")


async def get_transaction_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TransactionRepository:
    return TransactionRepository(session, history_limit=settings.history_limit)


async def get_validation_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ValidationCursorRepository:
    return ValidationCursorRepository(session)


async def get_validation_poller(
    session: Annotated[AsyncSession, Depends(get_session)],
    client: Annotated[CreditLedgerClient, Depends(get_ledger_client)],
    guardian: Annotated[GuardianClient, Depends(get_guardian_client)],
) -> ValidationPoller:
    return ValidationPoller(
        guardian,
        ValidationCursorRepository(session),
        ProjectOnboarding(client),
        interval=settings.poll_interval,
        max_attempts=settings.poll_max_attempts,
        initial_delay=settings.poll_initial_delay,
    )
