"""
Validation Status Poller

Follows a submitted project through the policy workflow
(SUBMITTED → UNDER_REVIEW → VALIDATION → APPROVED | REJECTED) and hands
approved projects over to the ledger.

Progress is kept in a persisted cursor, so an interrupted or exhausted poll
picks up where it stopped when ``poll`` is invoked again.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Protocol

from .errors import LedgerClientError
from .guardian import GuardianClient, GuardianError, ProjectSubmission, StatusReport, ValidationStatus
from .ledger_client import CreditLedgerClient

logger = logging.getLogger(__name__)


class CursorState(str, Enum):
    POLLING = "POLLING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    STALLED = "STALLED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (CursorState.COMPLETED, CursorState.REJECTED)


@dataclass()
class PollCursor:
    """Resumable polling state of one policy instance"""

    instance_id: str
    project_id: str
    project_name: str
    methodology: str
    location: str
    developer: str
    price_per_credit: Decimal
    estimated_credits: Decimal
    issuance_credits: Optional[Decimal] = None
    state: CursorState = CursorState.POLLING
    last_status: ValidationStatus = ValidationStatus.SUBMITTED
    progress: int = 0
    attempts: int = 0
    validated_credits: Decimal = Decimal(0)
    registration_tx: Optional[str] = None
    issuance_tx: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CursorStore(Protocol):
    async def load(self, instance_id: str) -> Optional[PollCursor]: ...

    async def save(self, cursor: PollCursor) -> None: ...


class InMemoryCursorStore:
    """Cursor store for tests and single-process tools"""

    def __init__(self):
        self._cursors: Dict[str, PollCursor] = {}

    async def load(self, instance_id: str) -> Optional[PollCursor]:
        cursor = self._cursors.get(instance_id)
        return replace(cursor) if cursor is not None else None

    async def save(self, cursor: PollCursor) -> None:
        self._cursors[cursor.instance_id] = replace(cursor)


ApprovalHandler = Callable[[PollCursor], Awaitable[None]]


class ValidationNotFound(Exception):
    """No cursor exists for the requested policy instance"""


class ProjectOnboarding:
    """
    Approval handler: registers the validated project and mints its credits.

    Each step records its transaction id on the cursor and is skipped when
    already done, so a handler that failed half-way can be re-run.
    A project registered outside the cursor only gets credits minted when
    none have left it yet.
    """

    def __init__(self, client: CreditLedgerClient):
        self.client = client

    async def __call__(self, cursor: PollCursor) -> None:
        total_credits = cursor.validated_credits or cursor.estimated_credits

        if cursor.registration_tx is None:
            project = await asyncio.to_thread(self.client.get_project, cursor.project_id)
            if project is None:
                result = await asyncio.to_thread(
                    self.client.register_project,
                    cursor.project_id,
                    cursor.methodology,
                    cursor.location,
                    total_credits,
                    cursor.price_per_credit,
                    cursor.developer,
                )
                cursor.registration_tx = result.transaction_id
            else:
                cursor.registration_tx = "existing"
                # Registered outside this cursor: only issue if nothing left the project yet
                if cursor.issuance_tx is None and project.available_credits < project.total_credits:
                    cursor.issuance_tx = "existing"
                    logger.warning(
                        f"Project {cursor.project_id} already has issued credits, skipping issuance for {cursor.instance_id}"
                    )

        if cursor.issuance_tx is None:
            amount = cursor.issuance_credits or total_credits
            result = await asyncio.to_thread(
                self.client.mint_credits, cursor.developer, amount, cursor.project_id
            )
            cursor.issuance_tx = result.transaction_id
            logger.info(f"Issued {amount} credits of {cursor.project_id} to {cursor.developer}")


class ValidationPoller:
    """Explicit polling state machine over a persisted cursor"""

    # One poll at a time per instance, shared by every poller in the process
    _instance_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def __init__(
        self,
        guardian: GuardianClient,
        store: CursorStore,
        on_approved: ApprovalHandler,
        interval: float = 5.0,
        max_attempts: int = 20,
        initial_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the poller

        Args:
            guardian: Workflow service client
            store: Where cursors are persisted
            on_approved: Called once a project is APPROVED
            interval: Seconds between status reads
            max_attempts: Status reads per ``poll`` invocation
            initial_delay: Seconds before the first read of an invocation
            sleep: Awaitable used for waiting (replaced in tests)
        """
        self.guardian = guardian
        self.store = store
        self.on_approved = on_approved
        self.interval = interval
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    async def submit(
        self,
        submission: ProjectSubmission,
        price_per_credit: Decimal,
        issuance_credits: Optional[Decimal] = None,
    ) -> PollCursor:
        """Submit a project to the workflow and persist its cursor"""
        receipt = await self.guardian.submit_project(submission)
        cursor = PollCursor(
            instance_id=receipt.instance_id,
            project_id=submission.project_id,
            project_name=submission.project_name,
            methodology=submission.methodology,
            location=submission.location,
            developer=submission.developer,
            price_per_credit=Decimal(str(price_per_credit)),
            estimated_credits=Decimal(str(submission.estimated_credits)),
            issuance_credits=Decimal(str(issuance_credits)) if issuance_credits is not None else None,
        )
        await self.store.save(cursor)
        logger.info(f"Project {submission.project_id} submitted as instance {receipt.instance_id}")
        return cursor

    async def get_cursor(self, instance_id: str) -> PollCursor:
        cursor = await self.store.load(instance_id)
        if cursor is None:
            raise ValidationNotFound(f"No validation found for instance {instance_id}")
        return cursor

    async def _save(self, cursor: PollCursor) -> None:
        cursor.updated_at = datetime.now(timezone.utc)
        await self.store.save(cursor)

    def _apply(self, cursor: PollCursor, report: StatusReport) -> None:
        cursor.last_status = report.status
        cursor.progress = report.progress
        cursor.validated_credits = Decimal(str(report.validated_credits))
        cursor.last_error = None

    async def _approve(self, cursor: PollCursor) -> PollCursor:
        try:
            await self.on_approved(cursor)
        except LedgerClientError as e:
            logger.error(f"Issuance for {cursor.instance_id} failed: {e.display_message}")
            cursor.state = CursorState.FAILED
            cursor.last_error = e.display_message
        else:
            cursor.state = CursorState.COMPLETED
            cursor.last_error = None
            logger.info(f"Instance {cursor.instance_id} approved and issued")
        await self._save(cursor)
        return cursor

    def _lock_for(self, instance_id: str) -> asyncio.Lock:
        lock = self._instance_locks.get(instance_id)
        if lock is None:
            lock = asyncio.Lock()
            self._instance_locks[instance_id] = lock
        return lock

    async def poll(self, instance_id: str) -> PollCursor:
        """
        Poll until a terminal status or until the attempt budget runs out.

        Returns the cursor as persisted after the last step. Terminal cursors
        are returned as they are; an approved cursor whose issuance failed
        retries the issuance without polling again. Concurrent polls of the
        same instance run one after the other, each on a freshly loaded cursor.
        """
        async with self._lock_for(instance_id):
            return await self._poll(instance_id)

    async def _poll(self, instance_id: str) -> PollCursor:
        cursor = await self.get_cursor(instance_id)
        if cursor.state.is_terminal:
            return cursor
        if cursor.state == CursorState.FAILED and cursor.last_status == ValidationStatus.APPROVED:
            return await self._approve(cursor)

        cursor.state = CursorState.POLLING
        await self._save(cursor)
        await self._sleep(self.initial_delay)

        for attempt in range(1, self.max_attempts + 1):
            cursor.attempts += 1
            try:
                report = await self.guardian.get_project_status(instance_id)
            except GuardianError as e:
                logger.warning(f"Status read {attempt}/{self.max_attempts} for {instance_id} failed: {e}")
                cursor.last_error = str(e)
                await self._save(cursor)
            else:
                self._apply(cursor, report)
                if report.status == ValidationStatus.APPROVED:
                    return await self._approve(cursor)
                if report.status == ValidationStatus.REJECTED:
                    cursor.state = CursorState.REJECTED
                    cursor.last_error = report.next_action or "Project rejected by validation"
                    await self._save(cursor)
                    logger.warning(f"Instance {instance_id} rejected")
                    return cursor
                await self._save(cursor)
                logger.debug(f"Instance {instance_id} at {report.status.value} ({report.progress}%)")

            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        cursor.state = CursorState.STALLED
        await self._save(cursor)
        logger.info(f"Polling {instance_id} stalled after {self.max_attempts} attempts")
        return cursor
