"""
Validation Cursor Repository

Persists validation polling cursors so polling survives restarts.
Implements the cursor store used by the validation poller.
"""

from dataclasses import asdict
from datetime import timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.database.models import ValidationCursor
from api.database.repositories.base import BaseRepository
from ecocredit_offchain.guardian import ValidationStatus
from ecocredit_offchain.poller import CursorState, PollCursor


def _naive_utc(value):
    return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value


def to_cursor(record: ValidationCursor) -> PollCursor:
    values = record.model_dump()
    values["state"] = CursorState(record.state)
    values["last_status"] = ValidationStatus(record.last_status)
    values["created_at"] = record.created_at.replace(tzinfo=timezone.utc)
    values["updated_at"] = record.updated_at.replace(tzinfo=timezone.utc)
    return PollCursor(**values)


class ValidationCursorRepository(BaseRepository[ValidationCursor]):
    """Repository for validation polling cursors"""

    def __init__(self, session: AsyncSession):
        """Initialize validation cursor repository"""
        super().__init__(ValidationCursor, session)

    async def get_by_state(self, state: CursorState) -> list[PollCursor]:
        """Cursors in a given state, e.g. STALLED ones to resume, oldest update first"""
        statement = (
            select(ValidationCursor)
            .where(ValidationCursor.state == state.value)
            .order_by(ValidationCursor.updated_at)
        )
        result = await self.session.execute(statement)
        return [to_cursor(record) for record in result.scalars().all()]

    async def count_by_state(self) -> dict[CursorState, int]:
        return {state: await self.count(ValidationCursor.state == state.value) for state in CursorState}

    # Cursor store interface

    async def load(self, instance_id: str) -> PollCursor | None:
        record = await self.get(instance_id)
        return to_cursor(record) if record is not None else None

    async def save(self, cursor: PollCursor) -> None:
        values = asdict(cursor)
        values["state"] = cursor.state.value
        values["last_status"] = cursor.last_status.value
        values["created_at"] = _naive_utc(cursor.created_at)
        values["updated_at"] = _naive_utc(cursor.updated_at)

        record = await self.get(cursor.instance_id)
        if record is None:
            await self.create(ValidationCursor(**values))
            return

        for key, value in values.items():
            setattr(record, key, value)
        self.session.add(record)
        await self.session.commit()
