"""
Validation Schemas

Pydantic models for project validation submissions and polling.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ecocredit_offchain.guardian import ProjectSubmission, ValidationStatus
from ecocredit_offchain.poller import CursorState, PollCursor


class ValidationSubmissionRequest(BaseModel):
    """Project submitted to the validation workflow"""

    project_id: str = Field(min_length=1)
    project_name: str = Field(min_length=1)
    project_type: str = Field("forestry", description="e.g. forestry, renewable, cookstoves")
    methodology: str = Field(min_length=1)
    developer: str = Field(min_length=1, description="Developer account receiving the issued credits")
    location: str = Field(min_length=1)
    estimated_credits: Decimal = Field(gt=0, decimal_places=2)
    price_per_credit: Decimal = Field(ge=0, description="Listing price in HBAR per whole credit")
    issuance_credits: Decimal | None = Field(
        None, gt=0, decimal_places=2, description="Credits minted on approval (defaults to the validated credits)"
    )
    monitoring_plan: str | None = None
    documents: list[dict] = Field(default_factory=list)

    def to_submission(self) -> ProjectSubmission:
        return ProjectSubmission(
            project_id=self.project_id,
            project_name=self.project_name,
            project_type=self.project_type,
            methodology=self.methodology,
            developer=self.developer,
            location=self.location,
            estimated_credits=float(self.estimated_credits),
            monitoring_plan=self.monitoring_plan,
            documents=self.documents,
        )


class ValidationCursorResponse(BaseModel):
    """Polling state of a submitted project"""

    instance_id: str
    project_id: str
    state: CursorState
    last_status: ValidationStatus
    progress: int
    attempts: int
    validated_credits: float
    registration_tx: str | None = None
    issuance_tx: str | None = None
    last_error: str | None = None
    updated_at: datetime

    @classmethod
    def from_cursor(cls, cursor: PollCursor) -> "ValidationCursorResponse":
        return cls(
            instance_id=cursor.instance_id,
            project_id=cursor.project_id,
            state=cursor.state,
            last_status=cursor.last_status,
            progress=cursor.progress,
            attempts=cursor.attempts,
            validated_credits=float(cursor.validated_credits),
            registration_tx=cursor.registration_tx,
            issuance_tx=cursor.issuance_tx,
            last_error=cursor.last_error,
            updated_at=cursor.updated_at,
        )


class PolicyResponse(BaseModel):
    """Published policy usable for project validation"""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    status: str


class DmrvDataResponse(BaseModel):
    """Monitoring, reporting and verification data of a policy instance"""

    instance_id: str
    data: dict[str, Any]


class ValidationOverviewResponse(BaseModel):
    """Cursor counts per state plus the cursors in the requested state"""

    counts: dict[CursorState, int]
    state: CursorState
    validations: list[ValidationCursorResponse]
