"""
Project Schemas

Pydantic models for project-related API requests and responses.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from api.schemas.credit import LedgerTransactionResponse
from ecocredit_offchain.ledger_client import ProjectInfo


# ============================================================================
# Request Schemas
# ============================================================================


class RegisterProjectRequest(BaseModel):
    """Request to register a carbon project on the ledger"""

    project_id: str = Field(min_length=1, description="Unique project identifier")
    methodology: str = Field(min_length=1, description="Carbon accounting methodology, e.g. VM0042")
    location: str = Field(min_length=1, description="Project location")
    total_credits: Decimal = Field(gt=0, decimal_places=2, description="Credits the project can issue")
    price_per_credit: Decimal = Field(ge=0, description="Price in HBAR per whole credit")
    developer: str | None = Field(None, description="Developer account (defaults to the operator)")


class UpdatePriceRequest(BaseModel):
    """Developer-only price change"""

    new_price: Decimal = Field(gt=0, description="New price in HBAR per whole credit")
    account: str | None = Field(None, description="Developer account signing the change")


# ============================================================================
# Response Schemas
# ============================================================================


class ProjectResponse(BaseModel):
    """Active project as stored on the ledger"""

    project_id: str
    methodology: str
    location: str
    total_credits: float
    available_credits: float
    is_active: bool
    developer: str
    price_per_credit: float = Field(description="HBAR per whole credit")
    price_per_credit_tinybars: int

    @classmethod
    def from_info(cls, project: ProjectInfo) -> "ProjectResponse":
        return cls(
            project_id=project.project_id,
            methodology=project.methodology,
            location=project.location,
            total_credits=float(project.total_credits),
            available_credits=float(project.available_credits),
            is_active=project.is_active,
            developer=project.developer,
            price_per_credit=float(project.price_per_credit),
            price_per_credit_tinybars=project.price_per_credit_tinybars,
        )


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int


class ProjectTransactionResponse(LedgerTransactionResponse):
    project_id: str
