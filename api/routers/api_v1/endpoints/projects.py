"""
Project Endpoints

FastAPI endpoints for carbon projects registered on the credit ledger.
Ledger errors are converted to HTTP responses by the application's
exception handlers.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path

from api.schemas.project import (
    ProjectListResponse,
    ProjectResponse,
    ProjectTransactionResponse,
    RegisterProjectRequest,
    UpdatePriceRequest,
)
from api.dependencies.ledger import get_ledger_client
from api.utils.security import require_admin_key
from ecocredit_offchain.ledger_client import CreditLedgerClient


router = APIRouter()

LedgerClient = Annotated[CreditLedgerClient, Depends(get_ledger_client)]


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List active projects",
)
def list_projects(client: LedgerClient) -> ProjectListResponse:
    projects = [ProjectResponse.from_info(project) for project in client.list_projects()]
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project details",
    responses={404: {"description": "Unknown or inactive project"}},
)
def get_project(client: LedgerClient, project_id: str = Path(description="Project identifier")) -> ProjectResponse:
    project = client.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return ProjectResponse.from_info(project)


@router.post(
    "",
    response_model=ProjectTransactionResponse,
    status_code=201,
    summary="Register project",
    description="Register a project on the ledger. Requires the admin API key; the operator signs as contract owner.",
    dependencies=[Depends(require_admin_key)],
)
def register_project(request: RegisterProjectRequest, client: LedgerClient) -> ProjectTransactionResponse:
    result = client.register_project(
        project_id=request.project_id,
        methodology=request.methodology,
        location=request.location,
        total_credits=request.total_credits,
        price_per_credit=request.price_per_credit,
        developer=request.developer,
    )
    return ProjectTransactionResponse.from_result(result, project_id=request.project_id)


@router.patch(
    "/{project_id}/price",
    response_model=ProjectTransactionResponse,
    summary="Update project price",
    description="Only the project developer can change the price.",
)
def update_project_price(
    request: UpdatePriceRequest,
    client: LedgerClient,
    project_id: str = Path(description="Project identifier"),
) -> ProjectTransactionResponse:
    result = client.update_project_price(project_id, request.new_price, account=request.account)
    return ProjectTransactionResponse.from_result(result, project_id=project_id)
