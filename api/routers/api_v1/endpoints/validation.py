"""
Validation Endpoints

FastAPI endpoints for submitting projects to the validation workflow and
following them until their credits are issued.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from api.dependencies.ledger import get_guardian_client, get_validation_poller
from api.schemas.validation import (
    DmrvDataResponse,
    PolicyResponse,
    ValidationCursorResponse,
    ValidationSubmissionRequest,
)
from ecocredit_offchain.guardian import GuardianClient
from ecocredit_offchain.poller import ValidationPoller


router = APIRouter()

Poller = Annotated[ValidationPoller, Depends(get_validation_poller)]
Guardian = Annotated[GuardianClient, Depends(get_guardian_client)]


@router.get(
    "/policies",
    response_model=list[PolicyResponse],
    summary="List validation policies",
    description="Published VCS policies of the validation workflow.",
    responses={502: {"description": "Validation service error"}},
)
async def list_policies(guardian: Guardian) -> list[PolicyResponse]:
    return [PolicyResponse.model_validate(policy) for policy in await guardian.get_policies()]


@router.post(
    "/submissions",
    response_model=ValidationCursorResponse,
    status_code=201,
    summary="Submit project for validation",
    responses={502: {"description": "Validation service error"}},
)
async def submit_project(request: ValidationSubmissionRequest, poller: Poller) -> ValidationCursorResponse:
    cursor = await poller.submit(
        request.to_submission(),
        price_per_credit=request.price_per_credit,
        issuance_credits=request.issuance_credits,
    )
    return ValidationCursorResponse.from_cursor(cursor)


@router.post(
    "/{instance_id}/poll",
    response_model=ValidationCursorResponse,
    summary="Poll validation status",
    description=(
        "Poll the validation workflow until the project is approved or rejected, or until the "
        "attempt budget runs out (state STALLED). Calling again resumes from the stored cursor. "
        "Approval registers the project and mints its credits."
    ),
    responses={404: {"description": "Unknown instance"}},
)
async def poll_validation(
    poller: Poller, instance_id: str = Path(description="Policy instance id")
) -> ValidationCursorResponse:
    return ValidationCursorResponse.from_cursor(await poller.poll(instance_id))


@router.get(
    "/{instance_id}",
    response_model=ValidationCursorResponse,
    summary="Get validation cursor",
    responses={404: {"description": "Unknown instance"}},
)
async def get_validation(
    poller: Poller, instance_id: str = Path(description="Policy instance id")
) -> ValidationCursorResponse:
    return ValidationCursorResponse.from_cursor(await poller.get_cursor(instance_id))


@router.get(
    "/{instance_id}/dmrv",
    response_model=DmrvDataResponse,
    summary="Get monitoring data",
    description="Digital monitoring, reporting and verification data recorded for a submitted project.",
    responses={404: {"description": "Unknown instance"}, 502: {"description": "Validation service error"}},
)
async def get_dmrv_data(
    poller: Poller, guardian: Guardian, instance_id: str = Path(description="Policy instance id")
) -> DmrvDataResponse:
    cursor = await poller.get_cursor(instance_id)
    return DmrvDataResponse(instance_id=cursor.instance_id, data=await guardian.get_dmrv_data(instance_id))
