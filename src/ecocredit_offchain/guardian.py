"""
Guardian Policy Workflow Client

Handles interactions with the external policy workflow engine that
validates carbon projects before their credits are issued.
Documentation: https://github.com/hashgraph/guardian
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ValidationStatus(str, Enum):
    """
    Validation lifecycle of a submitted project

    SUBMITTED → UNDER_REVIEW → VALIDATION → APPROVED | REJECTED
    """

    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    VALIDATION = "VALIDATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in (ValidationStatus.APPROVED, ValidationStatus.REJECTED)


STAGE_BY_STATUS = {
    ValidationStatus.SUBMITTED: "submission",
    ValidationStatus.UNDER_REVIEW: "validation",
    ValidationStatus.VALIDATION: "validation",
    ValidationStatus.APPROVED: "issuance",
    ValidationStatus.REJECTED: "submission",
}

PROGRESS_BY_STATUS = {
    ValidationStatus.SUBMITTED: 20,
    ValidationStatus.UNDER_REVIEW: 40,
    ValidationStatus.VALIDATION: 60,
    ValidationStatus.APPROVED: 100,
    ValidationStatus.REJECTED: 0,
}


class GuardianError(Exception):
    """Workflow service unreachable or returned an unusable answer"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProjectSubmission(BaseModel):
    """Payload sent to the policy workflow for a new project"""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    project_name: str = Field(alias="projectName")
    project_type: str = Field(alias="projectType")
    methodology: str
    developer: str
    location: str
    estimated_credits: float = Field(alias="estimatedCredits")
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    monitoring_plan: Optional[str] = Field(default=None, alias="monitoringPlan")
    safeguards: List[str] = Field(default_factory=list)
    stakeholders: List[str] = Field(default_factory=list)


class SubmissionReceipt(BaseModel):
    instance_id: str
    status: ValidationStatus = ValidationStatus.SUBMITTED
    submission_date: datetime
    tracking_url: str


class StatusReport(BaseModel):
    """Validation state of a policy instance as reported by the service"""

    model_config = ConfigDict(populate_by_name=True)

    instance_id: str = Field(alias="instanceId")
    status: ValidationStatus
    current_stage: Optional[str] = Field(default=None, alias="currentStage")
    progress: int = Field(default=0, ge=0, le=100)
    validated_credits: float = Field(default=0, alias="validatedCredits")
    documents: List[Any] = Field(default_factory=list)
    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    next_action: Optional[str] = Field(default=None, alias="nextAction")


class GuardianClient:
    """
    Async client for the Guardian policy workflow API

    When credentials are given the client logs in before its first request
    and once more when the service rejects the token with a 401.
    """

    api_version = "v1"

    def __init__(
        self,
        base_url: str,
        policy_id: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.policy_id = policy_id
        self.timeout = timeout
        self.transport = transport
        self.username = username
        self.password = password
        self.auth_token: Optional[str] = None

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api/{self.api_version}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, f"{self.api_url}{path}", headers=self._headers(), **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Guardian {method} {path} returned {e.response.status_code}: {e.response.text}")
            raise GuardianError(f"Guardian API error: {e.response.status_code}", e.response.status_code)
        except httpx.HTTPError as e:
            logger.error(f"Guardian {method} {path} failed: {str(e)}")
            raise GuardianError(f"Guardian unreachable: {str(e)}")
        except ValueError as e:
            raise GuardianError(f"Guardian returned invalid JSON: {str(e)}")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        if self.username and self.auth_token is None:
            await self.authenticate(self.username, self.password or "")
        try:
            return await self._send(method, path, **kwargs)
        except GuardianError as e:
            if e.status_code != 401 or not self.username:
                raise
            logger.info("Guardian token rejected, logging in again")
            await self.authenticate(self.username, self.password or "")
            return await self._send(method, path, **kwargs)

    async def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Log in and keep the access token for later requests"""
        self.auth_token = None
        data = await self._send("POST", "/auth/login", json={"username": username, "password": password})
        if not isinstance(data, dict) or not data.get("accessToken"):
            raise GuardianError("Guardian login returned no access token")
        self.auth_token = data["accessToken"]
        logger.info("Guardian authentication successful")
        return {"token": self.auth_token, "user": data.get("user")}

    async def get_policies(self) -> List[Dict[str, Any]]:
        """Published VCS policies usable for carbon project validation"""
        policies = await self._request("GET", "/policies")
        return [
            policy
            for policy in policies
            if policy.get("status") == "PUBLISHED" and "vcs" in policy.get("name", "").lower()
        ]

    async def submit_project(self, submission: ProjectSubmission) -> SubmissionReceipt:
        """Create a policy instance for the project"""
        logger.info(f"Submitting project {submission.project_id} to policy {self.policy_id}")
        data = await self._request(
            "POST",
            f"/policies/{self.policy_id}/instances",
            json=submission.model_dump(by_alias=True, mode="json"),
        )
        instance_id = data.get("instanceId")
        if not instance_id:
            raise GuardianError("Guardian submission returned no instance id")

        return SubmissionReceipt(
            instance_id=instance_id,
            submission_date=datetime.now(timezone.utc),
            tracking_url=f"{self.base_url}/instances/{instance_id}",
        )

    async def get_project_status(self, instance_id: str) -> StatusReport:
        """Current validation status of a policy instance"""
        data = await self._request("GET", f"/instances/{instance_id}")
        data.setdefault("instanceId", instance_id)
        try:
            report = StatusReport.model_validate(data)
        except ValidationError as e:
            raise GuardianError(f"Unexpected status payload for {instance_id}: {e.errors()[0]['msg']}")

        if report.current_stage is None:
            report.current_stage = STAGE_BY_STATUS[report.status]
        if "progress" not in data:
            report.progress = PROGRESS_BY_STATUS[report.status]
        return report

    async def get_dmrv_data(self, instance_id: str) -> Dict[str, Any]:
        """Digital monitoring, reporting and verification data of an instance"""
        return await self._request("GET", f"/dmrv/{instance_id}")
