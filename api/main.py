import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse


# Load environment variables from .env file
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(ENV_FILE)

from api.config import settings
from api.database.connection import get_db_manager
from api.dependencies.ledger import get_ledger_client
from api.routers.api_v1.api import api_router
from api.utils.security import generate_api_key
from ecocredit_offchain.errors import (
    ContractPausedError,
    ErrorCategory,
    LedgerClientError,
    LedgerNetworkError,
    UnauthorizedCallError,
    UnconfirmedTransactionError,
)
from ecocredit_offchain.guardian import GuardianError
from ecocredit_offchain.poller import ValidationNotFound


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the local tables on startup and closes the database on shutdown.
    """
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Network: {settings.network} ({settings.ledger_backend} backend)")
    logger.info(f"Admin API Key configured: {'Yes' if settings.admin_api_key else 'No'}")

    db_manager = get_db_manager()
    await db_manager.create_tables()
    logger.info("Database tables ready")

    yield  # Application runs here

    logger.info("Shutting down API")
    await db_manager.close()


app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    contact=settings.contact,
    lifespan=lifespan,
)

root_router = APIRouter()


# ============================================================================
# Error handling
# ============================================================================


def ledger_error_status(error: LedgerClientError) -> int:
    """HTTP status for a categorised ledger error"""
    if isinstance(error, UnconfirmedTransactionError):
        return 504
    if isinstance(error, ContractPausedError):
        return 423
    if isinstance(error, UnauthorizedCallError):
        return 403
    if isinstance(error, LedgerNetworkError):
        return 503
    return {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.INSUFFICIENT_FUNDS: 409,
        ErrorCategory.REMOTE_CALL: 502,
    }.get(error.category, 502)


@app.exception_handler(LedgerClientError)
async def ledger_error_handler(request: Request, exc: LedgerClientError) -> JSONResponse:
    status_code = ledger_error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.display_message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.display_message,
            "category": exc.category.value,
            "retryable": exc.retryable,
            "transaction_id": exc.transaction_id,
        },
    )


@app.exception_handler(GuardianError)
async def guardian_error_handler(request: Request, exc: GuardianError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": f"Validation service error: {str(exc)}"})


@app.exception_handler(ValidationNotFound)
async def validation_not_found_handler(request: Request, exc: ValidationNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ============================================================================
# Root endpoints
# ============================================================================


@app.get("/")
async def root():
    """Basic HTML response."""
    body = (
        "<html>"
        "<body style='padding: 10px;'>"
        "<h1>Welcome to the EcoCredit Marketplace API</h1>"
        "<div>"
        "Check the docs: <a href='/docs'>here</a>"
        "</div>"
        "</body>"
        "</html>"
    )

    return HTMLResponse(content=body)


@app.get("/generate-api-key")
async def get_new_api_key():
    """Random key suitable for API_KEY or ADMIN_API_KEY in .env"""
    api_key = generate_api_key()

    return {"api_key": api_key}


@app.get("/health")
def health_check():
    """
    Health check endpoint that tests ledger connectivity.

    Returns:
        - status: "healthy" if the ledger answers queries
        - ledger: network, backend, contract explorer page and pause state
        - api_version: API version
        - environment: Current environment
    """
    health_status = {
        "status": "healthy",
        "api_version": settings.api_version,
        "environment": settings.environment,
        "ledger": {
            "network": settings.network,
            "backend": settings.ledger_backend,
            "connected": False,
        },
    }

    try:
        client = get_ledger_client()
        health_status["ledger"]["contract_url"] = client.get_contract_url()
        health_status["ledger"]["paused"] = client.is_paused()
        health_status["ledger"]["connected"] = True
        return JSONResponse(content=health_status, status_code=200)

    except LedgerClientError as e:
        health_status["status"] = "unhealthy"
        health_status["ledger"]["error"] = e.display_message

        return JSONResponse(content=health_status, status_code=503)


app.include_router(root_router)
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=settings.api_port, reload=settings.is_development)
