import secrets
from typing import Annotated

from fastapi import HTTPException, status
from fastapi.params import Security
from fastapi.security import APIKeyHeader

from api.config import settings


api_key_header_scheme = APIKeyHeader(name="x-api-key", auto_error=False)


def generate_api_key() -> str:
    """Generate a random API key"""
    return secrets.token_urlsafe(32)


def _matches(candidate: str | None, expected: str) -> bool:
    return candidate is not None and secrets.compare_digest(candidate, expected)


def get_api_key(api_key_header: Annotated[str | None, Security(api_key_header_scheme)]) -> str:
    """Retrieve and validate an API key from the HTTP header.

    Both the client key and the admin key are accepted.

    Raises:
        HTTPException: If the API key is invalid or missing.
    """
    if _matches(api_key_header, settings.api_key) or _matches(api_key_header, settings.admin_api_key):
        return api_key_header  # type: ignore[return-value]
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API Key")


def require_admin_key(api_key_header: Annotated[str | None, Security(api_key_header_scheme)]) -> str:
    """
    Require the admin API key for endpoint access

    Raises:
        HTTPException: 401 if missing, 403 if not the admin key
    """
    if not api_key_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API Key")
    if not _matches(api_key_header, settings.admin_api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required. This endpoint requires an admin API key.",
        )
    return api_key_header
