"""
Pytest configuration for API tests

Fixtures and configuration for FastAPI endpoint testing.
Every test runs against a fresh local ledger, an in-memory SQLite database
and a mocked validation service.
"""

import os


# Settings are read at import time of the application
os.environ.setdefault("API_KEY", "test_api_key")
os.environ.setdefault("ADMIN_API_KEY", "test_admin_api_key")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["NETWORK"] = "local"
os.environ["LEDGER_BACKEND"] = "local"
os.environ["TOPIC_SINK"] = "memory"
os.environ["POLL_INTERVAL"] = "0"
os.environ["POLL_INITIAL_DELAY"] = "0"
os.environ["POLL_MAX_ATTEMPTS"] = "3"
os.environ["GUARDIAN_URL"] = "https://guardian.test"
os.environ["GUARDIAN_USERNAME"] = "marketplace-svc"
os.environ["GUARDIAN_PASSWORD"] = "svc-secret"

import pytest
from fastapi.testclient import TestClient

from api.config import settings
from api.database.connection import DatabaseManager, DatabaseSettings, set_db_manager
from api.dependencies.ledger import (
    build_guardian_client,
    get_ledger_client,
    set_guardian_client,
    set_ledger_client,
)
from api.main import app
from api.tests.mocks import MockGuardianService


@pytest.fixture
def guardian_service():
    """Mocked Guardian workflow service"""
    return MockGuardianService(settings.guardian_username, settings.guardian_password)


@pytest.fixture
def client(guardian_service):
    """Create FastAPI test client"""
    set_ledger_client(None)
    set_db_manager(DatabaseManager(DatabaseSettings(database_url="sqlite+aiosqlite:///:memory:")))
    set_guardian_client(build_guardian_client(transport=guardian_service.transport))

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_ledger_client(None)
    set_guardian_client(None)


@pytest.fixture
def ledger(client):
    """The ledger client the application is serving from"""
    return get_ledger_client()


# Auth fixtures
@pytest.fixture
def api_key():
    """Client API key"""
    return settings.api_key


@pytest.fixture
def auth_headers(api_key):
    """Get authentication headers"""
    return {"X-API-Key": api_key}


@pytest.fixture
def admin_headers():
    """Admin authentication headers"""
    return {"X-API-Key": settings.admin_api_key}


@pytest.fixture
def operator():
    """Account the API signs with by default"""
    return settings.operator_account
