"""
Credit Endpoint Tests

Test suite for minting, purchasing, retiring and transferring credits,
including how ledger errors are surfaced over HTTP.
"""

import pytest
from fastapi.testclient import TestClient

from api.dependencies.ledger import set_ledger_client
from api.tests.assertions import (
    assert_error_response,
    assert_ledger_error,
    assert_successful_response,
    assert_valid_transaction_response,
)
from api.tests.factories import AccountFactory, ProjectFactory
from ecocredit_contracts import MicroCreditContract
from ecocredit_offchain.backends import LocalLedgerBackend
from ecocredit_offchain.chain_context import LedgerChainContext
from ecocredit_offchain.ledger_client import CreditLedgerClient


@pytest.fixture
def project(client: TestClient, admin_headers):
    """P1: 1000 credits at 0.5 HBAR, developed by the operator"""
    body = ProjectFactory.create_registration(project_id="P1", total_credits=1000, price_per_credit=0.5)
    response = client.post("/api/v1/projects", headers=admin_headers, json=body)
    assert_successful_response(response, status_code=201)
    return "P1"


@pytest.fixture
def buyer():
    return AccountFactory.create_account()


def purchase(client: TestClient, headers, account: str, amount, project_id: str = "P1"):
    return client.post(
        "/api/v1/credits/purchase",
        headers=headers,
        json={"project_id": project_id, "amount": amount, "account": account},
    )


def balance(client: TestClient, headers, account: str) -> dict:
    return assert_successful_response(client.get(f"/api/v1/credits/balance/{account}", headers=headers))


@pytest.mark.api
@pytest.mark.integration
class TestMarketplaceScenario:
    """Register, mint, buy, retire and transfer through the API"""

    def test_full_flow(self, client: TestClient, auth_headers, admin_headers, project, buyer, operator):
        response = client.post(
            "/api/v1/credits/mint",
            headers=admin_headers,
            json={"to": operator, "amount": 200, "project_id": project},
        )
        assert_valid_transaction_response(assert_successful_response(response))

        data = assert_successful_response(purchase(client, auth_headers, buyer, 50))
        assert data["status"] == "confirmed"
        assert data["type"] == "purchase"
        assert data["account"] == buyer
        assert data["amount"] == 50
        assert data["price"] == 25
        assert data["balance"] == 50

        project_data = client.get(f"/api/v1/projects/{project}", headers=auth_headers).json()
        assert project_data["available_credits"] == 750

        response = client.post(
            "/api/v1/credits/retire",
            headers=auth_headers,
            json={"amount": 20, "reason": "Q3 flight emissions", "account": buyer},
        )
        data = assert_successful_response(response)
        assert data["type"] == "retirement"
        assert data["certificate_id"].startswith("ECCX-RETIRE-")
        assert data["balance"] == 30
        assert data["retired"] == 20

        other = AccountFactory.create_account()
        response = client.post(
            "/api/v1/credits/transfer",
            headers=auth_headers,
            json={"to": other, "amount": 10, "account": buyer},
        )
        assert_valid_transaction_response(assert_successful_response(response))

        buyer_balance = balance(client, auth_headers, buyer)
        assert buyer_balance["balance"] == 20
        assert buyer_balance["retired"] == 20
        assert buyer_balance["native_balance"] == 10000 - 25
        assert balance(client, auth_headers, other)["balance"] == 10
        # Developer is paid the exact cost
        assert balance(client, auth_headers, operator)["native_balance"] == 10000 + 25

        stats = assert_successful_response(client.get("/api/v1/stats", headers=auth_headers))
        assert stats == {"total_supply": 230, "total_retired": 20, "active_projects": 1, "paused": False}

    def test_purchase_defaults_to_operator(self, client: TestClient, auth_headers, project, operator):
        response = client.post("/api/v1/credits/purchase", headers=auth_headers, json={"project_id": project, "amount": 1})
        data = assert_successful_response(response)

        assert data["account"] == operator
        assert balance(client, auth_headers, operator)["balance"] == 1


@pytest.mark.api
@pytest.mark.integration
class TestCreditErrors:
    """Ledger failures are mapped to HTTP statuses by category"""

    def test_unknown_project(self, client: TestClient, auth_headers, buyer):
        response = purchase(client, auth_headers, buyer, 1, project_id="missing")
        assert_ledger_error(response, 400, "validation")

    def test_purchase_more_than_available(self, client: TestClient, auth_headers, project, buyer):
        response = purchase(client, auth_headers, buyer, 1001)
        assert_ledger_error(response, 409, "insufficient_funds")

    def test_retire_without_balance(self, client: TestClient, auth_headers, buyer):
        response = client.post(
            "/api/v1/credits/retire", headers=auth_headers, json={"amount": 1, "reason": "offset", "account": buyer}
        )
        assert_ledger_error(response, 409, "insufficient_funds")

    def test_transfer_without_balance(self, client: TestClient, auth_headers, buyer):
        response = client.post(
            "/api/v1/credits/transfer",
            headers=auth_headers,
            json={"to": AccountFactory.create_account(), "amount": 1, "account": buyer},
        )
        data = assert_ledger_error(response, 409, "insufficient_funds")
        assert "Insufficient balance" in data["detail"]

    def test_mint_requires_admin_key(self, client: TestClient, auth_headers, project, operator):
        response = client.post(
            "/api/v1/credits/mint", headers=auth_headers, json={"to": operator, "amount": 1, "project_id": project}
        )
        assert_error_response(response, 403, "admin")

    def test_mint_beyond_available(self, client: TestClient, admin_headers, project, operator):
        response = client.post(
            "/api/v1/credits/mint", headers=admin_headers, json={"to": operator, "amount": 1001, "project_id": project}
        )
        assert_ledger_error(response, 409, "insufficient_funds")

    def test_paused_marketplace(self, client: TestClient, auth_headers, admin_headers, project, buyer):
        response = client.post("/api/v1/admin/pause", headers=admin_headers)
        assert_valid_transaction_response(assert_successful_response(response))
        assert client.get("/api/v1/stats", headers=auth_headers).json()["paused"] is True

        data = assert_ledger_error(purchase(client, auth_headers, buyer, 1), 423, "remote_call")
        assert data["transaction_id"]

        # Pausing twice is rejected
        assert_ledger_error(client.post("/api/v1/admin/pause", headers=admin_headers), 423, "remote_call")

        assert_successful_response(client.post("/api/v1/admin/unpause", headers=admin_headers))
        assert_successful_response(purchase(client, auth_headers, buyer, 1))

    def test_admin_routes_require_admin_key(self, client: TestClient, auth_headers):
        assert_error_response(client.post("/api/v1/admin/pause", headers=auth_headers), 403)
        assert_error_response(client.post("/api/v1/admin/pause"), 401)

    @pytest.mark.parametrize("amount", [0, -1, 0.001])
    def test_invalid_amounts(self, client: TestClient, auth_headers, project, buyer, amount):
        response = purchase(client, auth_headers, buyer, amount)
        assert response.status_code == 422

    def test_missing_fields(self, client: TestClient, auth_headers):
        response = client.post("/api/v1/credits/retire", headers=auth_headers, json={"amount": 1})
        assert response.status_code == 422

    def test_failed_calls_leave_no_history(self, client: TestClient, auth_headers, project, buyer):
        purchase(client, auth_headers, buyer, 5000)

        data = assert_successful_response(client.get(f"/api/v1/history/{buyer}", headers=auth_headers))
        assert data["transactions"] == []


@pytest.mark.api
class TestHealthEndpoint:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        data = assert_successful_response(response, ["status", "ledger"])

        assert data["status"] == "healthy"
        assert data["ledger"]["connected"] is True
        assert data["ledger"]["paused"] is False
        assert data["ledger"]["contract_url"] is None

    def test_health_links_deployed_contract(self, client: TestClient, operator):
        set_ledger_client(
            CreditLedgerClient(
                LocalLedgerBackend(MicroCreditContract(owner=operator)),
                LedgerChainContext("testnet", contract_id="0.0.5005"),
                operator,
            )
        )

        data = assert_successful_response(client.get("/health"))

        assert data["ledger"]["contract_url"] == "https://hashscan.io/testnet/contract/0.0.5005"

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert "EcoCredit" in response.text

    def test_generate_api_key(self, client: TestClient):
        first = client.get("/generate-api-key").json()["api_key"]
        second = client.get("/generate-api-key").json()["api_key"]

        assert len(first) >= 32
        assert first != second
