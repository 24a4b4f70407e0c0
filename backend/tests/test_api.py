"""
HTTP API Tests

Exercise the FastAPI surface end to end against in-memory stores.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import VALID_HASH, make_wallet
from walletguard.core.security.types import ResourceType
from walletguard.stores.base import Write

TRANSACTION_BODY = {
    "kind": "create",
    "resource_type": "transaction",
    "principal_id": "u1",
    "proposed": {
        "user_id": "u1",
        "amount": {"$decimal": "50"},
        "timestamp": {"$date": "2026-01-15T12:00:00Z"},
        "hash": VALID_HASH,
    },
}


@pytest.fixture
def funded(store):
    store.commit([Write.create(ResourceType.WALLET, "w1", make_wallet())])
    return store


def as_user(principal_id):
    return {"X-Principal-Id": principal_id}


class TestHealthEndpoints:
    """Test health endpoints return expected responses."""

    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == "walletguard"
        assert "uptime_seconds" in data

    def test_request_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestPolicyEndpoint:
    """POST /api/v1/policy/evaluate"""

    def test_allowed_operation(self, client):
        response = client.post("/api/v1/policy/evaluate", json=TRANSACTION_BODY)
        assert response.status_code == 200
        assert response.json() == {"allowed": True, "reason": None, "check": None}

    def test_string_timestamp_is_denied(self, client):
        body = dict(TRANSACTION_BODY)
        body["proposed"] = dict(TRANSACTION_BODY["proposed"], timestamp="2026-01-15T12:00:00Z")

        response = client.post("/api/v1/policy/evaluate", json=body)

        assert response.status_code == 403
        assert response.json()["check"] == "validation"

    def test_admin_audit_write_denied(self, client):
        body = {
            "kind": "create",
            "resource_type": "audit_log",
            "principal_id": "admin1",
            "proposed": {"id": "a1"},
        }
        response = client.post("/api/v1/policy/evaluate", json=body)
        assert response.status_code == 403
        assert response.json()["check"] == "locked"

    def test_wallet_update_outside_allowlist(self, client):
        existing = {"id": "w1", "owner_id": "u1", "balance": {"$decimal": "100"}}
        proposed = {
            "id": "w1",
            "owner_id": "u2",
            "balance": {"$decimal": "150"},
            "amount": {"$decimal": "50"},
            "timestamp": {"$date": "2026-01-15T12:00:00Z"},
            "hash": VALID_HASH,
        }
        body = {
            "kind": "update",
            "resource_type": "wallet",
            "principal_id": "u1",
            "existing": existing,
            "proposed": proposed,
        }
        response = client.post("/api/v1/policy/evaluate", json=body)
        assert response.status_code == 403
        assert response.json()["check"] == "field_diff"

    def test_unknown_principal_is_404(self, client):
        response = client.post("/api/v1/policy/evaluate", json=dict(TRANSACTION_BODY, principal_id="ghost"))
        assert response.status_code == 404
        assert response.json()["error"] == "ERR_NOT_FOUND"

    def test_unknown_kind_is_400(self, client):
        response = client.post("/api/v1/policy/evaluate", json=dict(TRANSACTION_BODY, kind="patch"))
        assert response.status_code == 400
        assert response.json()["error"] == "ERR_MALFORMED_OPERATION"

    def test_missing_snapshot_is_400(self, client):
        body = {"kind": "read", "resource_type": "wallet", "principal_id": "u1"}
        response = client.post("/api/v1/policy/evaluate", json=body)
        assert response.status_code == 400

    def test_missing_principal_is_422(self, client):
        body = {key: value for key, value in TRANSACTION_BODY.items() if key != "principal_id"}
        response = client.post("/api/v1/policy/evaluate", json=body)
        assert response.status_code == 422
        assert response.json()["error"] == "ERR_VALIDATION"


class TestWalletTransactionEndpoint:
    """POST /api/v1/wallets/{wallet_id}/transactions"""

    def test_deposit(self, client, funded):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "25", "type": "deposit", "description": "salary"},
            headers=as_user("u1"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["allowed"] is True
        assert data["balance"] == "125.00"
        assert data["transaction"]["amount"] == {"$decimal": "25"}
        assert data["transaction"]["user_id"] == "u1"

    def test_foreign_wallet_is_403(self, client, funded):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "25", "type": "deposit"},
            headers=as_user("u2"),
        )
        assert response.status_code == 403
        assert response.json()["check"] == "ownership"

    def test_insufficient_funds_is_403(self, client, funded):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "500", "type": "withdrawal"},
            headers=as_user("u1"),
        )
        assert response.status_code == 403
        assert response.json()["check"] == "funds"

    def test_unknown_wallet_is_404(self, client, funded):
        response = client.post(
            "/api/v1/wallets/nope/transactions",
            json={"amount": "25", "type": "deposit"},
            headers=as_user("u1"),
        )
        assert response.status_code == 404

    def test_unknown_type_is_400(self, client, funded):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "25", "type": "refund"},
            headers=as_user("u1"),
        )
        assert response.status_code == 400

    def test_missing_principal_header_is_422(self, client, funded):
        response = client.post("/api/v1/wallets/w1/transactions", json={"amount": "25", "type": "deposit"})
        assert response.status_code == 422


class TestAuditLogEndpoint:
    """GET /api/v1/audit-logs"""

    def post_deposit(self, client):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "25", "type": "deposit"},
            headers=as_user("u1"),
        )
        assert response.status_code == 201

    def test_admin_reads_verified_trail(self, client, funded):
        self.post_deposit(client)

        response = client.get("/api/v1/audit-logs", headers=as_user("admin1"))

        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert [entry["action"] for entry in data["entries"]] == ["transaction_deposit"]

    def test_user_is_denied(self, client, funded):
        self.post_deposit(client)
        response = client.get("/api/v1/audit-logs", headers=as_user("u1"))
        assert response.status_code == 403
        assert response.json()["check"] == "role"

    def test_user_is_denied_on_empty_trail(self, client):
        response = client.get("/api/v1/audit-logs", headers=as_user("u1"))
        assert response.status_code == 403

    def test_tampered_trail_is_500(self, client, funded):
        self.post_deposit(client)
        snapshot = funded.list(ResourceType.AUDIT_LOG)[0]
        funded.commit([Write.replace(snapshot, dict(snapshot.data, details="rewritten"))])

        response = client.get("/api/v1/audit-logs", headers=as_user("admin1"))

        assert response.status_code == 500
        assert response.json()["error"] == "ERR_INTEGRITY"


class TestErrorMapping:
    """Only the service's own lookups become 404."""

    def test_stray_key_error_is_500(self, app):
        def broken():
            return {}["missing"]

        app.add_api_route("/broken", broken, methods=["GET"])

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/broken")

        assert response.status_code == 500
        assert response.json()["error"] == "ERR_INTERNAL"

    def test_stray_index_error_is_500(self, app):
        def broken():
            return [][0]

        app.add_api_route("/broken-index", broken, methods=["GET"])

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/broken-index")

        assert response.status_code == 500

    def test_unknown_principal_still_404(self, client, funded):
        response = client.post(
            "/api/v1/wallets/w1/transactions",
            json={"amount": "25", "type": "deposit"},
            headers=as_user("ghost"),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "ERR_NOT_FOUND"
