"""Integration tests for API endpoints"""

import uuid
import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from vaniga_score.config import settings
from vaniga_score.infrastructure.database.models import Business
from vaniga_score.utils.date_utils import utcnow


def headers(business: Business) -> dict:
    return {"X-Business-ID": str(business.id)}


@pytest.fixture
def posted(client: TestClient, business: Business) -> dict:
    """A credit given to Ravi, created through the API"""
    response = client.post(
        "/v1/transactions",
        json={"kind": "CREDIT_GIVEN", "amount": 1000, "counterparty_name": "Ravi"},
        headers=headers(business),
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "vaniga_ledger_mutations" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_register_business_starts_at_base_score(client: TestClient):
    response = client.post("/v1/businesses", json={"business_name": "Selvi Tea Stall"})

    assert response.status_code == 201
    data = response.json()
    assert data["score"] == 300
    assert data["loan_eligible"] is False

    me = client.get("/v1/businesses/me", headers={"X-Business-ID": data["business_id"]})
    assert me.status_code == 200
    assert me.json()["business_name"] == "Selvi Tea Stall"


def test_create_transaction_returns_updated_score(client: TestClient, business: Business):
    response = client.post(
        "/v1/transactions",
        json={"kind": "CREDIT_GIVEN", "amount": 50000, "payment_method": "PENDING"},
        headers=headers(business),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["updated_score"] == 560
    assert data["loan_eligible"] is False
    assert data["score_stale"] is False
    assert data["transaction"]["kind"] == "CREDIT_GIVEN"
    assert data["transaction"]["payment_method"] == "PENDING"


def test_create_requires_identity(client: TestClient):
    response = client.post("/v1/transactions", json={"kind": "EXPENSE", "amount": 10})
    assert response.status_code == 401


def test_create_for_unknown_business(client: TestClient):
    response = client.post(
        "/v1/transactions",
        json={"kind": "EXPENSE", "amount": 10},
        headers={"X-Business-ID": str(uuid.uuid4())},
    )
    assert response.status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"amount": 10},
        {"kind": "EXPENSE"},
        {"kind": "EXPENSE", "amount": -1},
        {"kind": "BARTER", "amount": 10},
        {"kind": "EXPENSE", "amount": 10, "category": "TRAVEL"},
    ],
)
def test_create_rejects_malformed_body(client: TestClient, business: Business, body: dict):
    response = client.post("/v1/transactions", json=body, headers=headers(business))
    assert response.status_code == 422


def test_create_rejects_amount_with_sub_cent_precision(client: TestClient, business: Business):
    response = client.post(
        "/v1/transactions",
        json={"kind": "CREDIT_GIVEN", "amount": "10.555", "counterparty_name": "Ravi"},
        headers=headers(business),
    )

    assert response.status_code == 400
    assert "decimal places" in response.json()["detail"]
    assert client.get("/v1/transactions", headers=headers(business)).json()["count"] == 0


def test_get_transaction(client: TestClient, business: Business, posted: dict):
    txn_id = posted["transaction"]["transaction_id"]

    response = client.get(f"/v1/transactions/{txn_id}", headers=headers(business))

    assert response.status_code == 200
    assert response.json()["counterparty_name"] == "Ravi"


def test_list_transactions_filters_by_kind(client: TestClient, business: Business, posted: dict):
    client.post("/v1/transactions", json={"kind": "EXPENSE", "amount": 50}, headers=headers(business))

    everything = client.get("/v1/transactions", headers=headers(business)).json()
    expenses = client.get("/v1/transactions", params={"kind": "EXPENSE"}, headers=headers(business)).json()

    assert everything["count"] == 2
    assert expenses["count"] == 1
    assert expenses["transactions"][0]["kind"] == "EXPENSE"


def test_list_transactions_default_limit_comes_from_settings(
    client: TestClient, business: Business, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setattr(settings, "transaction_list_limit", 2)
    for amount in (10, 20, 30):
        client.post("/v1/transactions", json={"kind": "EXPENSE", "amount": amount}, headers=headers(business))

    default = client.get("/v1/transactions", headers=headers(business)).json()
    explicit = client.get("/v1/transactions", params={"limit": 3}, headers=headers(business)).json()

    assert default["count"] == 2
    assert explicit["count"] == 3


def test_update_transaction(client: TestClient, business: Business, posted: dict):
    txn_id = posted["transaction"]["transaction_id"]

    response = client.put(f"/v1/transactions/{txn_id}", json={"amount": 2000}, headers=headers(business))

    assert response.status_code == 200
    data = response.json()
    assert data["transaction"]["amount"] == 2000
    assert data["transaction"]["counterparty_name"] == "Ravi"
    assert data["updated_score"] == 410


def test_foreign_business_cannot_touch_transaction(
    client: TestClient, business: Business, other_business: Business, posted: dict
):
    txn_id = posted["transaction"]["transaction_id"]

    assert client.get(f"/v1/transactions/{txn_id}", headers=headers(other_business)).status_code == 403
    assert client.put(
        f"/v1/transactions/{txn_id}", json={"amount": 1}, headers=headers(other_business)
    ).status_code == 403
    assert client.delete(f"/v1/transactions/{txn_id}", headers=headers(other_business)).status_code == 403


def test_missing_transaction(client: TestClient, business: Business):
    missing = uuid.uuid4()
    assert client.put(f"/v1/transactions/{missing}", json={"amount": 1}, headers=headers(business)).status_code == 404
    assert client.delete(f"/v1/transactions/{missing}", headers=headers(business)).status_code == 404


def test_delete_transaction_resets_score(client: TestClient, business: Business, posted: dict):
    txn_id = posted["transaction"]["transaction_id"]

    response = client.delete(f"/v1/transactions/{txn_id}", headers=headers(business))

    assert response.status_code == 200
    assert response.json() == {"updated_score": 300, "loan_eligible": False, "score_stale": False}
    assert client.get("/v1/businesses/me", headers=headers(business)).json()["score"] == 300


def test_dashboard_stats(client: TestClient, business: Business, posted: dict):
    client.post(
        "/v1/transactions",
        json={"kind": "PAYMENT_RECEIVED", "amount": 800, "counterparty_name": "Ravi"},
        headers=headers(business),
    )
    client.post(
        "/v1/transactions",
        json={"kind": "EXPENSE", "amount": 300, "category": "RENT"},
        headers=headers(business),
    )

    response = client.get("/v1/dashboard/stats", headers=headers(business))

    assert response.status_code == 200
    data = response.json()
    assert data["stats"] == {
        "total_credit_given": 1000,
        "total_payment_received": 800,
        "total_expenses": 300,
        "pending_amount": 200,
        "transaction_count": 3,
    }
    assert data["score_breakdown"]["score"] == 440
    assert data["score_breakdown"]["breakdown"] == {"base": 300, "volume": 90, "consistency": 10, "health": 40}
    assert data["score_breakdown"]["metrics"]["collection_rate"] == 80


def test_customers_listing_and_refresh(client: TestClient, business: Business, posted: dict):
    listing = client.get("/v1/customers", headers=headers(business)).json()
    assert listing["count"] == 1
    assert listing["customers"][0]["outstanding_balance"] == 1000

    refreshed = client.post("/v1/customers/refresh", json={"name": "Ravi"}, headers=headers(business))
    assert refreshed.status_code == 200
    assert refreshed.json()["total_credit_given"] == 1000

    unknown = client.post("/v1/customers/refresh", json={"name": "Nobody"}, headers=headers(business))
    assert unknown.status_code == 404


@pytest.fixture
def admin_headers(monkeypatch: pytest.MonkeyPatch) -> dict:
    monkeypatch.setattr(settings, "admin_token", "operator-secret")
    return {"X-Admin-Token": "operator-secret"}


def test_admin_resync(client: TestClient, business: Business, posted: dict, admin_headers: dict):
    response = client.post(f"/v1/admin/businesses/{business.id}/resync", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 360
    assert data["refreshed_customers"] == ["Ravi"]

    assert client.post(f"/v1/admin/businesses/{uuid.uuid4()}/resync", headers=admin_headers).status_code == 404


def test_admin_resync_requires_admin_token(
    client: TestClient, business: Business, monkeypatch: pytest.MonkeyPatch
):
    url = f"/v1/admin/businesses/{business.id}/resync"

    assert client.post(url).status_code == 401
    assert client.post(url, headers=headers(business)).status_code == 401
    assert client.post(url, headers={"X-Admin-Token": "guess"}).status_code == 403

    monkeypatch.setattr(settings, "admin_token", "operator-secret")
    assert client.post(url, headers={"X-Admin-Token": "guess"}).status_code == 403


def test_backdated_transaction_outside_window(client: TestClient, business: Business):
    occurred_at = (utcnow() - timedelta(days=40)).isoformat()

    response = client.post(
        "/v1/transactions",
        json={"kind": "PAYMENT_RECEIVED", "amount": 5000, "occurred_at": occurred_at},
        headers=headers(business),
    )

    assert response.status_code == 201
    assert response.json()["updated_score"] == 300
