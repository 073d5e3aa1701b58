"""Tests for the sync endpoint."""

from datetime import date, timedelta
from decimal import Decimal

from billsync.exceptions import ProviderUnavailable


def test_sync_demo_mode(client, fake_banking):
    """Unconfigured provider should serve demo data."""
    fake_banking.configured = False

    response = client.post("/api/v1/sync", json={"basiq_user_id": "anyone"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"].startswith("Demo mode")
    assert len(data["data"]["subscriptions"]) == 3


def test_sync_persists_for_registered_user(client, fake_banking, make_raw_transaction, sample_user):
    """Registered users should get transactions and subscriptions stored."""
    today = date.today()
    fake_banking.balance = Decimal("1000.00")
    fake_banking.transactions = [
        make_raw_transaction(f"nf-{i}", "-22.99", today - timedelta(days=65 - 30 * i))
        for i in range(3)
    ]

    response = client.post("/api/v1/sync", json={"basiq_user_id": "basiq-user-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["persisted"] is True
    assert data["data"]["transactions_added"] == 3
    assert data["data"]["subscriptions_detected"] == 1
    assert data["data"]["subscriptions"][0]["merchant_name"] == "Netflix"
    assert data["data"]["monthly_subscription_cost"] == 22.99

    listing = client.get("/api/v1/subscriptions", params={"user_id": sample_user.id}).json()
    assert listing["total"] == 1


def test_sync_provider_failure(client, fake_banking):
    """Provider failures should return 502 with an error body."""
    fake_banking.error = ProviderUnavailable("Banking provider unreachable")

    response = client.post("/api/v1/sync", json={"basiq_user_id": "basiq-user-1"})

    assert response.status_code == 502
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "provider_unavailable"
    assert data["data"] is None


def test_sync_requires_user_id(client):
    """An empty provider user id should fail validation."""
    response = client.post("/api/v1/sync", json={"basiq_user_id": ""})
    assert response.status_code == 422


def test_sync_money_fields_are_json_numbers(client, fake_banking, make_raw_transaction, sample_user):
    """Balance, amounts and costs should serialize as numbers, not strings."""
    today = date.today()
    fake_banking.balance = Decimal("2500.00")
    fake_banking.transactions = [
        make_raw_transaction(f"nf-{i}", "-22.99", today - timedelta(days=65 - 30 * i))
        for i in range(3)
    ]

    body = client.post("/api/v1/sync", json={"basiq_user_id": "basiq-user-1"}).json()
    data = body["data"]

    assert isinstance(data["balance"], (int, float))
    assert data["balance"] == 2500.0
    assert isinstance(data["monthly_subscription_cost"], (int, float))
    assert all(isinstance(t["amount"], (int, float)) for t in data["transactions"])
    assert data["subscriptions"][0]["amount"] == 22.99


def test_demo_money_fields_are_json_numbers(client, fake_banking):
    """Demo summaries use the same numeric JSON shape."""
    fake_banking.configured = False

    data = client.post("/api/v1/sync", json={"basiq_user_id": "anyone"}).json()["data"]

    assert isinstance(data["balance"], (int, float))
    assert data["monthly_subscription_cost"] == 123.98
