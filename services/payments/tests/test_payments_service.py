import uuid

import pytest
from fastapi.testclient import TestClient

from services.payments import main
from services.payments.repo import PaymentsRepo

ORDER = {"order_id": 1, "product": "laptop", "quantity": 1, "is_paid": False}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "repo", PaymentsRepo())
    monkeypatch.setattr(main, "MAX_QUANTITY", 10)
    return TestClient(main.app)


def test_charge_approved(client):
    r = client.post("/charge", json=ORDER)
    assert r.status_code == 200
    body = r.json()
    assert body["paid"] is True
    tx = main.repo.get_tx(uuid.UUID(body["transaction_id"]))
    assert tx.order_id == 1 and tx.internal_id == 1


def test_charge_declined_over_max_quantity(client):
    r = client.post("/charge", json={**ORDER, "quantity": 11})
    assert r.status_code == 402
    assert r.json()["detail"] == "PAYMENT_DECLINED"


def test_already_paid_order_is_declined(client):
    r = client.post("/charge", json={**ORDER, "is_paid": True})
    assert r.status_code == 402


def test_idempotent_retry_returns_same_transaction(client):
    headers = {"Idempotency-Key": "k-order-1"}
    r1 = client.post("/charge", json=ORDER, headers=headers)
    r2 = client.post("/charge", json=ORDER, headers=headers)
    assert r1.status_code == r2.status_code == 200
    assert r1.json()["transaction_id"] == r2.json()["transaction_id"]


def test_idempotent_retry_of_declined_charge_stays_declined(client):
    headers = {"Idempotency-Key": "k-order-2"}
    payload = {**ORDER, "order_id": 2, "quantity": 50}
    r1 = client.post("/charge", json=payload, headers=headers)
    r2 = client.post("/charge", json=payload, headers=headers)
    assert r1.status_code == r2.status_code == 402
    assert r1.json() == r2.json()


def test_idempotency_conflict(client):
    headers = {"Idempotency-Key": "k-order-3"}
    client.post("/charge", json=ORDER, headers=headers)
    r = client.post("/charge", json={**ORDER, "quantity": 2}, headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "IDEMPOTENCY_CONFLICT"


def test_invalid_payload(client):
    r = client.post("/charge", json={**ORDER, "quantity": 0})
    assert r.status_code == 422
